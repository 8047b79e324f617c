"""DuckDB-backed implementations of the counting collaborators.

All collaborators read the same database file. Each call opens its own
connection, materializes the filter scope into connection-local temporary
tables (``scope_study`` and ``scope_sample``) and closes the connection
before returning.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import duckdb
import pandas as pd

from altcount.config import WHOLE_EXOME_SEQUENCING
from altcount.errors import MolecularProfileNotFoundError, StudyNotFoundError
from altcount.models import (
    AlterationCountRecord,
    AlterationType,
    CopyNumberCountRecord,
    FilterScope,
    MolecularProfile,
    SignificantRegion,
)
from altcount.storage.base import (
    CountStore,
    ProfileResolver,
    SignificanceStore,
    StudyScopeResolver,
)

logger = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

TABLE_COLUMNS: dict[str, tuple[tuple[str, str], ...]] = {
    "cancer_study": (
        ("cancer_study_identifier", "VARCHAR"),
    ),
    "sample": (
        ("cancer_study_identifier", "VARCHAR"),
        ("sample_id", "VARCHAR"),
    ),
    "molecular_profile": (
        ("stable_id", "VARCHAR"),
        ("cancer_study_identifier", "VARCHAR"),
        ("alteration_type", "VARCHAR"),
    ),
    "sample_to_gene_panel": (
        ("cancer_study_identifier", "VARCHAR"),
        ("sample_id", "VARCHAR"),
        ("molecular_profile_id", "VARCHAR"),
        ("alteration_type", "VARCHAR"),
        ("gene_panel_id", "VARCHAR"),
    ),
    "gene_panel_to_gene": (
        ("gene_panel_id", "VARCHAR"),
        ("hugo_gene_symbol", "VARCHAR"),
    ),
    "genomic_event": (
        ("cancer_study_identifier", "VARCHAR"),
        ("sample_id", "VARCHAR"),
        ("hugo_gene_symbol", "VARCHAR"),
        ("entrez_gene_id", "BIGINT"),
        ("alteration_type", "VARCHAR"),
        ("cna_alteration", "INTEGER"),
    ),
    "gistic": (
        ("cancer_study_identifier", "VARCHAR"),
        ("gistic_roi_id", "BIGINT"),
        ("amp", "BOOLEAN"),
        ("q_value", "DOUBLE"),
        ("hugo_gene_symbol", "VARCHAR"),
    ),
}

_SCOPED_SAMPLE_JOIN = (
    "JOIN scope_sample AS s "
    "ON s.cancer_study_identifier = {alias}.cancer_study_identifier "
    "AND s.sample_id = {alias}.sample_id"
)


class DuckDBBackend:
    """Connection and scope handling shared by the DuckDB collaborators."""

    def __init__(self, *, db_path: str | Path) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def _connect(self, *, create: bool = False) -> Iterator[duckdb.DuckDBPyConnection]:
        if not create and not self.db_path.exists():
            raise FileNotFoundError(f"Count database not found: {self.db_path}")

        connection = duckdb.connect(str(self.db_path))
        try:
            yield connection
        finally:
            connection.close()

    @staticmethod
    def _require_studies(
        connection: duckdb.DuckDBPyConnection,
        study_ids: Sequence[str],
    ) -> None:
        known = {
            row[0]
            for row in connection.execute(
                "SELECT cancer_study_identifier FROM cancer_study"
            ).fetchall()
        }
        for study_id in study_ids:
            if study_id not in known:
                raise StudyNotFoundError(study_id)

    def _register_scope(
        self,
        connection: duckdb.DuckDBPyConnection,
        scope: FilterScope,
    ) -> None:
        study_ids = scope.scoped_study_ids()
        self._require_studies(connection, study_ids)

        connection.execute(
            "CREATE TEMP TABLE scope_study (position INTEGER, cancer_study_identifier VARCHAR)"
        )
        connection.execute(
            "CREATE TEMP TABLE scope_sample (cancer_study_identifier VARCHAR, sample_id VARCHAR)"
        )
        if study_ids:
            connection.executemany(
                "INSERT INTO scope_study VALUES (?, ?)",
                [[position, study_id] for position, study_id in enumerate(study_ids)],
            )

        if scope.samples:
            connection.executemany(
                "INSERT INTO scope_sample VALUES (?, ?)",
                [[study_id, sample_id] for study_id, sample_id in dict.fromkeys(scope.samples)],
            )
        else:
            connection.execute(
                "INSERT INTO scope_sample "
                "SELECT smp.cancer_study_identifier, smp.sample_id FROM sample AS smp "
                "JOIN scope_study AS t ON t.cancer_study_identifier = smp.cancer_study_identifier"
            )

    def _study_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
        *,
        gene_panel_id: str | None = None,
    ) -> dict[str, int]:
        sql = (
            "SELECT p.cancer_study_identifier, COUNT(DISTINCT p.sample_id) "
            "FROM sample_to_gene_panel AS p "
            f"{_SCOPED_SAMPLE_JOIN.format(alias='p')} "
            "WHERE p.alteration_type = ?"
        )
        params: list[Any] = [alteration_type.value]
        if gene_panel_id is not None:
            sql += " AND p.gene_panel_id = ?"
            params.append(gene_panel_id)
        sql += " GROUP BY p.cancer_study_identifier"

        with self._connect() as connection:
            self._register_scope(connection, scope)
            rows = connection.execute(sql, params).fetchall()
        return {study_id: int(count) for study_id, count in rows}


class DuckDBCountStore(DuckDBBackend, CountStore):
    """Count queries over the ``sample_to_gene_panel`` and ``genomic_event`` tables."""

    def profiled_sample_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> dict[str, int]:
        return self._study_counts(scope, alteration_type)

    def wes_profiled_sample_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> dict[str, int]:
        return self._study_counts(
            scope,
            alteration_type,
            gene_panel_id=WHOLE_EXOME_SEQUENCING,
        )

    def gene_profiled_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
        profiles: Sequence[MolecularProfile],
    ) -> dict[str, dict[str, int]]:
        with self._connect() as connection:
            self._register_scope(connection, scope)
            if not profiles:
                return {}

            known = {
                row[0]
                for row in connection.execute(
                    "SELECT stable_id FROM molecular_profile"
                ).fetchall()
            }
            for profile in profiles:
                if profile.stable_id not in known:
                    raise MolecularProfileNotFoundError(profile.stable_id)

            connection.execute("CREATE TEMP TABLE scope_profile (stable_id VARCHAR)")
            connection.executemany(
                "INSERT INTO scope_profile VALUES (?)",
                [[profile.stable_id] for profile in profiles],
            )
            rows = connection.execute(
                "SELECT g.hugo_gene_symbol, p.cancer_study_identifier, COUNT(DISTINCT p.sample_id) "
                "FROM sample_to_gene_panel AS p "
                f"{_SCOPED_SAMPLE_JOIN.format(alias='p')} "
                "JOIN scope_profile AS m ON m.stable_id = p.molecular_profile_id "
                "JOIN gene_panel_to_gene AS g ON g.gene_panel_id = p.gene_panel_id "
                "WHERE p.alteration_type = ? AND p.gene_panel_id <> ? "
                "GROUP BY g.hugo_gene_symbol, p.cancer_study_identifier",
                [alteration_type.value, WHOLE_EXOME_SEQUENCING],
            ).fetchall()

        table: dict[str, dict[str, int]] = {}
        for gene, study_id, count in rows:
            table.setdefault(gene, {})[study_id] = int(count)
        return table

    def matching_gene_panel_ids(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> dict[str, set[str]]:
        with self._connect() as connection:
            self._register_scope(connection, scope)
            rows = connection.execute(
                "SELECT DISTINCT g.hugo_gene_symbol, g.gene_panel_id "
                "FROM sample_to_gene_panel AS p "
                f"{_SCOPED_SAMPLE_JOIN.format(alias='p')} "
                "JOIN gene_panel_to_gene AS g ON g.gene_panel_id = p.gene_panel_id "
                "WHERE p.alteration_type = ?",
                [alteration_type.value],
            ).fetchall()

        table: dict[str, set[str]] = {}
        for gene, panel_id in rows:
            table.setdefault(gene, set()).add(panel_id)
        return table

    def alteration_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> list[AlterationCountRecord]:
        if alteration_type is AlterationType.COPY_NUMBER_ALTERATION:
            raise ValueError("Copy-number counts are served by copy_number_counts()")

        with self._connect() as connection:
            self._register_scope(connection, scope)
            rows = connection.execute(
                "SELECT e.hugo_gene_symbol, MIN(e.entrez_gene_id), e.cancer_study_identifier, "
                "COUNT(DISTINCT e.sample_id), COUNT(*) "
                "FROM genomic_event AS e "
                f"{_SCOPED_SAMPLE_JOIN.format(alias='e')} "
                "WHERE e.alteration_type = ? "
                "GROUP BY e.hugo_gene_symbol, e.cancer_study_identifier "
                "ORDER BY e.hugo_gene_symbol, e.cancer_study_identifier",
                [alteration_type.value],
            ).fetchall()

        # Sample ids are study qualified, so per-study distinct counts add up.
        records: dict[str, AlterationCountRecord] = {}
        for gene, entrez_gene_id, study_id, altered, total in rows:
            record = records.get(gene)
            if record is None:
                record = AlterationCountRecord(
                    hugo_gene_symbol=gene,
                    entrez_gene_id=entrez_gene_id,
                    number_of_altered_cases=0,
                    total_count=0,
                )
                records[gene] = record
            record.number_of_altered_cases += int(altered)
            record.total_count += int(total)
            record.altered_in_study_ids.add(study_id)

        logger.debug(
            "Fetched %s %s gene counts from %s rows",
            len(records),
            alteration_type.value,
            len(rows),
        )
        return list(records.values())

    def copy_number_counts(self, scope: FilterScope) -> list[CopyNumberCountRecord]:
        with self._connect() as connection:
            self._register_scope(connection, scope)
            rows = connection.execute(
                "SELECT e.hugo_gene_symbol, e.entrez_gene_id, e.cna_alteration, "
                "e.cancer_study_identifier, COUNT(DISTINCT e.sample_id), COUNT(*) "
                "FROM genomic_event AS e "
                f"{_SCOPED_SAMPLE_JOIN.format(alias='e')} "
                "WHERE e.alteration_type = ? AND e.cna_alteration IS NOT NULL "
                "GROUP BY e.hugo_gene_symbol, e.entrez_gene_id, e.cna_alteration, "
                "e.cancer_study_identifier "
                "ORDER BY e.cancer_study_identifier, e.hugo_gene_symbol, "
                "e.cna_alteration, e.entrez_gene_id",
                [AlterationType.COPY_NUMBER_ALTERATION.value],
            ).fetchall()

        return [
            CopyNumberCountRecord(
                hugo_gene_symbol=gene,
                entrez_gene_id=entrez_gene_id,
                alteration=int(alteration),
                study_id=study_id,
                number_of_altered_cases=int(altered),
                total_count=int(total),
            )
            for gene, entrez_gene_id, alteration, study_id, altered, total in rows
        ]


class DuckDBProfileResolver(DuckDBBackend, ProfileResolver):
    """Resolve molecular profiles from the ``molecular_profile`` table."""

    def resolve(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> list[MolecularProfile]:
        with self._connect() as connection:
            self._register_scope(connection, scope)
            rows = connection.execute(
                "SELECT m.stable_id, m.cancer_study_identifier "
                "FROM molecular_profile AS m "
                "JOIN scope_study AS t ON t.cancer_study_identifier = m.cancer_study_identifier "
                "WHERE m.alteration_type = ? "
                "ORDER BY t.position, m.stable_id",
                [alteration_type.value],
            ).fetchall()

        return [
            MolecularProfile(stable_id=stable_id, study_id=study_id, alteration_type=alteration_type)
            for stable_id, study_id in rows
        ]


class DuckDBStudyScopeResolver(DuckDBBackend, StudyScopeResolver):
    """Resolve the distinct studies that have samples inside a scope."""

    def resolve(self, scope: FilterScope) -> set[str]:
        with self._connect() as connection:
            self._register_scope(connection, scope)
            rows = connection.execute(
                "SELECT DISTINCT s.cancer_study_identifier FROM scope_sample AS s "
                "JOIN sample AS smp "
                "ON smp.cancer_study_identifier = s.cancer_study_identifier "
                "AND smp.sample_id = s.sample_id"
            ).fetchall()
        return {row[0] for row in rows}


class DuckDBSignificanceStore(DuckDBBackend, SignificanceStore):
    """Serve significant copy-number regions from the ``gistic`` table."""

    def fetch(self, study_id: str) -> list[SignificantRegion]:
        with self._connect() as connection:
            self._require_studies(connection, (study_id,))
            rows = connection.execute(
                "SELECT gistic_roi_id, amp, q_value, hugo_gene_symbol FROM gistic "
                "WHERE cancer_study_identifier = ? "
                "AND gistic_roi_id IS NOT NULL AND amp IS NOT NULL AND q_value IS NOT NULL "
                "ORDER BY gistic_roi_id, hugo_gene_symbol",
                [study_id],
            ).fetchall()

        grouped: dict[int, dict[str, Any]] = {}
        for region_id, amp, q_value, gene in rows:
            entry = grouped.setdefault(
                int(region_id),
                {"amp": bool(amp), "q_value": float(q_value), "genes": []},
            )
            if gene is not None:
                entry["genes"].append(gene)

        return [
            SignificantRegion(
                study_id=study_id,
                region_id=region_id,
                amp=entry["amp"],
                q_value=entry["q_value"],
                genes=tuple(entry["genes"]),
            )
            for region_id, entry in grouped.items()
        ]


class DuckDBTableLoader(DuckDBBackend):
    """Create the count tables and bulk-load them from pandas frames."""

    def initialize(self) -> None:
        """Create any missing tables."""

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect(create=True) as connection:
            for table_name, columns in TABLE_COLUMNS.items():
                column_sql = ", ".join(f"{name} {sql_type}" for name, sql_type in columns)
                connection.execute(f"CREATE TABLE IF NOT EXISTS {table_name} ({column_sql})")

    def load_frame(self, table_name: str, frame: pd.DataFrame) -> int:
        """Append ``frame`` to ``table_name`` and return the number of rows loaded."""

        columns = self._columns_for(table_name)
        missing = [name for name, _ in columns if name not in frame.columns]
        if missing:
            raise ValueError(f"Frame for {table_name} is missing columns: {', '.join(missing)}")
        if frame.empty:
            return 0

        self.initialize()
        selected = ", ".join(f"CAST({name} AS {sql_type})" for name, sql_type in columns)
        subset = frame[[name for name, _ in columns]]

        with self._connect() as connection:
            connection.register("incoming_frame", subset)
            try:
                self._check_casts(connection, table_name, columns)
                connection.execute(
                    f"INSERT INTO {table_name} SELECT {selected} FROM incoming_frame"
                )
            finally:
                connection.unregister("incoming_frame")

        logger.info("Loaded %s rows into %s", len(subset), table_name)
        return len(subset)

    def load_path(self, table_name: str, path: str | Path) -> int:
        """Load a CSV or TSV file (optionally compressed) into ``table_name``."""

        columns = self._columns_for(table_name)
        source = Path(path)
        if not source.exists():
            raise FileNotFoundError(f"Table source not found: {source}")

        suffixes = [suffix.lower() for suffix in source.suffixes]
        separator = "\t" if ".tsv" in suffixes or ".txt" in suffixes else ","
        frame = pd.read_csv(
            source,
            sep=separator,
            compression="infer",
            dtype={name: str for name, sql_type in columns if sql_type == "VARCHAR"},
        )
        return self.load_frame(table_name, frame)

    @staticmethod
    def _check_casts(
        connection: duckdb.DuckDBPyConnection,
        table_name: str,
        columns: Sequence[tuple[str, str]],
    ) -> None:
        """Reject non-empty source values that do not convert to the column type."""

        for name, sql_type in columns:
            if sql_type == "VARCHAR":
                continue
            bad_count, example = connection.execute(
                f"SELECT COUNT(*), ANY_VALUE(CAST({name} AS VARCHAR)) FROM incoming_frame "
                f"WHERE {name} IS NOT NULL AND TRY_CAST({name} AS {sql_type}) IS NULL"
            ).fetchone()
            if bad_count:
                raise ValueError(
                    f"{table_name}.{name}: {bad_count} value(s) cannot be read as "
                    f"{sql_type} (e.g. {example!r})"
                )

    @staticmethod
    def _columns_for(table_name: str) -> tuple[tuple[str, str], ...]:
        if not _TABLE_RE.match(table_name) or table_name not in TABLE_COLUMNS:
            raise ValueError(
                f"Unknown table: {table_name}. Available: {', '.join(sorted(TABLE_COLUMNS))}"
            )
        return TABLE_COLUMNS[table_name]
