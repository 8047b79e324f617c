"""Profiled-sample enrichment for alteration count records."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TypeVar

from altcount.config import WHOLE_EXOME_SEQUENCING, EngineSettings
from altcount.models import AlterationCountRecord, AlterationType, FilterScope, MolecularProfile
from altcount.storage.base import CountStore, ProfileResolver

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=AlterationCountRecord)


def has_gene_panel_data(matching_gene_panel_ids: Iterable[str]) -> bool:
    """Return True when a gene is covered by at least one targeted gene panel.

    Whole-exome coverage alone does not count as panel data, while any single
    non-WES panel does.
    """

    panel_ids = set(matching_gene_panel_ids)
    if WHOLE_EXOME_SEQUENCING in panel_ids:
        return len(panel_ids) > 1
    return bool(panel_ids)


def first_profile_per_study(profiles: Iterable[MolecularProfile]) -> list[MolecularProfile]:
    """Keep the first profile encountered for each study."""

    selected: dict[str, MolecularProfile] = {}
    for profile in profiles:
        selected.setdefault(profile.study_id, profile)
    return list(selected.values())


@dataclass(frozen=True)
class ProfiledCountTables:
    """Read-only lookup tables shared by every record of one enrichment call."""

    sample_profiled_counts: Mapping[str, int]
    gene_profiled_counts: Mapping[str, Mapping[str, int]]
    matching_gene_panel_ids: Mapping[str, set[str]]
    wes_profiled_counts: Mapping[str, int]

    def total_profiled_count(self, record: AlterationCountRecord) -> tuple[int, set[str]]:
        """Return the profiled-sample total and matching panel ids for one record."""

        gene = record.hugo_gene_symbol
        matching = set(self.matching_gene_panel_ids.get(gene, ()))
        gene_counts = self.gene_profiled_counts.get(gene, {})

        relevant_study_ids = set(record.altered_in_study_ids)
        relevant_study_ids.update(gene_counts.keys())
        relevant_study_ids.update(self.wes_profiled_counts.keys())

        wes_counts = {
            study_id: self.wes_profiled_counts[study_id]
            for study_id in relevant_study_ids
            if study_id in self.wes_profiled_counts
        }
        sample_counts = {
            study_id: self.sample_profiled_counts[study_id]
            for study_id in relevant_study_ids
            if study_id in self.sample_profiled_counts
        }

        if has_gene_panel_data(matching):
            panel_count = sum(
                count
                for study_id, count in gene_counts.items()
                if study_id in relevant_study_ids
            )
            return panel_count + sum(wes_counts.values()), matching

        total = 0
        for study_id in relevant_study_ids:
            wes_count = wes_counts.get(study_id, 0)
            total += wes_count if wes_count else sample_counts.get(study_id, 0)
        return total, matching


class ProfiledCountEnricher:
    """Attach profiled-sample totals and matching gene panels to count records.

    Lookup tables are fetched once per call; records are then processed on a
    bounded thread pool, each worker writing only the record it was handed.
    Collaborator errors (including not-found conditions) propagate unchanged.
    """

    def __init__(
        self,
        *,
        profile_resolver: ProfileResolver,
        count_store: CountStore,
        settings: EngineSettings | None = None,
    ) -> None:
        self.profile_resolver = profile_resolver
        self.count_store = count_store
        self.settings = settings or EngineSettings()

    def enrich(
        self,
        records: Sequence[RecordT],
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> list[RecordT]:
        records = list(records)
        tables = self.fetch_tables(scope, alteration_type)
        if not records:
            return records

        def _apply(record: RecordT) -> None:
            total, matching = tables.total_profiled_count(record)
            record.number_of_profiled_cases = total
            record.matching_gene_panel_ids = matching

        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            # Draining the iterator re-raises the first worker failure.
            for _ in executor.map(_apply, records):
                pass

        logger.debug(
            "Enriched %s %s records with profiled counts",
            len(records),
            alteration_type.value,
        )
        return records

    def fetch_tables(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> ProfiledCountTables:
        """Fetch the four lookup tables for ``scope`` and ``alteration_type``."""

        profiles = first_profile_per_study(
            self.profile_resolver.resolve(scope, alteration_type)
        )
        tables = ProfiledCountTables(
            sample_profiled_counts=self.count_store.profiled_sample_counts(scope, alteration_type),
            gene_profiled_counts=self.count_store.gene_profiled_counts(
                scope,
                alteration_type,
                profiles,
            ),
            matching_gene_panel_ids=self.count_store.matching_gene_panel_ids(scope, alteration_type),
            wes_profiled_counts=self.count_store.wes_profiled_sample_counts(scope, alteration_type),
        )
        logger.debug(
            "Fetched %s tables: %s profiles, %s studies profiled, %s genes with panel counts, "
            "%s genes with panel matches, %s studies with WES samples",
            alteration_type.value,
            len(profiles),
            len(tables.sample_profiled_counts),
            len(tables.gene_profiled_counts),
            len(tables.matching_gene_panel_ids),
            len(tables.wes_profiled_counts),
        )
        return tables
