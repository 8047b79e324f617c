"""Composable alteration-count pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from altcount.config import EngineSettings
from altcount.enrichment import ProfiledCountEnricher
from altcount.merge import CopyNumberMerger
from altcount.models import (
    AlterationCountRecord,
    AlterationType,
    CopyNumberCountRecord,
    FilterScope,
)
from altcount.significance import SignificanceAnnotator
from altcount.storage.base import (
    CountStore,
    ProfileResolver,
    SignificanceStore,
    StudyScopeResolver,
)
from altcount.storage.duckdb_store import (
    DuckDBCountStore,
    DuckDBProfileResolver,
    DuckDBSignificanceStore,
    DuckDBStudyScopeResolver,
)

logger = logging.getLogger(__name__)


@dataclass
class AlterationCountReport:
    """Execution summary and results for one alteration type."""

    alteration_type: AlterationType
    records: list[AlterationCountRecord] = field(default_factory=list)
    raw_record_count: int = 0
    annotated_records: int = 0

    @property
    def record_count(self) -> int:
        return len(self.records)

    @property
    def contributing_study_ids(self) -> set[str]:
        study_ids: set[str] = set()
        for record in self.records:
            study_ids.update(record.altered_in_study_ids)
        return study_ids


class AlterationCountPipeline:
    """Run merge, enrichment and annotation for each alteration type."""

    def __init__(
        self,
        *,
        count_store: CountStore,
        profile_resolver: ProfileResolver,
        study_scope_resolver: StudyScopeResolver,
        significance_store: SignificanceStore,
        settings: EngineSettings | None = None,
        merger: CopyNumberMerger | None = None,
    ) -> None:
        self.count_store = count_store
        self.merger = merger or CopyNumberMerger()
        self.enricher = ProfiledCountEnricher(
            profile_resolver=profile_resolver,
            count_store=count_store,
            settings=settings,
        )
        self.annotator = SignificanceAnnotator(
            study_scope_resolver=study_scope_resolver,
            significance_store=significance_store,
        )

    @classmethod
    def from_duckdb(
        cls,
        db_path: str | Path,
        settings: EngineSettings | None = None,
    ) -> AlterationCountPipeline:
        """Build a pipeline whose collaborators all read one DuckDB file."""

        return cls(
            count_store=DuckDBCountStore(db_path=db_path),
            profile_resolver=DuckDBProfileResolver(db_path=db_path),
            study_scope_resolver=DuckDBStudyScopeResolver(db_path=db_path),
            significance_store=DuckDBSignificanceStore(db_path=db_path),
            settings=settings,
        )

    def mutated_genes(self, scope: FilterScope) -> list[AlterationCountRecord]:
        return self.run(scope, AlterationType.MUTATION_EXTENDED).records

    def structural_variant_genes(self, scope: FilterScope) -> list[AlterationCountRecord]:
        return self.run(scope, AlterationType.STRUCTURAL_VARIANT).records

    def copy_number_genes(self, scope: FilterScope) -> list[CopyNumberCountRecord]:
        return self.run(scope, AlterationType.COPY_NUMBER_ALTERATION).records

    def run(self, scope: FilterScope, alteration_type: AlterationType) -> AlterationCountReport:
        if alteration_type is AlterationType.COPY_NUMBER_ALTERATION:
            report = self._run_copy_number(scope)
        else:
            raw = self.count_store.alteration_counts(scope, alteration_type)
            records = self.enricher.enrich(raw, scope, alteration_type)
            report = AlterationCountReport(
                alteration_type=alteration_type,
                records=list(records),
                raw_record_count=len(raw),
            )

        logger.info(
            "%s: %s raw rows -> %s genes (%s annotated)",
            alteration_type.value,
            report.raw_record_count,
            report.record_count,
            report.annotated_records,
        )
        return report

    def _run_copy_number(self, scope: FilterScope) -> AlterationCountReport:
        rows = self.count_store.copy_number_counts(scope)
        merged = self.merger.merge(rows)
        enriched = self.enricher.enrich(merged, scope, AlterationType.COPY_NUMBER_ALTERATION)
        annotated = self.annotator.annotate(enriched, scope)
        return AlterationCountReport(
            alteration_type=AlterationType.COPY_NUMBER_ALTERATION,
            records=list(annotated),
            raw_record_count=len(rows),
            annotated_records=sum(1 for record in annotated if record.q_value is not None),
        )
