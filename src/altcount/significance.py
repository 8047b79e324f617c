"""Attach per-study copy-number significance scores."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from altcount.models import CopyNumberCountRecord, CopyNumberKey, FilterScope, SignificantRegion
from altcount.storage.base import SignificanceStore, StudyScopeResolver

logger = logging.getLogger(__name__)


def build_significance_table(regions: Iterable[SignificantRegion]) -> dict[CopyNumberKey, float]:
    """Map each covered (gene, alteration) to the lowest q-value among its regions."""

    table: dict[CopyNumberKey, float] = {}
    for region in regions:
        for key in region.keys():
            current = table.get(key)
            if current is None or region.q_value < current:
                table[key] = region.q_value
    return table


class SignificanceAnnotator:
    """Annotate copy-number records with q-values when the scope is one study.

    Significance is computed per study and is not comparable across studies,
    so multi-study scopes leave every ``q_value`` unset.
    """

    def __init__(
        self,
        *,
        study_scope_resolver: StudyScopeResolver,
        significance_store: SignificanceStore,
    ) -> None:
        self.study_scope_resolver = study_scope_resolver
        self.significance_store = significance_store

    def annotate(
        self,
        records: Sequence[CopyNumberCountRecord],
        scope: FilterScope,
    ) -> list[CopyNumberCountRecord]:
        records = list(records)
        study_ids = self.study_scope_resolver.resolve(scope)
        if len(study_ids) != 1:
            logger.debug(
                "Skipping significance annotation: %s studies in scope",
                len(study_ids),
            )
            return records

        (study_id,) = study_ids
        table = build_significance_table(self.significance_store.fetch(study_id))
        if not table:
            return records

        annotated = 0
        for record in records:
            q_value = table.get(record.key())
            if q_value is not None:
                record.q_value = q_value
                annotated += 1

        logger.debug("Annotated %s of %s records for %s", annotated, len(records), study_id)
        return records
