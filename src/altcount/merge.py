"""Copy-number count reconciliation across studies."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from altcount.models import CopyNumberCountRecord, CopyNumberKey


@dataclass
class _CopyNumberAccumulator:
    """Mutable accumulator for one (gene symbol, alteration) record."""

    record: CopyNumberCountRecord
    study_ids: set[str] = field(default_factory=set)


class CopyNumberMerger:
    """Collapse per-study copy-number rows into one record per gene and direction.

    Rows are keyed by ``CopyNumberKey`` rather than by entrez gene id: studies
    may index the same gene symbol under different ids and those rows still
    describe one logical gene. The first row seen for a key becomes the output
    record; counts of later rows are added onto it. Records that end up
    spanning several studies have ``study_id`` cleared.
    """

    def merge(self, rows: Iterable[CopyNumberCountRecord]) -> list[CopyNumberCountRecord]:
        accumulators: dict[CopyNumberKey, _CopyNumberAccumulator] = {}

        for row in rows:
            key = row.key()
            accumulator = accumulators.get(key)
            if accumulator is None:
                accumulator = _CopyNumberAccumulator(record=row)
                accumulators[key] = accumulator
            else:
                accumulator.record.number_of_altered_cases += row.number_of_altered_cases
                accumulator.record.total_count += row.total_count

            if row.study_id is not None:
                accumulator.study_ids.add(row.study_id)
            accumulator.study_ids.update(row.altered_in_study_ids)

        merged: list[CopyNumberCountRecord] = []
        for accumulator in accumulators.values():
            accumulator.record.altered_in_study_ids = set(accumulator.study_ids)
            if len(accumulator.study_ids) > 1:
                accumulator.record.study_id = None
            merged.append(accumulator.record)
        return merged
