"""JSON publisher for alteration count records."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from altcount.models import AlterationCountRecord, AlterationType
from altcount.publishers.base import Publisher


class JsonCountsPublisher(Publisher):
    """Write one ``<alteration_type>.json`` array per alteration type.

    Records are sorted by gene symbol (then alteration, for copy number) so the
    output is stable across runs regardless of worker scheduling.
    """

    def __init__(
        self,
        *,
        output_root: str | Path,
        indent: int | None = 4,
        q_value_precision: int | None = None,
    ) -> None:
        self.output_root = Path(output_root)
        self.indent = indent
        self.q_value_precision = q_value_precision

    def publish(
        self,
        alteration_type: AlterationType,
        records: Sequence[AlterationCountRecord],
    ) -> None:
        self.output_root.mkdir(parents=True, exist_ok=True)
        payload = [self._to_payload(record) for record in sorted(records, key=_sort_key)]

        output_path = self.output_root / f"{alteration_type.value.lower()}.json"
        with output_path.open("w") as stream:
            json.dump(payload, stream, indent=self.indent)

    def _to_payload(self, record: AlterationCountRecord) -> dict[str, Any]:
        row = record.to_row()
        if self.q_value_precision is not None and row.get("q_value") is not None:
            row["q_value"] = round(row["q_value"], self.q_value_precision)
        return row


def _sort_key(record: AlterationCountRecord) -> tuple[str, int]:
    return (record.hugo_gene_symbol, getattr(record, "alteration", 0))
