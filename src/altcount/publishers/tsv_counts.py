"""Tab-separated publisher for alteration count records."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from altcount.models import AlterationCountRecord, AlterationType
from altcount.publishers.base import Publisher

BASE_COLUMNS: tuple[str, ...] = (
    "hugo_gene_symbol",
    "entrez_gene_id",
    "study_id",
    "number_of_altered_cases",
    "total_count",
    "number_of_profiled_cases",
    "matching_gene_panel_ids",
    "altered_in_study_ids",
)

SET_COLUMNS: tuple[str, ...] = ("matching_gene_panel_ids", "altered_in_study_ids")


class TsvCountsPublisher(Publisher):
    """Write one ``<alteration_type>.tsv`` table per alteration type."""

    def __init__(
        self,
        *,
        output_root: str | Path,
        list_separator: str = ",",
        compress: bool = False,
    ) -> None:
        self.output_root = Path(output_root)
        self.list_separator = list_separator
        self.compress = compress

    def publish(
        self,
        alteration_type: AlterationType,
        records: Sequence[AlterationCountRecord],
    ) -> None:
        self.output_root.mkdir(parents=True, exist_ok=True)

        rows = [record.to_row() for record in records]
        frame = pd.DataFrame(rows) if rows else pd.DataFrame(columns=list(BASE_COLUMNS))
        for column in SET_COLUMNS:
            frame[column] = frame[column].map(self.list_separator.join)

        sort_columns = [column for column in ("hugo_gene_symbol", "alteration") if column in frame]
        frame = frame.sort_values(sort_columns, kind="stable")

        suffix = ".tsv.gz" if self.compress else ".tsv"
        output_path = self.output_root / f"{alteration_type.value.lower()}{suffix}"
        frame.to_csv(output_path, sep="\t", index=False, compression="infer")
