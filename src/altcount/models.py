"""Canonical in-memory data models used by altcount."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


class AlterationType(str, Enum):
    """Alteration kind tag shared with the storage collaborators."""

    MUTATION_EXTENDED = "MUTATION_EXTENDED"
    STRUCTURAL_VARIANT = "STRUCTURAL_VARIANT"
    COPY_NUMBER_ALTERATION = "COPY_NUMBER_ALTERATION"


class CopyNumberKey(NamedTuple):
    """Biological identity of a copy-number count: gene symbol plus direction."""

    hugo_gene_symbol: str
    alteration: int


@dataclass
class AlterationCountRecord:
    """Alteration counts for one gene.

    ``number_of_profiled_cases`` and ``matching_gene_panel_ids`` are filled in
    by enrichment; they stay unset on records straight out of the store.
    """

    hugo_gene_symbol: str
    number_of_altered_cases: int
    total_count: int
    entrez_gene_id: int | None = None
    study_id: str | None = None
    number_of_profiled_cases: int | None = None
    matching_gene_panel_ids: set[str] = field(default_factory=set)
    altered_in_study_ids: set[str] = field(default_factory=set)

    def key(self) -> Any:
        """Stable key identifying the logical record."""

        return self.hugo_gene_symbol

    def to_row(self) -> dict[str, Any]:
        """Serialize into a plain dict for publishers."""

        return {
            "hugo_gene_symbol": self.hugo_gene_symbol,
            "entrez_gene_id": self.entrez_gene_id,
            "study_id": self.study_id,
            "number_of_altered_cases": self.number_of_altered_cases,
            "total_count": self.total_count,
            "number_of_profiled_cases": self.number_of_profiled_cases,
            "matching_gene_panel_ids": sorted(self.matching_gene_panel_ids),
            "altered_in_study_ids": sorted(self.altered_in_study_ids),
        }


@dataclass
class CopyNumberCountRecord(AlterationCountRecord):
    """Copy-number counts for one gene in one alteration direction.

    ``alteration`` is the direction code: 2 amplification, 1 gain,
    -1 shallow deletion, -2 deep deletion.
    """

    alteration: int = 0
    q_value: float | None = None

    def key(self) -> CopyNumberKey:
        return CopyNumberKey(self.hugo_gene_symbol, self.alteration)

    def to_row(self) -> dict[str, Any]:
        row = super().to_row()
        row["alteration"] = self.alteration
        row["q_value"] = self.q_value
        return row


@dataclass(frozen=True)
class MolecularProfile:
    """A study's molecular profile for one alteration type."""

    stable_id: str
    study_id: str
    alteration_type: AlterationType


@dataclass(frozen=True)
class FilterScope:
    """Studies and samples a single count request is restricted to.

    When ``samples`` is non-empty it defines the scope as explicit
    ``(study_id, sample_id)`` pairs; otherwise every sample of ``study_ids``
    is in scope.
    """

    study_ids: tuple[str, ...] = ()
    samples: tuple[tuple[str, str], ...] = ()

    def scoped_study_ids(self) -> tuple[str, ...]:
        """Return distinct study ids in first-seen order."""

        if self.samples:
            candidates = [study_id for study_id, _ in self.samples]
        else:
            candidates = list(self.study_ids)
        return tuple(dict.fromkeys(candidates))


@dataclass(frozen=True)
class SignificantRegion:
    """Externally computed significant copy-number region of one study."""

    study_id: str
    region_id: int
    amp: bool
    q_value: float
    genes: tuple[str, ...] = ()

    def keys(self) -> list[CopyNumberKey]:
        """Copy-number keys covered by this region.

        Amplified regions map onto deep amplifications (2), deleted regions
        onto deep deletions (-2).
        """

        alteration = 2 if self.amp else -2
        return [CopyNumberKey(gene, alteration) for gene in self.genes]
