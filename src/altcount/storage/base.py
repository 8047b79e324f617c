"""Collaborator contracts consumed by the counting engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from altcount.models import (
    AlterationCountRecord,
    AlterationType,
    CopyNumberCountRecord,
    FilterScope,
    MolecularProfile,
    SignificantRegion,
)


class ProfileResolver(ABC):
    """Resolves the molecular profiles in play for a scope."""

    @abstractmethod
    def resolve(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> list[MolecularProfile]:
        """Return profiles of ``alteration_type`` for the scoped studies."""


class StudyScopeResolver(ABC):
    """Resolves the distinct studies a scope touches."""

    @abstractmethod
    def resolve(self, scope: FilterScope) -> set[str]:
        """Return the distinct study ids of the scope."""


class SignificanceStore(ABC):
    """Source of externally computed significant copy-number regions."""

    @abstractmethod
    def fetch(self, study_id: str) -> list[SignificantRegion]:
        """Return significant regions of one study."""


class CountStore(ABC):
    """Query layer producing raw alteration and profiled-sample counts."""

    @abstractmethod
    def profiled_sample_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> dict[str, int]:
        """Profiled samples per study."""

    @abstractmethod
    def gene_profiled_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
        profiles: Sequence[MolecularProfile],
    ) -> dict[str, dict[str, int]]:
        """Panel-profiled samples per gene and study, for the given profiles."""

    @abstractmethod
    def matching_gene_panel_ids(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> dict[str, set[str]]:
        """Gene panels in use by the scope, grouped by the genes they cover."""

    @abstractmethod
    def wes_profiled_sample_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> dict[str, int]:
        """Samples per study profiled without a gene panel restriction."""

    @abstractmethod
    def alteration_counts(
        self,
        scope: FilterScope,
        alteration_type: AlterationType,
    ) -> list[AlterationCountRecord]:
        """Mutation or structural-variant counts, one record per gene."""

    @abstractmethod
    def copy_number_counts(self, scope: FilterScope) -> list[CopyNumberCountRecord]:
        """Raw copy-number counts, one row per study, gene id and direction."""
