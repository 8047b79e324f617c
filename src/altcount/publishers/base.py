"""Publisher interface for altcount outputs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from altcount.models import AlterationCountRecord, AlterationType


class Publisher(ABC):
    """Publishes count records into consumer-facing artifacts."""

    @abstractmethod
    def publish(
        self,
        alteration_type: AlterationType,
        records: Sequence[AlterationCountRecord],
    ) -> None:
        """Publish one alteration type's records into output targets."""
