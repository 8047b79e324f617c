"""Alteration-count aggregation primitives.

This package turns raw per-study alteration counts into one record per gene,
with profiled-sample totals, matching gene panels and, for single-study copy
number queries, significance q-values.
"""

from .config import (
    WHOLE_EXOME_SEQUENCING,
    EngineSettings,
    PublisherSpec,
    RunConfig,
    RunConfigLoader,
)
from .enrichment import ProfiledCountEnricher, first_profile_per_study, has_gene_panel_data
from .errors import (
    AlterationCountError,
    MolecularProfileNotFoundError,
    NotFoundError,
    RunConfigError,
    StudyNotFoundError,
)
from .merge import CopyNumberMerger
from .models import (
    AlterationCountRecord,
    AlterationType,
    CopyNumberCountRecord,
    CopyNumberKey,
    FilterScope,
    MolecularProfile,
    SignificantRegion,
)
from .pipeline import AlterationCountPipeline, AlterationCountReport
from .significance import SignificanceAnnotator, build_significance_table

__all__ = [
    "WHOLE_EXOME_SEQUENCING",
    "AlterationCountError",
    "AlterationCountPipeline",
    "AlterationCountRecord",
    "AlterationCountReport",
    "AlterationType",
    "CopyNumberCountRecord",
    "CopyNumberKey",
    "CopyNumberMerger",
    "EngineSettings",
    "FilterScope",
    "MolecularProfile",
    "MolecularProfileNotFoundError",
    "NotFoundError",
    "ProfiledCountEnricher",
    "PublisherSpec",
    "RunConfig",
    "RunConfigError",
    "RunConfigLoader",
    "SignificanceAnnotator",
    "SignificantRegion",
    "StudyNotFoundError",
    "build_significance_table",
    "first_profile_per_study",
    "has_gene_panel_data",
]
