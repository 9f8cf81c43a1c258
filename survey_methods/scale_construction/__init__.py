"""
Scale Construction Package
==========================

Composite scales from Likert items: unweighted means, factor-weighted
scores, criterion comparison, and the data1-data5 teaching runner.

Usage:
    python -m survey_methods.scale_construction --variant data5

Programmatic:
    from survey_methods.scale_construction import run
    run(variants=["data2", "data3"])
"""

from .comparison import (
    compare_composites,
    composite_correlation,
    fit_criterion_models,
    format_model_table,
)
from .composites import (
    COMPOSITE_MODES,
    FactorComposite,
    composite,
    factor_degrees_of_freedom,
    unweighted_composite,
    weighted_composite,
)
from .pipeline import ItemSelection, PipelineStage, ScalePipeline
from .variants import VARIANTS, DatasetVariant, get_variant, variant_seed
from .suite import AVAILABLE_VARIANTS, VariantResult, list_variants, run, run_variant

__all__ = [
    "compare_composites",
    "composite_correlation",
    "fit_criterion_models",
    "format_model_table",
    "COMPOSITE_MODES",
    "FactorComposite",
    "composite",
    "factor_degrees_of_freedom",
    "unweighted_composite",
    "weighted_composite",
    "ItemSelection",
    "PipelineStage",
    "ScalePipeline",
    "VARIANTS",
    "DatasetVariant",
    "get_variant",
    "variant_seed",
    "AVAILABLE_VARIANTS",
    "VariantResult",
    "list_variants",
    "run",
    "run_variant",
]
