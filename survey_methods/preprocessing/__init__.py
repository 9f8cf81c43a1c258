"""
Survey Data Preprocessing
=========================

Synthetic item data with exact covariance structure, Likert discretization,
reverse-coding and standardization.

    from survey_methods.preprocessing import CovarianceSpec, generate, discretize
    spec = CovarianceSpec.equicorrelated(4, 0.8)
    items = discretize(generate(spec, n=500, seed=12345))
"""

# Constants
from .constants import (
    ANALYSIS_OUTPUT_DIR,
    DATA_DIR,
    RAW_DIR,
    DEFAULT_N,
    DEFAULT_SEED,
    LIKERT_BREAKS,
    LIKERT_LABELS,
    SCALE_MIN,
    SCALE_MAX,
    ALPHA_THRESHOLDS,
    SCALE_TRANSCRIPT,
    SCHOOLS_TRANSCRIPT,
    SCHOOLS_PLOTS,
    RETAIL_TRANSCRIPT,
    RETAIL_PLOTS,
    get_output_dir,
)

# Errors
from .errors import (
    SurveyMethodsError,
    InvalidSpecError,
    InvalidInputError,
    InsufficientItemsError,
    DegenerateVarianceError,
    FactorExtractionFailedError,
    PipelineStateError,
)

# Generation
from .generation import (
    CovarianceSpec,
    default_item_names,
    generate,
)

# Likert discretization
from .likert import (
    DiscretizationRule,
    LIKERT_5,
    discretize,
    discretize_column,
    reverse_code,
)

# Standardization
from .standardization import (
    standardize_items,
    zero_variance_columns,
)

__all__ = [
    # Constants
    'ANALYSIS_OUTPUT_DIR',
    'DATA_DIR',
    'RAW_DIR',
    'DEFAULT_N',
    'DEFAULT_SEED',
    'LIKERT_BREAKS',
    'LIKERT_LABELS',
    'SCALE_MIN',
    'SCALE_MAX',
    'ALPHA_THRESHOLDS',
    'SCALE_TRANSCRIPT',
    'SCHOOLS_TRANSCRIPT',
    'SCHOOLS_PLOTS',
    'RETAIL_TRANSCRIPT',
    'RETAIL_PLOTS',
    'get_output_dir',
    # Errors
    'SurveyMethodsError',
    'InvalidSpecError',
    'InvalidInputError',
    'InsufficientItemsError',
    'DegenerateVarianceError',
    'FactorExtractionFailedError',
    'PipelineStateError',
    # Generation
    'CovarianceSpec',
    'default_item_names',
    'generate',
    # Likert
    'DiscretizationRule',
    'LIKERT_5',
    'discretize',
    'discretize_column',
    'reverse_code',
    # Standardization
    'standardize_items',
    'zero_variance_columns',
]
