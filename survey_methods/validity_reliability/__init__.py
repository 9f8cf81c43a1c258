"""
Validity & Reliability Analysis
================================

Internal-consistency diagnostics for Likert item sets: raw and standardized
Cronbach's alpha, alpha if item dropped, corrected item-total correlations,
reverse-keyed item detection, and the Spearman-Brown projection.

Usage:
    from survey_methods.validity_reliability import compute_alpha
    report = compute_alpha(items, reverse_detect=True)
"""

from ._core.reliability import (
    ReliabilityReport,
    average_interitem_r,
    compute_alpha,
    cronbach_alpha,
    feldt_interval,
    first_component_loadings,
    interpret_alpha,
    print_reliability_report,
    spearman_brown,
    standardized_alpha,
)

__all__ = [
    'ReliabilityReport',
    'average_interitem_r',
    'compute_alpha',
    'cronbach_alpha',
    'feldt_interval',
    'first_component_loadings',
    'interpret_alpha',
    'print_reliability_report',
    'spearman_brown',
    'standardized_alpha',
]
