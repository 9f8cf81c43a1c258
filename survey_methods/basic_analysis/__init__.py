"""
Basic Analysis Suite
====================

Descriptives, correlation tables and the transcript/formatting helpers shared
by the scale-construction and multilevel runners.

Modules:
    descriptive_statistics.py   - per-item summary table
    correlation_analysis.py     - Pearson correlation matrix with p-values
    utils.py                    - section headers, number formatting, Transcript
"""

from .correlation_analysis import (
    correlation_table,
    rounded_correlation,
)
from .descriptive_statistics import describe
from .utils import (
    Transcript,
    format_coefficient,
    format_pvalue,
    print_frame,
    print_section_header,
    print_subsection_header,
    significance_stars,
)

__all__ = [
    'correlation_table',
    'rounded_correlation',
    'describe',
    'Transcript',
    'format_coefficient',
    'format_pvalue',
    'print_frame',
    'print_section_header',
    'print_subsection_header',
    'significance_stars',
]
