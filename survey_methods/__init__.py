"""
Survey Methods
==============

Demonstrations of survey-scale construction and multilevel regression.

Sub-packages:
    preprocessing          - data generation, Likert discretization, reverse-coding
    validity_reliability   - Cronbach's alpha and item diagnostics
    scale_construction     - composites, criterion comparison, data1-data5 runner
    basic_analysis         - descriptives, correlations, transcript helpers
    multilevel             - schools / retail mixed-model demonstrations

Usage:
    python -m survey_methods.scale_construction
    python -m survey_methods.multilevel --dataset all
"""

__version__ = "0.1.0"
