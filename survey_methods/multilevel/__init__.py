"""
Multilevel Regression Package
=============================

Schools and retail multilevel demonstrations built on statsmodels MixedLM.

Usage:
    python -m survey_methods.multilevel --dataset schools

Programmatic:
    from survey_methods.multilevel import fit_mixed, icc, r2_nakagawa
"""

from .data import (
    load_or_simulate,
    load_retail,
    load_schools,
    simulate_retail,
    simulate_schools,
)
from .models import (
    MixedFit,
    compare_models,
    fit_mixed,
    fit_ols,
    icc,
    information_criteria,
    likelihood_ratio_test,
    model_table,
    r2_nakagawa,
    variance_components,
)
from .plots import fitted_lines_plot, group_panels_plot, save_plots
from .suite import AVAILABLE_DATASETS, list_datasets, run, run_retail, run_schools

__all__ = [
    "load_or_simulate",
    "load_retail",
    "load_schools",
    "simulate_retail",
    "simulate_schools",
    "MixedFit",
    "compare_models",
    "fit_mixed",
    "fit_ols",
    "icc",
    "information_criteria",
    "likelihood_ratio_test",
    "model_table",
    "r2_nakagawa",
    "variance_components",
    "fitted_lines_plot",
    "group_panels_plot",
    "save_plots",
    "AVAILABLE_DATASETS",
    "list_datasets",
    "run",
    "run_retail",
    "run_schools",
]
