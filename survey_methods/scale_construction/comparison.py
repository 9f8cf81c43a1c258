"""
Criterion Comparison of Composites
==================================

Regresses an external criterion on each composite (one simple OLS model per
composite) and lays the models side by side.

Usage:
    from survey_methods.scale_construction import compare_composites, format_model_table

    table = compare_composites(data5, 'y', {
        'Model 1: Unweighted Scale': 'scale5u',
        'Model 2: Weighted Scale': 'scale5w',
    })
    print(format_model_table(table))
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from survey_methods.basic_analysis.utils import significance_stars


def _fit_model(formula: str, data: pd.DataFrame) -> Any:
    return smf.ols(formula, data=data).fit()


def fit_criterion_models(
    data: pd.DataFrame,
    criterion: str,
    composites: Mapping[str, str],
) -> Dict[str, Any]:
    """
    Fit ``criterion ~ composite`` for every composite column.

    Parameters
    ----------
    data : pd.DataFrame
        Frame holding the criterion and composite columns.
    criterion : str
        Outcome column.
    composites : mapping of label -> column
        Models to fit, keyed by display label.

    Returns
    -------
    dict of label -> statsmodels OLS results
    """
    needed = [criterion] + list(composites.values())
    missing = [c for c in needed if c not in data.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")
    if not composites:
        raise ValueError("At least one composite is required")

    models = {}
    for label, column in composites.items():
        df = data[[criterion, column]].dropna()
        models[label] = _fit_model(f"Q('{criterion}') ~ Q('{column}')", df)
    return models


def compare_composites(
    data: pd.DataFrame,
    criterion: str,
    composites: Mapping[str, str],
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    One row per composite: coefficients with SE and CI, fit statistics.

    Returns
    -------
    pd.DataFrame
        Indexed by model label.
    """
    models = fit_criterion_models(data, criterion, composites)
    rows = []
    for label, model in models.items():
        ci = model.conf_int(alpha=alpha)
        intercept, slope = model.params.index[0], model.params.index[1]
        rows.append({
            'model': label,
            'predictor': composites[label],
            'intercept': model.params[intercept],
            'intercept_se': model.bse[intercept],
            'intercept_ci_low': ci.loc[intercept, 0],
            'intercept_ci_high': ci.loc[intercept, 1],
            'slope': model.params[slope],
            'slope_se': model.bse[slope],
            'slope_ci_low': ci.loc[slope, 0],
            'slope_ci_high': ci.loc[slope, 1],
            't': model.tvalues[slope],
            'p': model.pvalues[slope],
            'r2': model.rsquared,
            'adj_r2': model.rsquared_adj,
            'n': int(model.nobs),
            'rmse': float(np.sqrt(model.mse_resid)),
        })
    return pd.DataFrame(rows).set_index('model')


def _cell(est: float, se: float, lo: float, hi: float, digits: int) -> str:
    return f"{est:.{digits}f} ({se:.{digits}f}) [{lo:.{digits}f}; {hi:.{digits}f}]"


def format_model_table(table: pd.DataFrame, digits: int = 3) -> str:
    """
    Render ``compare_composites`` output as a side-by-side text table.

    Coefficients are shown single-row as ``est (se) [lo; hi]`` with stars
    for the slope; every composite's slope is listed under its own name.
    """
    labels = list(table.index)
    rows = [("(Intercept)", {
        label: _cell(r['intercept'], r['intercept_se'], r['intercept_ci_low'], r['intercept_ci_high'], digits)
        for label, r in table.iterrows()
    })]
    for label, r in table.iterrows():
        cell = _cell(r['slope'], r['slope_se'], r['slope_ci_low'], r['slope_ci_high'], digits)
        rows.append((r['predictor'], {label: cell + significance_stars(r['p'])}))
    stats_rows = [
        ("R^2", {label: f"{r['r2']:.{digits}f}" for label, r in table.iterrows()}),
        ("Adj. R^2", {label: f"{r['adj_r2']:.{digits}f}" for label, r in table.iterrows()}),
        ("Num. obs.", {label: f"{int(r['n'])}" for label, r in table.iterrows()}),
        ("RMSE", {label: f"{r['rmse']:.{digits}f}" for label, r in table.iterrows()}),
    ]

    name_width = max(len(name) for name, _ in rows + stats_rows)
    widths = {
        label: max([len(label)] + [len(cells.get(label, "")) for _, cells in rows + stats_rows])
        for label in labels
    }

    def line(name: str, cells: Mapping[str, str]) -> str:
        parts = [name.ljust(name_width)] + [cells.get(label, "").ljust(widths[label]) for label in labels]
        return "  ".join(parts).rstrip()

    total = name_width + sum(widths.values()) + 2 * len(labels)
    out = ["=" * total, line("", {label: label for label in labels}), "-" * total]
    out += [line(name, cells) for name, cells in rows]
    out.append("-" * total)
    out += [line(name, cells) for name, cells in stats_rows]
    out.append("=" * total)
    out.append("*** p < 0.001; ** p < 0.01; * p < 0.05")
    return "\n".join(out)


def composite_correlation(data: pd.DataFrame, columns: Iterable[str], digits: int = 3) -> pd.DataFrame:
    """Rounded correlation between composite columns."""
    columns = list(columns)
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")
    return data[columns].corr().round(digits)
