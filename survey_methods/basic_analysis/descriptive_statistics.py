"""
Descriptive Statistics
======================

Item-level descriptive summaries, one row per variable:
vars, n, mean, sd, min, max, range, se (and median, trimmed mean, mad,
skew, kurtosis when ``skew=True``).

Usage:
    from survey_methods.basic_analysis import describe
    print(describe(data2))
"""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np
import pandas as pd
from scipy import stats


def describe(
    df: pd.DataFrame,
    columns: Optional[Iterable[str]] = None,
    skew: bool = False,
    trim: float = 0.1,
) -> pd.DataFrame:
    """
    Compute descriptive statistics for numeric columns.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    columns : iterable of str, optional
        Columns to describe. Defaults to all numeric columns.
    skew : bool
        Add median, trimmed mean, MAD, skewness and kurtosis.
    trim : float
        Proportion trimmed from each end for the trimmed mean.

    Returns
    -------
    pd.DataFrame
        One row per variable.
    """
    if columns is None:
        columns = [c for c in df.columns if pd.api.types.is_numeric_dtype(df[c])]
    columns = list(columns)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")

    rows = []
    for i, col in enumerate(columns, start=1):
        series = df[col].dropna().astype(float)
        n = len(series)
        sd = series.std(ddof=1) if n > 1 else np.nan
        row = {
            'vars': i,
            'n': n,
            'mean': series.mean(),
            'sd': sd,
        }
        if skew:
            row['median'] = series.median()
            row['trimmed'] = stats.trim_mean(series, trim) if n > 0 else np.nan
            # scaled to be consistent for the normal SD
            row['mad'] = stats.median_abs_deviation(series, scale='normal') if n > 0 else np.nan
        row.update({
            'min': series.min(),
            'max': series.max(),
            'range': series.max() - series.min(),
        })
        if skew:
            row['skew'] = stats.skew(series, bias=True) if n > 2 else np.nan
            row['kurtosis'] = stats.kurtosis(series, bias=True) if n > 3 else np.nan
        row['se'] = sd / np.sqrt(n) if n > 1 else np.nan
        rows.append(row)

    return pd.DataFrame(rows, index=columns)
