"""
Correlation Analysis
====================

Pearson correlation matrices with p-values, plus the rounded matrix printed
in the transcripts.

Usage:
    from survey_methods.basic_analysis import correlation_table
    r, p = correlation_table(data5)
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats


def correlation_table(
    df: pd.DataFrame,
    columns: Optional[Iterable[str]] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Compute Pearson correlation matrix with two-sided p-values.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    columns : iterable of str, optional
        Variables to correlate (default: all columns)

    Returns
    -------
    tuple of (correlation_matrix, pvalue_matrix)
    """
    cols = list(df.columns) if columns is None else list(columns)
    data = df[cols].dropna().astype(float)

    n_vars = len(cols)
    r_matrix = np.eye(n_vars)
    p_matrix = np.zeros((n_vars, n_vars))

    for i in range(n_vars):
        for j in range(i + 1, n_vars):
            if len(data) > 2:
                r, p = stats.pearsonr(data.iloc[:, i], data.iloc[:, j])
            else:
                r, p = np.nan, np.nan
            r_matrix[i, j] = r_matrix[j, i] = r
            p_matrix[i, j] = p_matrix[j, i] = p

    return (
        pd.DataFrame(r_matrix, index=cols, columns=cols),
        pd.DataFrame(p_matrix, index=cols, columns=cols),
    )


def rounded_correlation(
    df: pd.DataFrame,
    columns: Optional[Iterable[str]] = None,
    digits: int = 2,
) -> pd.DataFrame:
    """Correlation matrix rounded for display."""
    cols = list(df.columns) if columns is None else list(columns)
    return df[cols].corr().round(digits)
