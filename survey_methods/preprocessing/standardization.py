"""
Standardization Utilities
=========================

Z-score standardization for item matrices.

Key features:
- Consistent ddof: Uses ddof=1 (sample standard deviation) throughout
- Constant columns are reported, never silently divided by zero

Usage:
    from survey_methods.preprocessing import standardize_items

    z_items = standardize_items(df, ['x1', 'x2', 'x3'])

Author: Research Team
Date: 2025-12
"""

from __future__ import annotations

from typing import List, Optional

import pandas as pd


def zero_variance_columns(df: pd.DataFrame, ddof: int = 1) -> List[str]:
    """Columns whose sample variance is zero or undefined."""
    variances = df.var(axis=0, ddof=ddof)
    return [str(col) for col, var in variances.items() if pd.isna(var) or var == 0]


def standardize_items(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    ddof: int = 1,
) -> pd.DataFrame:
    """
    Z-score the listed item columns.

    Constant columns are refused; a constant item has no place in a
    reliability or factor model.

    Raises
    ------
    ValueError
        If any listed column has zero variance.
    """
    columns = list(df.columns) if columns is None else list(columns)
    items = df[columns].astype(float)
    constant = zero_variance_columns(items, ddof=ddof)
    if constant:
        raise ValueError(f"Cannot standardize constant columns: {constant}")
    return (items - items.mean()) / items.std(ddof=ddof)
