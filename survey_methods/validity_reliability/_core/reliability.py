"""
Reliability Analysis
====================

Internal consistency diagnostics for a set of Likert items.

Analyses:
1. Cronbach's Alpha
   - Raw alpha (variance formula on the raw items)
   - Standardized alpha (K * r_bar / (1 + (K - 1) * r_bar), i.e. alpha of
     the z-scored items)
   - Feldt 95% confidence interval
2. Item Diagnostics
   - Alpha if item dropped (bad-item detection)
   - Corrected item-total correlation
   - Reverse-keyed item detection: an item with a negative loading on the
     first principal component (oriented so the loadings sum positive) is
     flagged and reverse-scored before alpha is computed

Usage:
    from survey_methods.validity_reliability import compute_alpha

    report = compute_alpha(data2, reverse_detect=True)
    print(report.reversed_items)          # ['x1']
    print(report.alpha, report.item_table())

Author: Research Team
Date: 2025-12
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
import warnings

import numpy as np
import pandas as pd
from scipy import stats

from survey_methods.preprocessing.constants import ALPHA_THRESHOLDS, SCALE_MAX, SCALE_MIN
from survey_methods.preprocessing.errors import (
    DegenerateVarianceError,
    InsufficientItemsError,
    InvalidInputError,
)
from survey_methods.preprocessing.likert import reverse_code
from survey_methods.preprocessing.standardization import zero_variance_columns

KEY_TOLERANCE = 1e-8          # first-component loadings this close to zero count as unkeyed


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def cronbach_alpha(df: pd.DataFrame) -> float:
    """
    Calculate raw Cronbach's alpha for internal consistency.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame with items as columns, participants as rows

    Returns
    -------
    float
        Cronbach's alpha coefficient
    """
    df_clean = df.dropna()
    if len(df_clean) < 2:
        return np.nan

    n_items = df_clean.shape[1]
    if n_items < 2:
        return np.nan

    item_variances = df_clean.var(axis=0, ddof=1)
    total_variance = df_clean.sum(axis=1).var(ddof=1)

    if total_variance == 0:
        return np.nan

    alpha = (n_items / (n_items - 1)) * (1 - item_variances.sum() / total_variance)
    return float(alpha)


def average_interitem_r(corr: pd.DataFrame) -> float:
    """Mean of the off-diagonal correlations."""
    values = np.asarray(corr, dtype=float)
    k = values.shape[0]
    if k < 2:
        return np.nan
    return float(values[~np.eye(k, dtype=bool)].mean())


def standardized_alpha(corr: pd.DataFrame) -> float:
    """
    Standardized alpha from an item correlation matrix.

    Equals the variance-formula alpha computed on z-scored items.
    """
    k = np.asarray(corr).shape[0]
    if k < 2:
        return np.nan
    r_bar = average_interitem_r(corr)
    denom = 1 + (k - 1) * r_bar
    if denom == 0:
        return np.nan
    return float(k * r_bar / denom)


def feldt_interval(alpha: float, n_obs: int, n_items: int, level: float = 0.95) -> Tuple[float, float]:
    """Feldt confidence interval for Cronbach's alpha."""
    if np.isnan(alpha) or n_obs < 2 or n_items < 2:
        return (np.nan, np.nan)
    tail = (1 - level) / 2
    df1 = n_obs - 1
    df2 = (n_obs - 1) * (n_items - 1)
    lower = 1 - (1 - alpha) * stats.f.ppf(1 - tail, df1, df2)
    upper = 1 - (1 - alpha) * stats.f.ppf(tail, df1, df2)
    return (float(lower), float(upper))


def spearman_brown(r: float, factor: float = 2.0) -> float:
    """
    Apply the Spearman-Brown prophecy formula.

    Parameters
    ----------
    r : float
        Reliability of the current instrument
    factor : float
        Length ratio of the new instrument (2 = doubled, 0.75 = 3 of 4 items)

    Returns
    -------
    float
        Projected reliability
    """
    if np.isnan(r) or r <= -1 or factor <= 0:
        return np.nan
    return (factor * r) / (1 + (factor - 1) * r)


def interpret_alpha(alpha: float) -> str:
    """Interpret Cronbach's alpha value."""
    if alpha is None or np.isnan(alpha):
        return "N/A"
    for label, threshold in ALPHA_THRESHOLDS.items():
        if alpha >= threshold:
            return label
    return "Unacceptable"


# =============================================================================
# REPORT
# =============================================================================

@dataclass
class ReliabilityReport:
    """
    Internal-consistency diagnostics for one item set.

    Attributes
    ----------
    items : list of str
        Items analysed, in input order.
    alpha : float
        Standardized alpha (after any reverse-scoring).
    raw_alpha : float
        Variance-formula alpha on the raw (possibly reverse-scored) items.
    average_r : float
        Average inter-item correlation.
    alpha_if_dropped : pd.Series
        Standardized alpha of the remaining items when each item is dropped.
    raw_alpha_if_dropped : pd.Series
        Raw alpha of the remaining items when each item is dropped.
    item_total : pd.Series
        Corrected item-total correlation (item vs. sum of the other items).
    reversed : pd.Series
        True where the item was flagged and reverse-scored.
    correlation : pd.DataFrame
        Item correlation matrix (after reverse-scoring).
    item_means, item_sds : pd.Series
        Item descriptives (after reverse-scoring).
    n_obs : int
        Complete responses used.
    confidence_interval : tuple
        Feldt 95% interval for raw alpha.
    component_loadings : pd.Series
        First principal-component loadings before reverse-scoring; the
        sign decides reverse-keying.
    """

    items: List[str]
    alpha: float
    raw_alpha: float
    average_r: float
    alpha_if_dropped: pd.Series
    raw_alpha_if_dropped: pd.Series
    item_total: pd.Series
    reversed: pd.Series
    correlation: pd.DataFrame
    item_means: pd.Series
    item_sds: pd.Series
    n_obs: int
    confidence_interval: Tuple[float, float]
    component_loadings: Optional[pd.Series] = None

    @property
    def n_items(self) -> int:
        return len(self.items)

    @property
    def interpretation(self) -> str:
        return interpret_alpha(self.alpha)

    @property
    def reversed_items(self) -> List[str]:
        return [item for item in self.items if bool(self.reversed[item])]

    @property
    def keys(self) -> pd.Series:
        """+1 for items scored as given, -1 for reverse-scored items."""
        return self.reversed.map({True: -1, False: 1}).astype(int)

    def best_item_to_drop(self) -> Optional[str]:
        """Item whose removal raises alpha the most, or None if no removal helps."""
        gains = self.alpha_if_dropped - self.alpha
        gains = gains.dropna()
        if gains.empty or gains.max() <= 0:
            return None
        return str(gains.idxmax())

    def item_table(self) -> pd.DataFrame:
        """Per-item statistics in one frame."""
        return pd.DataFrame({
            'mean': self.item_means,
            'sd': self.item_sds,
            'item_total_r': self.item_total,
            'alpha_if_dropped': self.alpha_if_dropped,
            'raw_alpha_if_dropped': self.raw_alpha_if_dropped,
            'reversed': self.reversed,
            'pc1_loading': self.component_loadings,
        })


# =============================================================================
# DIAGNOSTICS ENGINE
# =============================================================================

def _select_items(data: pd.DataFrame, items: Optional[Iterable[str]]) -> pd.DataFrame:
    items = list(data.columns) if items is None else list(items)
    if len(items) < 2:
        raise InsufficientItemsError(f"Alpha needs at least 2 items, got {len(items)}: {items}")
    missing = [c for c in items if c not in data.columns]
    if missing:
        raise KeyError(f"Items not found: {missing}")

    subset = data[items]
    for col in items:
        if pd.api.types.is_bool_dtype(subset[col]) or not pd.api.types.is_numeric_dtype(subset[col]):
            raise InvalidInputError(f"Item '{col}' is not numeric (dtype {subset[col].dtype})", column=col)

    clean = subset.dropna().astype(float)
    if len(clean) < 2:
        raise InvalidInputError(f"Fewer than 2 complete responses across items {items}")

    constant = zero_variance_columns(clean)
    if constant:
        raise DegenerateVarianceError(constant)
    return clean


def first_component_loadings(corr: pd.DataFrame) -> pd.Series:
    """Loadings on the first principal component, oriented so they sum positive."""
    eigvals, eigvecs = np.linalg.eigh(corr.to_numpy())
    loadings = eigvecs[:, -1] * np.sqrt(max(eigvals[-1], 0.0))
    if loadings.sum() < 0:
        loadings = -loadings
    return pd.Series(loadings, index=corr.index, dtype=float)


def _item_total_correlations(items: pd.DataFrame, corrected: bool) -> pd.Series:
    total = items.sum(axis=1)
    result = {}
    for col in items.columns:
        rest = total - items[col] if corrected else total
        result[col] = items[col].corr(rest)
    return pd.Series(result, dtype=float)


def compute_alpha(
    data: pd.DataFrame,
    items: Optional[Iterable[str]] = None,
    reverse_detect: bool = False,
    scale_min: int = SCALE_MIN,
    scale_max: int = SCALE_MAX,
    check_negative: bool = True,
) -> ReliabilityReport:
    """
    Compute Cronbach's alpha and item diagnostics for an item set.

    Parameters
    ----------
    data : pd.DataFrame
        Item matrix (respondents x items).
    items : iterable of str, optional
        Item columns to analyse. Defaults to all columns.
    reverse_detect : bool
        Flag items with a negative first-component loading and
        reverse-score them (``scale_max + scale_min - x``) before computing
        alpha. The caller's frame is not modified.
    scale_min, scale_max : int
        Response range used for reverse-scoring.
    check_negative : bool
        When not reverse-detecting, warn if any item loads negatively on
        the first component.

    Returns
    -------
    ReliabilityReport

    Raises
    ------
    InsufficientItemsError
        Fewer than 2 items.
    DegenerateVarianceError
        Any item with zero variance.
    InvalidInputError
        Non-numeric items or fewer than 2 complete responses.
    """
    clean = _select_items(data, items)
    names = [str(c) for c in clean.columns]
    clean.columns = names

    component = first_component_loadings(clean.corr())
    negative = component < -KEY_TOLERANCE

    if reverse_detect:
        flags = negative.copy()
        for col in flags[flags].index:
            clean[col] = reverse_code(clean[col], scale_min=scale_min, scale_max=scale_max)
    else:
        flags = pd.Series(False, index=names)
        if check_negative and negative.any():
            warnings.warn(
                "Some items load negatively on the first principal component and probably "
                f"should be reversed: {list(negative[negative].index)}. "
                "Run again with reverse_detect=True.",
                UserWarning,
            )

    corr = clean.corr()
    k = len(names)

    alpha_dropped = {}
    raw_dropped = {}
    for col in names:
        if k > 2:
            rest = [c for c in names if c != col]
            alpha_dropped[col] = standardized_alpha(corr.loc[rest, rest])
            raw_dropped[col] = cronbach_alpha(clean[rest])
        else:
            alpha_dropped[col] = np.nan
            raw_dropped[col] = np.nan

    raw_alpha = cronbach_alpha(clean)

    return ReliabilityReport(
        items=names,
        alpha=standardized_alpha(corr),
        raw_alpha=raw_alpha,
        average_r=average_interitem_r(corr),
        alpha_if_dropped=pd.Series(alpha_dropped, dtype=float),
        raw_alpha_if_dropped=pd.Series(raw_dropped, dtype=float),
        item_total=_item_total_correlations(clean, corrected=True),
        reversed=flags.astype(bool),
        correlation=corr,
        item_means=clean.mean(),
        item_sds=clean.std(ddof=1),
        n_obs=len(clean),
        confidence_interval=feldt_interval(raw_alpha, len(clean), k),
        component_loadings=component,
    )


# =============================================================================
# REPORTING
# =============================================================================

def print_reliability_report(report: ReliabilityReport, digits: int = 2) -> None:
    """Print alpha and the per-item table in the transcript layout."""
    lo, hi = report.confidence_interval
    print(f"  Items: {', '.join(report.items)}  (N = {report.n_obs})")
    print(f"  Raw alpha: {report.raw_alpha:.{digits}f}   Standardized alpha: {report.alpha:.{digits}f}"
          f"   Average r: {report.average_r:.{digits}f}")
    print(f"  Feldt 95% CI (raw alpha): [{lo:.{digits}f}; {hi:.{digits}f}]   ({report.interpretation})")
    if report.reversed_items:
        print(f"  Reverse-keyed items (scored reversed): {', '.join(report.reversed_items)}")

    table = report.item_table()
    print(f"\n  {'Item':<8} {'Mean':>7} {'SD':>7} {'r.drop':>8} {'alpha if dropped':>17} {'Reversed':>9}")
    print("  " + "-" * 60)
    for item, row in table.iterrows():
        dropped = "--" if pd.isna(row['alpha_if_dropped']) else f"{row['alpha_if_dropped']:.{digits}f}"
        print(f"  {item:<8} {row['mean']:>7.{digits}f} {row['sd']:>7.{digits}f} "
              f"{row['item_total_r']:>8.{digits}f} {dropped:>17} {str(bool(row['reversed'])):>9}")
