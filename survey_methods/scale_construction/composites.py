"""
Scale Composites
================

Turns a selected item set into one score per respondent.

Two composites:
1. Unweighted: row mean of the items (every item weight 1).
2. Weighted: single-factor maximum-likelihood factor analysis on the
   z-scored items; regression (Thomson) factor scores standardized to
   mean 0, SD 1. Items with more true-score variance get more weight.

Items are expected to be reverse-coded and pruned already; the composer
never decides which items belong in the scale.

Usage:
    from survey_methods.scale_construction import unweighted_composite, weighted_composite

    data5['scale5u'] = unweighted_composite(data5, ['x1', 'x2', 'x3', 'x4', 'x5'])
    fa5 = weighted_composite(data5, ['x1', 'x2', 'x3', 'x4', 'x5'])
    data5['scale5w'] = fa5.scores
    print(fa5.loadings)           # x1 has the largest loading

Author: Research Team
Date: 2025-12
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence
import warnings

import numpy as np
import pandas as pd
from sklearn.decomposition import FactorAnalysis
from sklearn.exceptions import ConvergenceWarning

from survey_methods.preprocessing.errors import (
    FactorExtractionFailedError,
    InsufficientItemsError,
    InvalidInputError,
)
from survey_methods.preprocessing.standardization import standardize_items, zero_variance_columns

COMPOSITE_MODES = ("unweighted", "weighted")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _item_frame(data: pd.DataFrame, items: Sequence[str]) -> pd.DataFrame:
    items = list(items)
    if not items:
        raise InsufficientItemsError("A composite needs at least one item")
    missing = [c for c in items if c not in data.columns]
    if missing:
        raise KeyError(f"Items not found: {missing}")
    for col in items:
        if pd.api.types.is_bool_dtype(data[col]) or not pd.api.types.is_numeric_dtype(data[col]):
            raise InvalidInputError(f"Item '{col}' is not numeric (dtype {data[col].dtype})", column=col)
    return data[items].astype(float)


def factor_degrees_of_freedom(n_items: int, n_factors: int) -> float:
    """Degrees of freedom of an ML factor model: ((p - f)^2 - (p + f)) / 2."""
    return ((n_items - n_factors) ** 2 - (n_items + n_factors)) / 2


# =============================================================================
# UNWEIGHTED COMPOSITE
# =============================================================================

def unweighted_composite(data: pd.DataFrame, items: Sequence[str], name: str = "scale") -> pd.Series:
    """
    Average the items per respondent.

    Not standardized: on 1-5 items the composite stays on the 1-5 metric.
    A respondent missing any item gets NaN, as in the alpha and factor
    computations, which use complete responses only.
    """
    frame = _item_frame(data, items)
    return frame.mean(axis=1, skipna=False).rename(name)


# =============================================================================
# WEIGHTED (FACTOR-SCORE) COMPOSITE
# =============================================================================

@dataclass
class FactorComposite:
    """
    Result of a factor-weighted composite.

    Attributes
    ----------
    scores : pd.Series
        Standardized regression factor scores (factor 1).
    loadings : pd.DataFrame
        Items x factors loading matrix on the standardized items.
    uniquenesses : pd.Series
        Unique variance per item.
    ss_loadings : pd.Series
        Sum of squared loadings per factor.
    proportion_variance : pd.Series
        ss_loadings / number of items.
    """

    scores: pd.Series
    loadings: pd.DataFrame
    uniquenesses: pd.Series
    ss_loadings: pd.Series
    proportion_variance: pd.Series

    @property
    def items(self) -> List[str]:
        return list(self.loadings.index)

    @property
    def dominant_item(self) -> str:
        """Item with the largest absolute loading on the first factor."""
        return str(self.loadings.iloc[:, 0].abs().idxmax())

    @property
    def weights(self) -> pd.Series:
        """Relative item weights implied by the first-factor loadings."""
        first = self.loadings.iloc[:, 0]
        return first / first.abs().sum()


def weighted_composite(
    data: pd.DataFrame,
    items: Sequence[str],
    n_factors: int = 1,
    name: str = "scale",
    random_state: int = 0,
) -> FactorComposite:
    """
    Build a factor-score composite from the items.

    Parameters
    ----------
    data : pd.DataFrame
        Item matrix.
    items : sequence of str
        Items in the scale.
    n_factors : int
        Number of factors extracted. Scores are reported for factor 1.
    name : str
        Name of the score Series.
    random_state : int
        Seed passed to the estimator.

    Returns
    -------
    FactorComposite

    Raises
    ------
    FactorExtractionFailedError
        If the model is under-identified, an item has zero variance, the item
        correlation matrix is singular, the estimator does not converge, or
        the scores are not finite.
    InvalidInputError
        If any item has missing values.
    """
    frame = _item_frame(data, items)
    items = list(frame.columns)
    p = len(items)

    if n_factors < 1:
        raise FactorExtractionFailedError(f"n_factors must be >= 1, got {n_factors}")
    dof = factor_degrees_of_freedom(p, n_factors)
    if dof < 0:
        raise FactorExtractionFailedError(
            f"{n_factors} factor(s) cannot be identified from {p} items (degrees of freedom {dof:g})"
        )

    if frame.isna().any().any():
        col = str(frame.columns[frame.isna().any()][0])
        raise InvalidInputError(f"Item '{col}' has missing values", column=col)

    constant = zero_variance_columns(frame)
    if constant:
        raise FactorExtractionFailedError(f"Items with zero variance: {', '.join(constant)}")

    z = standardize_items(frame)

    eigvals = np.linalg.eigvalsh(np.corrcoef(z.to_numpy(), rowvar=False))
    if eigvals.min() <= 1e-10 * eigvals.max():
        raise FactorExtractionFailedError("Item correlation matrix is singular")

    fa = FactorAnalysis(n_components=n_factors, random_state=random_state)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        raw_scores = fa.fit_transform(z.to_numpy())
    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            raise FactorExtractionFailedError(f"Factor analysis did not converge: {w.message}")
        warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)

    loadings = fa.components_.T.copy()       # (items, factors)
    signs = np.where(loadings.sum(axis=0) < 0, -1.0, 1.0)
    loadings *= signs
    raw_scores = raw_scores * signs

    first = raw_scores[:, 0]
    if not np.all(np.isfinite(first)) or np.std(first, ddof=1) == 0:
        raise FactorExtractionFailedError("Factor scores are not finite")
    scores = (first - first.mean()) / np.std(first, ddof=1)

    factor_names = [f"factor{i}" for i in range(1, n_factors + 1)]
    loadings_df = pd.DataFrame(loadings, index=items, columns=factor_names)
    ss = (loadings_df ** 2).sum(axis=0)

    return FactorComposite(
        scores=pd.Series(scores, index=frame.index, name=name),
        loadings=loadings_df,
        uniquenesses=pd.Series(fa.noise_variance_, index=items, name="uniqueness"),
        ss_loadings=ss.rename("ss_loadings"),
        proportion_variance=(ss / p).rename("proportion_variance"),
    )


def composite(data: pd.DataFrame, items: Sequence[str], mode: str = "unweighted", name: str = "scale") -> pd.Series:
    """Return the unweighted or weighted composite as a Series."""
    if mode == "unweighted":
        return unweighted_composite(data, items, name=name)
    if mode == "weighted":
        return weighted_composite(data, items, name=name).scores
    raise ValueError(f"Unknown composite mode: {mode}. Valid modes: {COMPOSITE_MODES}")
