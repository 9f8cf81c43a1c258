"""
Likert Discretization
=====================

Maps continuous responses onto an ordinal 1-5 scale with fixed cut points,
and reverse-codes negatively keyed items.

Default rule (right-closed, left-open intervals):
    (-inf, -1.5] -> 1
    (-1.5, -0.5] -> 2
    (-0.5,  0.5] -> 3
    ( 0.5,  1.5] -> 4
    ( 1.5,  inf) -> 5
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np
import pandas as pd

from .constants import LIKERT_BREAKS, LIKERT_LABELS, SCALE_MAX, SCALE_MIN
from .errors import InvalidInputError


@dataclass(frozen=True)
class DiscretizationRule:
    """Inner cut points and integer labels for ordinal binning."""

    breaks: Tuple[float, ...] = LIKERT_BREAKS
    labels: Tuple[int, ...] = LIKERT_LABELS
    right: bool = True     # boundary value goes to the lower-labeled bin

    def __post_init__(self):
        breaks = tuple(float(b) for b in self.breaks)
        labels = tuple(int(label) for label in self.labels)
        if not breaks:
            raise ValueError("At least one break point is required")
        if not all(np.isfinite(breaks)):
            raise ValueError(f"Break points must be finite: {breaks}")
        if any(b2 <= b1 for b1, b2 in zip(breaks, breaks[1:])):
            raise ValueError(f"Break points must be strictly increasing: {breaks}")
        if len(labels) != len(breaks) + 1:
            raise ValueError(
                f"{len(breaks)} break points define {len(breaks) + 1} bins, got {len(labels)} labels"
            )
        object.__setattr__(self, "breaks", breaks)
        object.__setattr__(self, "labels", labels)

    @property
    def bins(self) -> Tuple[float, ...]:
        return (-np.inf,) + self.breaks + (np.inf,)

    @property
    def scale_min(self) -> int:
        return min(self.labels)

    @property
    def scale_max(self) -> int:
        return max(self.labels)


LIKERT_5 = DiscretizationRule()


def _check_numeric(values: pd.Series, name: str) -> pd.Series:
    if pd.api.types.is_bool_dtype(values) or not pd.api.types.is_numeric_dtype(values):
        raise InvalidInputError(
            f"Column '{name}' is not numeric (dtype {values.dtype})", column=name
        )
    missing = values.isna()
    if missing.any():
        row = missing.idxmax()
        raise InvalidInputError(
            f"Column '{name}' has {int(missing.sum())} missing value(s), first at row {row}",
            column=name,
        )
    finite = np.isfinite(values.to_numpy(dtype=float))
    if not finite.all():
        row = values.index[int(np.argmin(finite))]
        raise InvalidInputError(f"Column '{name}' has a non-finite value at row {row}", column=name)
    return values


def discretize_column(values, rule: DiscretizationRule = LIKERT_5, name: Optional[str] = None) -> pd.Series:
    """
    Bin one continuous column into ordinal labels.

    Parameters
    ----------
    values : pd.Series or array-like
        Continuous responses.
    rule : DiscretizationRule
        Cut points and labels.
    name : str, optional
        Column name used in error messages (defaults to the Series name).

    Returns
    -------
    pd.Series
        Integer labels with the same index as the input.

    Raises
    ------
    InvalidInputError
        For non-numeric, missing, or non-finite values.
    """
    series = values if isinstance(values, pd.Series) else pd.Series(values)
    name = name if name is not None else (series.name if series.name is not None else "values")
    _check_numeric(series, str(name))

    binned = pd.cut(series, bins=list(rule.bins), labels=list(rule.labels), right=rule.right)
    return binned.astype(int).rename(series.name)


def discretize(
    matrix: pd.DataFrame,
    rule: DiscretizationRule = LIKERT_5,
    columns: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """Return a copy of ``matrix`` with the listed (default: all) columns discretized."""
    result = matrix.copy()
    columns = list(matrix.columns) if columns is None else list(columns)
    missing = [c for c in columns if c not in matrix.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")
    for col in columns:
        result[col] = discretize_column(matrix[col], rule=rule, name=col)
    return result


def reverse_code(values, scale_min: int = SCALE_MIN, scale_max: int = SCALE_MAX) -> pd.Series:
    """
    Reverse-key an item: ``(scale_max + scale_min) - x``.

    On a 1-5 scale this is ``6 - x``; applying it twice returns the input.
    """
    if scale_max <= scale_min:
        raise ValueError(f"scale_max ({scale_max}) must exceed scale_min ({scale_min})")
    series = values if isinstance(values, pd.Series) else pd.Series(values)
    return (scale_max + scale_min) - series
