"""
Correlated Data Generation
==========================

Generates continuous item data whose *sample* mean vector and covariance
matrix equal a target exactly, not merely in expectation.

Method:
    1. Draw an N x K standard-normal sample (numpy Generator, seeded).
    2. Centre it and whiten it with the Cholesky factor of its own sample
       covariance (ddof=1), so the realised covariance is exactly I.
    3. Colour it with the eigen-root V * sqrt(lambda) of the target matrix
       and add the target means.

The eigen-root is used instead of a Cholesky factor of the target so that
positive-semi-definite (singular) targets are accepted as well.

Usage:
    from survey_methods.preprocessing import CovarianceSpec, generate

    spec = CovarianceSpec.equicorrelated(3, 0.5)
    data = generate(spec, n=500, seed=12345)

Author: Research Team
Date: 2025-12
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .constants import DEFAULT_SEED, PSD_TOLERANCE, SYMMETRY_TOLERANCE
from .errors import InvalidSpecError


# =============================================================================
# TARGET MOMENTS
# =============================================================================

def default_item_names(k: int) -> Tuple[str, ...]:
    """Return x1..xk."""
    return tuple(f"x{i}" for i in range(1, k + 1))


@dataclass(frozen=True, eq=False)
class CovarianceSpec:
    """
    Target covariance (or correlation) matrix plus mean vector.

    Attributes
    ----------
    matrix : array-like, shape (K, K)
        Symmetric target covariance/correlation matrix.
    mean : array-like, shape (K,), optional
        Target means. Defaults to zeros.
    names : sequence of str, optional
        Column names. Defaults to x1..xK.
    """

    matrix: np.ndarray
    mean: Optional[np.ndarray] = None
    names: Optional[Tuple[str, ...]] = field(default=None)

    def __post_init__(self):
        try:
            matrix = np.array(self.matrix, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InvalidSpecError(f"Matrix is not numeric: {exc}") from exc

        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1] or matrix.shape[0] == 0:
            raise InvalidSpecError(f"Matrix must be square and non-empty, got shape {matrix.shape}")
        if not np.all(np.isfinite(matrix)):
            raise InvalidSpecError("Matrix contains non-finite entries")
        if not np.allclose(matrix, matrix.T, atol=SYMMETRY_TOLERANCE, rtol=0.0):
            raise InvalidSpecError("Matrix is not symmetric")

        k = matrix.shape[0]
        diag = np.diag(matrix)
        if np.any(diag < 0):
            bad = int(np.argmin(diag))
            raise InvalidSpecError(f"Negative variance on the diagonal at position {bad}")
        if np.allclose(diag, 1.0):
            off = matrix[~np.eye(k, dtype=bool)]
            if np.any(np.abs(off) > 1.0):
                raise InvalidSpecError("Correlation entries must lie in [-1, 1]")

        if self.mean is None:
            mean = np.zeros(k)
        else:
            try:
                mean = np.array(self.mean, dtype=float).reshape(-1)
            except (TypeError, ValueError) as exc:
                raise InvalidSpecError(f"Mean vector is not numeric: {exc}") from exc
        if mean.shape[0] != k:
            raise InvalidSpecError(f"Mean vector has length {mean.shape[0]}, expected {k}")
        if not np.all(np.isfinite(mean)):
            raise InvalidSpecError("Mean vector contains non-finite entries")

        names = default_item_names(k) if self.names is None else tuple(str(n) for n in self.names)
        if len(names) != k:
            raise InvalidSpecError(f"Got {len(names)} names for {k} variables")
        if len(set(names)) != k:
            raise InvalidSpecError(f"Variable names must be unique: {names}")

        matrix.setflags(write=False)
        mean.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)
        object.__setattr__(self, "mean", mean)
        object.__setattr__(self, "names", names)

    @classmethod
    def equicorrelated(cls, k: int, r: float, names: Optional[Sequence[str]] = None) -> "CovarianceSpec":
        """Correlation matrix with every off-diagonal entry equal to r."""
        matrix = np.full((k, k), float(r))
        np.fill_diagonal(matrix, 1.0)
        return cls(matrix=matrix, names=tuple(names) if names is not None else None)

    @property
    def n_items(self) -> int:
        return self.matrix.shape[0]

    @property
    def is_correlation(self) -> bool:
        return bool(np.allclose(np.diag(self.matrix), 1.0))

    def as_frame(self) -> pd.DataFrame:
        """Target matrix labelled with the variable names."""
        return pd.DataFrame(self.matrix, index=list(self.names), columns=list(self.names))


# =============================================================================
# GENERATION
# =============================================================================

def _matrix_root(spec: CovarianceSpec) -> np.ndarray:
    eigvals, eigvecs = np.linalg.eigh(spec.matrix)
    largest = np.max(np.abs(eigvals))
    if np.min(eigvals) < -PSD_TOLERANCE * largest:
        raise InvalidSpecError(
            f"Matrix is not positive semi-definite (smallest eigenvalue {np.min(eigvals):.4g})"
        )
    return eigvecs * np.sqrt(np.clip(eigvals, 0.0, None))


def _whiten(sample: np.ndarray) -> np.ndarray:
    n = sample.shape[0]
    centered = sample - sample.mean(axis=0)
    sample_cov = centered.T @ centered / (n - 1)
    try:
        chol = np.linalg.cholesky(sample_cov)
    except np.linalg.LinAlgError as exc:
        raise InvalidSpecError(f"Raw sample covariance is singular: {exc}") from exc
    # centered @ inv(chol).T has identity sample covariance
    white = np.linalg.solve(chol, centered.T).T
    return white - white.mean(axis=0)


def generate(spec: CovarianceSpec, n: int, seed: Optional[int] = DEFAULT_SEED) -> pd.DataFrame:
    """
    Draw N respondents whose sample moments match the target exactly.

    Parameters
    ----------
    spec : CovarianceSpec
        Target covariance/correlation matrix and means.
    n : int
        Sample size. Must exceed the number of variables.
    seed : int or None
        Seed for the standard-normal draw before the affine correction.

    Returns
    -------
    pd.DataFrame
        N x K frame with columns ``spec.names``.

    Raises
    ------
    InvalidSpecError
        If ``n <= K`` or the matrix is not positive semi-definite.
    """
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidSpecError(f"Sample size must be an integer, got {n!r}")
    k = spec.n_items
    if n <= k:
        raise InvalidSpecError(f"Sample size {n} must exceed the number of variables ({k})")

    root = _matrix_root(spec)
    rng = np.random.default_rng(seed)
    raw = rng.standard_normal(size=(int(n), k))
    values = _whiten(raw) @ root.T + spec.mean

    return pd.DataFrame(values, columns=list(spec.names))
