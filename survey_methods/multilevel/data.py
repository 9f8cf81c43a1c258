"""
Multilevel Example Data
=======================

Loaders for the two multilevel teaching datasets, plus simulated stand-ins
with the same columns for when the Stata files are not at hand.

Datasets:
    schools  Goldstein (1995) exam scores: students nested in 65 schools
             columns: school, student, normexam, standlrt
    retail   Hypothetical customers nested in 3 stores (n = 21)
             columns: store, customer, satisfac_1, loyalty_1, loyalty_2

Usage:
    from survey_methods.multilevel import load_or_simulate

    schools, source = load_or_simulate("schools")
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd

from survey_methods.preprocessing.constants import DEFAULT_SEED, RETAIL_DATA_PATH, SCHOOLS_DATA_PATH

SCHOOLS_COLUMNS = ["school", "student", "normexam", "standlrt"]
RETAIL_COLUMNS = ["store", "satisfac_1", "loyalty_1", "loyalty_2"]

# Population values used by the schools simulation (close to the published
# random-slope estimates for the Goldstein data)
SCHOOLS_PARAMS = {
    "n_schools": 65,
    "mean_size": 62,
    "intercept": -0.01,
    "slope": 0.56,
    "sd_intercept": 0.30,
    "sd_slope": 0.12,
    "corr_intercept_slope": 0.50,
    "sd_residual": 0.74,
}


# =============================================================================
# LOADERS
# =============================================================================

def _read_dta(path: Union[str, Path], required: list) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    df = pd.read_stata(path, convert_categoricals=False)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise KeyError(f"{path.name} is missing columns: {missing}")
    return df


def load_schools(path: Union[str, Path] = SCHOOLS_DATA_PATH) -> pd.DataFrame:
    """Read the Goldstein school data (Stata format)."""
    df = _read_dta(path, SCHOOLS_COLUMNS)
    df["school"] = df["school"].astype(int)
    return df


def load_retail(path: Union[str, Path] = RETAIL_DATA_PATH) -> pd.DataFrame:
    """Read the hypothetical retail data (Stata format)."""
    df = _read_dta(path, RETAIL_COLUMNS)
    df["store"] = df["store"].astype(int)
    return df


# =============================================================================
# SIMULATED STAND-INS
# =============================================================================

def simulate_schools(seed: Optional[int] = DEFAULT_SEED, params: Optional[dict] = None) -> pd.DataFrame:
    """
    Students nested in schools with random intercepts and slopes.

    normexam = (b0 + u0j) + (b1 + u1j) * standlrt + e_ij
    """
    p = dict(SCHOOLS_PARAMS, **(params or {}))
    rng = np.random.default_rng(seed)

    n_schools = int(p["n_schools"])
    sizes = np.clip(rng.poisson(p["mean_size"], size=n_schools), 5, None)

    cov = p["corr_intercept_slope"] * p["sd_intercept"] * p["sd_slope"]
    re_cov = np.array([
        [p["sd_intercept"] ** 2, cov],
        [cov, p["sd_slope"] ** 2],
    ])
    school_effects = rng.multivariate_normal([0.0, 0.0], re_cov, size=n_schools)

    school = np.repeat(np.arange(1, n_schools + 1), sizes)
    u = school_effects[school - 1]
    standlrt = rng.standard_normal(school.size)
    normexam = (
        p["intercept"] + u[:, 0]
        + (p["slope"] + u[:, 1]) * standlrt
        + rng.normal(0.0, p["sd_residual"], school.size)
    )

    return pd.DataFrame({
        "school": school,
        "student": np.concatenate([np.arange(1, s + 1) for s in sizes]),
        "normexam": normexam,
        "standlrt": standlrt,
    })


def simulate_retail(seed: Optional[int] = DEFAULT_SEED, noise: float = 0.25) -> pd.DataFrame:
    """
    Customers nested in three stores.

    loyalty_1 has store-specific intercepts and a common slope on
    satisfaction; loyalty_2 has store-specific slopes as well. A little noise
    is added so the mixed models are estimable (an exact fit leaves no
    residual variance).
    """
    rng = np.random.default_rng(seed)
    stores = np.repeat([1, 2, 3], 7)
    satisfac = np.tile(np.arange(1, 8), 3).astype(float)

    intercepts = np.array([1.0, 2.0, 3.0])[stores - 1]
    slopes = np.array([0.3, 0.6, 0.9])[stores - 1]

    loyalty_1 = intercepts + 0.5 * satisfac + rng.normal(0.0, noise, stores.size)
    loyalty_2 = intercepts + slopes * satisfac + rng.normal(0.0, noise, stores.size)

    return pd.DataFrame({
        "store": stores,
        "customer": np.arange(1, stores.size + 1),
        "satisfac_1": satisfac,
        "loyalty_1": loyalty_1,
        "loyalty_2": loyalty_2,
    })


def load_or_simulate(
    dataset: str,
    path: Optional[Union[str, Path]] = None,
    seed: Optional[int] = DEFAULT_SEED,
    verbose: bool = True,
) -> Tuple[pd.DataFrame, str]:
    """
    Load a dataset from its Stata file, or simulate it when the file is absent.

    Returns
    -------
    (DataFrame, source) where source is the file path or "simulated".
    """
    loaders = {
        "schools": (load_schools, simulate_schools, SCHOOLS_DATA_PATH),
        "retail": (load_retail, simulate_retail, RETAIL_DATA_PATH),
    }
    if dataset not in loaders:
        raise ValueError(f"Unknown dataset: {dataset}. Valid datasets: {list(loaders)}")
    loader, simulator, default_path = loaders[dataset]
    path = Path(path) if path is not None else default_path

    if path.exists():
        if verbose:
            print(f"  [OK] Loaded {path}")
        return loader(path), str(path)

    if verbose:
        print(f"  [SKIP] {path} not found; using simulated {dataset} data")
    return simulator(seed=seed), "simulated"
