"""
Pytest configuration and shared fixtures.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from survey_methods.preprocessing import CovarianceSpec, generate  # noqa: E402


@pytest.fixture
def equicorrelated_spec() -> CovarianceSpec:
    """Three items, every pair correlated .50."""
    return CovarianceSpec.equicorrelated(3, 0.5)


@pytest.fixture
def reversed_item_spec() -> CovarianceSpec:
    """x1 correlates -.50 with x2..x4, which correlate .50 with each other."""
    return CovarianceSpec(np.array([
        [1.0, -0.5, -0.5, -0.5],
        [-0.5, 1.0, 0.5, 0.5],
        [-0.5, 0.5, 1.0, 0.5],
        [-0.5, 0.5, 0.5, 1.0],
    ]))


@pytest.fixture
def bad_item_spec() -> CovarianceSpec:
    """x1 is uncorrelated with x2..x4, which correlate .50 with each other."""
    return CovarianceSpec(np.array([
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 1.0, 0.5, 0.5],
        [0.0, 0.5, 1.0, 0.5],
        [0.0, 0.5, 0.5, 1.0],
    ]))


@pytest.fixture
def data1(equicorrelated_spec) -> pd.DataFrame:
    return generate(equicorrelated_spec, n=500, seed=12345)


@pytest.fixture
def likert_items() -> pd.DataFrame:
    """Small hand-made 1-5 item matrix."""
    return pd.DataFrame({
        'x1': [1, 2, 3, 4, 5, 4, 3, 2],
        'x2': [2, 2, 3, 5, 5, 4, 3, 1],
        'x3': [1, 3, 3, 4, 4, 5, 2, 2],
    })
