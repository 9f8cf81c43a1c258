"""
Tests for correlated data generation.

- Exact sample moments (covariance and means)
- Reproducibility from the seed
- Target matrix validation
- Standardization helpers
"""

import numpy as np
import pandas as pd
import pytest

from survey_methods.preprocessing import (
    CovarianceSpec,
    InvalidSpecError,
    default_item_names,
    generate,
    standardize_items,
    zero_variance_columns,
)


class TestCovarianceSpec:
    """Validation of the target matrix."""

    def test_defaults(self):
        spec = CovarianceSpec(np.eye(3))
        assert spec.names == ("x1", "x2", "x3")
        np.testing.assert_array_equal(spec.mean, np.zeros(3))
        assert spec.n_items == 3
        assert spec.is_correlation

    def test_equicorrelated(self):
        spec = CovarianceSpec.equicorrelated(4, 0.8)
        assert spec.matrix.shape == (4, 4)
        assert np.all(np.diag(spec.matrix) == 1.0)
        assert spec.matrix[0, 3] == pytest.approx(0.8)

    def test_arrays_are_read_only(self):
        spec = CovarianceSpec.equicorrelated(3, 0.5)
        with pytest.raises(ValueError):
            spec.matrix[0, 0] = 2.0

    def test_as_frame_uses_names(self):
        spec = CovarianceSpec(np.eye(2), names=("a", "b"))
        frame = spec.as_frame()
        assert list(frame.columns) == ["a", "b"]
        assert list(frame.index) == ["a", "b"]

    @pytest.mark.parametrize("matrix", [
        np.array([[1.0, 0.5], [0.4, 1.0]]),          # asymmetric
        np.array([[1.0, 1.5], [1.5, 1.0]]),          # correlation out of range
        np.ones((2, 3)),                             # not square
        np.array([[1.0, np.nan], [np.nan, 1.0]]),    # non-finite
        np.array([[-1.0, 0.0], [0.0, 1.0]]),         # negative variance
    ])
    def test_malformed_matrix(self, matrix):
        with pytest.raises(InvalidSpecError):
            CovarianceSpec(matrix)

    def test_mean_length_mismatch(self):
        with pytest.raises(InvalidSpecError, match="Mean vector"):
            CovarianceSpec(np.eye(3), mean=[0.0, 0.0])

    def test_duplicate_names(self):
        with pytest.raises(InvalidSpecError, match="unique"):
            CovarianceSpec(np.eye(2), names=("x", "x"))

    def test_invalid_spec_is_value_error(self):
        with pytest.raises(ValueError):
            CovarianceSpec(np.array([[1.0, 2.0], [0.0, 1.0]]))

    def test_default_item_names(self):
        assert default_item_names(3) == ("x1", "x2", "x3")


class TestGenerate:
    """Exact-moment generation."""

    def test_exact_covariance_and_means(self):
        cov = np.array([
            [2.0, 0.6, -0.3],
            [0.6, 1.0, 0.2],
            [-0.3, 0.2, 0.5],
        ])
        mean = np.array([1.0, -2.0, 3.5])
        df = generate(CovarianceSpec(cov, mean=mean), n=200, seed=7)

        assert df.shape == (200, 3)
        np.testing.assert_allclose(df.cov().to_numpy(), cov, atol=1e-9)
        np.testing.assert_allclose(df.mean().to_numpy(), mean, atol=1e-9)

    def test_exact_correlation(self, equicorrelated_spec):
        df = generate(equicorrelated_spec, n=500, seed=12345)
        np.testing.assert_allclose(df.corr().to_numpy(), equicorrelated_spec.matrix, atol=1e-9)
        assert list(df.columns) == ["x1", "x2", "x3"]

    def test_smallest_valid_sample(self):
        df = generate(CovarianceSpec.equicorrelated(3, 0.3), n=4, seed=1)
        np.testing.assert_allclose(df.cov().to_numpy(), CovarianceSpec.equicorrelated(3, 0.3).matrix, atol=1e-9)

    def test_singular_psd_target_accepted(self):
        spec = CovarianceSpec(np.ones((2, 2)))
        df = generate(spec, n=50, seed=3)
        np.testing.assert_allclose(df["x1"].to_numpy(), df["x2"].to_numpy(), atol=1e-9)

    def test_same_seed_same_output(self, equicorrelated_spec):
        a = generate(equicorrelated_spec, n=100, seed=99)
        b = generate(equicorrelated_spec, n=100, seed=99)
        pd.testing.assert_frame_equal(a, b)

    def test_different_seed_different_output(self, equicorrelated_spec):
        a = generate(equicorrelated_spec, n=100, seed=1)
        b = generate(equicorrelated_spec, n=100, seed=2)
        assert not np.allclose(a.to_numpy(), b.to_numpy())

    @pytest.mark.parametrize("n", [3, 2, 0])
    def test_sample_must_exceed_items(self, equicorrelated_spec, n):
        with pytest.raises(InvalidSpecError, match="must exceed"):
            generate(equicorrelated_spec, n=n, seed=1)

    @pytest.mark.parametrize("n", [10.0, "10", True])
    def test_sample_size_must_be_integer(self, equicorrelated_spec, n):
        with pytest.raises(InvalidSpecError, match="integer"):
            generate(equicorrelated_spec, n=n, seed=1)

    def test_not_positive_semi_definite(self):
        matrix = np.array([
            [1.0, 0.9, 0.9],
            [0.9, 1.0, -0.9],
            [0.9, -0.9, 1.0],
        ])
        with pytest.raises(InvalidSpecError, match="positive semi-definite"):
            generate(CovarianceSpec(matrix), n=100, seed=1)


class TestStandardization:
    """z-scores and constant-column detection."""

    def test_standardize_items(self, likert_items):
        z = standardize_items(likert_items, ['x1', 'x2'])
        assert list(z.columns) == ['x1', 'x2']
        np.testing.assert_allclose(z.mean(), 0.0, atol=1e-12)
        np.testing.assert_allclose(z.std(ddof=1), 1.0)

    def test_constant_column_refused(self, likert_items):
        with pytest.raises(ValueError, match="constant"):
            standardize_items(likert_items.assign(x4=2))

    def test_zero_variance_columns(self, likert_items):
        assert zero_variance_columns(likert_items.assign(c=1.0)) == ['c']
        assert zero_variance_columns(likert_items) == []
