"""
Tests for unweighted and factor-weighted composites.
"""

import numpy as np
import pandas as pd
import pytest

from survey_methods.preprocessing import (
    FactorExtractionFailedError,
    InsufficientItemsError,
    InvalidInputError,
)
from survey_methods.scale_construction import (
    VARIANTS,
    composite,
    factor_degrees_of_freedom,
    unweighted_composite,
    weighted_composite,
)

FIVE = ['x1', 'x2', 'x3', 'x4', 'x5']


@pytest.fixture(scope="module")
def data5() -> pd.DataFrame:
    pipe = VARIANTS['data5'].pipeline()
    pipe.generate()
    return pipe.discretize()


class TestUnweightedComposite:
    """Row means."""

    def test_literal_example(self):
        df = pd.DataFrame({'a': [2], 'b': [3], 'c': [4]})
        result = unweighted_composite(df, ['a', 'b', 'c'])
        assert result.iloc[0] == pytest.approx(3.0)
        assert result.name == "scale"

    def test_not_standardized(self, likert_items):
        result = unweighted_composite(likert_items, ['x1', 'x2', 'x3'], name="scale1")
        expected = likert_items[['x1', 'x2', 'x3']].mean(axis=1)
        np.testing.assert_allclose(result.to_numpy(), expected.to_numpy())
        assert result.name == "scale1"
        assert result.min() >= 1 and result.max() <= 5

    def test_missing_item_gives_missing_score(self, likert_items):
        df = likert_items.astype(float)
        df.loc[0, 'x2'] = np.nan
        result = unweighted_composite(df, ['x1', 'x2', 'x3'])
        assert np.isnan(result.iloc[0])
        assert result.iloc[1:].notna().all()

    def test_empty_item_list(self, likert_items):
        with pytest.raises(InsufficientItemsError):
            unweighted_composite(likert_items, [])

    def test_unknown_item(self, likert_items):
        with pytest.raises(KeyError):
            unweighted_composite(likert_items, ['x1', 'nope'])

    def test_non_numeric_item(self):
        df = pd.DataFrame({'a': [1, 2], 'b': ['x', 'y']})
        with pytest.raises(InvalidInputError):
            unweighted_composite(df, ['a', 'b'])


class TestWeightedComposite:
    """Single-factor regression scores."""

    def test_scores_standardized(self, data5):
        fa = weighted_composite(data5, FIVE, name="scale5w")
        assert fa.scores.name == "scale5w"
        assert len(fa.scores) == len(data5)
        assert fa.scores.mean() == pytest.approx(0.0, abs=1e-9)
        assert fa.scores.std(ddof=1) == pytest.approx(1.0, abs=1e-9)

    def test_loadings(self, data5):
        fa = weighted_composite(data5, FIVE)
        assert fa.loadings.shape == (5, 1)
        assert list(fa.loadings.index) == FIVE
        assert fa.loadings.iloc[:, 0].sum() > 0
        assert fa.dominant_item == 'x1'
        assert fa.weights.abs().sum() == pytest.approx(1.0)

    def test_variance_summaries(self, data5):
        fa = weighted_composite(data5, FIVE)
        assert fa.ss_loadings.iloc[0] == pytest.approx((fa.loadings.iloc[:, 0] ** 2).sum())
        assert fa.proportion_variance.iloc[0] == pytest.approx(fa.ss_loadings.iloc[0] / 5)
        assert (fa.uniquenesses > 0).all()

    def test_correlates_with_unweighted(self, data5):
        fa = weighted_composite(data5, FIVE)
        unweighted = unweighted_composite(data5, FIVE)
        r = np.corrcoef(fa.scores, unweighted)[0, 1]
        assert 0.8 < r < 1.0

    def test_deterministic(self, data5):
        a = weighted_composite(data5, FIVE).scores
        b = weighted_composite(data5, FIVE).scores
        pd.testing.assert_series_equal(a, b)

    def test_too_few_items(self, data5):
        with pytest.raises(FactorExtractionFailedError, match="cannot be identified"):
            weighted_composite(data5, ['x1', 'x2'])

    def test_constant_item(self, data5):
        df = data5.assign(const=3)
        with pytest.raises(FactorExtractionFailedError, match="zero variance"):
            weighted_composite(df, ['x1', 'x2', 'const'])

    def test_singular_correlation(self, data5):
        df = data5.assign(copy_x1=data5['x1'])
        with pytest.raises(FactorExtractionFailedError, match="singular"):
            weighted_composite(df, ['x1', 'x2', 'x3', 'copy_x1'])

    def test_missing_values(self, data5):
        df = data5.astype(float)
        df.loc[0, 'x3'] = np.nan
        with pytest.raises(InvalidInputError):
            weighted_composite(df, FIVE)

    def test_extraction_error_is_runtime_error(self, data5):
        with pytest.raises(RuntimeError):
            weighted_composite(data5, ['x1'])


class TestCompositeDispatch:
    """mode='unweighted' | 'weighted'."""

    def test_unweighted(self, likert_items):
        result = composite(likert_items, ['x1', 'x2'], mode="unweighted", name="s")
        assert result.iloc[0] == pytest.approx(1.5)

    def test_weighted_returns_series(self, data5):
        result = composite(data5, FIVE, mode="weighted", name="w")
        assert isinstance(result, pd.Series)
        assert result.name == "w"

    def test_unknown_mode(self, likert_items):
        with pytest.raises(ValueError, match="Unknown composite mode"):
            composite(likert_items, ['x1', 'x2'], mode="median")


def test_factor_degrees_of_freedom():
    assert factor_degrees_of_freedom(3, 1) == 0
    assert factor_degrees_of_freedom(5, 1) == 5
    assert factor_degrees_of_freedom(2, 1) < 0
