"""
Tests for the criterion comparison of composites.
"""

import numpy as np
import pandas as pd
import pytest

from survey_methods.scale_construction import (
    compare_composites,
    composite_correlation,
    fit_criterion_models,
    format_model_table,
)


@pytest.fixture
def criterion_data() -> pd.DataFrame:
    rng = np.random.default_rng(7)
    a = rng.normal(size=300)
    b = rng.normal(size=300)
    return pd.DataFrame({
        'y': 1.0 + 3.0 * a + rng.normal(scale=0.5, size=300),
        'scale_a': a,
        'scale_b': b,
    })


class TestCompareComposites:

    def test_one_row_per_composite(self, criterion_data):
        table = compare_composites(criterion_data, 'y', {'Model A': 'scale_a', 'Model B': 'scale_b'})
        assert list(table.index) == ['Model A', 'Model B']
        assert table.loc['Model A', 'predictor'] == 'scale_a'
        assert table.loc['Model A', 'slope'] == pytest.approx(3.0, abs=0.1)
        assert table.loc['Model A', 'intercept'] == pytest.approx(1.0, abs=0.1)
        assert table.loc['Model A', 'p'] < 0.001
        assert table.loc['Model A', 'r2'] > table.loc['Model B', 'r2']
        assert (table['n'] == 300).all()

    def test_interval_brackets_estimate(self, criterion_data):
        row = compare_composites(criterion_data, 'y', {'A': 'scale_a'}).loc['A']
        assert row['slope_ci_low'] < row['slope'] < row['slope_ci_high']
        assert row['rmse'] == pytest.approx(0.5, abs=0.1)

    def test_missing_rows_dropped_per_model(self, criterion_data):
        df = criterion_data.copy()
        df.loc[:9, 'scale_b'] = np.nan
        table = compare_composites(df, 'y', {'A': 'scale_a', 'B': 'scale_b'})
        assert table.loc['A', 'n'] == 300
        assert table.loc['B', 'n'] == 290

    def test_missing_column(self, criterion_data):
        with pytest.raises(KeyError):
            compare_composites(criterion_data, 'y', {'A': 'nope'})
        with pytest.raises(KeyError):
            fit_criterion_models(criterion_data, 'outcome', {'A': 'scale_a'})

    def test_no_composites(self, criterion_data):
        with pytest.raises(ValueError):
            fit_criterion_models(criterion_data, 'y', {})

    def test_models_are_ols_results(self, criterion_data):
        models = fit_criterion_models(criterion_data, 'y', {'A': 'scale_a'})
        assert models['A'].params.iloc[1] == pytest.approx(3.0, abs=0.1)


class TestFormatting:

    def test_model_table_text(self, criterion_data):
        table = compare_composites(criterion_data, 'y', {'Model A': 'scale_a', 'Model B': 'scale_b'})
        text = format_model_table(table)
        for token in ['(Intercept)', 'scale_a', 'scale_b', 'R^2', 'Adj. R^2', 'Num. obs.', 'RMSE', 'Model A', '***']:
            assert token in text
        assert text.count('300') >= 2

    def test_composite_correlation(self, criterion_data):
        corr = composite_correlation(criterion_data, ['scale_a', 'scale_b'])
        assert corr.shape == (2, 2)
        assert corr.loc['scale_a', 'scale_a'] == 1.0
        with pytest.raises(KeyError):
            composite_correlation(criterion_data, ['scale_a', 'scale_c'])
