"""
Tests for the reliability and item diagnostics engine.

Test Categories:
- Standardized and raw alpha with known correlation structures
- Alpha if item dropped (bad-item detection)
- Reverse-keyed item detection
- Edge cases (too few items, zero variance, missing data)
"""

import numpy as np
import pandas as pd
import pytest

from survey_methods.preprocessing import (
    CovarianceSpec,
    DegenerateVarianceError,
    InsufficientItemsError,
    InvalidInputError,
    discretize,
    generate,
)
from survey_methods.validity_reliability import (
    compute_alpha,
    cronbach_alpha,
    feldt_interval,
    first_component_loadings,
    interpret_alpha,
    spearman_brown,
    standardized_alpha,
)


class TestClosedForms:
    """Helpers with closed-form answers."""

    def test_standardized_alpha_equicorrelated(self):
        corr = pd.DataFrame(np.full((3, 3), 0.5) + np.eye(3) * 0.5)
        assert standardized_alpha(corr) == pytest.approx(0.75)

    def test_cronbach_alpha_parallel_items(self):
        df = pd.DataFrame({'a': [1, 2, 3, 4], 'b': [1, 2, 3, 4]})
        assert cronbach_alpha(df) == pytest.approx(1.0)

    def test_cronbach_alpha_single_item_is_nan(self):
        assert np.isnan(cronbach_alpha(pd.DataFrame({'a': [1, 2, 3]})))

    def test_spearman_brown(self):
        assert spearman_brown(0.5) == pytest.approx(2 / 3)
        assert spearman_brown(0.8, 0.5) == pytest.approx(0.4 / 0.6)
        assert np.isnan(spearman_brown(np.nan))

    @pytest.mark.parametrize("alpha,label", [
        (0.95, "Excellent"),
        (0.85, "Good"),
        (0.75, "Acceptable"),
        (0.65, "Questionable"),
        (0.55, "Poor"),
        (0.30, "Unacceptable"),
    ])
    def test_interpretation(self, alpha, label):
        assert interpret_alpha(alpha) == label

    def test_interpretation_nan(self):
        assert interpret_alpha(np.nan) == "N/A"

    def test_feldt_interval_brackets_alpha(self):
        lo, hi = feldt_interval(0.75, n_obs=500, n_items=3)
        assert lo < 0.75 < hi
        assert hi - lo < 0.1

    def test_feldt_interval_nan(self):
        lo, hi = feldt_interval(np.nan, 100, 3)
        assert np.isnan(lo) and np.isnan(hi)


class TestComputeAlpha:
    """Alpha and item statistics on generated data."""

    def test_class_example(self, data1):
        report = compute_alpha(data1)
        assert report.alpha == pytest.approx(0.75, abs=1e-9)
        assert report.raw_alpha == pytest.approx(0.75, abs=1e-9)
        assert report.average_r == pytest.approx(0.5, abs=1e-9)
        assert report.n_obs == 500
        assert report.n_items == 3
        assert report.interpretation == "Acceptable"
        assert report.reversed_items == []
        assert report.best_item_to_drop() is None

    def test_alpha_if_dropped_class_example(self, data1):
        report = compute_alpha(data1)
        # two items correlated .5: 2 * .5 / 1.5
        np.testing.assert_allclose(report.alpha_if_dropped.to_numpy(), [2 / 3] * 3, atol=1e-9)

    def test_confidence_interval(self, data1):
        report = compute_alpha(data1)
        lo, hi = report.confidence_interval
        assert lo < report.raw_alpha < hi

    def test_bad_item_detected(self, bad_item_spec):
        items = generate(bad_item_spec, n=500, seed=1)
        report = compute_alpha(items)
        assert report.alpha == pytest.approx(1 / 1.75, abs=1e-9)
        assert report.alpha_if_dropped['x1'] > report.alpha
        assert report.alpha_if_dropped['x1'] == pytest.approx(0.75, abs=1e-9)
        assert report.best_item_to_drop() == 'x1'

    def test_bad_item_detected_after_discretization(self, bad_item_spec):
        items = discretize(generate(bad_item_spec, n=500, seed=12347))
        report = compute_alpha(items)
        assert report.alpha_if_dropped['x1'] > report.alpha
        assert report.best_item_to_drop() == 'x1'

    def test_corrected_item_total(self, data1):
        report = compute_alpha(data1)
        # corr(x1, x2 + x3) = (.5 + .5) / sqrt(1 * 3)
        np.testing.assert_allclose(report.item_total.to_numpy(), [1 / np.sqrt(3)] * 3, atol=1e-9)

    def test_item_subset(self, data1):
        report = compute_alpha(data1, items=['x1', 'x2'])
        assert report.items == ['x1', 'x2']
        assert report.alpha == pytest.approx(2 / 3, abs=1e-9)
        assert report.alpha_if_dropped.isna().all()

    def test_item_table(self, data1):
        table = compute_alpha(data1).item_table()
        assert list(table.index) == ['x1', 'x2', 'x3']
        assert {'mean', 'sd', 'item_total_r', 'alpha_if_dropped', 'reversed'} <= set(table.columns)


class TestReverseDetection:
    """Negatively keyed items."""

    def test_flags_only_reversed_item(self, reversed_item_spec):
        items = generate(reversed_item_spec, n=500, seed=5)
        report = compute_alpha(items, reverse_detect=True)
        assert report.reversed_items == ['x1']
        assert report.keys.tolist() == [-1, 1, 1, 1]
        # after reversal every pair correlates .5
        assert report.alpha == pytest.approx(0.8, abs=1e-9)

    def test_flags_reversed_likert_item(self, reversed_item_spec):
        items = discretize(generate(reversed_item_spec, n=500, seed=12346))
        report = compute_alpha(items, reverse_detect=True)
        assert report.reversed_items == ['x1']
        assert (report.correlation.to_numpy() > 0).all()

    def test_warns_without_detection(self, reversed_item_spec):
        items = generate(reversed_item_spec, n=500, seed=5)
        with pytest.warns(UserWarning, match="reverse_detect"):
            report = compute_alpha(items)
        assert report.reversed_items == []

    def test_no_warning_when_disabled(self, reversed_item_spec, recwarn):
        items = generate(reversed_item_spec, n=500, seed=5)
        compute_alpha(items, check_negative=False)
        assert not [w for w in recwarn if issubclass(w.category, UserWarning)]

    @pytest.mark.parametrize("k, r_neg", [(3, -0.3), (3, -0.5), (4, -0.2), (4, -0.5), (5, -0.3)])
    def test_flags_exactly_one_reversed_item(self, k, r_neg):
        matrix = np.full((k, k), 0.5)
        np.fill_diagonal(matrix, 1.0)
        matrix[0, 1:] = matrix[1:, 0] = r_neg
        items = generate(CovarianceSpec(matrix), n=500, seed=11)
        report = compute_alpha(items, reverse_detect=True)
        assert report.reversed_items == ['x1']
        assert report.component_loadings['x1'] < 0
        assert (report.component_loadings.drop('x1') > 0).all()

    def test_weakly_reversed_item_warns(self):
        matrix = np.array([
            [1.0, -0.3, -0.3],
            [-0.3, 1.0, 0.5],
            [-0.3, 0.5, 1.0],
        ])
        items = generate(CovarianceSpec(matrix), n=500, seed=11)
        with pytest.warns(UserWarning, match="x1"):
            compute_alpha(items)

    def test_uncorrelated_item_not_flagged(self, bad_item_spec):
        items = generate(bad_item_spec, n=500, seed=1)
        report = compute_alpha(items, reverse_detect=True)
        assert report.reversed_items == []

    def test_first_component_loadings(self, data1):
        loadings = first_component_loadings(data1.corr())
        # eigenvalue 2, eigenvector 1 / sqrt(3)
        np.testing.assert_allclose(loadings.to_numpy(), [np.sqrt(2 / 3)] * 3, atol=1e-9)

    def test_caller_frame_unchanged(self, reversed_item_spec):
        items = discretize(generate(reversed_item_spec, n=500, seed=5))
        before = items.copy()
        compute_alpha(items, reverse_detect=True)
        pd.testing.assert_frame_equal(items, before)


class TestEdgeCases:
    """Precondition failures."""

    def test_single_item(self, likert_items):
        with pytest.raises(InsufficientItemsError):
            compute_alpha(likert_items, items=['x1'])

    def test_zero_variance_names_items(self, likert_items):
        df = likert_items.assign(x4=3, x5=1)
        with pytest.raises(DegenerateVarianceError) as excinfo:
            compute_alpha(df)
        assert excinfo.value.items == ['x4', 'x5']
        assert 'x4' in str(excinfo.value)

    def test_unknown_item(self, likert_items):
        with pytest.raises(KeyError):
            compute_alpha(likert_items, items=['x1', 'x9'])

    def test_non_numeric_item(self, likert_items):
        df = likert_items.assign(x4=list("abcdefgh"))
        with pytest.raises(InvalidInputError) as excinfo:
            compute_alpha(df)
        assert excinfo.value.column == 'x4'

    def test_listwise_deletion(self, likert_items):
        df = likert_items.astype(float)
        df.loc[0, 'x2'] = np.nan
        report = compute_alpha(df)
        assert report.n_obs == len(df) - 1

    def test_too_few_complete_rows(self):
        df = pd.DataFrame({'x1': [1.0, np.nan], 'x2': [2.0, 3.0]})
        with pytest.raises(InvalidInputError):
            compute_alpha(df)
