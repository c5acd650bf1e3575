"""
Tests for the t-test, ANOVA and regression.
"""

import pytest
import numpy as np
import math
import sys
import os
from scipy import stats

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from surveystats.errors import InsufficientDataError, ValidationError, ZeroVarianceError
from surveystats.math.comparison import anova, regression, t_test


class TestTTest:
    """Tests for the pooled two-sample t-test."""

    def test_known_values(self):
        """Test a small example worked out by hand."""
        result = t_test([1, 2, 3, 4, 5], [2, 3, 4, 5, 6])

        # Both population variances are 2, so the pooled variance is 2
        standard_error = math.sqrt(2 * (1 / 5 + 1 / 5))
        assert result.kind == 'ttest'
        assert result.n1 == 5
        assert result.n2 == 5
        assert result.mean1 == 3.0
        assert result.mean2 == 4.0
        assert result.mean_difference == -1.0
        assert result.degrees_of_freedom == 8
        assert np.isclose(result.standard_error, standard_error)
        assert np.isclose(result.t_value, -1.0 / standard_error)
        assert np.isclose(result.std_dev1, math.sqrt(2))

        low, high = result.confidence_interval
        assert np.isclose(low, -1.0 - 1.96 * standard_error)
        assert np.isclose(high, -1.0 + 1.96 * standard_error)

    def test_normal_approximation(self):
        """Test the default p-value from the normal distribution."""
        result = t_test([1, 2, 3, 4, 5], [2, 3, 4, 5, 6])
        expected = 2 * (1 - stats.norm.cdf(abs(result.t_value)))
        assert np.isclose(result.p_value, expected, atol=1e-6)
        assert not result.exact

    def test_exact_p_value(self):
        """Test the opt-in Student's t p-value."""
        result = t_test([1, 2, 3, 4, 5], [2, 3, 4, 5, 6], exact=True)
        assert np.isclose(result.p_value, 2 * stats.t.sf(abs(result.t_value), 8))
        assert result.exact

    def test_identical_constant_groups(self):
        """Test that two constant groups are an error."""
        with pytest.raises(ZeroVarianceError):
            t_test([5, 5, 5], [5, 5, 5])

    def test_missing_values_dropped(self):
        """Test that non-finite values are ignored."""
        result = t_test([1, math.nan, 3], [2, 4, math.inf, 6])
        assert result.n1 == 2
        assert result.n2 == 3

    def test_insufficient_data(self):
        """Test empty groups and too few values."""
        with pytest.raises(InsufficientDataError):
            t_test([], [1, 2, 3])
        with pytest.raises(InsufficientDataError):
            t_test([1], [2])

    def test_large_difference(self):
        """Test that a clear difference is significant."""
        result = t_test([1, 2, 1, 2, 1, 2], [8, 9, 8, 9, 8, 9])
        assert result.p_value < 0.001


class TestAnova:
    """Tests for one-way ANOVA."""

    def test_known_values(self):
        """Test against scipy's one-way ANOVA."""
        groups = [[1, 2, 3], [4, 5, 6], [7, 8, 9]]
        result = anova(groups)

        assert result.kind == 'anova'
        assert np.isclose(result.f_value, 27.0)
        assert np.isclose(result.f_value, stats.f_oneway(*groups).statistic)
        assert result.df_between == 2
        assert result.df_within == 6
        assert np.isclose(result.sum_squares_between, 54.0)
        assert np.isclose(result.sum_squares_within, 6.0)
        assert np.isclose(result.mean_square_between, 27.0)
        assert np.isclose(result.mean_square_within, 1.0)
        assert np.isclose(result.eta_squared, 0.9)
        assert result.group_means == [2.0, 5.0, 8.0]
        assert result.group_sizes == [3, 3, 3]

    def test_equal_means(self):
        """Test that groups with equal means give F = 0 and eta squared = 0."""
        result = anova([[1, 2, 3], [3, 2, 1], [2, 1, 3]])
        assert np.isclose(result.f_value, 0.0)
        assert np.isclose(result.eta_squared, 0.0)

    def test_surrogate_p_value(self):
        """Test that the default p-value is a probability decreasing in F."""
        weak = anova([[1, 2, 3], [2, 3, 4]])
        strong = anova([[1, 2, 3], [7, 8, 9]])
        assert 0.0 <= strong.p_value < weak.p_value <= 1.0

    def test_exact_p_value(self):
        """Test the opt-in F distribution p-value."""
        groups = [[1, 2, 3, 4], [2, 4, 5, 7], [6, 7, 8, 8]]
        result = anova(groups, exact=True)
        assert np.isclose(result.p_value, stats.f_oneway(*groups).pvalue)

    def test_unequal_sizes(self):
        """Test groups of different sizes."""
        groups = [[1, 2], [4, 5, 6, 7], [9, 8, 10]]
        result = anova(groups)
        assert np.isclose(result.f_value, stats.f_oneway(*groups).statistic)
        assert result.group_sizes == [2, 4, 3]

    def test_validation(self):
        """Test the invalid group configurations."""
        with pytest.raises(ValidationError):
            anova([[1, 2, 3]])
        with pytest.raises(ValidationError):
            anova([[1, 2, 3], []])
        with pytest.raises(InsufficientDataError):
            anova([[1], [2]])
        with pytest.raises(ZeroVarianceError):
            anova([[1, 1], [2, 2]])


class TestRegression:
    """Tests for simple linear regression."""

    def test_perfect_fit(self):
        """Test y = 2x + 3."""
        x = [1, 2, 3, 4, 5]
        y = [2 * v + 3 for v in x]
        result = regression(x, y)

        assert result.kind == 'regression'
        assert np.isclose(result.slope, 2.0)
        assert np.isclose(result.intercept, 3.0)
        assert np.isclose(result.r_squared, 1.0)
        assert np.allclose(result.residuals, 0.0)
        assert np.allclose(result.predictions, y)
        assert result.f_statistic == math.inf
        assert result.p_value == 0.0

    def test_perfect_fit_non_integer(self):
        """Test that rounding on an exact non-integer line still reports a perfect fit."""
        x = [0.1 * i + 0.3 for i in range(4)]
        y = [0.1 * v + 0.1 for v in x]

        for exact in (False, True):
            result = regression(x, y, exact=exact)
            assert result.r_squared == 1.0
            assert result.f_statistic == math.inf
            assert result.p_value == 0.0

    def test_r_squared_bounded_on_exact_lines(self):
        """Test that exact linear fits keep R squared in [0, 1] and a vanishing p-value."""
        for step in (0.1, 0.3, 0.7):
            for slope in (0.1, -0.2, 1.3):
                x = [step * i + 0.3 for i in range(6)]
                y = [slope * v + 0.1 for v in x]
                result = regression(x, y)
                assert 0.0 <= result.r_squared <= 1.0
                assert np.isclose(result.r_squared, 1.0)
                assert result.p_value < 1e-6

    def test_against_scipy(self):
        """Test coefficients and standard errors against scipy."""
        rng = np.random.RandomState(10)
        x = rng.uniform(0, 10, size=30)
        y = 1.5 * x - 2 + rng.normal(size=30)
        result = regression(x, y)
        expected = stats.linregress(x, y)

        assert result.n == 30
        assert np.isclose(result.slope, expected.slope)
        assert np.isclose(result.intercept, expected.intercept)
        assert np.isclose(result.r_squared, expected.rvalue ** 2)
        assert np.isclose(result.slope_standard_error, expected.stderr)
        assert np.isclose(result.intercept_standard_error, expected.intercept_stderr)

        low, high = result.confidence_intervals.slope
        assert np.isclose(high - low, 2 * 1.96 * expected.stderr)

    def test_exact_p_value(self):
        """Test that the exact p-value matches the slope t-test."""
        rng = np.random.RandomState(12)
        x = rng.uniform(0, 10, size=15)
        y = 0.3 * x + rng.normal(size=15)
        result = regression(x, y, exact=True)
        assert np.isclose(result.p_value, stats.linregress(x, y).pvalue)

    def test_incomplete_pairs_dropped(self):
        """Test that pairs with a missing entry are removed."""
        x = [1, 2, math.nan, 4, 5, 6]
        y = [2, 4, 6, math.nan, 10, 13]
        result = regression(x, y)
        assert result.n == 4
        assert len(result.residuals) == 4

    def test_validation(self):
        """Test the error cases."""
        with pytest.raises(ValidationError):
            regression([1, 2, 3], [1, 2])
        with pytest.raises(InsufficientDataError):
            regression([1, 2], [3, 4])
        with pytest.raises(ZeroVarianceError):
            regression([2, 2, 2], [1, 2, 3])
        with pytest.raises(ZeroVarianceError):
            regression([1, 2, 3], [4, 4, 4])
