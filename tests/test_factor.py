"""
Tests for factor analysis: KMO, Bartlett's test and the PCA pipeline.
"""

import pytest
import numpy as np
import math
import sys
import os

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from surveystats.errors import (
    InsufficientDataError, SingularMatrixError, ValidationError, ZeroVarianceError
)
from surveystats.math.factor import (
    anti_image_partial_correlations, bartlett_test, factor_analysis, kmo,
    proxy_partial_correlations, variance_table
)
from surveystats.math.linalg import Matrix

VARIABLES = ['V1', 'V2', 'V3', 'V4', 'V5', 'V6']


def reference_correlations(rows, variables=VARIABLES):
    data = np.array([[row[v] for v in variables] for row in rows])
    return np.corrcoef(data, rowvar=False)


class TestKMO:
    """Tests for the Kaiser-Meyer-Olkin measure."""

    def test_two_variables(self):
        """Test that with two variables the proxy partials equal r, so KMO = 0.5."""
        r = Matrix([[1.0, 0.5], [0.5, 1.0]])
        result = kmo(r, ['a', 'b'])

        assert np.isclose(result.overall, 0.5)
        assert np.isclose(result.per_variable['a'], 0.5)
        assert result.method == 'proxy'

    def test_proxy_partials(self):
        """Test the averaged first-order partial correlations."""
        r = np.array([
            [1.0, 0.6, 0.5],
            [0.6, 1.0, 0.4],
            [0.5, 0.4, 1.0]
        ])
        partial = proxy_partial_correlations(Matrix(r))

        expected = (0.6 - 0.5 * 0.4) / math.sqrt((1 - 0.5 ** 2) * (1 - 0.4 ** 2))
        assert np.isclose(partial[0, 1], expected)
        assert np.isclose(partial[1, 0], expected)
        assert np.all(np.diag(partial) == 0)

    def test_identity(self):
        """Test that uncorrelated variables give KMO 0 instead of NaN."""
        result = kmo(Matrix.identity(3), ['a', 'b', 'c'])
        assert result.overall == 0.0
        assert all(v == 0.0 for v in result.per_variable.values())

    def test_range(self, two_factor_rows):
        """Test that KMO stays in [0, 1] for both methods."""
        r = Matrix(reference_correlations(two_factor_rows))
        for method in ['proxy', 'anti-image']:
            result = kmo(r, VARIABLES, method)
            assert 0.0 <= result.overall <= 1.0
            assert all(0.0 <= v <= 1.0 for v in result.per_variable.values())

    def test_anti_image(self, two_factor_rows):
        """Test the anti-image KMO against a direct computation."""
        r = reference_correlations(two_factor_rows)
        inverse = np.linalg.inv(r)
        d = np.sqrt(np.diag(inverse))
        q = -inverse / np.outer(d, d)
        off = ~np.eye(len(r), dtype=bool)
        expected = np.sum(r[off] ** 2) / (np.sum(r[off] ** 2) + np.sum(q[off] ** 2))

        assert np.allclose(anti_image_partial_correlations(Matrix(r))[off], q[off])
        result = kmo(Matrix(r), VARIABLES, 'anti-image')
        assert result.method == 'anti-image'
        assert np.isclose(result.overall, expected)

    def test_anti_image_singular_fallback(self):
        """Test that a singular matrix falls back to the proxy."""
        r = Matrix([
            [1.0, 1.0, 0.5],
            [1.0, 1.0, 0.5],
            [0.5, 0.5, 1.0]
        ])
        result = kmo(r, ['a', 'b', 'c'], 'anti-image')
        assert result.method == 'proxy'
        assert 0.0 <= result.overall <= 1.0

    def test_unknown_method(self):
        """Test that an unknown method is rejected."""
        with pytest.raises(ValidationError):
            kmo(Matrix.identity(2), ['a', 'b'], 'exact')


class TestBartlett:
    """Tests for Bartlett's test of sphericity."""

    def test_identity(self):
        """Test that an identity matrix gives chi-square 0."""
        result = bartlett_test(Matrix.identity(3), 50)

        assert result.chi_square == 0.0
        assert result.df == 3
        assert result.determinant == 1.0
        assert result.significance == 1.0

    def test_known_value(self):
        """Test the statistic for a 2x2 correlation matrix."""
        r = Matrix([[1.0, 0.5], [0.5, 1.0]])
        result = bartlett_test(r, 30)

        expected = -(30 - 1 - (2 * 2 + 5) / 6) * math.log(0.75)
        assert np.isclose(result.chi_square, expected)
        assert result.df == 1
        assert 0.0 < result.significance < 0.05

    def test_singular(self):
        """Test that a singular matrix is an error."""
        with pytest.raises(SingularMatrixError):
            bartlett_test(Matrix([[1.0, 1.0], [1.0, 1.0]]), 10)


class TestVarianceTable:
    """Tests for the total variance explained table."""

    def test_table(self):
        """Test percentages and extraction sums."""
        table = variance_table([2.0, 1.5, 0.5], n_extracted=2)

        assert [row.component for row in table] == [1, 2, 3]
        assert np.isclose(table[0].percent_of_variance, 200 / 3)
        assert np.isclose(table[2].cumulative_percent, 400 / 3)
        assert table[1].extraction.total == 1.5
        assert table[2].extraction is None


class TestFactorAnalysis:
    """Tests for the factor analysis pipeline."""

    def test_two_factor_structure(self, two_factor_rows):
        """Test that two latent factors are found and rotated apart."""
        result = factor_analysis(two_factor_rows, VARIABLES)

        assert result.kind == 'factor'
        assert result.n_cases == 200
        assert result.variables == VARIABLES

        expected = np.sort(np.linalg.eigvalsh(reference_correlations(two_factor_rows)))[::-1]
        # The leading eigenvalues are well separated; the trailing ones less so
        assert np.allclose(result.eigenvalues[:2], expected[:2], atol=1e-6)
        assert np.allclose(result.eigenvalues, expected, atol=1e-2)
        assert result.n_extracted == int(np.sum(expected > 1.0)) == 2

        assert np.isclose(sum(result.eigenvalues), 6.0, atol=1e-2)
        assert all(a >= b for a, b in zip(result.eigenvalues, result.eigenvalues[1:]))

        rotated = np.abs(np.array([result.rotated_component_matrix[v] for v in VARIABLES]))
        primary = np.argmax(rotated, axis=1)
        assert len(set(primary[:3])) == 1
        assert len(set(primary[3:])) == 1
        assert primary[0] != primary[3]
        assert result.rotation_iterations >= 1

    def test_communalities(self, two_factor_rows):
        """Test that communalities are the row sums of squared loadings."""
        result = factor_analysis(two_factor_rows, VARIABLES)

        for variable in VARIABLES:
            loadings = np.array(result.component_matrix[variable])
            rotated = np.array(result.rotated_component_matrix[variable])
            communality = result.communalities[variable]

            assert communality.initial == 1.0
            assert np.isclose(communality.extraction, np.sum(loadings ** 2))
            # Rotation does not change communalities
            assert np.isclose(communality.extraction, np.sum(rotated ** 2))
            assert 0.0 <= communality.extraction <= 1.0 + 1e-9

    def test_adequacy_statistics(self, two_factor_rows):
        """Test KMO, Bartlett and the variance table of the result."""
        result = factor_analysis(two_factor_rows, VARIABLES)

        assert 0.0 <= result.kmo.overall <= 1.0
        assert result.bartlett.df == 15
        assert result.bartlett.chi_square > 0
        assert result.bartlett.significance < 0.001

        assert len(result.total_variance) == 6
        assert np.isclose(result.total_variance[-1].cumulative_percent, 100.0, atol=0.5)
        assert result.total_variance[1].extraction is not None
        assert result.total_variance[2].extraction is None

        for a in VARIABLES:
            assert result.correlation_matrix[a][a] == 1.0

    def test_no_rotation(self, two_factor_rows):
        """Test that rotation can be switched off."""
        result = factor_analysis(two_factor_rows, VARIABLES, rotation=None)
        assert result.rotated_component_matrix is None
        assert result.rotation_iterations is None

    def test_single_component(self):
        """Test that one component is extracted without rotation."""
        rows = [{'a': str(v), 'b': str(v + (i % 2)), 'c': str(2 * v - (i % 3))}
                for i, v in enumerate(range(20))]
        result = factor_analysis(rows, ['a', 'b', 'c'])

        assert result.n_extracted == 1
        assert result.rotated_component_matrix is None
        assert all(len(result.component_matrix[v]) == 1 for v in ['a', 'b', 'c'])

    def test_validation(self, two_factor_rows):
        """Test the error cases."""
        with pytest.raises(ValidationError):
            factor_analysis(two_factor_rows, ['V1'])

        with pytest.raises(ValidationError):
            factor_analysis(two_factor_rows, VARIABLES, rotation='promax')

        with pytest.raises(InsufficientDataError):
            factor_analysis([{'a': '', 'b': '1'}, {'a': '2', 'b': ''}], ['a', 'b'])

        rows = [{'a': str(i), 'b': str(i % 3), 'c': '1'} for i in range(10)]
        with pytest.raises(ZeroVarianceError):
            factor_analysis(rows, ['a', 'b', 'c'])

    def test_cases_per_variable(self, two_factor_rows):
        """Test the minimum number of cases per variable."""
        with pytest.raises(InsufficientDataError) as excinfo:
            factor_analysis(two_factor_rows[:20], VARIABLES, min_cases_per_variable=5)
        assert excinfo.value.required == 30
        assert excinfo.value.available == 20

        result = factor_analysis(two_factor_rows[:30], VARIABLES, min_cases_per_variable=5)
        assert result.n_cases == 30
