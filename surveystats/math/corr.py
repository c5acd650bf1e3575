"""
Pearson correlation for survey variables.

This module provides the pairwise correlation coefficient and the
variable x variable correlation matrix used by the reliability and factor
analysis code.
"""

import logging
import math
import numpy as np
from typing import Any, Dict, List, Mapping, Sequence

from surveystats.errors import InsufficientDataError, ValidationError, ZeroVarianceError
from surveystats.math.linalg import Matrix
from surveystats.math.named_matrix import NamedMatrix, numeric_matrix
from surveystats.results import CorrelationResult
from surveystats.utils.general import as_array

logger = logging.getLogger(__name__)

MIN_CASES = 3
# Variances below this count as constant
VARIANCE_TOLERANCE = 1e-10


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation coefficient of two paired sequences.

    Pairs with a non-finite entry are dropped from the numerator sum, but
    the means and the denominator's sums of squares are taken over the full,
    unfiltered sequences. With complete data this is the ordinary Pearson r;
    with any missing entry the mean is NaN and so is the result.

    Args:
        x: First sequence
        y: Second sequence (same length as x)

    Returns:
        r in [-1, 1]; 0.0 if no valid pairs exist; NaN if either sequence
        has zero variance or contains NaN
    """
    x = as_array(x)
    y = as_array(y)
    if len(x) != len(y):
        raise ValidationError(f"Sequences differ in length: {len(x)} vs {len(y)}")

    mask = np.isfinite(x) & np.isfinite(y)
    if not mask.any():
        return 0.0

    with np.errstate(invalid='ignore', over='ignore'):
        mean_x = np.sum(x) / len(x)
        mean_y = np.sum(y) / len(y)

        numerator = np.sum((x[mask] - mean_x) * (y[mask] - mean_y))
        denominator = math.sqrt(np.sum((x - mean_x) ** 2) * np.sum((y - mean_y) ** 2))

    if denominator == 0 or math.isnan(denominator):
        return math.nan
    return float(numerator / denominator)


def correlation_array(values: np.ndarray) -> np.ndarray:
    """
    Correlation matrix of the columns of a complete cases x variables array.

    Args:
        values: 2-D array without missing values

    Returns:
        Symmetric variables x variables array with a unit diagonal
    """
    p = values.shape[1]
    result = np.eye(p)
    for i in range(p):
        for j in range(i + 1, p):
            r = correlation(values[:, i], values[:, j])
            result[i, j] = r
            result[j, i] = r
    return result


def check_variances(nmat: NamedMatrix, tolerance: float = VARIANCE_TOLERANCE) -> None:
    """
    Raise ZeroVarianceError if any column of the matrix is (near) constant.

    Args:
        nmat: Complete-case matrix
        tolerance: Smallest acceptable variance
    """
    values = nmat.values
    variances = np.var(values, axis=0) if len(values) else np.zeros(values.shape[1])
    constant = [name for name, var in zip(nmat.colnames(), variances) if var < tolerance]
    if constant:
        raise ZeroVarianceError(
            f"Variables with zero variance: {', '.join(map(str, constant))}",
            variables=constant
        )


def complete_matrix(rows: Sequence[Mapping[str, Any]],
                    variables: Sequence[str],
                    min_cases: int = MIN_CASES) -> NamedMatrix:
    """
    Listwise-deleted matrix validated for correlation analysis.

    Args:
        rows: Data table
        variables: At least two variable names
        min_cases: Minimum number of complete cases

    Returns:
        Complete-case NamedMatrix

    Raises:
        ValidationError: fewer than two variables
        InsufficientDataError: fewer than min_cases complete cases
        ZeroVarianceError: a constant variable
    """
    if len(variables) < 2:
        raise ValidationError("Correlation analysis requires at least 2 variables")

    nmat = numeric_matrix(rows, variables)
    if len(nmat) < min_cases:
        raise InsufficientDataError(
            f"Correlation analysis requires at least {min_cases} complete cases, got {len(nmat)}",
            required=min_cases,
            available=len(nmat)
        )
    check_variances(nmat)
    return nmat


def named_grid(array: np.ndarray, names: List[str]) -> Dict[str, Dict[str, float]]:
    """Convert a square array to a nested mapping keyed by variable names."""
    return {
        row_name: {col_name: float(array[i, j]) for j, col_name in enumerate(names)}
        for i, row_name in enumerate(names)
    }


def correlation_matrix(rows: Sequence[Mapping[str, Any]],
                       variables: Sequence[str],
                       min_cases: int = MIN_CASES) -> CorrelationResult:
    """
    Pairwise Pearson correlations of the selected variables.

    Args:
        rows: Data table
        variables: Variable names (matrix order)
        min_cases: Minimum number of complete cases

    Returns:
        CorrelationResult with the var x var grid
    """
    variables = list(variables)
    nmat = complete_matrix(rows, variables, min_cases)
    grid = correlation_array(nmat.values)
    return CorrelationResult(
        variables=variables,
        matrix=named_grid(grid, variables),
        n_cases=len(nmat)
    )


def correlation_matrix_of(nmat: NamedMatrix) -> Matrix:
    """Correlation matrix of a complete-case NamedMatrix as a Matrix."""
    return Matrix(correlation_array(nmat.values))
