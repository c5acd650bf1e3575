"""
Principal component / factor analysis of survey items.

The pipeline works on the correlation matrix of the listwise-deleted data:
sampling adequacy (KMO), Bartlett's test of sphericity, eigen-decomposition
by power iteration, Kaiser-criterion extraction, communalities, the total
variance table, the component matrix and an optional varimax rotation.

The default KMO uses a partial-correlation proxy built from the
correlation entries alone (the mean of the first-order partial
correlations over every third variable) instead of the anti-image of the
inverse correlation matrix. It tracks the textbook KMO but is not equal to
it; pass kmo_method='anti-image' for the exact definition.
"""

import logging
import math
import numpy as np
from typing import Any, Dict, List, Mapping, Optional, Sequence

from surveystats.errors import InsufficientDataError, SingularMatrixError, ValidationError
from surveystats.math.corr import MIN_CASES, complete_matrix, correlation_matrix_of, named_grid
from surveystats.math.distributions import chi_square_cdf
from surveystats.math.linalg import Matrix
from surveystats.math.named_matrix import numeric_matrix
from surveystats.math.pca import (
    POWER_ITERATIONS, VARIMAX_MAX_ITER, VARIMAX_TOLERANCE, eigen_decompose, varimax
)
from surveystats.results import (
    BartlettResult, Communality, ComponentVariance, ExtractionSums,
    FactorAnalysisResult, KMOResult
)

logger = logging.getLogger(__name__)

# Denominators of partial correlations below this are skipped
PARTIAL_TOLERANCE = 1e-10
# Kaiser criterion
EIGENVALUE_THRESHOLD = 1.0


def proxy_partial_correlations(correlations: Matrix) -> np.ndarray:
    """
    Approximate partial correlations from the correlation entries alone.

    For each pair (i, j) the value is the mean over every other variable m
    of the first-order partial correlation
    (r_ij - r_im r_jm) / sqrt((1 - r_im^2)(1 - r_jm^2)).
    With only two variables the zero-order correlation is used.

    Args:
        correlations: Correlation matrix

    Returns:
        Symmetric array with a zero diagonal
    """
    r = correlations.to_numpy()
    p = r.shape[0]
    partial = np.zeros((p, p))

    for i in range(p):
        for j in range(i + 1, p):
            terms = []
            for m in range(p):
                if m == i or m == j:
                    continue
                denominator = (1 - r[i, m] ** 2) * (1 - r[j, m] ** 2)
                if denominator < PARTIAL_TOLERANCE:
                    continue
                terms.append((r[i, j] - r[i, m] * r[j, m]) / math.sqrt(denominator))
            value = float(np.mean(terms)) if terms else float(r[i, j])
            partial[i, j] = value
            partial[j, i] = value

    return partial


def anti_image_partial_correlations(correlations: Matrix) -> np.ndarray:
    """
    Partial correlations from the inverse correlation matrix.

    q_ij = -inv_ij / sqrt(inv_ii * inv_jj)

    Raises:
        SingularMatrixError: if the correlation matrix cannot be inverted
    """
    inverse = correlations.inverse().to_numpy()
    diagonal = np.sqrt(np.abs(np.diag(inverse)))
    partial = -inverse / np.outer(diagonal, diagonal)
    np.fill_diagonal(partial, 0.0)
    return partial


def kmo(correlations: Matrix,
        variables: Sequence[str],
        method: str = 'proxy') -> KMOResult:
    """
    Kaiser-Meyer-Olkin measure of sampling adequacy.

    KMO = sum(r_ij^2) / (sum(r_ij^2) + sum(q_ij^2)) over i != j, where q are
    partial correlations. The per-variable values restrict the sums to one
    row. Both are clipped to [0, 1].

    Args:
        correlations: Correlation matrix
        variables: Variable names in matrix order
        method: 'proxy' or 'anti-image'; anti-image falls back to the proxy
            when the correlation matrix is singular

    Returns:
        KMOResult
    """
    if method not in ('proxy', 'anti-image'):
        raise ValidationError(f"Unknown KMO method: {method}")

    used = method
    if method == 'anti-image':
        try:
            partial = anti_image_partial_correlations(correlations)
        except SingularMatrixError:
            logger.warning("Correlation matrix is singular; KMO falls back to the proxy method")
            partial = proxy_partial_correlations(correlations)
            used = 'proxy'
    else:
        partial = proxy_partial_correlations(correlations)

    r = correlations.to_numpy().copy()
    np.fill_diagonal(r, 0.0)
    sum_r = np.sum(r ** 2, axis=1)
    sum_q = np.sum(partial ** 2, axis=1)

    per_variable = {}
    for name, sr, sq in zip(variables, sum_r, sum_q):
        per_variable[name] = _clip_unit(_kmo_ratio(float(sr), float(sq)))

    overall = _clip_unit(_kmo_ratio(float(np.sum(sum_r)), float(np.sum(sum_q))))
    return KMOResult(overall=overall, per_variable=per_variable, method=used)


def _kmo_ratio(sum_r: float, sum_q: float) -> float:
    if sum_r + sum_q == 0:
        return 0.0
    return sum_r / (sum_r + sum_q)


def _clip_unit(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


def bartlett_test(correlations: Matrix, n_cases: int) -> BartlettResult:
    """
    Bartlett's test of sphericity.

    chi2 = -(n - 1 - (2p + 5) / 6) * ln(det(R)), df = p(p - 1) / 2

    Args:
        correlations: Correlation matrix (p x p)
        n_cases: Number of cases used to compute it

    Returns:
        BartlettResult with significance = 1 - chi2 CDF

    Raises:
        SingularMatrixError: if det(R) is not positive
    """
    p = correlations.rows
    determinant = correlations.determinant()
    if not determinant > 0:
        raise SingularMatrixError(
            f"Correlation matrix determinant is {determinant:.3g}; Bartlett's test is undefined"
        )

    chi_square = -(n_cases - 1 - (2 * p + 5) / 6) * math.log(determinant)
    df = p * (p - 1) // 2
    return BartlettResult(
        chi_square=chi_square,
        df=df,
        significance=1 - chi_square_cdf(chi_square, df),
        determinant=determinant,
    )


def variance_table(eigenvalues: Sequence[float], n_extracted: int) -> List[ComponentVariance]:
    """
    Total variance explained, one row per component.

    Extraction sums are filled only for the first n_extracted components.

    Args:
        eigenvalues: Eigenvalues in descending order
        n_extracted: Number of extracted components

    Returns:
        List of ComponentVariance rows
    """
    p = len(eigenvalues)
    rows = []
    cumulative = 0.0
    for index, eigenvalue in enumerate(eigenvalues):
        percent = eigenvalue / p * 100
        cumulative += percent
        extraction = None
        if index < n_extracted:
            extraction = ExtractionSums(total=eigenvalue, percent_of_variance=percent,
                                        cumulative_percent=cumulative)
        rows.append(ComponentVariance(
            component=index + 1,
            eigenvalue=eigenvalue,
            percent_of_variance=percent,
            cumulative_percent=cumulative,
            extraction=extraction,
        ))
    return rows


def _by_variable(array: np.ndarray, variables: Sequence[str]) -> Dict[str, List[float]]:
    return {name: [float(v) for v in array[i]] for i, name in enumerate(variables)}


def factor_analysis(rows: Sequence[Mapping[str, Any]],
                    variables: Sequence[str],
                    rotation: Optional[str] = 'varimax',
                    min_cases_per_variable: Optional[int] = None,
                    kmo_method: str = 'proxy',
                    iters: int = POWER_ITERATIONS,
                    varimax_max_iter: int = VARIMAX_MAX_ITER,
                    varimax_tol: float = VARIMAX_TOLERANCE) -> FactorAnalysisResult:
    """
    Principal component analysis of the selected variables.

    Components with an eigenvalue above 1 are extracted (at least one).

    Args:
        rows: Data table
        variables: At least two variable names
        rotation: 'varimax' or None
        min_cases_per_variable: Require this many complete cases per variable
        kmo_method: 'proxy' or 'anti-image'
        iters: Power iterations per eigenpair
        varimax_max_iter: Maximum varimax sweeps
        varimax_tol: Varimax convergence threshold

    Returns:
        FactorAnalysisResult

    Raises:
        ValidationError: fewer than two variables or an unknown rotation
        InsufficientDataError: no complete cases, fewer than 3, or below the
            per-variable minimum
        ZeroVarianceError: a variable with variance below 1e-10
        SingularMatrixError: the correlation matrix is singular (Bartlett)
    """
    variables = list(variables)
    if len(variables) < 2:
        raise ValidationError("Factor analysis requires at least 2 variables")
    if rotation not in (None, 'none', 'varimax'):
        raise ValidationError(f"Unknown rotation: {rotation}")

    n_cases = len(numeric_matrix(rows, variables))
    if n_cases == 0:
        raise InsufficientDataError("No complete cases for factor analysis",
                                    required=MIN_CASES, available=0)

    p = len(variables)
    if min_cases_per_variable and n_cases < min_cases_per_variable * p:
        raise InsufficientDataError(
            f"Factor analysis of {p} variables requires at least "
            f"{min_cases_per_variable * p} complete cases, got {n_cases}",
            required=min_cases_per_variable * p,
            available=n_cases
        )

    nmat = complete_matrix(rows, variables)
    correlations = correlation_matrix_of(nmat)

    kmo_result = kmo(correlations, variables, kmo_method)
    bartlett = bartlett_test(correlations, n_cases)

    decomposition = eigen_decompose(correlations, iters=iters)
    eigenvalues = [float(v) for v in decomposition.values]
    n_extracted = max(1, sum(1 for v in eigenvalues if v > EIGENVALUE_THRESHOLD))

    vectors = decomposition.vectors.to_numpy()[:, :n_extracted]
    scale = np.sqrt(np.clip(decomposition.values[:n_extracted], 0.0, None))
    loadings = vectors * scale

    extraction = np.sum(loadings ** 2, axis=1)
    communalities = {
        name: Communality(initial=1.0, extraction=float(extraction[i]))
        for i, name in enumerate(variables)
    }

    rotated = None
    rotation_iterations = None
    if rotation == 'varimax' and n_extracted >= 2:
        result = varimax(Matrix(loadings), max_iter=varimax_max_iter, tol=varimax_tol)
        rotated = _by_variable(result.loadings.to_numpy(), variables)
        rotation_iterations = result.iterations

    logger.info(
        f"Factor analysis of {p} variables on {n_cases} cases: "
        f"{n_extracted} component(s), KMO {kmo_result.overall:.3f}"
    )

    return FactorAnalysisResult(
        variables=variables,
        n_cases=n_cases,
        correlation_matrix=named_grid(correlations.to_numpy(), variables),
        kmo=kmo_result,
        bartlett=bartlett,
        eigenvalues=eigenvalues,
        communalities=communalities,
        total_variance=variance_table(eigenvalues, n_extracted),
        n_extracted=n_extracted,
        component_matrix=_by_variable(loadings, variables),
        rotated_component_matrix=rotated,
        rotation_iterations=rotation_iterations,
    )
