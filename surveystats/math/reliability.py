"""
Reliability analysis (Cronbach's alpha) for multi-item survey scales.

All variances are population variances, matching the descriptive
statistics.
"""

import logging
import math
import numpy as np
from typing import Any, Dict, List, Mapping, Optional, Sequence

from surveystats.errors import SingularMatrixError, ZeroVarianceError
from surveystats.math.corr import correlation, correlation_array, named_grid
from surveystats.math.linalg import Matrix
from surveystats.math.named_matrix import NamedMatrix
from surveystats.results import (
    CaseProcessingSummary, CronbachAlphaResult, ItemStatistics, ItemTotalStatistics,
    ReliabilityAnalysis, ReliabilityStatistics, ScaleStatistics
)
from surveystats.utils.general import mean, safe_divide, std_dev, variance

logger = logging.getLogger(__name__)


def alpha_from_values(values: np.ndarray) -> float:
    """
    Cronbach's alpha of a complete cases x items array.

    alpha = k / (k - 1) * (1 - sum(item variances) / variance(row sums))

    Args:
        values: 2-D array with at least two columns

    Returns:
        Alpha (NaN when the total score is constant)
    """
    k = values.shape[1]
    item_variance_sum = sum(variance(values[:, j]) for j in range(k))
    total_variance = variance(values.sum(axis=1))
    return (k / (k - 1)) * (1 - safe_divide(item_variance_sum, total_variance))


def standardized_alpha(correlations: np.ndarray) -> float:
    """
    Alpha based on standardized items: n * r / (1 + (n - 1) * r).

    Args:
        correlations: Inter-item correlation matrix

    Returns:
        Standardized alpha, where r is the mean off-diagonal correlation
    """
    n = correlations.shape[0]
    upper = correlations[np.triu_indices(n, k=1)]
    r_bar = float(np.mean(upper))
    return safe_divide(n * r_bar, 1 + (n - 1) * r_bar)


def squared_multiple_correlation(correlations: Matrix, index: int) -> float:
    """
    R-squared of an item regressed on all other items (standardized).

    Computed as r' R^-1 r with R the correlations among the other items and
    r their correlations with the item. If R is singular the squared
    largest absolute correlation with another item is used instead.

    Args:
        correlations: Inter-item correlation matrix
        index: Position of the item

    Returns:
        Squared multiple correlation
    """
    others = [j for j in range(correlations.rows) if j != index]
    r = np.array([correlations.get(index, j) for j in others])
    try:
        inverse = correlations.sub_matrix(others, others).inverse().to_numpy()
    except SingularMatrixError:
        logger.warning(
            f"Singular correlation matrix for item {index}; "
            f"using the squared maximum correlation"
        )
        return float(np.max(np.abs(r)) ** 2)
    return float(r @ inverse @ r)


def _alpha_if_deleted(values: np.ndarray, index: int) -> Optional[float]:
    if values.shape[1] - 1 < 2:
        return None
    return alpha_from_values(np.delete(values, index, axis=1))


def _prepare(rows: Sequence[Mapping[str, Any]], variables: Sequence[str]):
    full = NamedMatrix.from_rows(rows, variables)
    complete = full.complete_cases()
    return full, complete


def _checked_alpha(values: np.ndarray, variables: List[str]) -> float:
    if variance(values.sum(axis=1)) == 0:
        raise ZeroVarianceError("Total scale score has zero variance", variables=variables)
    return alpha_from_values(values)


def cronbach_alpha(rows: Sequence[Mapping[str, Any]],
                   variables: Sequence[str]) -> Optional[CronbachAlphaResult]:
    """
    Cronbach's alpha with item-total correlations and alpha-if-item-deleted.

    Args:
        rows: Data table
        variables: Scale items

    Returns:
        CronbachAlphaResult, or None with fewer than two items or no complete cases

    Raises:
        ZeroVarianceError: if the total score is constant
    """
    variables = list(variables)
    if len(variables) < 2:
        return None

    _, complete = _prepare(rows, variables)
    if len(complete) == 0:
        logger.debug("No complete cases for Cronbach's alpha")
        return None

    values = complete.values
    alpha = _checked_alpha(values, variables)
    row_sums = values.sum(axis=1)

    item_total_correlations: Dict[str, float] = {}
    alpha_if_deleted: Dict[str, Optional[float]] = {}
    for j, variable in enumerate(variables):
        item_total_correlations[variable] = correlation(values[:, j], row_sums - values[:, j])
        alpha_if_deleted[variable] = _alpha_if_deleted(values, j)

    return CronbachAlphaResult(
        alpha=alpha,
        item_total_correlations=item_total_correlations,
        alpha_if_item_deleted=alpha_if_deleted,
        n_items=len(variables),
        n_cases=len(complete),
    )


def full_reliability_analysis(rows: Sequence[Mapping[str, Any]],
                              variables: Sequence[str]) -> Optional[ReliabilityAnalysis]:
    """
    The complete reliability bundle for a scale.

    Adds case processing counts, item statistics, the inter-item
    correlation matrix, scale-if-item-deleted statistics, squared multiple
    correlations, scale statistics and the standardized alpha to the plain
    Cronbach's alpha.

    Args:
        rows: Data table
        variables: Scale items

    Returns:
        ReliabilityAnalysis, or None with fewer than two items or no complete cases

    Raises:
        ZeroVarianceError: if the total score is constant
    """
    variables = list(variables)
    if len(variables) < 2:
        return None

    full, complete = _prepare(rows, variables)
    n_valid = len(complete)
    if n_valid == 0:
        logger.debug("No complete cases for reliability analysis")
        return None

    values = complete.values
    alpha = _checked_alpha(values, variables)
    row_sums = values.sum(axis=1)
    correlations = correlation_array(values)
    correlation_matrix = Matrix(correlations)

    item_stats = [
        ItemStatistics(variable=variable, mean=mean(values[:, j]),
                       std_dev=std_dev(values[:, j]), n=n_valid)
        for j, variable in enumerate(variables)
    ]

    item_total_stats = []
    for j, variable in enumerate(variables):
        rest = row_sums - values[:, j]
        item_total_stats.append(ItemTotalStatistics(
            variable=variable,
            scale_mean_if_deleted=mean(rest),
            scale_variance_if_deleted=variance(rest),
            item_total_correlation=correlation(values[:, j], rest),
            squared_multiple_correlation=squared_multiple_correlation(correlation_matrix, j),
            alpha_if_deleted=_alpha_if_deleted(values, j),
        ))

    scale_variance = variance(row_sums)

    return ReliabilityAnalysis(
        case_processing=CaseProcessingSummary(
            valid_n=n_valid,
            excluded=full.n_total - n_valid,
            total=full.n_total,
        ),
        reliability=ReliabilityStatistics(
            cronbach_alpha=alpha,
            standardized_alpha=standardized_alpha(correlations),
            n_items=len(variables),
        ),
        item_stats=item_stats,
        inter_item_correlations=named_grid(correlations, variables),
        item_total_stats=item_total_stats,
        scale_stats=ScaleStatistics(
            mean=mean(row_sums),
            variance=scale_variance,
            std_dev=math.sqrt(scale_variance),
            n_items=len(variables),
        ),
    )
