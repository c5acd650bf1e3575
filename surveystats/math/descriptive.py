"""
Descriptive statistics for a single survey variable.
"""

import logging
import math
import numpy as np
from collections import Counter
from typing import Any, Mapping, Optional, Sequence

from surveystats.math.named_matrix import NamedMatrix
from surveystats.results import DescriptiveStats, Quartiles
from surveystats.utils.general import (
    central_moment, format_plain, mean, safe_divide, total, variance
)

logger = logging.getLogger(__name__)

CRITICAL_VALUE_95 = 1.96


def median(sorted_values: np.ndarray) -> float:
    """Middle order statistic, or the average of the two middle ones for even n."""
    n = len(sorted_values)
    if n % 2 == 0:
        return float((sorted_values[n // 2 - 1] + sorted_values[n // 2]) / 2)
    return float(sorted_values[n // 2])


def mode(values: Sequence[float]) -> str:
    """
    Most frequent value(s).

    Args:
        values: Non-empty sequence of numbers

    Returns:
        The modal value, or all tied values in ascending order joined by ', '
    """
    counts = Counter(float(v) for v in values)
    max_count = max(counts.values())
    modes = sorted(v for v, c in counts.items() if c == max_count)
    return ', '.join(format_plain(v) for v in modes)


def skewness(values: Sequence[float]) -> float:
    """Third standardized moment (population moments); NaN for constant data."""
    m2 = central_moment(values, 2)
    m3 = central_moment(values, 3)
    return safe_divide(m3, m2 ** 1.5)


def kurtosis(values: Sequence[float]) -> float:
    """Excess kurtosis: fourth standardized moment minus 3; NaN for constant data."""
    m2 = central_moment(values, 2)
    m4 = central_moment(values, 4)
    return safe_divide(m4, m2 ** 2) - 3


def quartiles(sorted_values: np.ndarray) -> Quartiles:
    """
    Nearest-rank quartiles: the order statistics at floor(n * p) for p = .25, .5, .75.

    Args:
        sorted_values: Values in ascending order

    Returns:
        Quartiles
    """
    n = len(sorted_values)
    return Quartiles(
        q1=float(sorted_values[int(math.floor(n * 0.25))]),
        q2=float(sorted_values[int(math.floor(n * 0.5))]),
        q3=float(sorted_values[int(math.floor(n * 0.75))]),
    )


def describe_values(values: Sequence[float],
                    critical_value: float = CRITICAL_VALUE_95) -> Optional[DescriptiveStats]:
    """
    Descriptive statistics of a sequence of numbers.

    Non-finite entries are dropped first.

    Args:
        values: Numbers to describe
        critical_value: Multiplier of the standard error for the 95% interval

    Returns:
        DescriptiveStats, or None if no finite values remain
    """
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    n = len(arr)
    if n == 0:
        return None

    sorted_values = np.sort(arr)
    m = mean(arr)
    var = variance(arr)
    std = math.sqrt(var)
    sem = std / math.sqrt(n)
    margin = critical_value * sem
    q = quartiles(sorted_values)

    return DescriptiveStats(
        n=n,
        mean=m,
        median=median(sorted_values),
        mode=mode(arr),
        sum=total(arr),
        min=float(sorted_values[0]),
        max=float(sorted_values[-1]),
        range=float(sorted_values[-1] - sorted_values[0]),
        variance=var,
        std_dev=std,
        skewness=skewness(arr),
        kurtosis=kurtosis(arr),
        standard_error=sem,
        confidence_interval_95=(m - margin, m + margin),
        quartiles=q,
        interquartile_range=q.q3 - q.q1,
    )


def describe(rows: Sequence[Mapping[str, Any]],
             variable: str,
             critical_value: float = CRITICAL_VALUE_95) -> Optional[DescriptiveStats]:
    """
    Descriptive statistics of one column of a data table.

    Missing and non-numeric cells are ignored (no listwise deletion: only
    this column is considered).

    Args:
        rows: Data table
        variable: Column to describe
        critical_value: Multiplier of the standard error for the 95% interval

    Returns:
        DescriptiveStats, or None when the column has no valid values
    """
    values = NamedMatrix.from_rows(rows, [variable]).valid_values(variable)
    stats = describe_values(values, critical_value)
    if stats is None:
        logger.debug(f"No valid values for variable {variable}")
    return stats
