"""
General numeric utility functions for the surveystats package.

Every statistic in the package takes its mean and variance from here, so
there is exactly one definition of each. Variance is the population
variance (divide by n) throughout.
"""

import math
import numpy as np
from typing import Any, Iterable, Optional, Sequence


def to_float(value: Any) -> float:
    """
    Convert a raw table cell to a float.

    Args:
        value: Cell value (number, numeric string, blank or None)

    Returns:
        The parsed value, or NaN if the cell is missing or not a finite number
    """
    if value is None or isinstance(value, bool):
        return math.nan

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return math.nan

    try:
        result = float(value)
    except (ValueError, TypeError):
        return math.nan

    if not math.isfinite(result):
        return math.nan
    return result


def as_array(values: Iterable[float]) -> np.ndarray:
    """Coerce a sequence of numbers to a float array."""
    if isinstance(values, np.ndarray):
        return values.astype(float, copy=False)
    return np.asarray(list(values), dtype=float)


def finite_values(values: Iterable[float]) -> np.ndarray:
    """
    Drop every non-finite entry of a sequence.

    Args:
        values: Sequence of numbers (may contain NaN or inf)

    Returns:
        Array containing only the finite entries, in order
    """
    arr = as_array(values)
    return arr[np.isfinite(arr)]


def total(values: Sequence[float]) -> float:
    """Sum of a sequence."""
    return float(np.sum(as_array(values)))


def mean(values: Sequence[float]) -> float:
    """
    Arithmetic mean.

    Args:
        values: Non-empty sequence of numbers

    Returns:
        Mean value (NaN if any entry is NaN)
    """
    arr = as_array(values)
    if arr.size == 0:
        raise ValueError("mean of an empty sequence")
    return float(np.sum(arr) / arr.size)


def variance(values: Sequence[float]) -> float:
    """
    Population variance (sum of squared deviations divided by n).

    Args:
        values: Non-empty sequence of numbers

    Returns:
        Variance
    """
    arr = as_array(values)
    m = mean(arr)
    return float(np.sum((arr - m) ** 2) / arr.size)


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation, the square root of variance()."""
    return math.sqrt(variance(values))


def central_moment(values: Sequence[float], order: int) -> float:
    """
    Population central moment of the given order.

    Args:
        values: Non-empty sequence of numbers
        order: Moment order (2 is the variance)

    Returns:
        Central moment
    """
    arr = as_array(values)
    m = mean(arr)
    return float(np.sum((arr - m) ** order) / arr.size)


def safe_divide(numerator: float, denominator: float) -> float:
    """
    Divide with IEEE semantics instead of raising ZeroDivisionError.

    Returns inf/-inf for a non-zero numerator over zero and NaN for 0/0.
    """
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def format_number(value: Optional[float], digits: int = 3) -> str:
    """
    Format a statistic for display with a fixed number of decimals.

    Args:
        value: Number to format (None renders as an empty string)
        digits: Number of decimal places

    Returns:
        Display string
    """
    if value is None:
        return ''
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    return f"{value:.{digits}f}"


def format_plain(value: float) -> str:
    """
    Shortest plain rendering of a number: integral values lose the '.0'.

    Args:
        value: Number to render

    Returns:
        String such as '3', '2.5' or '-0.125'
    """
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
