"""
Exceptions raised by the surveystats engine.

Empty results (no valid cases for a descriptive statistic, fewer than two
items for an alpha) are not errors; those functions return None instead.
"""

from typing import List, Optional


class StatisticsError(Exception):
    """Base class for all engine errors."""


class ShapeError(StatisticsError, ValueError):
    """Matrix dimensions do not fit the requested operation."""


class SingularMatrixError(StatisticsError, ArithmeticError):
    """A matrix could not be inverted (pivot below tolerance)."""


class InsufficientDataError(StatisticsError, ValueError):
    """Fewer valid cases than an analysis needs."""

    def __init__(self, message: str, required: Optional[int] = None,
                 available: Optional[int] = None):
        super().__init__(message)
        self.required = required
        self.available = available


class ZeroVarianceError(StatisticsError, ArithmeticError):
    """A (near) constant variable was used where variance is a denominator."""

    def __init__(self, message: str, variables: Optional[List[str]] = None):
        super().__init__(message)
        self.variables = list(variables) if variables else []


class ValidationError(StatisticsError, ValueError):
    """The caller's variable selection does not fit the analysis."""
