"""
Group comparison statistics: two-sample t-test, one-way ANOVA and simple
linear regression.

By default the p-values come from the approximations in
surveystats.math.distributions: the t-test uses the normal distribution
(reasonable only for large samples) and ANOVA and regression use the
logistic F surrogate (a rough indicator, not an exact p-value). Pass
exact=True for p-values from Student's t and the F distribution.

Confidence intervals use the fixed critical value 1.96 rather than a
t quantile, so they are too narrow for small samples.
"""

import logging
import math
import numpy as np
from typing import List, Sequence

from surveystats.errors import InsufficientDataError, ValidationError, ZeroVarianceError
from surveystats.math.distributions import f_cdf_approx, f_sf_exact, normal_cdf, t_sf_exact
from surveystats.results import AnovaResult, RegressionIntervals, RegressionResult, TTestResult
from surveystats.utils.general import finite_values, mean, safe_divide, variance

logger = logging.getLogger(__name__)

CRITICAL_VALUE_95 = 1.96


def _f_p_value(f: float, df1: float, df2: float, exact: bool) -> float:
    if exact:
        return f_sf_exact(f, df1, df2)
    return 1 - f_cdf_approx(f, df1, df2)


def t_test(group1: Sequence[float],
           group2: Sequence[float],
           exact: bool = False,
           critical_value: float = CRITICAL_VALUE_95) -> TTestResult:
    """
    Two-sample t-test with pooled variance.

    Non-finite values are dropped from each group first.

    Args:
        group1: Values of the first group
        group2: Values of the second group
        exact: Use Student's t for the p-value instead of the normal approximation
        critical_value: Multiplier of the standard error for the 95% interval

    Returns:
        TTestResult

    Raises:
        InsufficientDataError: if a group is empty or n1 + n2 < 3
        ZeroVarianceError: if both groups are constant (pooled variance 0)
    """
    a = finite_values(group1)
    b = finite_values(group2)
    n1, n2 = len(a), len(b)
    if n1 == 0 or n2 == 0 or n1 + n2 < 3:
        raise InsufficientDataError(
            f"t-test requires two non-empty groups with at least 3 values in total, "
            f"got {n1} and {n2}",
            required=3,
            available=n1 + n2
        )

    mean1, mean2 = mean(a), mean(b)
    variance1, variance2 = variance(a), variance(b)

    pooled_variance = ((n1 - 1) * variance1 + (n2 - 1) * variance2) / (n1 + n2 - 2)
    if pooled_variance == 0:
        raise ZeroVarianceError("Both groups are constant; the t statistic is undefined")

    standard_error = math.sqrt(pooled_variance * (1 / n1 + 1 / n2))
    difference = mean1 - mean2
    t_value = difference / standard_error
    df = n1 + n2 - 2

    if exact:
        p_value = t_sf_exact(t_value, df)
    else:
        p_value = 2 * (1 - normal_cdf(abs(t_value)))

    margin = critical_value * standard_error
    return TTestResult(
        t_value=t_value,
        p_value=p_value,
        degrees_of_freedom=df,
        n1=n1,
        n2=n2,
        mean1=mean1,
        mean2=mean2,
        std_dev1=math.sqrt(variance1),
        std_dev2=math.sqrt(variance2),
        mean_difference=difference,
        standard_error=standard_error,
        confidence_interval=(difference - margin, difference + margin),
        exact=exact,
    )


def anova(groups: Sequence[Sequence[float]], exact: bool = False) -> AnovaResult:
    """
    One-way analysis of variance.

    Args:
        groups: Two or more groups of values (non-finite values are dropped)
        exact: Use the F distribution for the p-value instead of the surrogate

    Returns:
        AnovaResult

    Raises:
        ValidationError: fewer than two groups, or an empty group
        InsufficientDataError: no within-group degrees of freedom
        ZeroVarianceError: every group is constant (within sum of squares 0)
    """
    arrays: List[np.ndarray] = [finite_values(g) for g in groups]
    if len(arrays) < 2:
        raise ValidationError(f"ANOVA requires at least 2 groups, got {len(arrays)}")
    empty = [i for i, g in enumerate(arrays) if len(g) == 0]
    if empty:
        raise ValidationError(f"ANOVA groups must not be empty (group(s) {empty})")

    sizes = [len(g) for g in arrays]
    total_n = sum(sizes)
    df_between = len(arrays) - 1
    df_within = total_n - len(arrays)
    if df_within < 1:
        raise InsufficientDataError(
            "ANOVA requires more values than groups",
            required=len(arrays) + 1,
            available=total_n
        )

    group_means = [mean(g) for g in arrays]
    grand_mean = mean(np.concatenate(arrays))

    ss_between = float(sum(n * (m - grand_mean) ** 2 for n, m in zip(sizes, group_means)))
    ss_within = float(sum(np.sum((g - m) ** 2) for g, m in zip(arrays, group_means)))
    if ss_within == 0:
        raise ZeroVarianceError("All groups are constant; the F statistic is undefined")

    ms_between = ss_between / df_between
    ms_within = ss_within / df_within
    f_value = ms_between / ms_within

    return AnovaResult(
        f_value=f_value,
        p_value=_f_p_value(f_value, df_between, df_within, exact),
        df_between=df_between,
        df_within=df_within,
        sum_squares_between=ss_between,
        sum_squares_within=ss_within,
        mean_square_between=ms_between,
        mean_square_within=ms_within,
        eta_squared=ss_between / (ss_between + ss_within),
        group_means=group_means,
        group_sizes=sizes,
        exact=exact,
    )


def regression(x: Sequence[float],
               y: Sequence[float],
               exact: bool = False,
               critical_value: float = CRITICAL_VALUE_95) -> RegressionResult:
    """
    Simple linear regression of y on x by ordinary least squares.

    Pairs with a non-finite entry are dropped first.

    Args:
        x: Predictor values
        y: Response values (paired with x)
        exact: Use the F distribution for the p-value instead of the surrogate
        critical_value: Multiplier of the standard errors for the 95% intervals

    Returns:
        RegressionResult. A perfect fit has f_statistic = inf and p_value = 0.

    Raises:
        ValidationError: x and y differ in length
        InsufficientDataError: fewer than 3 complete pairs
        ZeroVarianceError: x or y is constant
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(x) != len(y):
        raise ValidationError(f"x and y differ in length: {len(x)} vs {len(y)}")

    mask = np.isfinite(x) & np.isfinite(y)
    x, y = x[mask], y[mask]
    n = len(x)
    if n < 3:
        raise InsufficientDataError(
            f"Regression requires at least 3 complete pairs, got {n}",
            required=3,
            available=n
        )

    mean_x, mean_y = mean(x), mean(y)
    sxx = float(np.sum((x - mean_x) ** 2))
    sxy = float(np.sum((x - mean_x) * (y - mean_y)))
    syy = float(np.sum((y - mean_y) ** 2))
    if sxx == 0 or syy == 0:
        raise ZeroVarianceError("Regression requires non-constant x and y")

    slope = sxy / sxx
    intercept = mean_y - slope * mean_x
    # Rounding can push an exact fit just past 1
    r_squared = min(1.0, max(0.0, (sxy * sxy) / (sxx * syy)))

    predictions = slope * x + intercept
    residuals = y - predictions

    residual_ss = float(np.sum(residuals ** 2))
    standard_error = math.sqrt(residual_ss / (n - 2))
    slope_se = standard_error / math.sqrt(sxx)
    intercept_se = standard_error * math.sqrt(1 / n + mean_x ** 2 / sxx)

    f_statistic = safe_divide(r_squared, (1 - r_squared) / (n - 2))
    p_value = _f_p_value(f_statistic, 1, n - 2, exact)

    return RegressionResult(
        n=n,
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        standard_error=standard_error,
        slope_standard_error=slope_se,
        intercept_standard_error=intercept_se,
        f_statistic=f_statistic,
        p_value=p_value,
        confidence_intervals=RegressionIntervals(
            slope=(slope - critical_value * slope_se, slope + critical_value * slope_se),
            intercept=(intercept - critical_value * intercept_se,
                       intercept + critical_value * intercept_se),
        ),
        predictions=predictions.tolist(),
        residuals=residuals.tolist(),
        exact=exact,
    )
