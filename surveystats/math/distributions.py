"""
Distribution functions used for p-values.

The default implementations are the fast approximations used throughout
the engine:

- normal_cdf: Zelen & Severo rational approximation, accurate to about 1e-7.
- f_cdf_approx: a logistic-curve surrogate. It is monotone in F but is NOT
  the F distribution; p-values derived from it are rough indicators only.
- chi_square_cdf: regularized lower incomplete gamma function by series
  expansion, with gamma() from the Lanczos approximation.

Exact alternatives backed by scipy are available for callers that need
research-grade p-values (t_sf_exact, f_sf_exact).
"""

import math
from scipy import stats as scipy_stats

# Lanczos approximation coefficients (g = 7, n = 9)
LANCZOS_G = 7
LANCZOS_COEFFICIENTS = (
    0.99999999999980993,
    676.5203681218851,
    -1259.1392167224028,
    771.32342877765313,
    -176.61502916214059,
    12.507343278686905,
    -0.13857109526572012,
    9.9843695780195716e-6,
    1.5056327351493116e-7,
)

GAMMA_SERIES_MAX_ITER = 100
GAMMA_SERIES_EPSILON = 1e-10


def normal_cdf(x: float) -> float:
    """
    Standard normal cumulative distribution function.

    Args:
        x: Standard score

    Returns:
        P(Z <= x)
    """
    t = 1.0 / (1.0 + 0.2316419 * abs(x))
    d = 0.3989423 * math.exp(-x * x / 2.0)
    probability = d * t * (0.3193815 + t * (-0.3565638 + t * (1.781478 + t * (-1.821256 + t * 1.330274))))
    return 1.0 - probability if x > 0 else probability


def f_cdf_approx(f: float, df1: float, df2: float) -> float:
    """
    Logistic surrogate for the F distribution CDF.

    Args:
        f: F statistic
        df1: Numerator degrees of freedom
        df2: Denominator degrees of freedom

    Returns:
        A value in [0, 1] increasing in f (not the true F CDF)
    """
    if math.isnan(f):
        return math.nan
    scale = math.sqrt(df1 * df2)
    z = -(f - (df1 + df2) / 2.0) / scale
    # exp overflows beyond ~709
    if z > 700:
        return 0.0
    return 1.0 / (1.0 + math.exp(z))


def _lanczos_log_gamma(z: float) -> float:
    """log(Gamma(z)) for z >= 0.5 by the Lanczos approximation."""
    z -= 1
    x = LANCZOS_COEFFICIENTS[0]
    for i in range(1, LANCZOS_G + 2):
        x += LANCZOS_COEFFICIENTS[i] / (z + i)
    t = z + LANCZOS_G + 0.5
    return 0.5 * math.log(2 * math.pi) + (z + 0.5) * math.log(t) - t + math.log(x)


def gamma(z: float) -> float:
    """
    Gamma function by the Lanczos approximation.

    Uses the reflection formula Gamma(z) = pi / (sin(pi z) Gamma(1 - z)) for z < 0.5.

    Args:
        z: Argument (not a non-positive integer)

    Returns:
        Gamma(z)
    """
    if z < 0.5:
        return math.pi / (math.sin(math.pi * z) * gamma(1 - z))
    return math.exp(_lanczos_log_gamma(z))


def log_gamma(z: float) -> float:
    """log|Gamma(z)| for z > 0."""
    if z < 0.5:
        return math.log(abs(gamma(z)))
    return _lanczos_log_gamma(z)


def lower_regularized_gamma(s: float, x: float) -> float:
    """
    Regularized lower incomplete gamma function P(s, x).

    For x < s + 1 the series expansion
    x^s e^-x / Gamma(s) * sum(x^n / (s (s+1) ... (s+n))) is used. Beyond
    that the series needs far more than GAMMA_SERIES_MAX_ITER terms, so
    1 - Q(s, x) is computed from the continued fraction for the upper
    function instead. Both stop after GAMMA_SERIES_MAX_ITER iterations or
    once the relative change falls below GAMMA_SERIES_EPSILON.

    Args:
        s: Shape parameter (> 0)
        x: Upper integration limit

    Returns:
        P(s, x) clipped to [0, 1]
    """
    if x <= 0:
        return 0.0
    if math.isinf(x):
        return 1.0
    if x >= s + 1:
        return 1.0 - _upper_regularized_gamma_cf(s, x)

    term = 1.0 / s
    series = term
    for n in range(1, GAMMA_SERIES_MAX_ITER):
        term *= x / (s + n)
        series += term
        if abs(term) < abs(series) * GAMMA_SERIES_EPSILON:
            break

    log_result = s * math.log(x) - x - log_gamma(s) + math.log(series)
    if log_result >= 0:
        return 1.0
    return max(0.0, math.exp(log_result))


def _upper_regularized_gamma_cf(s: float, x: float) -> float:
    """Q(s, x) by the modified Lentz continued fraction, for x >= s + 1."""
    tiny = 1e-300
    b = x + 1.0 - s
    c = 1.0 / tiny
    d = 1.0 / b
    h = d
    for i in range(1, GAMMA_SERIES_MAX_ITER + 1):
        an = -i * (i - s)
        b += 2.0
        d = an * d + b
        if abs(d) < tiny:
            d = tiny
        c = b + an / c
        if abs(c) < tiny:
            c = tiny
        d = 1.0 / d
        delta = d * c
        h *= delta
        if abs(delta - 1.0) < GAMMA_SERIES_EPSILON:
            break

    log_result = s * math.log(x) - x - log_gamma(s) + math.log(h)
    return min(1.0, max(0.0, math.exp(min(log_result, 0.0))))


def chi_square_cdf(x: float, df: float) -> float:
    """
    Chi-square cumulative distribution function.

    Args:
        x: Chi-square statistic
        df: Degrees of freedom

    Returns:
        P(X <= x)
    """
    if math.isnan(x):
        return math.nan
    return lower_regularized_gamma(df / 2.0, x / 2.0)


def t_sf_exact(t: float, df: float) -> float:
    """Two-sided p-value of a t statistic from Student's t distribution."""
    return float(2.0 * scipy_stats.t.sf(abs(t), df))


def f_sf_exact(f: float, df1: float, df2: float) -> float:
    """Upper-tail p-value of an F statistic from the F distribution."""
    return float(scipy_stats.f.sf(f, df1, df2))
