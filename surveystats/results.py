"""
Result models for surveystats analyses.

Every analysis returns an immutable pydantic model tagged with a literal
``kind``. AnalysisResult is the discriminated union of all of them, so a
caller can dispatch on ``result.kind`` (or on the model class) and parse a
serialized result back into the right type.

Values are raw floats. NaN and inf appear only where the producing function
documents them. Use surveystats.utils.general.format_number for display.
"""

from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

Interval = Tuple[float, float]


class ResultModel(BaseModel):
    """Base class for all result structures: frozen, no extra fields."""

    model_config = ConfigDict(frozen=True, extra='forbid')


# Descriptive statistics

class Quartiles(ResultModel):
    q1: float
    q2: float
    q3: float


class DescriptiveStats(ResultModel):
    """Summary statistics of a single variable."""

    n: int
    mean: float
    median: float
    mode: str
    sum: float
    min: float
    max: float
    range: float
    variance: float
    std_dev: float
    skewness: float
    kurtosis: float
    standard_error: float
    confidence_interval_95: Interval
    quartiles: Quartiles
    interquartile_range: float


class DescriptiveResult(ResultModel):
    """Descriptive statistics per variable; None where a variable has no valid values."""

    kind: Literal['descriptive'] = 'descriptive'
    statistics: Dict[str, Optional[DescriptiveStats]]


# Correlation

class CorrelationResult(ResultModel):
    kind: Literal['correlation'] = 'correlation'
    variables: List[str]
    matrix: Dict[str, Dict[str, float]]
    n_cases: int


# Reliability

class CronbachAlphaResult(ResultModel):
    kind: Literal['cronbach'] = 'cronbach'
    alpha: float
    item_total_correlations: Dict[str, float]
    alpha_if_item_deleted: Dict[str, Optional[float]]
    n_items: int
    n_cases: int


class CaseProcessingSummary(ResultModel):
    valid_n: int
    excluded: int
    total: int


class ReliabilityStatistics(ResultModel):
    cronbach_alpha: float
    standardized_alpha: float
    n_items: int


class ItemStatistics(ResultModel):
    variable: str
    mean: float
    std_dev: float
    n: int


class ItemTotalStatistics(ResultModel):
    variable: str
    scale_mean_if_deleted: float
    scale_variance_if_deleted: float
    item_total_correlation: float
    squared_multiple_correlation: float
    alpha_if_deleted: Optional[float]


class ScaleStatistics(ResultModel):
    mean: float
    variance: float
    std_dev: float
    n_items: int


class ReliabilityAnalysis(ResultModel):
    """The full reliability bundle: case processing, item and scale statistics."""

    kind: Literal['reliability'] = 'reliability'
    case_processing: CaseProcessingSummary
    reliability: ReliabilityStatistics
    item_stats: List[ItemStatistics]
    inter_item_correlations: Dict[str, Dict[str, float]]
    item_total_stats: List[ItemTotalStatistics]
    scale_stats: ScaleStatistics


# Group comparisons

class TTestResult(ResultModel):
    kind: Literal['ttest'] = 'ttest'
    t_value: float
    p_value: float
    degrees_of_freedom: int
    n1: int
    n2: int
    mean1: float
    mean2: float
    std_dev1: float
    std_dev2: float
    mean_difference: float
    standard_error: float
    confidence_interval: Interval
    exact: bool = False


class AnovaResult(ResultModel):
    kind: Literal['anova'] = 'anova'
    f_value: float
    p_value: float
    df_between: int
    df_within: int
    sum_squares_between: float
    sum_squares_within: float
    mean_square_between: float
    mean_square_within: float
    eta_squared: float
    group_means: List[float]
    group_sizes: List[int]
    exact: bool = False


class RegressionIntervals(ResultModel):
    slope: Interval
    intercept: Interval


class RegressionResult(ResultModel):
    kind: Literal['regression'] = 'regression'
    n: int
    slope: float
    intercept: float
    r_squared: float
    standard_error: float
    slope_standard_error: float
    intercept_standard_error: float
    f_statistic: float
    p_value: float
    confidence_intervals: RegressionIntervals
    predictions: List[float]
    residuals: List[float]
    exact: bool = False


# Factor analysis

class KMOResult(ResultModel):
    overall: float
    per_variable: Dict[str, float]
    method: Literal['proxy', 'anti-image'] = 'proxy'


class BartlettResult(ResultModel):
    chi_square: float
    df: int
    significance: float
    determinant: float


class Communality(ResultModel):
    initial: float = 1.0
    extraction: float


class ExtractionSums(ResultModel):
    total: float
    percent_of_variance: float
    cumulative_percent: float


class ComponentVariance(ResultModel):
    """One row of the total-variance-explained table."""

    component: int
    eigenvalue: float
    percent_of_variance: float
    cumulative_percent: float
    extraction: Optional[ExtractionSums] = None


class FactorAnalysisResult(ResultModel):
    kind: Literal['factor'] = 'factor'
    variables: List[str]
    n_cases: int
    correlation_matrix: Dict[str, Dict[str, float]]
    kmo: KMOResult
    bartlett: BartlettResult
    eigenvalues: List[float]
    communalities: Dict[str, Communality]
    total_variance: List[ComponentVariance]
    n_extracted: int
    component_matrix: Dict[str, List[float]]
    rotated_component_matrix: Optional[Dict[str, List[float]]] = None
    rotation_iterations: Optional[int] = None


AnalysisResult = Annotated[
    Union[
        DescriptiveResult,
        CronbachAlphaResult,
        ReliabilityAnalysis,
        CorrelationResult,
        TTestResult,
        AnovaResult,
        RegressionResult,
        FactorAnalysisResult,
    ],
    Field(discriminator='kind'),
]

AnalysisKind = Literal[
    'descriptive', 'cronbach', 'reliability', 'correlation',
    'ttest', 'anova', 'regression', 'factor',
]


# Batch (auto mode)

class GroupFailure(ResultModel):
    group_id: str
    error_type: str
    message: str


class BatchResult(ResultModel):
    """Per-group results of one analysis kind; failed groups are listed separately."""

    kind: AnalysisKind
    results: Dict[str, AnalysisResult] = Field(default_factory=dict)
    failures: List[GroupFailure] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures
