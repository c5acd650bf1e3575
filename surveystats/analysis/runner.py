"""
Analysis runner for surveystats.

This module maps an analysis kind and a variable selection onto the engine
functions, using the configured analysis settings. run_analysis handles a
single selection and propagates errors; run_auto_analysis runs one kind
over every question group and collects per-group failures instead of
aborting.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from surveystats.analysis.groups import QuestionGroup, detect_question_groups
from surveystats.components.config import Config, ConfigManager
from surveystats.errors import InsufficientDataError, StatisticsError, ValidationError
from surveystats.math.comparison import anova, regression, t_test
from surveystats.math.corr import correlation_matrix
from surveystats.math.descriptive import describe
from surveystats.math.factor import factor_analysis
from surveystats.math.named_matrix import NamedMatrix
from surveystats.math.reliability import cronbach_alpha, full_reliability_analysis
from surveystats.results import (
    AnalysisResult, BatchResult, DescriptiveResult, GroupFailure
)

logger = logging.getLogger(__name__)

Rows = Sequence[Mapping[str, Any]]

# Minimum number of selected variables per analysis kind
MIN_VARIABLES = {
    'descriptive': 1,
    'cronbach': 2,
    'reliability': 2,
    'correlation': 2,
    'anova': 2,
    'factor': 2,
}

# Analyses that take exactly this many variables
EXACT_VARIABLES = {
    'ttest': 2,
    'regression': 2,
}

ANALYSIS_KINDS = sorted(set(MIN_VARIABLES) | set(EXACT_VARIABLES))


def validate_selection(kind: str, variables: Sequence[str]) -> None:
    """
    Check that a variable selection fits an analysis kind.

    Raises:
        ValidationError: unknown kind, duplicate variables or wrong count
    """
    if kind not in ANALYSIS_KINDS:
        raise ValidationError(f"Unknown analysis kind: {kind}")

    if len(set(variables)) != len(variables):
        raise ValidationError("Variable selection contains duplicates")

    if kind in EXACT_VARIABLES:
        required = EXACT_VARIABLES[kind]
        if len(variables) != required:
            raise ValidationError(
                f"{kind} requires exactly {required} variables, got {len(variables)}"
            )
    elif len(variables) < MIN_VARIABLES[kind]:
        raise ValidationError(
            f"{kind} requires at least {MIN_VARIABLES[kind]} variable(s), got {len(variables)}"
        )


def _descriptive(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    critical_value = config.get('analysis.critical-value', 1.96)
    return DescriptiveResult(statistics={
        variable: describe(rows, variable, critical_value) for variable in variables
    })


def _cronbach(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    result = cronbach_alpha(rows, variables)
    if result is None:
        raise InsufficientDataError("No complete cases for Cronbach's alpha", required=1, available=0)
    return result


def _reliability(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    result = full_reliability_analysis(rows, variables)
    if result is None:
        raise InsufficientDataError("No complete cases for reliability analysis",
                                    required=1, available=0)
    return result


def _correlation(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    return correlation_matrix(rows, variables, min_cases=config.get('analysis.min-cases', 3))


def _ttest(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    nmat = NamedMatrix.from_rows(rows, variables)
    return t_test(
        nmat.valid_values(variables[0]),
        nmat.valid_values(variables[1]),
        exact=bool(config.get('analysis.exact-distributions', False)),
        critical_value=config.get('analysis.critical-value', 1.96),
    )


def _anova(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    nmat = NamedMatrix.from_rows(rows, variables)
    return anova(
        [nmat.valid_values(variable) for variable in variables],
        exact=bool(config.get('analysis.exact-distributions', False)),
    )


def _regression(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    nmat = NamedMatrix.from_rows(rows, variables).complete_cases()
    return regression(
        nmat.get_col_by_name(variables[0]),
        nmat.get_col_by_name(variables[1]),
        exact=bool(config.get('analysis.exact-distributions', False)),
        critical_value=config.get('analysis.critical-value', 1.96),
    )


def _factor(rows: Rows, variables: List[str], config: Config, group_wise: bool):
    rotation = config.get('analysis.rotation', 'varimax')
    return factor_analysis(
        rows,
        variables,
        rotation=None if rotation == 'none' else rotation,
        min_cases_per_variable=config.get('analysis.fa-cases-per-variable') if group_wise else None,
        kmo_method=config.get('analysis.kmo-method', 'proxy'),
        iters=config.get('analysis.power-iterations', 100),
        varimax_max_iter=config.get('analysis.varimax-max-iter', 100),
        varimax_tol=config.get('analysis.varimax-tolerance', 1e-6),
    )


HANDLERS: Dict[str, Callable[[Rows, List[str], Config, bool], AnalysisResult]] = {
    'descriptive': _descriptive,
    'cronbach': _cronbach,
    'reliability': _reliability,
    'correlation': _correlation,
    'ttest': _ttest,
    'anova': _anova,
    'regression': _regression,
    'factor': _factor,
}


def run_analysis(rows: Rows,
                 kind: str,
                 variables: Sequence[str],
                 config: Optional[Config] = None,
                 group_wise: bool = False) -> AnalysisResult:
    """
    Run one analysis on a variable selection.

    For 'ttest' the two selected columns are the two samples; for 'anova'
    every selected column is a group; for 'regression' the first variable
    is x and the second is y.

    Args:
        rows: Data table
        kind: Analysis kind (see ANALYSIS_KINDS)
        variables: Selected variable names
        config: Configuration (defaults to the global configuration)
        group_wise: Apply the group-wise gates (factor analysis case minimum)

    Returns:
        The typed result for the analysis kind

    Raises:
        StatisticsError: any engine error, unchanged
    """
    variables = list(variables)
    validate_selection(kind, variables)
    config = config or ConfigManager.get_config()

    logger.debug(f"Running {kind} analysis on {len(variables)} variable(s)")
    return HANDLERS[kind](rows, variables, config, group_wise)


def run_auto_analysis(rows: Rows,
                      kind: str,
                      groups: Optional[Sequence[QuestionGroup]] = None,
                      config: Optional[Config] = None) -> BatchResult:
    """
    Run one analysis kind over every question group.

    A failing group is logged and recorded in BatchResult.failures; the
    remaining groups still run.

    Args:
        rows: Data table
        kind: Analysis kind
        groups: Question groups (detected from the table if omitted)
        config: Configuration (defaults to the global configuration)

    Returns:
        BatchResult keyed by group id
    """
    if kind not in ANALYSIS_KINDS:
        raise ValidationError(f"Unknown analysis kind: {kind}")

    config = config or ConfigManager.get_config()
    if groups is None:
        groups = detect_question_groups(rows)

    logger.info(f"Running {kind} analysis over {len(groups)} group(s)")

    results = {}
    failures = []
    for group in groups:
        try:
            results[group.id] = run_analysis(rows, kind, group.variables, config, group_wise=True)
        except StatisticsError as e:
            logger.error(f"Error running {kind} analysis for group {group.id}: {e}")
            failures.append(GroupFailure(
                group_id=group.id,
                error_type=type(e).__name__,
                message=str(e),
            ))

    logger.info(f"Finished {kind} analysis: {len(results)} succeeded, {len(failures)} failed")
    return BatchResult(kind=kind, results=results, failures=failures)
