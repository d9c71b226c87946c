"""Evaluate a condition against current (and previous) hub data.

:func:`evaluate` dispatches on the condition's variant to exactly one
evaluator.  Evaluators are pure: they read the frozen snapshots and
return a ``(result, description)`` pair, so evaluating the same data
twice always yields the same verdict.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from codesonar_gate.conditions.models import (
    CONDITION_TYPES,
    ConditionConfig,
    NewWarningsIncreasedByPercentageCondition,
    ProcedureCyclomaticComplexityExceededCondition,
    RedAlertLimitCondition,
    WarningCountAbsoluteSpecifiedScoreAndHigherCondition,
    WarningCountIncreaseOverallCondition,
    WarningCountIncreaseSpecifiedScoreAndHigherCondition,
    YellowAlertLimitCondition,
)
from codesonar_gate.errors import DataUnavailableError
from codesonar_gate.models.analysis import AlertLevel
from codesonar_gate.models.outcome import AnalysisData, BuildResult, ConditionVerdict

logger = logging.getLogger(__name__)

CURRENT_BUILD_DATA_NOT_AVAILABLE = "Current build data not available"
PREVIOUS_BUILD_DATA_NOT_AVAILABLE = "Previous build data not available"

Evaluation = tuple[BuildResult, str]


def percentage(part: int, whole: int) -> float:
    """``part * 100 / whole``, or 0.0 when *whole* is zero."""
    if whole == 0:
        return 0.0
    return part * 100.0 / whole


def _verdict_for(triggered: bool, condition: Any) -> BuildResult:
    return condition.warranted_result if triggered else BuildResult.SUCCESS


# ---------------------------------------------------------------------------
# Per-variant evaluators
# ---------------------------------------------------------------------------


def _alert_limit(level: AlertLevel, limit: int, condition: Any, current: AnalysisData) -> Evaluation:
    count = current.active.count_alerts(level)
    return _verdict_for(count > limit, condition), f"threshold={limit}, count={count}"


def _red_alerts(
    condition: RedAlertLimitCondition, current: AnalysisData, previous: AnalysisData | None
) -> Evaluation:
    return _alert_limit(AlertLevel.RED, condition.alert_limit, condition, current)


def _yellow_alerts(
    condition: YellowAlertLimitCondition, current: AnalysisData, previous: AnalysisData | None
) -> Evaluation:
    return _alert_limit(AlertLevel.YELLOW, condition.alert_limit, condition, current)


def _new_warnings_percentage(
    condition: NewWarningsIncreasedByPercentageCondition,
    current: AnalysisData,
    previous: AnalysisData | None,
) -> Evaluation:
    active_count = current.active.warning_count
    new_count = current.new.warning_count
    observed = percentage(new_count, active_count)
    threshold = condition.percentage

    triggered = observed > threshold
    prefix = "More than" if triggered else "At most"
    description = (
        f"{prefix} {threshold:.2f}% new warnings "
        f"({observed:.2f}%, {new_count} out of {active_count})"
    )
    return _verdict_for(triggered, condition), description


def _score_and_higher_percentage(
    condition: WarningCountIncreaseSpecifiedScoreAndHigherCondition,
    current: AnalysisData,
    previous: AnalysisData | None,
) -> Evaluation:
    warnings = current.active.warnings
    severe = sum(1 for w in warnings if w.score > condition.rank_of_warnings)
    observed = percentage(severe, len(warnings))
    threshold = condition.warning_percentage

    triggered = observed > threshold
    prefix = "More than" if triggered else "At most"
    description = (
        f"{prefix} {threshold:.2f}% warnings with score more than {condition.rank_of_warnings} "
        f"({observed:.2f}%, {severe} out of {len(warnings)})"
    )
    return _verdict_for(triggered, condition), description


def _cyclomatic_complexity(
    condition: ProcedureCyclomaticComplexityExceededCondition,
    current: AnalysisData,
    previous: AnalysisData | None,
) -> Evaluation:
    procedure = current.procedures.procedure_with_max_complexity()
    if procedure is None:
        raise DataUnavailableError(
            f"Analysis {current.analysis_id} has no procedure metrics; "
            "cannot determine the procedure with maximum cyclomatic complexity."
        )

    threshold = condition.max_cyclomatic_complexity
    complexity = procedure.cyclomatic_complexity
    description = f"threshold={threshold}, complexity={complexity} (procedure: '{procedure.procedure}')"
    return _verdict_for(complexity > threshold, condition), description


def _overall_increase(
    condition: WarningCountIncreaseOverallCondition,
    current: AnalysisData,
    previous: AnalysisData | None,
) -> Evaluation:
    if previous is None:
        return BuildResult.SUCCESS, PREVIOUS_BUILD_DATA_NOT_AVAILABLE

    now = current.active.warning_count
    before = previous.active.warning_count
    observed = percentage(now - before, before)
    threshold = condition.percentage

    triggered = observed > threshold
    prefix = "More than" if triggered else "At most"
    description = (
        f"{prefix} {threshold:.2f}% warning increase "
        f"({observed:.2f}%, {now} now, {before} before)"
    )
    return _verdict_for(triggered, condition), description


def _absolute_score_and_higher(
    condition: WarningCountAbsoluteSpecifiedScoreAndHigherCondition,
    current: AnalysisData,
    previous: AnalysisData | None,
) -> Evaluation:
    rank = condition.rank_of_warnings
    count = sum(1 for w in current.active.warnings if w.score >= rank)
    threshold = condition.warning_count_threshold
    description = f"threshold={threshold}, count={count} (score >= {rank})"
    return _verdict_for(count > threshold, condition), description


_EVALUATORS: dict[type, Callable[[Any, AnalysisData, AnalysisData | None], Evaluation]] = {
    RedAlertLimitCondition: _red_alerts,
    YellowAlertLimitCondition: _yellow_alerts,
    NewWarningsIncreasedByPercentageCondition: _new_warnings_percentage,
    WarningCountIncreaseSpecifiedScoreAndHigherCondition: _score_and_higher_percentage,
    ProcedureCyclomaticComplexityExceededCondition: _cyclomatic_complexity,
    WarningCountIncreaseOverallCondition: _overall_increase,
    WarningCountAbsoluteSpecifiedScoreAndHigherCondition: _absolute_score_and_higher,
}

_missing = set(CONDITION_TYPES) - set(_EVALUATORS)
if _missing:  # pragma: no cover
    raise RuntimeError(f"No evaluator for condition variant(s): {sorted(c.__name__ for c in _missing)}")


def evaluate(
    condition: ConditionConfig,
    current: AnalysisData | None,
    previous: AnalysisData | None = None,
) -> ConditionVerdict:
    """Evaluate *condition* and return its verdict.

    Without *current* data every condition reports SUCCESS.  Raises
    :class:`DataUnavailableError` when current data exists but a value the
    condition depends on is missing.
    """
    if current is None:
        result, description = BuildResult.SUCCESS, CURRENT_BUILD_DATA_NOT_AVAILABLE
    else:
        result, description = _EVALUATORS[type(condition)](condition, current, previous)

    return ConditionVerdict(condition=condition.display_name, result=result, description=description)
