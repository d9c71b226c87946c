"""Configurable pass/fail rules evaluated against hub analysis data."""

from __future__ import annotations

from codesonar_gate.conditions.evaluate import evaluate, percentage
from codesonar_gate.conditions.models import (
    CONDITION_KINDS,
    ConditionConfig,
    NewWarningsIncreasedByPercentageCondition,
    ProcedureCyclomaticComplexityExceededCondition,
    RedAlertLimitCondition,
    WarningCountAbsoluteSpecifiedScoreAndHigherCondition,
    WarningCountIncreaseOverallCondition,
    WarningCountIncreaseSpecifiedScoreAndHigherCondition,
    YellowAlertLimitCondition,
    parse_condition,
    require_valid_conditions,
    validate_conditions,
)

__all__ = [
    "CONDITION_KINDS",
    "ConditionConfig",
    "NewWarningsIncreasedByPercentageCondition",
    "ProcedureCyclomaticComplexityExceededCondition",
    "RedAlertLimitCondition",
    "WarningCountAbsoluteSpecifiedScoreAndHigherCondition",
    "WarningCountIncreaseOverallCondition",
    "WarningCountIncreaseSpecifiedScoreAndHigherCondition",
    "YellowAlertLimitCondition",
    "evaluate",
    "parse_condition",
    "percentage",
    "require_valid_conditions",
    "validate_conditions",
]
