"""Domain models for the CodeSonar analysis gate."""

from codesonar_gate.models.analysis import (
    Alert,
    AlertLevel,
    AnalysisSnapshot,
    HubWarning,
    MetricsSnapshot,
    ProcedureMetric,
    ProceduresSnapshot,
    VisibilityFilter,
)
from codesonar_gate.models.outcome import (
    AnalysisData,
    BuildOutcome,
    BuildResult,
    ConditionVerdict,
)

__all__ = [
    "Alert",
    "AlertLevel",
    "AnalysisData",
    "AnalysisSnapshot",
    "BuildOutcome",
    "BuildResult",
    "ConditionVerdict",
    "HubWarning",
    "MetricsSnapshot",
    "ProcedureMetric",
    "ProceduresSnapshot",
    "VisibilityFilter",
]
