"""Snapshot models for data fetched from the CodeSonar hub.

Every snapshot is created once per build evaluation and is frozen after
construction so that all conditions observe exactly the same data.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class VisibilityFilter(str, Enum):
    """Hub warning visibility filter applied to an analysis request."""

    ACTIVE = "ACTIVE"
    NEW = "NEW"


class AlertLevel(str, Enum):
    """Colour of a hub alert."""

    RED = "RED"
    YELLOW = "YELLOW"
    BLUE = "BLUE"
    GREEN = "GREEN"


class HubWarning(BaseModel):
    """A single defect finding reported by an analysis."""

    model_config = ConfigDict(frozen=True)

    warning_id: str = Field(..., min_length=1, description="Stable hub identifier of the warning.")
    score: int = Field(default=0, description="Severity score assigned by the hub.")
    warning_class: str = Field(default="", description="Checker class, e.g. 'Null Pointer Dereference'.")
    file: str = Field(default="", description="Source file the warning points at.")
    line_number: int = Field(default=0, description="Line in ``file``; 0 when unknown.")
    procedure: str = Field(default="", description="Enclosing procedure name.")
    url: str = Field(default="", description="Hub URL of the warning detail page.")


class Alert(BaseModel):
    """An analysis-level alert raised by the hub (e.g. parse errors)."""

    model_config = ConfigDict(frozen=True)

    level: AlertLevel
    message: str = ""


class AnalysisSnapshot(BaseModel):
    """One analysis run filtered to a single visibility filter."""

    model_config = ConfigDict(frozen=True)

    analysis_id: str = Field(..., min_length=1, description="Hub identifier of the analysis.")
    analysis_url: str = Field(default="", description="URL the snapshot was fetched from.")
    name: str = Field(default="", description="Human-readable analysis name.")
    visibility_filter: VisibilityFilter = VisibilityFilter.ACTIVE
    warnings: tuple[HubWarning, ...] = Field(default_factory=tuple)
    alerts: tuple[Alert, ...] = Field(default_factory=tuple)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def count_alerts(self, level: AlertLevel) -> int:
        """Return the number of alerts of colour *level*."""
        return sum(1 for alert in self.alerts if alert.level == level)


class MetricsSnapshot(BaseModel):
    """Analysis-wide metrics keyed by metric name."""

    model_config = ConfigDict(frozen=True)

    analysis_id: str = Field(..., min_length=1)
    values: dict[str, float] = Field(default_factory=dict)

    def get(self, name: str) -> float | None:
        return self.values.get(name)


class ProcedureMetric(BaseModel):
    """Complexity figures for a single procedure."""

    model_config = ConfigDict(frozen=True)

    procedure: str
    cyclomatic_complexity: int = Field(default=0, ge=0)


class ProceduresSnapshot(BaseModel):
    """Per-procedure metrics for one analysis, in hub order."""

    model_config = ConfigDict(frozen=True)

    analysis_id: str = Field(..., min_length=1)
    procedures: tuple[ProcedureMetric, ...] = Field(default_factory=tuple)

    def procedure_with_max_complexity(self) -> ProcedureMetric | None:
        """Return the most complex procedure, or ``None`` for an empty list.

        Ties resolve to the first procedure in hub order.
        """
        if not self.procedures:
            return None
        return max(self.procedures, key=lambda p: p.cyclomatic_complexity)
