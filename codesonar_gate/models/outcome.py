"""Build result models: per-condition verdicts and the aggregate outcome.

A :class:`BuildOutcome` is created when an evaluation starts, collects one
:class:`ConditionVerdict` per configured condition in configured order,
and is persisted at the end so that the next build can use it as its
baseline.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from codesonar_gate.models.analysis import (
    AnalysisSnapshot,
    MetricsSnapshot,
    ProceduresSnapshot,
)


class BuildResult(str, Enum):
    """Build status a condition may assign, ordered by severity."""

    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def combine(self, other: BuildResult) -> BuildResult:
        """Return the more severe of ``self`` and *other*."""
        return other if other.severity > self.severity else self

    @classmethod
    def worst(cls, results: list[BuildResult]) -> BuildResult:
        """Most severe result in *results*; SUCCESS for an empty list."""
        worst = cls.SUCCESS
        for result in results:
            worst = worst.combine(result)
        return worst


_SEVERITY: dict[BuildResult, int] = {
    BuildResult.SUCCESS: 0,
    BuildResult.UNSTABLE: 1,
    BuildResult.FAILURE: 2,
}


class AnalysisData(BaseModel):
    """Everything fetched from the hub for one build."""

    model_config = ConfigDict(frozen=True)

    hub_url: str = Field(..., description="Base URI of the hub the data came from.")
    active: AnalysisSnapshot = Field(..., description="Analysis filtered to active warnings.")
    new: AnalysisSnapshot = Field(..., description="Analysis filtered to new warnings.")
    metrics: MetricsSnapshot
    procedures: ProceduresSnapshot

    @property
    def analysis_id(self) -> str:
        return self.active.analysis_id


class ConditionVerdict(BaseModel):
    """Outcome of one condition for one build."""

    model_config = ConfigDict(frozen=True)

    condition: str = Field(..., description="Display name of the condition.")
    result: BuildResult
    description: str = Field(default="", description="Audit text with threshold and observed values.")


class BuildOutcome(BaseModel):
    """Aggregate of all verdicts for a build plus the data they were based on."""

    build_id: str = Field(default="", description="Host build identifier, if known.")
    data: AnalysisData | None = Field(
        default=None,
        description="Fetched hub data; ``None`` when evaluation ran without current data.",
    )
    verdicts: list[ConditionVerdict] = Field(default_factory=list)
    result: BuildResult = BuildResult.SUCCESS
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def record(self, verdict: ConditionVerdict) -> None:
        """Append *verdict* and fold its result into :attr:`result`.

        The result only ever becomes more severe.
        """
        self.verdicts.append(verdict)
        self.result = self.result.combine(verdict.result)

    @property
    def condition_names_and_results(self) -> list[tuple[str, str]]:
        return [(v.condition, v.result.value) for v in self.verdicts]

    @property
    def hub_url(self) -> str | None:
        return self.data.hub_url if self.data is not None else None
