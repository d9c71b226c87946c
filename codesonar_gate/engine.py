"""Gate engine -- resolve, fetch, evaluate and aggregate for one build.

Two error policies apply:

* Resolve and fetch failures abort the whole evaluation.  No condition
  runs and the error propagates to the caller.
* Once data is fetched, a condition that crashes is isolated: its verdict
  becomes SUCCESS carrying the error text and the remaining conditions
  still run.  The one exception is :class:`DataUnavailableError`, which
  signals inconsistent hub data rather than a faulty rule and is fatal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from enum import Enum

from codesonar_gate.conditions.evaluate import evaluate
from codesonar_gate.conditions.models import ConditionConfig
from codesonar_gate.config import HubConfig
from codesonar_gate.errors import CodeSonarGateError, DataUnavailableError
from codesonar_gate.hub.client import HubClient
from codesonar_gate.hub.locator import AnalysisLocator
from codesonar_gate.hub.retry import RetryConfig, retry_with_backoff
from codesonar_gate.hub.services import AnalysisDataService
from codesonar_gate.models.analysis import VisibilityFilter
from codesonar_gate.models.outcome import (
    AnalysisData,
    BuildOutcome,
    BuildResult,
    ConditionVerdict,
)

logger = logging.getLogger(__name__)


class ConditionEvaluator:
    """Run an ordered list of conditions and fold their verdicts.

    Parameters
    ----------
    conditions:
        Conditions in configured order.  Verdicts are recorded in the same
        order.
    """

    def __init__(self, conditions: Sequence[ConditionConfig]) -> None:
        self._conditions = list(conditions)

    @property
    def conditions(self) -> list[ConditionConfig]:
        return list(self._conditions)

    def _evaluate_one(
        self,
        condition: ConditionConfig,
        current: AnalysisData | None,
        previous: AnalysisData | None,
    ) -> ConditionVerdict:
        try:
            return evaluate(condition, current, previous)
        except DataUnavailableError:
            raise
        except Exception as exc:
            logger.warning(
                "Condition '%s' raised an unhandled exception: %s",
                condition.display_name,
                exc,
                exc_info=True,
            )
            return ConditionVerdict(
                condition=condition.display_name,
                result=BuildResult.SUCCESS,
                description=f"Error evaluating condition: {exc}",
            )

    def run(self, outcome: BuildOutcome, previous: BuildOutcome | None = None) -> BuildOutcome:
        """Evaluate every condition against ``outcome.data`` and record verdicts."""
        previous_data = previous.data if previous is not None else None

        if not self._conditions:
            logger.info("No conditions configured; build result stays %s.", outcome.result.value)
            return outcome

        for condition in self._conditions:
            verdict = self._evaluate_one(condition, outcome.data, previous_data)
            outcome.record(verdict)
            logger.info("'%s' marked the build as %s", verdict.condition, verdict.result.value)

        return outcome


class PipelineStage(str, Enum):
    """Progress of one build evaluation."""

    INIT = "INIT"
    RESOLVE = "RESOLVE"
    FETCH = "FETCH"
    EVALUATE = "EVALUATE"
    AGGREGATE = "AGGREGATE"
    DONE = "DONE"
    RESOLVE_FAILED = "RESOLVE_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    EVALUATE_FAILED = "EVALUATE_FAILED"


class GatePipeline:
    """End-to-end evaluation of one build against the hub.

    Parameters
    ----------
    hub_config:
        Validated hub connection settings.
    conditions:
        Conditions in configured order.
    client:
        Optional hub client (tests inject one with a mock transport).  When
        omitted, a client is created per :meth:`run` and closed afterwards.
    retry:
        Optional retry policy for the fetch stage; network errors are
        retried, everything else aborts immediately.
    """

    def __init__(
        self,
        hub_config: HubConfig,
        conditions: Sequence[ConditionConfig],
        *,
        client: HubClient | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self._hub = hub_config
        self._evaluator = ConditionEvaluator(conditions)
        self._client = client
        self._retry = retry or RetryConfig()
        self.stage = PipelineStage.INIT

    def run(
        self,
        log_lines: Iterable[str],
        previous: BuildOutcome | None = None,
        *,
        build_id: str = "",
    ) -> BuildOutcome:
        """Evaluate the build whose log is *log_lines*.

        Raises
        ------
        CodeSonarGateError
            Resolving the analysis or fetching its data failed.
        DataUnavailableError
            A condition found the fetched data inconsistent; the stage is
            left at ``EVALUATE_FAILED``.
        """
        self.stage = PipelineStage.INIT
        if self._client is not None:
            return self._run(self._client, log_lines, previous, build_id)
        with HubClient(timeout=self._hub.request_timeout) as client:
            return self._run(client, log_lines, previous, build_id)

    def _run(
        self,
        client: HubClient,
        log_lines: Iterable[str],
        previous: BuildOutcome | None,
        build_id: str,
    ) -> BuildOutcome:
        base_uri = self._hub.base_uri

        self.stage = PipelineStage.RESOLVE
        try:
            if self._hub.credentials is not None:
                client.authenticate(
                    base_uri,
                    self._hub.credentials.username,
                    self._hub.credentials.password.get_secret_value(),
                )
            analysis_url = AnalysisLocator(client).resolve(log_lines, base_uri, self._hub.project_name)
        except CodeSonarGateError as exc:
            self.stage = PipelineStage.RESOLVE_FAILED
            logger.error("Could not resolve analysis: %s", exc)
            raise
        logger.info("Evaluating analysis %s", analysis_url)

        self.stage = PipelineStage.FETCH
        service = AnalysisDataService(
            client,
            base_uri,
            filter_names={
                VisibilityFilter.ACTIVE: self._hub.active_filter,
                VisibilityFilter.NEW: self._hub.new_filter,
            },
        )
        try:
            data = retry_with_backoff(lambda: service.fetch_all(analysis_url), self._retry)
        except CodeSonarGateError as exc:
            self.stage = PipelineStage.FETCH_FAILED
            logger.error("Could not fetch analysis data: %s", exc)
            raise

        self.stage = PipelineStage.EVALUATE
        outcome = BuildOutcome(build_id=build_id, data=data)
        try:
            self._evaluator.run(outcome, previous)
        except DataUnavailableError as exc:
            self.stage = PipelineStage.EVALUATE_FAILED
            logger.error("Could not evaluate analysis %s: %s", data.analysis_id, exc)
            raise

        self.stage = PipelineStage.AGGREGATE
        logger.info(
            "Build %s marked as %s by %d condition(s)",
            build_id or "<unnamed>",
            outcome.result.value,
            len(outcome.verdicts),
        )

        self.stage = PipelineStage.DONE
        return outcome
