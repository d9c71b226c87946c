"""Shared fixtures for gate tests.

``FakeHub`` serves canned XML documents through ``httpx.MockTransport``
so that every HTTP interaction is deterministic and recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

import httpx
import pytest

from codesonar_gate.config import HubConfig
from codesonar_gate.hub.client import HubClient
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
from codesonar_gate.models.outcome import AnalysisData

HUB = "http://hub.example:7340"

# ---------------------------------------------------------------------------
# XML document builders
# ---------------------------------------------------------------------------


def analysis_xml(
    analysis_id: str = "42",
    scores: Sequence[int] = (),
    alerts: Sequence[str] = (),
    name: str = "nightly",
) -> str:
    warnings = "".join(
        f'<warning url="/warning/{i}.html"><id>{i}</id><score>{s}</score>'
        f"<class>Buffer Overrun</class><file>src/main.c</file>"
        f"<line_number>{10 + i}</line_number><procedure>main</procedure></warning>"
        for i, s in enumerate(scores, start=1)
    )
    alert_nodes = "".join(f'<alert color="{c}">alert {c}</alert>' for c in alerts)
    return (
        f"<analysis><analysis_id>{analysis_id}</analysis_id><name>{name}</name>"
        f"<alerts>{alert_nodes}</alerts>{warnings}</analysis>"
    )


def metrics_xml(values: dict[str, float] | None = None) -> str:
    rows = "".join(f'<metric name="{k}" value="{v}"/>' for k, v in (values or {}).items())
    return f"<metrics>{rows}</metrics>"


def procedures_xml(rows: Iterable[tuple[str, int]] = ()) -> str:
    body = "".join(
        f"<procedure_row><procedure>{name}</procedure>"
        f'<metric name="Lines with Code">12</metric>'
        f'<metric name="Cyclomatic Complexity">{cc}</metric></procedure_row>'
        for name, cc in rows
    )
    return f"<procedures>{body}</procedures>"


def project_search_xml(projects: Iterable[tuple[str, str]] = ()) -> str:
    body = "".join(f"<project><name>{n}</name><url>{u}</url></project>" for n, u in projects)
    return f"<projects>{body}</projects>"


# ---------------------------------------------------------------------------
# Fake hub
# ---------------------------------------------------------------------------


class FakeHub:
    """Route table of ``(path, filter) -> (status, body)`` served via MockTransport."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str | None], tuple[int, str]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: str, *, status: int = 200, filter: str | None = None) -> None:  # noqa: A002
        self.routes[(path, filter)] = (status, body)

    def serve_analysis(
        self,
        analysis_id: str = "42",
        *,
        active_scores: Sequence[int] = (),
        new_scores: Sequence[int] = (),
        alerts: Sequence[str] = (),
        procedures: Iterable[tuple[str, int]] = (("main", 5),),
    ) -> str:
        """Register every document for one analysis; return its XML URL."""
        path = f"/analysis/{analysis_id}.xml"
        self.add(path, analysis_xml(analysis_id, active_scores, alerts), filter="active")
        self.add(path, analysis_xml(analysis_id, new_scores, alerts), filter="new")
        self.add(f"/metrics/{analysis_id}.xml", metrics_xml({"Lines with Code": 1200}))
        self.add(f"/analysis/{analysis_id}-procedures.xml", procedures_xml(procedures))
        return f"{HUB}{path}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.url.path, request.url.params.get("filter"))
        route = self.routes.get(key) or self.routes.get((request.url.path, None))
        if route is None:
            return httpx.Response(404, text="not found")
        status, body = route
        return httpx.Response(status, text=body)

    def client(self) -> HubClient:
        return HubClient(http_client=httpx.Client(transport=httpx.MockTransport(self.handler)))

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture(autouse=True)
def _reset_gate_logger() -> Iterator[None]:
    """Undo handler and level changes made by ``configure_logging``."""
    logger = logging.getLogger("codesonar_gate")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def fake_hub() -> FakeHub:
    return FakeHub()


@pytest.fixture
def hub_config() -> HubConfig:
    return HubConfig(hub_address="hub.example", hub_port=7340, project_name="firmware")


# ---------------------------------------------------------------------------
# In-memory analysis data
# ---------------------------------------------------------------------------


def make_snapshot(
    scores: Sequence[int] = (),
    *,
    analysis_id: str = "42",
    alerts: Sequence[AlertLevel] = (),
    visibility_filter: VisibilityFilter = VisibilityFilter.ACTIVE,
) -> AnalysisSnapshot:
    return AnalysisSnapshot(
        analysis_id=analysis_id,
        visibility_filter=visibility_filter,
        warnings=tuple(HubWarning(warning_id=str(i), score=s) for i, s in enumerate(scores, start=1)),
        alerts=tuple(Alert(level=level) for level in alerts),
    )


def make_data(
    active_scores: Sequence[int] = (),
    new_scores: Sequence[int] = (),
    *,
    alerts: Sequence[AlertLevel] = (),
    procedures: Sequence[tuple[str, int]] = (("main", 5),),
    analysis_id: str = "42",
) -> AnalysisData:
    return AnalysisData(
        hub_url=HUB,
        active=make_snapshot(active_scores, analysis_id=analysis_id, alerts=alerts),
        new=make_snapshot(
            new_scores,
            analysis_id=analysis_id,
            alerts=alerts,
            visibility_filter=VisibilityFilter.NEW,
        ),
        metrics=MetricsSnapshot(analysis_id=analysis_id, values={"Lines with Code": 1200.0}),
        procedures=ProceduresSnapshot(
            analysis_id=analysis_id,
            procedures=tuple(ProcedureMetric(procedure=n, cyclomatic_complexity=c) for n, c in procedures),
        ),
    )
