"""Decoders for the XML documents served by the hub.

Each decoder turns response text into an immutable snapshot model and
raises :class:`~codesonar_gate.errors.DataUnavailableError` when the
document is not well-formed or lacks an element the model requires.
Unknown elements are ignored.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from pydantic import ValidationError

from codesonar_gate.errors import DataUnavailableError
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

logger = logging.getLogger(__name__)

CYCLOMATIC_COMPLEXITY_METRIC = "cyclomatic complexity"


def _parse(text: str, what: str) -> ET.Element:
    if not text or not text.strip():
        raise DataUnavailableError(f"Empty {what} response.")
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        raise DataUnavailableError(f"Malformed {what} response: {exc}") from exc


def _text(element: ET.Element, tag: str, default: str = "") -> str:
    child = element.find(tag)
    if child is None or child.text is None:
        return default
    return child.text.strip()


def _int(value: str, what: str) -> int:
    try:
        return int(float(value)) if value else 0
    except (ValueError, OverflowError) as exc:
        raise DataUnavailableError(f"Non-numeric {what}: {value!r}") from exc


def decode_analysis(
    text: str,
    *,
    url: str = "",
    visibility_filter: VisibilityFilter = VisibilityFilter.ACTIVE,
) -> AnalysisSnapshot:
    """Decode an ``<analysis>`` document into an :class:`AnalysisSnapshot`."""
    root = _parse(text, "analysis")
    if root.tag != "analysis":
        raise DataUnavailableError(f"Expected <analysis> document, got <{root.tag}>.")

    analysis_id = _text(root, "analysis_id")
    if not analysis_id:
        raise DataUnavailableError(f"Analysis document from {url or '<unknown>'} has no analysis_id.")

    try:
        warnings = [
            HubWarning(
                warning_id=_text(node, "id") or node.get("id", ""),
                score=_int(_text(node, "score"), "warning score"),
                warning_class=_text(node, "class"),
                file=_text(node, "file"),
                line_number=_int(_text(node, "line_number"), "line number"),
                procedure=_text(node, "procedure"),
                url=node.get("url", ""),
            )
            for node in root.iter("warning")
        ]
    except ValidationError as exc:
        raise DataUnavailableError(f"Invalid warning in analysis {analysis_id}: {exc}") from exc

    alerts: list[Alert] = []
    for node in root.iter("alert"):
        colour = node.get("color", "").upper()
        try:
            level = AlertLevel(colour)
        except ValueError:
            logger.debug("Ignoring alert with unknown colour %r", colour)
            continue
        alerts.append(Alert(level=level, message=(node.text or "").strip()))

    return AnalysisSnapshot(
        analysis_id=analysis_id,
        analysis_url=url,
        name=_text(root, "name"),
        visibility_filter=visibility_filter,
        warnings=tuple(warnings),
        alerts=tuple(alerts),
    )


def decode_metrics(text: str, analysis_id: str) -> MetricsSnapshot:
    """Decode a ``<metrics>`` document of ``<metric name=... value=...>`` rows."""
    root = _parse(text, "metrics")
    if root.tag != "metrics":
        raise DataUnavailableError(f"Expected <metrics> document, got <{root.tag}>.")

    values: dict[str, float] = {}
    for node in root.iter("metric"):
        name = node.get("name", "").strip()
        raw = node.get("value", node.text or "").strip()
        if not name:
            continue
        try:
            values[name] = float(raw)
        except ValueError as exc:
            raise DataUnavailableError(f"Non-numeric value for metric {name!r}: {raw!r}") from exc

    return MetricsSnapshot(analysis_id=analysis_id, values=values)


def decode_procedures(text: str, analysis_id: str) -> ProceduresSnapshot:
    """Decode a ``<procedures>`` document of ``<procedure_row>`` entries."""
    root = _parse(text, "procedures")
    if root.tag != "procedures":
        raise DataUnavailableError(f"Expected <procedures> document, got <{root.tag}>.")

    procedures: list[ProcedureMetric] = []
    for row in root.iter("procedure_row"):
        complexity = 0
        for metric in row.iter("metric"):
            if metric.get("name", "").strip().lower() == CYCLOMATIC_COMPLEXITY_METRIC:
                complexity = _int((metric.text or "").strip(), "cyclomatic complexity")
                break
        try:
            procedures.append(
                ProcedureMetric(procedure=_text(row, "procedure"), cyclomatic_complexity=complexity)
            )
        except ValidationError as exc:
            raise DataUnavailableError(f"Invalid procedure row in analysis {analysis_id}: {exc}") from exc

    return ProceduresSnapshot(analysis_id=analysis_id, procedures=tuple(procedures))


def decode_project_search(text: str, project_name: str) -> str | None:
    """Return the latest-analysis URL of *project_name* from a project search.

    The URL is returned as served (usually hub-relative); ``None`` when no
    project of that exact name is listed.
    """
    root = _parse(text, "project search")
    for project in root.iter("project"):
        if _text(project, "name") == project_name:
            return _text(project, "url") or None
    return None
