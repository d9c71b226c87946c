"""Fetch analysis, metrics and procedure data for one analysis.

Every method issues exactly one request and decodes the response; none
retries internally.  All of them are idempotent, so a caller may wrap
them in :func:`~codesonar_gate.hub.retry.retry_with_backoff`.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from codesonar_gate.hub.client import HubClient
from codesonar_gate.hub.xml_codec import decode_analysis, decode_metrics, decode_procedures
from codesonar_gate.models.analysis import (
    AnalysisSnapshot,
    MetricsSnapshot,
    ProceduresSnapshot,
    VisibilityFilter,
)
from codesonar_gate.models.outcome import AnalysisData

logger = logging.getLogger(__name__)

DEFAULT_FILTER_NAMES: dict[VisibilityFilter, str] = {
    VisibilityFilter.ACTIVE: "active",
    VisibilityFilter.NEW: "new",
}


def with_filter(analysis_url: str, filter_value: str) -> str:
    """Append ``filter=<filter_value>`` to *analysis_url*."""
    separator = "&" if "?" in analysis_url else "?"
    return f"{analysis_url}{separator}{urlencode({'filter': filter_value})}"


class AnalysisDataService:
    """Hub data access for a single hub base URI.

    Parameters
    ----------
    client:
        Session-holding hub client.
    base_uri:
        ``<protocol>://<host>:<port>`` of the hub; metrics and procedure
        documents are addressed relative to it.
    filter_names:
        Hub-side names of the visibility filters.  Defaults to
        ``active`` / ``new``.
    """

    def __init__(
        self,
        client: HubClient,
        base_uri: str,
        filter_names: dict[VisibilityFilter, str] | None = None,
    ) -> None:
        self._client = client
        self._base_uri = base_uri.rstrip("/")
        self._filter_names = {**DEFAULT_FILTER_NAMES, **(filter_names or {})}

    @property
    def base_uri(self) -> str:
        return self._base_uri

    def metrics_url(self, analysis_id: str) -> str:
        return f"{self._base_uri}/metrics/{analysis_id}.xml"

    def procedures_url(self, analysis_id: str) -> str:
        return f"{self._base_uri}/analysis/{analysis_id}-procedures.xml"

    def fetch_analysis(self, analysis_url: str, visibility_filter: VisibilityFilter) -> AnalysisSnapshot:
        """Fetch *analysis_url* restricted to *visibility_filter*."""
        url = with_filter(analysis_url, self._filter_names[visibility_filter])
        body = self._client.fetch_text(url)
        snapshot = decode_analysis(body, url=analysis_url, visibility_filter=visibility_filter)
        logger.debug(
            "Analysis %s (%s): %d warning(s), %d alert(s)",
            snapshot.analysis_id,
            visibility_filter.value,
            snapshot.warning_count,
            len(snapshot.alerts),
        )
        return snapshot

    def fetch_metrics(self, analysis_id: str) -> MetricsSnapshot:
        body = self._client.fetch_text(self.metrics_url(analysis_id))
        return decode_metrics(body, analysis_id)

    def fetch_procedures(self, analysis_id: str) -> ProceduresSnapshot:
        body = self._client.fetch_text(self.procedures_url(analysis_id))
        return decode_procedures(body, analysis_id)

    def fetch_all(self, analysis_url: str) -> AnalysisData:
        """Fetch everything the conditions need for one build.

        The active snapshot is fetched first because it supplies the
        analysis id the metric and procedure documents are keyed by.  The
        first failure aborts the whole fetch.
        """
        active = self.fetch_analysis(analysis_url, VisibilityFilter.ACTIVE)
        metrics = self.fetch_metrics(active.analysis_id)
        procedures = self.fetch_procedures(active.analysis_id)
        new = self.fetch_analysis(analysis_url, VisibilityFilter.NEW)
        return AnalysisData(
            hub_url=self._base_uri,
            active=active,
            new=new,
            metrics=metrics,
            procedures=procedures,
        )
