"""Resolve which hub analysis belongs to the current build.

An analysis URL printed into the build log always wins, so a build can
pin itself to a specific analysis.  Only when the log has none is the hub
asked for the most recent analysis of the configured project.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlencode, urljoin

from codesonar_gate.errors import AnalysisNotFoundError, DataUnavailableError
from codesonar_gate.hub.client import HubClient
from codesonar_gate.hub.xml_codec import decode_project_search

logger = logging.getLogger(__name__)

_ANALYSIS_URL_RE = re.compile(
    r"(?P<base>https?://[^\s'\"<>]+?/analysis/(?P<id>\d+))(?:\.(?:html|xml))?(?=[\s'\"<>?#.,;)]|$)"
)


def normalize_analysis_url(url: str) -> str:
    """Return the XML document URL for an analysis page URL.

    ``http://hub:7340/analysis/42.html`` becomes
    ``http://hub:7340/analysis/42.xml``.  URLs that do not look like an
    analysis are returned unchanged.
    """
    match = _ANALYSIS_URL_RE.search(url)
    if match is None:
        return url
    return f"{match.group('base')}.xml"


def analysis_id_from_url(url: str) -> str | None:
    match = _ANALYSIS_URL_RE.search(url)
    return match.group("id") if match else None


class AnalysisLocator:
    """Find the analysis URL to evaluate for a build."""

    def __init__(self, client: HubClient) -> None:
        self._client = client

    @staticmethod
    def locate_from_log(log_lines: Iterable[str]) -> str | None:
        """Return the first hub analysis URL found in *log_lines*, if any."""
        for line in log_lines:
            match = _ANALYSIS_URL_RE.search(line)
            if match is not None:
                url = f"{match.group('base')}.xml"
                logger.debug("Found analysis URL in build log: %s", url)
                return url
        return None

    def locate_latest_for_project(self, base_uri: str, project_name: str) -> str:
        """Ask the hub for the most recent analysis of *project_name*.

        Raises
        ------
        AnalysisNotFoundError
            The project is unknown to the hub, has no analyses, or the
            search response cannot be parsed.
        """
        query = urlencode({"query": f'project="{project_name}"', "scope": "all"})
        url = f"{base_uri.rstrip('/')}/project_search.xml?{query}"
        body = self._client.fetch_text(url)

        try:
            project_url = decode_project_search(body, project_name)
        except DataUnavailableError as exc:
            raise AnalysisNotFoundError(
                f"Could not read project search results for '{project_name}': {exc}"
            ) from exc

        if project_url is None:
            raise AnalysisNotFoundError(f"No analysis found for project '{project_name}'.")

        resolved = normalize_analysis_url(urljoin(base_uri.rstrip("/") + "/", project_url))
        logger.info("Latest analysis for project '%s': %s", project_name, resolved)
        return resolved

    def resolve(self, log_lines: Iterable[str], base_uri: str, project_name: str) -> str:
        """Prefer the log-embedded analysis URL, else the project's latest."""
        url = self.locate_from_log(log_lines)
        if url is not None:
            return url
        return self.locate_latest_for_project(base_uri, project_name)
