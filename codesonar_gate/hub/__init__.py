"""Access to the CodeSonar hub: session client, analysis lookup and data fetch."""

from __future__ import annotations

from codesonar_gate.hub.client import HubClient
from codesonar_gate.hub.locator import AnalysisLocator
from codesonar_gate.hub.retry import RetryConfig, retry_with_backoff
from codesonar_gate.hub.services import AnalysisDataService

__all__ = [
    "AnalysisDataService",
    "AnalysisLocator",
    "HubClient",
    "RetryConfig",
    "retry_with_backoff",
]
