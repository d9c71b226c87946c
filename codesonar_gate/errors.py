"""Error taxonomy for the analysis gate.

Resolve and fetch failures are fatal to the whole build step and
propagate to the caller.  Failures inside a single condition are caught
by :class:`~codesonar_gate.engine.ConditionEvaluator` and never reach
this layer's callers.
"""

from __future__ import annotations


class CodeSonarGateError(Exception):
    """Base class for every error raised by the gate."""

    def __init__(self, message: str) -> None:
        super().__init__(f"[CodeSonar] {message}")


class ConfigError(CodeSonarGateError):
    """Hub address, port, project or a condition is misconfigured."""


class AuthError(CodeSonarGateError):
    """The hub rejected the supplied credentials or session."""


class NetworkError(CodeSonarGateError):
    """Connection failure, timeout or non-2xx response from the hub."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class AnalysisNotFoundError(CodeSonarGateError):
    """No analysis could be resolved for the configured project."""


class DataUnavailableError(CodeSonarGateError):
    """A payload was fetched but is unparsable, or expected data is missing."""
