"""Caller-side retry for hub fetches, with exponential backoff and jitter.

Hub reads never retry on their own.  A caller that wants resilience
against transient network failures wraps the fetch stage in
:func:`retry_with_backoff`; authentication and data errors are never
retried because repeating the request cannot fix them.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from codesonar_gate.errors import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig(BaseModel):
    """Tuneable parameters for retry behaviour."""

    max_retries: int = Field(
        default=0,
        ge=0,
        description="Retry attempts after the first call; 0 disables retrying.",
    )
    base_delay: float = Field(
        default=1.0,
        gt=0.0,
        description="Base delay in seconds for exponential backoff.",
    )
    max_delay: float = Field(
        default=30.0,
        gt=0.0,
        description="Upper bound on delay in seconds.",
    )
    jitter: bool = Field(
        default=True,
        description="When enabled, randomise the delay within [0.5x, 1.5x].",
    )


def compute_delay(attempt: int, config: RetryConfig) -> float:
    """Return the backoff delay before retry number *attempt* (0-based)."""
    delay: float = min(config.base_delay * (2**attempt), config.max_delay)
    if config.jitter:
        delay *= random.uniform(0.5, 1.5)  # noqa: S311
    return delay


def retry_with_backoff(
    fn: Callable[[], T],
    config: RetryConfig,
    retryable_exceptions: tuple[type[Exception], ...] = (NetworkError,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call *fn*, retrying on *retryable_exceptions* up to ``config.max_retries`` times.

    Any other exception propagates immediately.  After the last attempt the
    final exception is re-raised unchanged.
    """
    for attempt in range(config.max_retries + 1):
        try:
            return fn()
        except retryable_exceptions as exc:
            if attempt >= config.max_retries:
                raise
            delay = compute_delay(attempt, config)
            logger.warning(
                "Retry %d/%d after %.1fs: %s",
                attempt + 1,
                config.max_retries,
                delay,
                exc,
            )
            sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
