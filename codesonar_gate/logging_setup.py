"""Logging configuration for the gate.

Plain text is the default.  With structured logging enabled each record
becomes a single-line JSON object so CI log collectors can index
condition verdicts without regex parsing::

    {
        "timestamp": "2026-05-15T12:34:56.789012+00:00",
        "level": "INFO",
        "logger": "codesonar_gate.engine",
        "message": "'Red alerts' marked the build as UNSTABLE",
        "exc_info": "Traceback ..."  // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"
_EXTRA_FIELDS = ("analysis_url", "condition", "build_id")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(level: str | int = "INFO", *, structured: bool = False) -> None:
    """Install a single stderr handler on the ``codesonar_gate`` logger."""
    logger = logging.getLogger("codesonar_gate")
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
