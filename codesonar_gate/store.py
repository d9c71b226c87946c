"""File-backed persistence of build outcomes.

Each evaluated build is written as ``<build_id>.json``; the most recently
written outcome serves as the ``previous`` baseline for the next build.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pydantic import ValidationError

from codesonar_gate.errors import DataUnavailableError
from codesonar_gate.models.outcome import BuildOutcome

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def load_outcome(path: Path) -> BuildOutcome | None:
    """Load an outcome from *path*; ``None`` if the file does not exist.

    Raises
    ------
    DataUnavailableError
        The file exists but does not hold a valid outcome.
    """
    if not path.exists():
        return None
    try:
        return BuildOutcome.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        raise DataUnavailableError(f"Cannot read stored outcome {path}: {exc}") from exc


class OutcomeStore:
    """Directory of persisted :class:`BuildOutcome` documents."""

    def __init__(self, directory: Path) -> None:
        self._dir = directory

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, build_id: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", build_id) or "build"
        return self._dir / f"{safe}.json"

    def save(self, outcome: BuildOutcome) -> Path:
        """Write *outcome* and return the file it was written to."""
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(outcome.build_id)
        path.write_text(outcome.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Stored outcome for build %s at %s", outcome.build_id, path)
        return path

    def latest(self) -> BuildOutcome | None:
        """Return the most recently evaluated stored outcome, if any.

        Unreadable files are skipped with a warning.
        """
        if not self._dir.is_dir():
            return None
        stored: list[BuildOutcome] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                outcome = load_outcome(path)
            except DataUnavailableError as exc:
                logger.warning("Skipping unreadable stored outcome: %s", exc)
                continue
            if outcome is not None:
                stored.append(outcome)
        if not stored:
            return None
        return max(stored, key=lambda o: o.evaluated_at)
