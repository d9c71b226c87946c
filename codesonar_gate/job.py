"""Job configuration: hub connection plus the ordered condition list.

A job file is TOML::

    [hub]
    protocol = "https"
    hub_address = "${CODESONAR_HOST}"
    hub_port = 7340
    project_name = "firmware"

    [[conditions]]
    kind = "cyclomaticComplexity"
    max_cyclomatic_complexity = 25
    warranted_result = "FAILURE"

Placeholders are expanded from the environment, then the ``[hub]`` table
is layered over the ``CODESONAR_*`` settings so that secrets such as the
password can stay out of the file.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from codesonar_gate.conditions.models import ConditionConfig, validate_conditions
from codesonar_gate.config import (
    ConfigValidation,
    FieldError,
    HubConfig,
    Settings,
    expand_placeholders,
    validate_hub_config,
)
from codesonar_gate.errors import ConfigError

logger = logging.getLogger(__name__)


class JobConfig(BaseModel):
    """Validated configuration of one gated job."""

    model_config = ConfigDict(frozen=True)

    hub: HubConfig
    conditions: list[ConditionConfig] = Field(default_factory=list)


def read_job_file(path: Path) -> dict[str, Any]:
    """Parse the TOML job file at *path*."""
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Job file not found: {path}") from exc
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Cannot read job file {path}: {exc}") from exc


def validate_job(
    raw: Mapping[str, Any],
    settings: Settings | None = None,
    env: Mapping[str, str] | None = None,
) -> ConfigValidation:
    """Validate a parsed job document; ``config`` is a :class:`JobConfig` when ok."""
    expanded = expand_placeholders(dict(raw), env)

    hub_raw: dict[str, Any] = settings.hub_fields() if settings is not None else {}
    hub_table = expanded.get("hub", {})
    if not isinstance(hub_table, dict):
        return ConfigValidation(errors=[FieldError(field="hub", message="Must be a table.")])
    hub_raw.update(hub_table)

    conditions_raw = expanded.get("conditions", [])
    if not isinstance(conditions_raw, list) or not all(isinstance(c, dict) for c in conditions_raw):
        return ConfigValidation(
            errors=[FieldError(field="conditions", message="Must be an array of tables.")]
        )

    hub_result = validate_hub_config(hub_raw)
    condition_result = validate_conditions(conditions_raw)
    errors = [
        *(FieldError(field=f"hub.{e.field}", message=e.message) for e in hub_result.errors),
        *condition_result.errors,
    ]
    if errors:
        return ConfigValidation(errors=errors)
    return ConfigValidation(config=JobConfig(hub=hub_result.config, conditions=condition_result.config))


def load_job(
    path: Path,
    settings: Settings | None = None,
    env: Mapping[str, str] | None = None,
) -> JobConfig:
    """Read and validate a job file, raising :class:`ConfigError` on any problem."""
    validation = validate_job(read_job_file(path), settings, env)
    if not validation.ok:
        raise ConfigError(f"Invalid job configuration in {path}: {validation.summary()}")
    job: JobConfig = validation.config
    logger.debug("Loaded job %s with %d condition(s)", path, len(job.conditions))
    return job
