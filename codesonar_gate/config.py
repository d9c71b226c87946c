"""Gate configuration loaded from environment variables or a job file.

:class:`Settings` reads ``CODESONAR_*`` variables (and an optional
``.env`` file).  :class:`HubConfig` is the validated, immutable view the
pipeline works with; it is only ever built through
:func:`validate_hub_config` so that a misconfigured job aborts before any
request reaches the hub.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from codesonar_gate.errors import ConfigError

logger = logging.getLogger(__name__)


class Protocol(str, Enum):
    HTTP = "http"
    HTTPS = "https"


class Settings(BaseSettings):
    """Gate settings loaded from environment variables with CODESONAR_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="CODESONAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Hub
    protocol: str = "http"
    hub_address: str = ""
    hub_port: str = ""
    project_name: str = ""

    # Credentials (optional; anonymous access when unset)
    username: str | None = None
    password: SecretStr | None = None

    # Requests
    request_timeout: float = 30.0
    active_filter: str = "active"
    new_filter: str = "new"

    # Logging
    log_level: str = "INFO"
    structured_logging: bool = False

    # Outcome persistence
    outcome_dir: Path = Path(".codesonar")

    @field_validator("password", mode="before")
    @classmethod
    def mask_password_in_repr(cls, v: str | None) -> SecretStr | None:
        if v is None or v == "":
            return None
        if isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    def hub_fields(self) -> dict[str, Any]:
        """Return the subset of settings that describe the hub connection."""
        fields: dict[str, Any] = {
            "protocol": self.protocol,
            "hub_address": self.hub_address,
            "hub_port": self.hub_port,
            "project_name": self.project_name,
            "request_timeout": self.request_timeout,
            "active_filter": self.active_filter,
            "new_filter": self.new_filter,
        }
        if self.username:
            fields["username"] = self.username
        if self.password is not None:
            fields["password"] = self.password.get_secret_value()
        return fields


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]
    logger.debug("Loaded settings for hub %r", settings.hub_address)
    return settings


# ---------------------------------------------------------------------------
# Validated hub configuration
# ---------------------------------------------------------------------------


class CredentialConfig(BaseModel):
    """Username/password pair used to open a hub session."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(..., min_length=1)
    password: SecretStr


class HubConfig(BaseModel):
    """Immutable, validated hub connection settings."""

    model_config = ConfigDict(frozen=True)

    protocol: Protocol = Protocol.HTTP
    hub_address: str = Field(..., min_length=1)
    hub_port: int = Field(..., ge=1, le=65535)
    project_name: str = Field(..., min_length=1)
    credentials: CredentialConfig | None = None
    request_timeout: float = Field(default=30.0, gt=0.0)
    active_filter: str = Field(default="active", min_length=1)
    new_filter: str = Field(default="new", min_length=1)

    @property
    def base_uri(self) -> str:
        return f"{self.protocol.value}://{self.hub_address}:{self.hub_port}"

    @classmethod
    def from_settings(cls, settings: Settings) -> HubConfig:
        """Build a :class:`HubConfig` from *settings*, raising on invalid input."""
        return require_valid_hub_config(settings.hub_fields())


class FieldError(BaseModel):
    """A validation problem tied to one configuration field."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ConfigValidation(BaseModel):
    """Result of validating a configuration mapping."""

    errors: list[FieldError] = Field(default_factory=list)
    config: Any = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        return "; ".join(f"{e.field}: {e.message}" for e in self.errors)


_REQUIRED_MESSAGES = {
    "hub_address": "Hub address cannot be empty.",
    "hub_port": "Hub port cannot be empty.",
    "project_name": "Project name cannot be empty.",
}


def field_errors_from(exc: ValidationError, prefix: str = "") -> list[FieldError]:
    """Flatten a pydantic :class:`ValidationError` into :class:`FieldError` items."""
    errors: list[FieldError] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        if prefix:
            loc = f"{prefix}.{loc}" if loc else prefix
        errors.append(FieldError(field=loc, message=err["msg"]))
    return errors


_PLACEHOLDER_RE = re.compile(r"\$\{(\w+)\}|\$(\w+)")


def expand_placeholders(value: Any, env: Mapping[str, str] | None = None) -> Any:
    """Expand ``$VAR`` / ``${VAR}`` placeholders in strings, recursively.

    Unknown variables are left untouched.
    """
    env = os.environ if env is None else env
    if isinstance(value, str):

        def _sub(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2)
            return env.get(name, match.group(0))

        return _PLACEHOLDER_RE.sub(_sub, value)
    if isinstance(value, dict):
        return {k: expand_placeholders(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_placeholders(v, env) for v in value]
    return value


def validate_hub_config(raw: Mapping[str, Any]) -> ConfigValidation:
    """Validate a raw hub mapping and return field-level errors.

    Blank required fields are reported with fixed messages; every other
    problem comes from the :class:`HubConfig` schema.
    """
    data = {k: v.strip() if isinstance(v, str) else v for k, v in raw.items()}

    errors = [
        FieldError(field=name, message=message)
        for name, message in _REQUIRED_MESSAGES.items()
        if data.get(name) in (None, "")
    ]
    if errors:
        return ConfigValidation(errors=errors)

    username = data.pop("username", None)
    password = data.pop("password", None)
    if username:
        data["credentials"] = {"username": username, "password": password or ""}

    try:
        config = HubConfig.model_validate(data)
    except ValidationError as exc:
        return ConfigValidation(errors=field_errors_from(exc))
    return ConfigValidation(config=config)


def require_valid_hub_config(raw: Mapping[str, Any]) -> HubConfig:
    """Like :func:`validate_hub_config` but raise :class:`ConfigError` on failure."""
    validation = validate_hub_config(raw)
    if not validation.ok:
        raise ConfigError(f"Invalid hub configuration: {validation.summary()}")
    return validation.config
