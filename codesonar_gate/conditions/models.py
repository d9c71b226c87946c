"""Condition configurations as a closed, tagged set of variants.

Each variant is a frozen model discriminated by its ``kind`` tag, which
is also the key used in job files::

    [[conditions]]
    kind = "redAlerts"
    alert_limit = 0
    warranted_result = "FAILURE"

The variant set is fixed; :mod:`codesonar_gate.conditions.evaluate`
holds exactly one evaluator per variant.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from codesonar_gate.config import ConfigValidation, FieldError, field_errors_from
from codesonar_gate.errors import ConfigError
from codesonar_gate.models.outcome import BuildResult


class _Condition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    display_name: ClassVar[str]

    warranted_result: BuildResult = Field(
        default=BuildResult.UNSTABLE,
        description="Build result assigned when the condition triggers.",
    )


class RedAlertLimitCondition(_Condition):
    display_name: ClassVar[str] = "Red alerts"

    kind: Literal["redAlerts"] = "redAlerts"
    alert_limit: int = Field(default=1, ge=0)


class YellowAlertLimitCondition(_Condition):
    display_name: ClassVar[str] = "Yellow alerts"

    kind: Literal["yellowAlerts"] = "yellowAlerts"
    alert_limit: int = Field(default=1, ge=0)


class NewWarningsIncreasedByPercentageCondition(_Condition):
    display_name: ClassVar[str] = "Warning count increase: new only"

    kind: Literal["warningCountIncreaseNewOnly"] = "warningCountIncreaseNewOnly"
    percentage: float = Field(default=5.0, ge=0.0)


class WarningCountIncreaseSpecifiedScoreAndHigherCondition(_Condition):
    display_name: ClassVar[str] = "Warning count increase: specified score and higher"

    kind: Literal["warningCountIncreaseSpecifiedScoreAndHigher"] = "warningCountIncreaseSpecifiedScoreAndHigher"
    rank_of_warnings: int = Field(default=30, ge=0)
    warning_percentage: float = Field(default=5.0, ge=0.0)


class ProcedureCyclomaticComplexityExceededCondition(_Condition):
    display_name: ClassVar[str] = "Cyclomatic complexity"

    kind: Literal["cyclomaticComplexity"] = "cyclomaticComplexity"
    max_cyclomatic_complexity: int = Field(default=30, ge=0)


class WarningCountIncreaseOverallCondition(_Condition):
    display_name: ClassVar[str] = "Warning count increase: overall"

    kind: Literal["warningCountIncreaseOverall"] = "warningCountIncreaseOverall"
    percentage: float = Field(default=5.0, ge=0.0)


class WarningCountAbsoluteSpecifiedScoreAndHigherCondition(_Condition):
    display_name: ClassVar[str] = "Warning count absolute: specified score and higher"

    kind: Literal["warningCountAbsoluteSpecifiedScoreAndHigher"] = "warningCountAbsoluteSpecifiedScoreAndHigher"
    rank_of_warnings: int = Field(default=30, ge=0)
    warning_count_threshold: int = Field(default=20, ge=0)


CONDITION_TYPES: tuple[type[_Condition], ...] = (
    RedAlertLimitCondition,
    YellowAlertLimitCondition,
    NewWarningsIncreasedByPercentageCondition,
    WarningCountIncreaseSpecifiedScoreAndHigherCondition,
    ProcedureCyclomaticComplexityExceededCondition,
    WarningCountIncreaseOverallCondition,
    WarningCountAbsoluteSpecifiedScoreAndHigherCondition,
)

ConditionConfig = Annotated[
    Union[  # noqa: UP007
        RedAlertLimitCondition,
        YellowAlertLimitCondition,
        NewWarningsIncreasedByPercentageCondition,
        WarningCountIncreaseSpecifiedScoreAndHigherCondition,
        ProcedureCyclomaticComplexityExceededCondition,
        WarningCountIncreaseOverallCondition,
        WarningCountAbsoluteSpecifiedScoreAndHigherCondition,
    ],
    Field(discriminator="kind"),
]

_ADAPTER: TypeAdapter[Any] = TypeAdapter(ConditionConfig)

CONDITION_KINDS: tuple[str, ...] = tuple(
    cls.model_fields["kind"].default for cls in CONDITION_TYPES
)


def parse_condition(raw: Mapping[str, Any]) -> ConditionConfig:
    """Validate one raw condition mapping; raises ``ValidationError``."""
    return _ADAPTER.validate_python(dict(raw))


def validate_conditions(raw_conditions: Iterable[Mapping[str, Any]]) -> ConfigValidation:
    """Validate an ordered list of raw condition mappings.

    Every invalid entry is reported with a ``conditions[<index>]`` prefix;
    on success ``config`` holds the parsed conditions in input order.
    """
    parsed: list[ConditionConfig] = []
    errors: list[FieldError] = []
    for index, raw in enumerate(raw_conditions):
        prefix = f"conditions[{index}]"
        if "kind" not in raw:
            errors.append(
                FieldError(field=f"{prefix}.kind", message=f"Missing kind; expected one of {', '.join(CONDITION_KINDS)}.")
            )
            continue
        try:
            parsed.append(parse_condition(raw))
        except ValidationError as exc:
            errors.extend(field_errors_from(exc, prefix))
    if errors:
        return ConfigValidation(errors=errors)
    return ConfigValidation(config=parsed)


def require_valid_conditions(raw_conditions: Iterable[Mapping[str, Any]]) -> list[ConditionConfig]:
    """Like :func:`validate_conditions` but raise :class:`ConfigError` on failure."""
    validation = validate_conditions(raw_conditions)
    if not validation.ok:
        raise ConfigError(f"Invalid condition configuration: {validation.summary()}")
    return validation.config
