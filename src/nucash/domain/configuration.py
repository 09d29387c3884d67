"""System configuration documents keyed by configuration type.

One document exists per ``ConfigType``. Each type owns exactly one settings
sub-document (``autoExport``, ``excuseSlips`` or ``tabVisibility``), so the
document is modelled as a Pydantic discriminated union on ``config_type``
rather than a single schema carrying all three sections.

JSON documents use camelCase field names (``dayOfWeek``, ``updatedAt``);
Python attributes are snake_case.

Example:
    Materializing defaults and applying an update::

        from nucash.domain.configuration import ConfigType, apply_update

        doc = apply_update(
            ConfigType.AUTO_EXPORT,
            {"autoExport": {"enabled": True, "frequency": "weekly", "dayOfWeek": 5}},
            updated_at=datetime.now(UTC),
        )
        doc.auto_export.day_of_month  # 1 (default)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from nucash.domain.exceptions import NotFoundError, ValidationError


class ConfigType(StrEnum):
    """Configuration categories. Each value names its own settings section."""

    AUTO_EXPORT = "autoExport"
    EXCUSE_SLIPS = "excuseSlips"
    TAB_VISIBILITY = "tabVisibility"


class AdminRole(StrEnum):
    """Admin console that owns a configuration document."""

    MOTORPOOL = "motorpool"
    MERCHANT = "merchant"
    TREASURY = "treasury"


class ExportFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class ExportType(StrEnum):
    """Data sets an auto-export can include (motorpool and merchant consoles)."""

    DRIVERS = "Drivers"
    ROUTES = "Routes"
    TRIPS = "Trips"
    SHUTTLES = "Shuttles"
    PHONES = "Phones"
    LOGS = "Logs"
    CONCERNS = "Concerns"
    MERCHANTS = "Merchants"


DEFAULT_EXCUSE_SLIP_TEMPLATE = (
    "This is to certify that {studentName} ({schoolId}) was delayed due to "
    "shuttle service delay on {date}. Delay duration: {delayMinutes} minutes. "
    "Route: {routeName}."
)

# 24-hour clock, zero padded
_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class _Document(BaseModel):
    """Shared model config: camelCase aliases, unknown fields rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


class AutoExportSettings(_Document):
    """Scheduled data-export settings.

    Only read by the external export scheduler; nothing here runs exports.
    """

    enabled: bool = False
    frequency: ExportFrequency = ExportFrequency.DAILY
    export_types: list[ExportType] = Field(default_factory=list)
    time: str = Field(default="00:00", pattern=_TIME_PATTERN)
    day_of_week: int = Field(default=0, ge=0, le=6)
    day_of_month: int = Field(default=1, ge=1, le=31)
    email_recipients: list[str] = Field(default_factory=list)

    @field_validator("export_types")
    @classmethod
    def _collapse_duplicate_export_types(cls, v: list[ExportType]) -> list[ExportType]:
        return list(dict.fromkeys(v))


class ExcuseSlipsSettings(_Document):
    """Delay-certification slip settings."""

    enabled: bool = True
    validity_hours: int = Field(default=24, ge=1)
    require_driver_approval: bool = True
    template: str = DEFAULT_EXCUSE_SLIP_TEMPLATE


class TabVisibilitySettings(_Document):
    """Per-section show/hide flags for the admin navigation."""

    home: bool = True
    drivers: bool = True
    shuttles: bool = True
    routes: bool = True
    phones: bool = True
    trips: bool = True
    concerns: bool = True
    promotions: bool = True
    configurations: bool = True
    logs: bool = True


# ---------------------------------------------------------------------------
# Configuration documents
# ---------------------------------------------------------------------------


class _BaseConfiguration(_Document):
    admin_role: AdminRole = AdminRole.MOTORPOOL
    updated_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible document with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


class AutoExportConfiguration(_BaseConfiguration):
    config_type: Literal["autoExport"] = "autoExport"
    auto_export: AutoExportSettings = Field(default_factory=AutoExportSettings)

    @property
    def settings(self) -> AutoExportSettings:
        return self.auto_export


class ExcuseSlipsConfiguration(_BaseConfiguration):
    config_type: Literal["excuseSlips"] = "excuseSlips"
    excuse_slips: ExcuseSlipsSettings = Field(default_factory=ExcuseSlipsSettings)

    @property
    def settings(self) -> ExcuseSlipsSettings:
        return self.excuse_slips


class TabVisibilityConfiguration(_BaseConfiguration):
    config_type: Literal["tabVisibility"] = "tabVisibility"
    tab_visibility: TabVisibilitySettings = Field(default_factory=TabVisibilitySettings)

    @property
    def settings(self) -> TabVisibilitySettings:
        return self.tab_visibility


SystemConfiguration = Annotated[
    AutoExportConfiguration | ExcuseSlipsConfiguration | TabVisibilityConfiguration,
    Field(discriminator="config_type"),
]
"""Discriminated union of the per-type configuration documents."""

_CONFIGURATION_MODELS: dict[ConfigType, type[_BaseConfiguration]] = {
    ConfigType.AUTO_EXPORT: AutoExportConfiguration,
    ConfigType.EXCUSE_SLIPS: ExcuseSlipsConfiguration,
    ConfigType.TAB_VISIBILITY: TabVisibilityConfiguration,
}

_SECTION_MODELS: dict[ConfigType, type[_Document]] = {
    ConfigType.AUTO_EXPORT: AutoExportSettings,
    ConfigType.EXCUSE_SLIPS: ExcuseSlipsSettings,
    ConfigType.TAB_VISIBILITY: TabVisibilitySettings,
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single field-level validation failure.

    Attributes:
        field: Dotted camelCase path (e.g. ``autoExport.dayOfWeek``).
        reason: Human-readable reason.
    """

    field: str
    reason: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class ConfigurationNotFoundError(NotFoundError):
    """Raised when no document has been stored for a configuration type.

    Callers treat this as "use defaults", not as an operational fault.
    """

    def __init__(self, config_type: str) -> None:
        super().__init__("SystemConfiguration", config_type)


class ConfigurationValidationError(ValidationError):
    """Raised when a configuration write violates one or more field constraints.

    Attributes:
        config_type: The configuration type being written.
        errors: Every field-level failure, in detection order.
    """

    error_code: str = "CONFIGURATION_INVALID"

    def __init__(self, config_type: str, errors: list[FieldError]) -> None:
        self.config_type = config_type
        self.errors = list(errors)
        super().__init__(
            ", ".join(e.field for e in self.errors),
            "; ".join(f"{e.field}: {e.reason}" for e in self.errors),
            config_type=config_type,
            errors=[e.as_dict() for e in self.errors],
        )


class DuplicateConfigurationError(ValidationError):
    """Raised when creating a second document for an existing configuration type."""

    error_code: str = "DUPLICATE_CONFIGURATION"

    def __init__(self, config_type: str) -> None:
        self.config_type = config_type
        super().__init__(
            "configType",
            f"a configuration for '{config_type}' already exists",
            config_type=config_type,
        )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def parse_config_type(value: str) -> ConfigType:
    """Coerce a raw string into a ConfigType.

    Raises:
        ValidationError: If ``value`` is not a known configuration type.
    """
    try:
        return ConfigType(value)
    except ValueError:
        allowed = ", ".join(ct.value for ct in ConfigType)
        raise ValidationError(
            "configType",
            f"must be one of: {allowed}",
            value=str(value),
        ) from None


def default_configuration(config_type: ConfigType) -> SystemConfiguration:
    """Document for ``config_type`` with every field at its declared default."""
    return _CONFIGURATION_MODELS[config_type]()  # type: ignore[return-value]


def materialize(config_type: ConfigType, document: Mapping[str, Any]) -> SystemConfiguration:
    """Load a stored document, filling omitted fields with their defaults.

    Sections belonging to other configuration types are dropped; stored
    documents written by older schemas may carry all three.

    Raises:
        ConfigurationValidationError: If the stored document violates a constraint.
    """
    model = _CONFIGURATION_MODELS[config_type]
    foreign = {ct.value for ct in ConfigType} - {config_type.value}
    payload = {k: v for k, v in _by_alias(model, document).items() if k not in foreign}
    payload["configType"] = config_type.value
    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except PydanticValidationError as exc:
        raise ConfigurationValidationError(config_type.value, _field_errors(exc)) from exc


def validate_update(
    config_type: ConfigType,
    fields: Mapping[str, Any],
    current: SystemConfiguration | None = None,
) -> list[FieldError]:
    """Check a partial update against the constraints for ``config_type``.

    Args:
        config_type: Target configuration type.
        fields: Partial document. Keys may be camelCase or snake_case, and the
            type's own section may itself be partial.
        current: Stored document the update will merge into, if any.

    Returns:
        Every field-level error found; empty when the update is valid.
    """
    _, errors = _merge(config_type, fields, current)
    return errors


def apply_update(
    config_type: ConfigType,
    fields: Mapping[str, Any],
    current: SystemConfiguration | None = None,
    *,
    updated_at: datetime,
) -> SystemConfiguration:
    """Merge ``fields`` into ``current`` (or the defaults) and stamp ``updated_at``.

    Raises:
        ConfigurationValidationError: If any field violates its constraints.
    """
    document, errors = _merge(config_type, fields, current)
    if errors or document is None:
        raise ConfigurationValidationError(config_type.value, errors)
    return document.model_copy(update={"updated_at": updated_at})


def next_updated_at(previous: datetime | None, now: datetime) -> datetime:
    """Modification stamp that never moves backwards."""
    if previous is not None and previous > now:
        return previous
    return now


def _by_alias(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    aliases = {name: info.alias or name for name, info in model.model_fields.items()}
    return {aliases.get(key, key): value for key, value in data.items()}


def _merge(
    config_type: ConfigType,
    fields: Mapping[str, Any],
    current: SystemConfiguration | None,
) -> tuple[SystemConfiguration | None, list[FieldError]]:
    if not isinstance(fields, Mapping):
        return None, [FieldError("document", "must be an object")]

    errors: list[FieldError] = []
    model = _CONFIGURATION_MODELS[config_type]
    section = config_type.value
    base = (current or default_configuration(config_type)).model_dump(by_alias=True)

    payload = _by_alias(model, fields)
    # updatedAt is stamped by the store; clients echoing it back is harmless
    payload.pop("updatedAt", None)
    declared_type = payload.pop("configType", section)
    if declared_type != section:
        errors.append(FieldError("configType", f"must be '{section}' for this document"))

    merged = {**base, **payload}
    incoming_section = payload.get(section)
    if isinstance(incoming_section, Mapping):
        section_fields = _by_alias(_SECTION_MODELS[config_type], incoming_section)
        merged[section] = {**base[section], **section_fields}

    try:
        document = model.model_validate(merged)
    except PydanticValidationError as exc:
        errors.extend(_field_errors(exc))
        return None, errors

    if errors:
        return None, errors
    return document, []  # type: ignore[return-value]


def _field_errors(exc: PydanticValidationError) -> list[FieldError]:
    result: list[FieldError] = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()))
        result.append(FieldError(loc or "document", error.get("msg", "invalid value")))
    return result
