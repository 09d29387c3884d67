"""Structured logging configuration using structlog.

- JSON output in production, colored console output elsewhere
- ISO 8601 UTC timestamps
- Redaction of credentials and rider-identifying fields

Usage:
    from nucash.infra.observability.logging import configure_logging, get_logger

    configure_logging()
    logger = get_logger(__name__)
    logger.info("configuration_changed", config_type="autoExport", changed=["autoExport"])
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import MutableMapping

Processor = structlog.types.Processor

# Credentials plus the rider identity carried by excuse-slip substitutions.
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "authorization",
        "api_key",
        "secret",
        "credential",
        "student_name",
        "studentname",
        "school_id",
        "schoolid",
    }
)

REDACTED_VALUE: str = "***REDACTED***"

_VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class LoggingSettings(BaseSettings):
    """Logging configuration from ``LOG_LEVEL`` and ``ENVIRONMENT``.

    Example:
        >>> LoggingSettings(environment="production").use_json_logs
        True
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        return str(v).upper()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v not in _VALID_LEVELS:
            msg = f"log_level must be one of {sorted(_VALID_LEVELS)}"
            raise ValueError(msg)
        return v

    @property
    def use_json_logs(self) -> bool:
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)


class SensitiveDataProcessor:
    """Structlog processor that redacts sensitive values from the event dict.

    Matches keys in ``SENSITIVE_FIELDS`` case-insensitively, and any key
    containing "password" or "token". Nested dicts (such as a
    ``substitutions`` mapping) are redacted recursively.
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict.keys()):
            event_dict[key] = self._redact(key, event_dict[key])
        return event_dict

    def _redact(self, key: str, value: Any) -> Any:
        if self._is_sensitive(key):
            return REDACTED_VALUE
        if isinstance(value, dict):
            return {k: self._redact(str(k), v) for k, v in value.items()}
        return value

    def _is_sensitive(self, key: str) -> bool:
        key_lower = key.lower()
        if key_lower in SENSITIVE_FIELDS:
            return True
        return "password" in key_lower or "token" in key_lower


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Cached LoggingSettings; clear with ``get_logging_settings.cache_clear()``."""
    return LoggingSettings()


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog processors and level filtering.

    Call once at application startup (the API lifespan does this).

    Args:
        settings: Logging settings. Loaded from the environment when omitted.
    """
    if settings is None:
        settings = get_logging_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
        structlog.processors.format_exc_info,
    ]
    if settings.use_json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level_int),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger carrying ``name`` when given.

    Returns a lazy proxy: the processor chain is resolved on first use, so
    loggers obtained before ``configure_logging`` still honour it.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(logger=name)
