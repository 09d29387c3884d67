"""NuCash domain -- configuration documents, validation, and error types."""

from nucash.domain.configuration import (
    DEFAULT_EXCUSE_SLIP_TEMPLATE,
    AdminRole,
    AutoExportConfiguration,
    AutoExportSettings,
    ConfigType,
    ConfigurationNotFoundError,
    ConfigurationValidationError,
    DuplicateConfigurationError,
    ExcuseSlipsConfiguration,
    ExcuseSlipsSettings,
    ExportFrequency,
    ExportType,
    FieldError,
    SystemConfiguration,
    TabVisibilityConfiguration,
    TabVisibilitySettings,
    apply_update,
    default_configuration,
    materialize,
    next_updated_at,
    parse_config_type,
    validate_update,
)
from nucash.domain.exceptions import DomainError, NotFoundError, ValidationError
from nucash.domain.templates import TEMPLATE_TOKENS, render_template

__all__ = [
    "DEFAULT_EXCUSE_SLIP_TEMPLATE",
    "TEMPLATE_TOKENS",
    "AdminRole",
    "AutoExportConfiguration",
    "AutoExportSettings",
    "ConfigType",
    "ConfigurationNotFoundError",
    "ConfigurationValidationError",
    "DomainError",
    "DuplicateConfigurationError",
    "ExcuseSlipsConfiguration",
    "ExcuseSlipsSettings",
    "ExportFrequency",
    "ExportType",
    "FieldError",
    "NotFoundError",
    "SystemConfiguration",
    "TabVisibilityConfiguration",
    "TabVisibilitySettings",
    "ValidationError",
    "apply_update",
    "default_configuration",
    "materialize",
    "next_updated_at",
    "parse_config_type",
    "render_template",
    "validate_update",
]
