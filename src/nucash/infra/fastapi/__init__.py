"""NuCash configuration API -- app factory, settings, error handlers."""

from nucash.infra.fastapi.app_factory import create_app
from nucash.infra.fastapi.error_handlers import ProblemDetail, register_exception_handlers
from nucash.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "create_app",
    "register_exception_handlers",
]
