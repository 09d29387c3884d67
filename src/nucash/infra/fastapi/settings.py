"""Application settings for the configuration API.

Environment variables use the ``APP_`` prefix (``APP_STORAGE_BACKEND``)
and ``CORS_`` for the browser policy of the admin dashboard.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CORSSettings(BaseSettings):
    """CORS policy for the admin web dashboard.

    Comma-separated environment values are parsed into lists.
    """

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: list[str] = Field(default=["*"])
    allow_methods: list[str] = Field(default=["GET", "POST", "PUT", "PATCH"])
    allow_headers: list[str] = Field(default=["*"])
    allow_credentials: bool = Field(default=False)

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def _parse_comma_separated(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return v
        return ["*"]

    @model_validator(mode="after")
    def _validate_credentials_with_wildcard(self) -> CORSSettings:
        if self.allow_credentials and self.allow_origins == ["*"]:
            msg = (
                "CORS allow_credentials=True cannot be used with allow_origins=['*']. "
                "Specify explicit origins instead."
            )
            raise ValueError(msg)
        return self


def _default_version() -> str:
    """Resolve default app version from package metadata."""
    try:
        from importlib.metadata import version

        return version("nucash-config")
    except Exception:
        return "0.0.0"


class AppSettings(BaseSettings):
    """Configuration API settings.

    Attributes:
        api_prefix: Mount point of the configuration router.
        storage_backend: ``sql`` (DatabaseSettings) or ``memory`` (process-local).
        seed_defaults: Create a default document for every missing
            configuration type on startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        extra="ignore",
    )

    title: str = Field(default="NuCash Configuration Service")
    version: str = Field(default_factory=_default_version)
    description: str = Field(default="System configuration for the NuCash admin consoles")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default=None)
    openapi_url: str | None = Field(default="/openapi.json")
    debug: bool = Field(default=False)
    api_prefix: str = Field(default="/api/admin/configurations")
    storage_backend: Literal["sql", "memory"] = Field(default="sql")
    seed_defaults: bool = Field(default=False)
    cors: CORSSettings = Field(default_factory=CORSSettings)
