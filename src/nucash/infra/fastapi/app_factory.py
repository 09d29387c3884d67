"""FastAPI application factory for the configuration service.

Wires CORS, RFC 7807 error handlers, the health endpoint, and the
configuration router. The lifespan configures logging and builds the
``ConfigurationStore`` for the selected storage backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from nucash.application.configuration_store import ConfigurationStore, seed_defaults
from nucash.infra.fastapi._health import router as health_router
from nucash.infra.fastapi.error_handlers import register_exception_handlers
from nucash.infra.fastapi.router import router as configuration_router
from nucash.infra.fastapi.settings import AppSettings
from nucash.infra.observability.logging import configure_logging
from nucash.infra.persistence.config_repository import (
    InMemoryConfigurationRepository,
    SqlConfigurationRepository,
)
from nucash.infra.persistence.database import get_database_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from nucash.infra.persistence.database import DatabaseManager

logger = logging.getLogger(__name__)


def _build_store(
    settings: AppSettings,
    database: DatabaseManager | None,
) -> tuple[ConfigurationStore, DatabaseManager | None]:
    if settings.storage_backend == "memory":
        return ConfigurationStore(InMemoryConfigurationRepository()), None
    manager = database or get_database_manager()
    manager.create_schema()
    repository = SqlConfigurationRepository(manager.get_session_factory())
    return ConfigurationStore(repository), manager


def create_app(
    settings: AppSettings | None = None,
    *,
    store: ConfigurationStore | None = None,
    database: DatabaseManager | None = None,
) -> FastAPI:
    """Create the configuration API application.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        store: Pre-built store (tests inject one). When omitted, the lifespan
            builds one for ``settings.storage_backend``.
        database: Database manager for the ``sql`` backend. Defaults to the
            environment-configured singleton.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        if app.state.store is None:
            app.state.store, app.state.database = _build_store(settings, database)
            logger.info("Configuration store ready (backend=%s)", settings.storage_backend)
        if settings.seed_defaults:
            created = seed_defaults(app.state.store)
            logger.info("Seeded default configurations: %s", [ct.value for ct in created])
        try:
            yield
        finally:
            if app.state.database is not None:
                app.state.database.dispose()

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(configuration_router, prefix=settings.api_prefix)
    return app
