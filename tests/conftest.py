"""Shared fixtures for the configuration service tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from nucash.application.configuration_store import ConfigurationStore
from nucash.infra.fastapi import AppSettings, create_app
from nucash.infra.persistence import (
    DatabaseManager,
    DatabaseSettings,
    InMemoryConfigurationRepository,
    SqlConfigurationRepository,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import FastAPI


class FakeClock:
    """Deterministic clock; ``advance`` accepts negative steps."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 10, 19, 8, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory_repository() -> InMemoryConfigurationRepository:
    return InMemoryConfigurationRepository()


@pytest.fixture()
def store(memory_repository: InMemoryConfigurationRepository, clock: FakeClock) -> ConfigurationStore:
    """Store over an empty in-memory repository with a fake clock."""
    return ConfigurationStore(memory_repository, clock=clock)


@pytest.fixture()
def sqlite_manager() -> Iterator[DatabaseManager]:
    """In-memory SQLite database with the configuration schema created."""
    manager = DatabaseManager(DatabaseSettings(url="sqlite://"))
    manager.create_schema()
    yield manager
    manager.dispose()


@pytest.fixture()
def sql_repository(sqlite_manager: DatabaseManager) -> SqlConfigurationRepository:
    return SqlConfigurationRepository(sqlite_manager.get_session_factory())


@pytest.fixture()
def app(store: ConfigurationStore) -> FastAPI:
    """API app backed by the in-memory store fixture."""
    return create_app(AppSettings(storage_backend="memory"), store=store)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    """TestClient with lifespan hooks executed."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture()
def api_prefix() -> str:
    return AppSettings().api_prefix
