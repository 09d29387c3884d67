"""Tests for the configuration repositories."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from nucash.domain.configuration import DuplicateConfigurationError
from nucash.infra.persistence import (
    DatabaseManager,
    InMemoryConfigurationRepository,
    SqlConfigurationRepository,
    system_configuration,
)

DOCUMENT = {
    "configType": "excuseSlips",
    "adminRole": "motorpool",
    "updatedAt": "2026-10-19T08:00:00Z",
    "excuseSlips": {"enabled": True, "validityHours": 24},
}


def _make_session_factory(*, rows: list[tuple[Any, ...]] | None = None, rowcount: int = 1) -> Any:
    """Create a mock session_factory returning a context-managed mock session."""
    mock_session = MagicMock()
    mock_result = MagicMock()
    mock_result.rowcount = rowcount
    if rows is not None:
        mock_result.fetchone.return_value = rows[0] if len(rows) == 1 else None
        mock_result.fetchall.return_value = rows
    else:
        mock_result.fetchone.return_value = None
        mock_result.fetchall.return_value = []
    mock_session.execute.return_value = mock_result

    @contextmanager
    def factory():  # type: ignore[no-untyped-def]
        yield mock_session

    return factory, mock_session


@pytest.mark.unit
class TestSqlRepositoryWithMockSession:
    def test_get_returns_none_when_not_found(self) -> None:
        factory, _ = _make_session_factory()
        assert SqlConfigurationRepository(factory).get("autoExport") is None

    def test_get_returns_document(self) -> None:
        factory, _ = _make_session_factory(rows=[(DOCUMENT,)])
        assert SqlConfigurationRepository(factory).get("excuseSlips") == DOCUMENT

    def test_get_all_returns_dict(self) -> None:
        rows = [("excuseSlips", DOCUMENT), ("tabVisibility", {"configType": "tabVisibility"})]
        factory, _ = _make_session_factory(rows=rows)
        result = SqlConfigurationRepository(factory).get_all()
        assert result == {"excuseSlips": DOCUMENT, "tabVisibility": {"configType": "tabVisibility"}}

    def test_save_updates_existing_row(self) -> None:
        factory, mock_session = _make_session_factory(rowcount=1)
        SqlConfigurationRepository(factory).save("excuseSlips", DOCUMENT)
        assert mock_session.execute.call_count == 1
        mock_session.commit.assert_called_once()

    def test_save_inserts_when_no_row_updated(self) -> None:
        factory, mock_session = _make_session_factory(rowcount=0)
        SqlConfigurationRepository(factory).save("excuseSlips", DOCUMENT)
        assert mock_session.execute.call_count == 2
        mock_session.commit.assert_called_once()

    def test_insert_maps_integrity_error_to_duplicate(self) -> None:
        factory, mock_session = _make_session_factory()
        mock_session.execute.side_effect = IntegrityError("INSERT", {}, Exception("unique"))
        with pytest.raises(DuplicateConfigurationError):
            SqlConfigurationRepository(factory).insert("excuseSlips", DOCUMENT)
        mock_session.rollback.assert_called_once()
        mock_session.commit.assert_not_called()


@pytest.mark.integration
class TestSqlRepositoryWithSqlite:
    def test_insert_and_get(self, sql_repository: SqlConfigurationRepository) -> None:
        sql_repository.insert("excuseSlips", DOCUMENT)
        assert sql_repository.get("excuseSlips") == DOCUMENT
        assert sql_repository.get("autoExport") is None

    def test_duplicate_insert_rejected(self, sql_repository: SqlConfigurationRepository) -> None:
        sql_repository.insert("excuseSlips", DOCUMENT)
        with pytest.raises(DuplicateConfigurationError):
            sql_repository.insert("excuseSlips", DOCUMENT)
        assert sql_repository.get("excuseSlips") == DOCUMENT

    def test_save_creates_then_replaces(self, sql_repository: SqlConfigurationRepository) -> None:
        sql_repository.save("excuseSlips", DOCUMENT)
        replacement = {**DOCUMENT, "excuseSlips": {"enabled": False}}
        sql_repository.save("excuseSlips", replacement)
        assert sql_repository.get("excuseSlips") == replacement
        assert list(sql_repository.get_all()) == ["excuseSlips"]

    def test_updated_at_column_mirrors_document(
        self, sql_repository: SqlConfigurationRepository, sqlite_manager: DatabaseManager
    ) -> None:
        sql_repository.save("excuseSlips", DOCUMENT)
        with sqlite_manager.get_session_factory()() as session:
            stored = session.execute(select(system_configuration.c.updated_at)).scalar_one()
        # SQLite drops tzinfo on the way back
        assert stored.replace(tzinfo=UTC) == datetime(2026, 10, 19, 8, 0, tzinfo=UTC)

    def test_get_all(self, sql_repository: SqlConfigurationRepository) -> None:
        sql_repository.save("tabVisibility", {"configType": "tabVisibility"})
        sql_repository.save("excuseSlips", DOCUMENT)
        assert set(sql_repository.get_all()) == {"tabVisibility", "excuseSlips"}


@pytest.mark.unit
class TestInMemoryRepository:
    def test_insert_and_get(self, memory_repository: InMemoryConfigurationRepository) -> None:
        memory_repository.insert("excuseSlips", DOCUMENT)
        assert memory_repository.get("excuseSlips") == DOCUMENT

    def test_duplicate_insert_rejected(self, memory_repository: InMemoryConfigurationRepository) -> None:
        memory_repository.insert("excuseSlips", DOCUMENT)
        with pytest.raises(DuplicateConfigurationError):
            memory_repository.insert("excuseSlips", {})

    def test_returned_documents_are_copies(self, memory_repository: InMemoryConfigurationRepository) -> None:
        memory_repository.save("excuseSlips", DOCUMENT)
        fetched = memory_repository.get("excuseSlips")
        assert fetched is not None
        fetched["excuseSlips"]["enabled"] = False
        assert memory_repository.get("excuseSlips") == DOCUMENT

    def test_stored_documents_are_copies(self, memory_repository: InMemoryConfigurationRepository) -> None:
        document = {"configType": "tabVisibility", "tabVisibility": {"home": True}}
        memory_repository.save("tabVisibility", document)
        document["tabVisibility"]["home"] = False
        assert memory_repository.get_all()["tabVisibility"]["tabVisibility"]["home"] is True

    def test_clear(self, memory_repository: InMemoryConfigurationRepository) -> None:
        memory_repository.save("excuseSlips", DOCUMENT)
        memory_repository.clear()
        assert memory_repository.get_all() == {}
