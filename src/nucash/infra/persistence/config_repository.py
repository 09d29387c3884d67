"""Storage for system configuration documents.

Two implementations of ``ConfigurationRepository``:

- ``SqlConfigurationRepository``: ``system_configuration`` table via
  SQLAlchemy, one short session per call.
- ``InMemoryConfigurationRepository``: process-local dict, for tests and
  local development.
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from nucash.domain.configuration import DuplicateConfigurationError
from nucash.infra.persistence.tables import system_configuration

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session


def _updated_at(document: dict[str, Any]) -> datetime | None:
    raw = document.get("updatedAt")
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(raw)


class SqlConfigurationRepository:
    """Read/write access to the system_configuration table.

    Uniqueness of ``config_type`` is enforced by the table's primary key.

    Args:
        session_factory: Callable returning a SQLAlchemy Session context manager.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, config_type: str) -> dict[str, Any] | None:
        """Read the document for a config type.

        Returns:
            Stored document dict, or None if not found.
        """
        with self._session_factory() as session:
            row = session.execute(
                select(system_configuration.c.document).where(
                    system_configuration.c.config_type == config_type
                )
            ).fetchone()
            return row[0] if row else None

    def get_all(self) -> dict[str, dict[str, Any]]:
        """Read every stored document.

        Returns:
            Dict mapping config_type -> document.
        """
        with self._session_factory() as session:
            rows = session.execute(
                select(system_configuration.c.config_type, system_configuration.c.document)
            ).fetchall()
            return {row[0]: row[1] for row in rows}

    def insert(self, config_type: str, document: dict[str, Any]) -> None:
        """Insert a new document.

        Raises:
            DuplicateConfigurationError: If a row for ``config_type`` already exists.
        """
        with self._session_factory() as session:
            try:
                session.execute(
                    insert(system_configuration).values(
                        config_type=config_type,
                        document=document,
                        updated_at=_updated_at(document),
                    )
                )
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateConfigurationError(config_type) from exc

    def save(self, config_type: str, document: dict[str, Any]) -> None:
        """Insert or replace the document for a config type (last write wins)."""
        values = {"document": document, "updated_at": _updated_at(document)}
        with self._session_factory() as session:
            result = session.execute(
                update(system_configuration)
                .where(system_configuration.c.config_type == config_type)
                .values(**values)
            )
            if getattr(result, "rowcount", 0) == 0:
                try:
                    session.execute(
                        insert(system_configuration).values(config_type=config_type, **values)
                    )
                except IntegrityError:
                    # A concurrent writer created the row first; overwrite it.
                    session.rollback()
                    session.execute(
                        update(system_configuration)
                        .where(system_configuration.c.config_type == config_type)
                        .values(**values)
                    )
            session.commit()


class InMemoryConfigurationRepository:
    """Process-local document storage.

    Documents are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, config_type: str) -> dict[str, Any] | None:
        with self._lock:
            document = self._documents.get(config_type)
            return copy.deepcopy(document) if document is not None else None

    def get_all(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._documents)

    def insert(self, config_type: str, document: dict[str, Any]) -> None:
        with self._lock:
            if config_type in self._documents:
                raise DuplicateConfigurationError(config_type)
            self._documents[config_type] = copy.deepcopy(document)

    def save(self, config_type: str, document: dict[str, Any]) -> None:
        with self._lock:
            self._documents[config_type] = copy.deepcopy(document)

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
