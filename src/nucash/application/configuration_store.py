"""System configuration store.

Owns the one-document-per-type invariant: validates writes, materializes
declared defaults on read, and stamps ``updatedAt`` on every successful
write. Storage is delegated to a ``ConfigurationRepository``.

Concurrent upserts for the same type are last-write-wins; there is no
version token in the document. The store neither retries nor logs; errors
propagate to the caller as domain exceptions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, cast

from nucash.domain.configuration import (
    ConfigType,
    ConfigurationNotFoundError,
    DuplicateConfigurationError,
    SystemConfiguration,
    apply_update,
    default_configuration,
    materialize,
    next_updated_at,
    parse_config_type,
)
from nucash.domain.templates import render_template

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from nucash.domain.configuration import ExcuseSlipsConfiguration


class ConfigurationRepository(Protocol):
    """Protocol for configuration document storage.

    Implementations live in ``nucash.infra.persistence``. Documents are
    JSON-compatible dicts with camelCase keys, keyed by config type value.
    """

    def get(self, config_type: str) -> dict[str, Any] | None:
        """Get the stored document for a config type."""
        ...

    def get_all(self) -> dict[str, dict[str, Any]]:
        """Get every stored document as {config_type: document}."""
        ...

    def insert(self, config_type: str, document: dict[str, Any]) -> None:
        """Store a new document.

        Raises:
            DuplicateConfigurationError: If a document for the type already exists.
        """
        ...

    def save(self, config_type: str, document: dict[str, Any]) -> None:
        """Insert or replace the document for a config type."""
        ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConfigurationStore:
    """Read/write access to system configuration documents.

    Args:
        repository: Storage backend for the documents.
        clock: Returns the current timezone-aware time. Defaults to UTC now.
    """

    def __init__(
        self,
        repository: ConfigurationRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repo = repository
        self._clock = clock or _utcnow

    def get(self, config_type: ConfigType | str) -> SystemConfiguration:
        """Return the stored document with omitted fields defaulted.

        Raises:
            ValidationError: If ``config_type`` is not a known type.
            ConfigurationNotFoundError: If no document exists for the type.
        """
        ct = parse_config_type(config_type)
        stored = self._repo.get(ct.value)
        if stored is None:
            raise ConfigurationNotFoundError(ct.value)
        return materialize(ct, stored)

    def get_or_default(self, config_type: ConfigType | str) -> SystemConfiguration:
        """Like ``get``, but an absent document resolves to the declared defaults."""
        ct = parse_config_type(config_type)
        stored = self._repo.get(ct.value)
        if stored is None:
            return default_configuration(ct)
        return materialize(ct, stored)

    def list_all(self) -> list[SystemConfiguration]:
        """Every stored document, ordered by config type.

        Rows keyed by a type this service does not know (left behind by an
        older schema) are skipped.
        """
        documents = self._repo.get_all()
        known = {ct.value for ct in ConfigType}
        return [
            materialize(ConfigType(key), documents[key])
            for key in sorted(documents)
            if key in known
        ]

    def create(
        self,
        config_type: ConfigType | str,
        fields: Mapping[str, Any] | None = None,
    ) -> SystemConfiguration:
        """Create the document for a type that has none yet.

        Raises:
            ValidationError: If ``config_type`` is unknown.
            ConfigurationValidationError: If ``fields`` violate a constraint.
            DuplicateConfigurationError: If the type already has a document.
        """
        ct = parse_config_type(config_type)
        if self._repo.get(ct.value) is not None:
            raise DuplicateConfigurationError(ct.value)
        document = apply_update(ct, fields or {}, updated_at=self._clock())
        self._repo.insert(ct.value, document.to_document())
        return document

    def upsert(
        self,
        config_type: ConfigType | str,
        fields: Mapping[str, Any],
    ) -> SystemConfiguration:
        """Validate ``fields``, merge them into the stored document, and persist.

        Creates the document when absent. ``updatedAt`` never moves backwards,
        even if the clock does.

        Raises:
            ValidationError: If ``config_type`` is unknown.
            ConfigurationValidationError: If ``fields`` violate a constraint.
        """
        ct = parse_config_type(config_type)
        stored = self._repo.get(ct.value)
        current = materialize(ct, stored) if stored is not None else None
        previous = current.updated_at if current is not None else None
        document = apply_update(
            ct,
            fields,
            current,
            updated_at=next_updated_at(previous, self._clock()),
        )
        self._repo.save(ct.value, document.to_document())
        return document

    def render_excuse_slip(self, substitutions: Mapping[str, Any]) -> str:
        """Render the current (or default) excuse-slip template."""
        config = cast(
            "ExcuseSlipsConfiguration", self.get_or_default(ConfigType.EXCUSE_SLIPS)
        )
        return render_template(config.excuse_slips, substitutions)


def seed_defaults(store: ConfigurationStore) -> list[ConfigType]:
    """Create a default document for every configuration type that has none.

    Safe to run on every startup and from several processes at once.

    Returns:
        The types that were created by this call.
    """
    created: list[ConfigType] = []
    for config_type in ConfigType:
        try:
            store.create(config_type)
        except DuplicateConfigurationError:
            continue
        created.append(config_type)
    return created
