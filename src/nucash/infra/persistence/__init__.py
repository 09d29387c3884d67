"""NuCash persistence -- database settings, engine lifecycle, configuration repositories."""

from nucash.infra.persistence.config_repository import (
    InMemoryConfigurationRepository,
    SqlConfigurationRepository,
)
from nucash.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    get_database_manager,
)
from nucash.infra.persistence.tables import metadata, system_configuration

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "InMemoryConfigurationRepository",
    "SqlConfigurationRepository",
    "get_database_manager",
    "metadata",
    "system_configuration",
]
