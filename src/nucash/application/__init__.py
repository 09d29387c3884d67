"""NuCash application layer -- configuration store and repository contract."""

from nucash.application.configuration_store import (
    ConfigurationRepository,
    ConfigurationStore,
    seed_defaults,
)

__all__ = [
    "ConfigurationRepository",
    "ConfigurationStore",
    "seed_defaults",
]
