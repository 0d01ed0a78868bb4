"""
Storage Package.

Persistence for worker state and the pool registry.

Modules:
- base: StateStore interface
- json_store: JSON files in a data directory
- sql_store: SQLAlchemy-backed store
- orm: Declarative table models
"""

from core.config import StorageConfig
from core.exceptions import ConfigurationError

from .base import StateStore
from .json_store import JsonFileStateStore
from .sql_store import SqlStateStore


def create_state_store(config: StorageConfig) -> StateStore:
    """Build the configured state store backend."""
    if config.backend == "json":
        return JsonFileStateStore(config.data_dir)
    if config.backend == "sql":
        return SqlStateStore(config.database_url)
    raise ConfigurationError(
        f"Unknown storage backend: {config.backend}",
        config_key="storage.backend",
    )


__all__ = [
    "StateStore",
    "JsonFileStateStore",
    "SqlStateStore",
    "create_state_store",
]
