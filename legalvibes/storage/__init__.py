"""
Storage module - persistence behind interfaces.

Backends:
- memory: In-process dicts, for development and tests
- sql: SQLAlchemy (SQLite, PostgreSQL, ...)
"""

from legalvibes.storage.base import (
    DuplicateKeyError,
    EntityStore,
    StorageError,
    StorageProvider,
)
from legalvibes.storage.memory import InMemoryEntityStore, create_memory_storage


def create_storage(database_url: str = "") -> StorageProvider:
    """Pick a backend from the configured database URL (empty means in-memory)."""
    if not database_url:
        return create_memory_storage()
    from legalvibes.storage.sql import create_sql_storage

    return create_sql_storage(database_url)


__all__ = [
    "DuplicateKeyError",
    "EntityStore",
    "StorageError",
    "StorageProvider",
    "InMemoryEntityStore",
    "create_memory_storage",
    "create_storage",
]
