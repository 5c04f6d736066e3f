"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory for tests and development, SQLite or
PostgreSQL through SQLAlchemy) without changing service code.

Each operation is atomic on its own. There is no unit of work spanning
several calls; services are written so a lost race costs at most a
duplicate-key error or a last-write-wins update.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


# =============================================================================
# Errors
# =============================================================================


class StorageError(Exception):
    """The backing store failed. Carries the backend's own exception as cause."""


class DuplicateKeyError(StorageError):
    """A unique field (for example an identity's email) is already taken."""

    def __init__(self, collection: str, field: str, value: Any):
        super().__init__(f"Duplicate {field} in {collection}: {value!r}")
        self.collection = collection
        self.field = field
        self.value = value


# =============================================================================
# Storage Interface
# =============================================================================


class EntityStore(ABC, Generic[T]):
    """
    Storage for one kind of entity.

    Entities go in and come out as pydantic models. Callers get copies:
    mutating a returned entity has no effect until it is passed to
    ``update``.
    """

    @abstractmethod
    async def get(self, id: str) -> T | None:
        """Get an entity by ID."""
        pass

    @abstractmethod
    async def find(self, **filters: Any) -> list[T]:
        """All entities whose fields equal the given values."""
        pass

    @abstractmethod
    async def add(self, entity: T) -> T:
        """Insert a new entity. Raises DuplicateKeyError on unique clashes."""
        pass

    @abstractmethod
    async def update(self, entity: T) -> T:
        """Replace a stored entity. Raises StorageError if it does not exist."""
        pass

    @abstractmethod
    async def delete(self, id: str) -> bool:
        """Remove an entity. Returns False if nothing was there."""
        pass

    async def exists(self, **filters: Any) -> bool:
        return bool(await self.find(**filters))


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all entity stores.

    Initialize once at app startup with the appropriate backend.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    users: EntityStore  # of Identity
    clients: EntityStore  # of Client
    projects: EntityStore  # of Project
    documents: EntityStore  # of Document

    # Backend teardown (for example disposing a connection pool)
    on_close: Callable[[], None] | None = None

    def close(self) -> None:
        if self.on_close is not None:
            self.on_close()
