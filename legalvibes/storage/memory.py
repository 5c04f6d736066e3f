"""
In-memory storage implementation.

For development and testing. Data lives in process memory and is lost on
restart.
"""

from __future__ import annotations

from typing import Any, Generic

from legalvibes.core.models import Client, Document, Identity, Project
from legalvibes.storage.base import (
    DuplicateKeyError,
    EntityStore,
    StorageError,
    StorageProvider,
    T,
)


class InMemoryEntityStore(EntityStore[T], Generic[T]):
    """Dict-backed store. Hands out deep copies so callers never share state."""

    def __init__(self, name: str, unique_fields: tuple[str, ...] = ()):
        self.name = name
        self.unique_fields = unique_fields
        self._data: dict[str, T] = {}

    def _check_unique(self, entity: T) -> None:
        for field in self.unique_fields:
            value = getattr(entity, field)
            for other in self._data.values():
                if other.id != entity.id and getattr(other, field) == value:
                    raise DuplicateKeyError(self.name, field, value)

    async def get(self, id: str) -> T | None:
        entity = self._data.get(id)
        return entity.model_copy(deep=True) if entity else None

    async def find(self, **filters: Any) -> list[T]:
        results = []
        for entity in self._data.values():
            if all(getattr(entity, key) == value for key, value in filters.items()):
                results.append(entity.model_copy(deep=True))
        return results

    async def add(self, entity: T) -> T:
        if entity.id in self._data:
            raise DuplicateKeyError(self.name, "id", entity.id)
        self._check_unique(entity)
        self._data[entity.id] = entity.model_copy(deep=True)
        return entity

    async def update(self, entity: T) -> T:
        if entity.id not in self._data:
            raise StorageError(f"{self.name}/{entity.id} does not exist")
        self._check_unique(entity)
        self._data[entity.id] = entity.model_copy(deep=True)
        return entity

    async def delete(self, id: str) -> bool:
        return self._data.pop(id, None) is not None


# =============================================================================
# Factory
# =============================================================================


def create_memory_storage() -> StorageProvider:
    """Create a StorageProvider with in-memory implementations."""
    return StorageProvider(
        users=InMemoryEntityStore[Identity]("users", unique_fields=("email",)),
        clients=InMemoryEntityStore[Client]("clients"),
        projects=InMemoryEntityStore[Project]("projects"),
        documents=InMemoryEntityStore[Document]("documents"),
    )
