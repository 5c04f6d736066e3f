"""
Ownership-scoped repository access.

Every Client and Project belongs to the identity that created it. All reads
and writes go through ``OwnedRepository``, which takes the caller's id on
every call. A record owned by someone else is reported exactly like a
missing one, so callers cannot discover other users' ids.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Generic, TypeVar

from pydantic import BaseModel

from legalvibes.errors import ConflictError, NotFoundError, ServiceError
from legalvibes.storage import DuplicateKeyError, EntityStore, StorageError, StorageProvider

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")


class OwnedRepository(ABC, Generic[T]):
    """
    Generic owner-scoped CRUD.

    Subclasses supply validation and construction; the base class owns the
    ownership check and store error translation.
    """

    entity_name: str = "Entity"

    def __init__(self, storage: StorageProvider, store: EntityStore):
        self.storage = storage
        self.store = store

    # =========================================================================
    # Operations
    # =========================================================================

    async def list(self, owner_id: str) -> list[T]:
        entities = await self._call("list", self.store.find(owner_id=owner_id))
        return sorted(
            (e for e in entities if self._listed(e)),
            key=lambda e: e.created_at,
            reverse=True,
        )

    async def get_by_id(self, id: str, owner_id: str) -> T:
        entity = await self._call("get", self.store.get(id))
        if entity is None or entity.owner_id != owner_id:
            if entity is not None:
                logger.warning(f"Identity {owner_id} asked for {self.entity_name.lower()} {id} it does not own")
            raise NotFoundError(f"{self.entity_name} not found")
        return entity

    async def create(self, data: Any, owner_id: str) -> T:
        entity = await self._build(data, owner_id)
        await self._call("create", self.store.add(entity))
        logger.info(f"{self.entity_name} {entity.id} created for identity {owner_id}")
        return entity

    async def update(self, id: str, patch: Any, owner_id: str) -> T:
        entity = await self.get_by_id(id, owner_id)
        await self._apply(entity, patch, owner_id)
        entity.touch()
        await self.save(entity)
        logger.info(f"{self.entity_name} {id} updated by identity {owner_id}")
        return entity

    async def delete(self, id: str, owner_id: str) -> None:
        entity = await self.get_by_id(id, owner_id)
        await self._check_delete(entity)
        await self._remove(entity)
        logger.info(f"{self.entity_name} {id} deleted by identity {owner_id}")

    async def save(self, entity: T) -> T:
        return await self._call("update", self.store.update(entity))

    # =========================================================================
    # Hooks
    # =========================================================================

    def _listed(self, entity: T) -> bool:
        """Whether ``list`` shows the entity."""
        return True

    @abstractmethod
    async def _build(self, data: Any, owner_id: str) -> T:
        """Validate create input and return the new, unsaved entity."""

    @abstractmethod
    async def _apply(self, entity: T, patch: Any, owner_id: str) -> None:
        """Validate a patch and apply it in place."""

    async def _check_delete(self, entity: T) -> None:
        """Raise ConflictError if something still depends on the entity."""

    async def _remove(self, entity: T) -> None:
        await self._call("delete", self.store.delete(entity.id))

    # =========================================================================
    # Store error translation
    # =========================================================================

    async def _call(self, action: str, op: Awaitable[R]) -> R:
        try:
            return await op
        except DuplicateKeyError as e:
            logger.warning(f"{self.entity_name} {action} hit a duplicate key: {e}")
            raise ConflictError(f"{self.entity_name} already exists") from e
        except StorageError as e:
            logger.error(f"{self.entity_name} {action} failed in storage: {e}")
            raise ServiceError(
                f"An error occurred while trying to {action} the {self.entity_name.lower()}"
            ) from e
