"""
Client repository.

Clients are soft-deleted: ``delete`` flips ``is_active`` and ``list`` hides
inactive clients. ``get_by_id`` still finds them, so projects that reference
a retired client keep rendering.
"""

from __future__ import annotations

import logging

from legalvibes.core.contracts import ClientCreate, ClientUpdate
from legalvibes.core.models import (
    ADDRESS_MAX_LENGTH,
    CLIENT_NAME_MAX_LENGTH,
    COMPANY_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    Client,
    ProjectStatus,
)
from legalvibes.core.utils import check_max_length, clean, is_valid_email, normalize_email
from legalvibes.errors import ConflictError, ValidationError
from legalvibes.services.base import OwnedRepository
from legalvibes.storage import StorageProvider

logger = logging.getLogger(__name__)


def _check_lengths(
    name: str | None,
    email: str | None,
    phone: str | None,
    company_name: str | None,
    address: str | None,
) -> None:
    check_max_length(name, "Client name", CLIENT_NAME_MAX_LENGTH)
    check_max_length(email, "Client email", EMAIL_MAX_LENGTH)
    check_max_length(phone, "Phone number", PHONE_MAX_LENGTH)
    check_max_length(company_name, "Company name", COMPANY_MAX_LENGTH)
    check_max_length(address, "Address", ADDRESS_MAX_LENGTH)


class ClientRepository(OwnedRepository[Client]):
    entity_name = "Client"

    def __init__(self, storage: StorageProvider):
        super().__init__(storage, storage.clients)

    def _listed(self, client: Client) -> bool:
        return client.is_active

    async def _build(self, data: ClientCreate, owner_id: str) -> Client:
        name = clean(data.name)
        email = normalize_email(data.email)
        if not name:
            raise ValidationError("Client name is required")
        if not email:
            raise ValidationError("Client email is required")
        if not is_valid_email(email):
            raise ValidationError("Please enter a valid email address")
        phone = (data.phone_number or "").strip()
        company_name = clean(data.company_name)
        address = clean(data.address)
        _check_lengths(name, email, phone, company_name, address)
        await self._ensure_unique_email(email, owner_id)

        return Client(
            owner_id=owner_id,
            name=name,
            email=email,
            phone_number=phone,
            company_name=company_name,
            address=address,
        )

    async def _apply(self, client: Client, patch: ClientUpdate, owner_id: str) -> None:
        _check_lengths(
            clean(patch.name),
            normalize_email(patch.email),
            clean(patch.phone_number),
            clean(patch.company_name),
            clean(patch.address),
        )
        # Blank strings leave required fields unchanged
        if clean(patch.name):
            client.name = clean(patch.name)
        if clean(patch.email):
            email = normalize_email(patch.email)
            if not is_valid_email(email):
                raise ValidationError("Please enter a valid email address")
            if email != client.email:
                await self._ensure_unique_email(email, owner_id)
            client.email = email
        if clean(patch.phone_number):
            client.phone_number = patch.phone_number.strip()
        if patch.company_name is not None:
            client.company_name = clean(patch.company_name)
        if patch.address is not None:
            client.address = clean(patch.address)
        if patch.is_active is not None:
            client.is_active = patch.is_active

    async def _check_delete(self, client: Client) -> None:
        projects = await self._call("delete", self.storage.projects.find(client_id=client.id))
        if any(p.status != ProjectStatus.ARCHIVED for p in projects):
            logger.warning(f"Refused to delete client {client.id}: it has active projects")
            raise ConflictError(
                "Cannot delete client with active projects. "
                "Please archive or reassign projects first."
            )

    async def _remove(self, client: Client) -> None:
        client.is_active = False
        client.touch()
        await self.save(client)

    async def _ensure_unique_email(self, email: str, owner_id: str) -> None:
        existing = await self._call(
            "create", self.store.find(owner_id=owner_id, email=email, is_active=True)
        )
        if existing:
            raise ConflictError("A client with this email already exists")
