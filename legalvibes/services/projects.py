"""
Project repository.

A project always points at a client of the same owner. Both create and
update re-check that, and a client belonging to someone else is reported as
missing. Projects are hard-deleted, but only once no documents remain.
"""

from __future__ import annotations

import logging

from legalvibes.core.contracts import ProjectCreate, ProjectUpdate
from legalvibes.core.models import (
    PROJECT_NAME_MAX_LENGTH,
    REFERENCE_MAX_LENGTH,
    TRADEMARK_NAME_MAX_LENGTH,
    Client,
    Project,
    ProjectStatus,
)
from legalvibes.core.utils import check_max_length, clean
from legalvibes.errors import ConflictError, NotFoundError, ValidationError
from legalvibes.services.base import OwnedRepository
from legalvibes.storage import StorageProvider

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2


def _validate_name(name: str | None) -> str:
    name = clean(name)
    if not name:
        raise ValidationError("Project name is required")
    if len(name) < NAME_MIN_LENGTH:
        raise ValidationError(f"Project name must be at least {NAME_MIN_LENGTH} characters long")
    check_max_length(name, "Project name", PROJECT_NAME_MAX_LENGTH)
    return name


def _check_references(reference_number: str | None, trademark_name: str | None) -> None:
    check_max_length(clean(reference_number), "Reference number", REFERENCE_MAX_LENGTH)
    check_max_length(clean(trademark_name), "Trademark name", TRADEMARK_NAME_MAX_LENGTH)


class ProjectRepository(OwnedRepository[Project]):
    entity_name = "Project"

    def __init__(self, storage: StorageProvider):
        super().__init__(storage, storage.projects)

    # =========================================================================
    # Extra operations
    # =========================================================================

    async def update_status(self, id: str, status: ProjectStatus, owner_id: str) -> Project:
        project = await self.get_by_id(id, owner_id)
        project.status = ProjectStatus(status)
        project.touch()
        await self.save(project)
        logger.info(f"Project {id} status set to {project.status.name} by identity {owner_id}")
        return project

    async def search(self, term: str, owner_id: str) -> list[Project]:
        """Case-insensitive match on name, description, reference number or trademark name."""
        needle = (term or "").strip().lower()
        projects = await self.list(owner_id)
        if not needle:
            return projects
        return [
            p for p in projects
            if any(
                needle in (field or "").lower()
                for field in (p.name, p.description, p.reference_number, p.trademark_name)
            )
        ]

    async def client_for(self, project: Project) -> Client | None:
        """The project's client, for embedding in responses."""
        client = await self._call("get", self.storage.clients.get(project.client_id))
        if client is None or client.owner_id != project.owner_id:
            return None
        return client

    # =========================================================================
    # Hooks
    # =========================================================================

    async def _build(self, data: ProjectCreate, owner_id: str) -> Project:
        name = _validate_name(data.name)
        _check_references(data.reference_number, data.trademark_name)
        client_id = clean(data.client_id)
        if not client_id:
            raise ValidationError("Client is required")
        await self._require_owned_client(client_id, owner_id)

        return Project(
            owner_id=owner_id,
            client_id=client_id,
            name=name,
            description=(data.description or "").strip(),
            status=ProjectStatus.DRAFT,
            type=data.type,
            due_date=data.due_date,
            reference_number=clean(data.reference_number),
            trademark_name=clean(data.trademark_name),
            trademark_description=clean(data.trademark_description),
            goods_and_services=clean(data.goods_and_services),
            special_considerations=clean(data.special_considerations),
            created_by=owner_id,
        )

    async def _apply(self, project: Project, patch: ProjectUpdate, owner_id: str) -> None:
        _check_references(patch.reference_number, patch.trademark_name)
        if patch.name is not None:
            project.name = _validate_name(patch.name)
        if patch.client_id is not None and patch.client_id != project.client_id:
            client_id = clean(patch.client_id)
            if not client_id:
                raise ValidationError("Client is required")
            await self._require_owned_client(client_id, owner_id)
            project.client_id = client_id
        if patch.description is not None:
            project.description = patch.description.strip()
        if patch.status is not None:
            project.status = patch.status
        if patch.due_date is not None:
            project.due_date = patch.due_date
        if patch.reference_number is not None:
            project.reference_number = clean(patch.reference_number)
        if patch.trademark_name is not None:
            project.trademark_name = clean(patch.trademark_name)
        if patch.trademark_description is not None:
            project.trademark_description = clean(patch.trademark_description)
        if patch.goods_and_services is not None:
            project.goods_and_services = clean(patch.goods_and_services)
        if patch.special_considerations is not None:
            project.special_considerations = clean(patch.special_considerations)

    async def _check_delete(self, project: Project) -> None:
        if await self._call("delete", self.storage.documents.exists(project_id=project.id)):
            logger.warning(f"Refused to delete project {project.id}: it has documents")
            raise ConflictError(
                "Cannot delete project with existing documents. "
                "Please delete documents first."
            )

    async def _require_owned_client(self, client_id: str, owner_id: str) -> Client:
        client = await self._call("get", self.storage.clients.get(client_id))
        if client is None or client.owner_id != owner_id:
            if client is not None:
                logger.warning(f"Identity {owner_id} referenced client {client_id} it does not own")
            raise NotFoundError("Client not found")
        return client
