"""
Request and response contracts.

These are the shapes that cross the wire. Fields are snake_case in Python
and camelCase in JSON. Request models are deliberately loose (plain strings
with empty defaults) so the services, not the transport, decide what is
invalid and with which message.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from legalvibes.core.models import (
    Client,
    Identity,
    Project,
    ProjectStatus,
    ProjectType,
)

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for wire models: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Envelope (auth endpoints only)
# =============================================================================


class ApiResponse(ApiModel, Generic[T]):
    """Envelope used by the auth endpoints. Entity endpoints return raw bodies."""

    success: bool
    message: str | None = None
    error: str | None = None
    data: T | None = None


# =============================================================================
# Identity / Auth
# =============================================================================


class RegisterRequest(ApiModel):
    email: str = ""
    password: str = ""
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    company_name: str | None = None
    job_title: str | None = None


class LoginRequest(ApiModel):
    email: str = ""
    password: str = ""


class ProfileUpdate(ApiModel):
    """Self-service profile patch. Only names and phone may actually change."""

    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    company_name: str | None = None
    job_title: str | None = None


class OrganizationUpdate(ApiModel):
    """Admin-only change of the fields self-service update refuses."""

    job_title: str | None = None
    company_name: str | None = None


class IdentityOut(ApiModel):
    """Public view of an identity. Also the client-side session snapshot."""

    id: str
    email: str
    first_name: str
    last_name: str
    full_name: str = ""
    phone_number: str = ""
    is_active: bool = True
    company_name: str | None = None
    job_title: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_identity(cls, identity: Identity) -> IdentityOut:
        return cls(
            id=identity.id,
            email=identity.email,
            first_name=identity.first_name,
            last_name=identity.last_name,
            full_name=identity.full_name,
            phone_number=identity.phone_number,
            is_active=identity.is_active,
            company_name=identity.company_name,
            job_title=identity.job_title,
            created_at=identity.created_at,
        )


class AuthPayload(ApiModel):
    """What login, register and refresh hand back."""

    token: str
    expires_at: datetime
    user: IdentityOut


class TokenCheck(ApiModel):
    user_id: str
    email: str


# =============================================================================
# Clients
# =============================================================================


class ClientCreate(ApiModel):
    name: str = ""
    email: str = ""
    phone_number: str = ""
    company_name: str | None = None
    address: str | None = None


class ClientUpdate(ApiModel):
    name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    company_name: str | None = None
    address: str | None = None
    is_active: bool | None = None


class ClientOut(ApiModel):
    id: str
    name: str
    email: str
    phone_number: str = ""
    company_name: str | None = None
    address: str | None = None
    is_active: bool = True
    created_at: datetime | None = None

    @classmethod
    def from_client(cls, client: Client) -> ClientOut:
        return cls(
            id=client.id,
            name=client.name,
            email=client.email,
            phone_number=client.phone_number,
            company_name=client.company_name,
            address=client.address,
            is_active=client.is_active,
            created_at=client.created_at,
        )


# =============================================================================
# Projects
# =============================================================================


class ProjectCreate(ApiModel):
    name: str = ""
    description: str = ""
    type: ProjectType = ProjectType.TRADEMARK_APPLICATION
    client_id: str = ""
    due_date: datetime | None = None
    reference_number: str | None = None
    trademark_name: str | None = None
    trademark_description: str | None = None
    goods_and_services: str | None = None
    special_considerations: str | None = None


class ProjectUpdate(ApiModel):
    name: str | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    client_id: str | None = None
    due_date: datetime | None = None
    reference_number: str | None = None
    trademark_name: str | None = None
    trademark_description: str | None = None
    goods_and_services: str | None = None
    special_considerations: str | None = None


class ProjectStatusUpdate(ApiModel):
    status: ProjectStatus


class ProjectOut(ApiModel):
    id: str
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT
    type: ProjectType = ProjectType.TRADEMARK_APPLICATION
    due_date: datetime | None = None
    reference_number: str | None = None
    created_at: datetime | None = None
    created_by: str | None = None
    client_id: str
    client: ClientOut | None = None
    trademark_name: str | None = None
    trademark_description: str | None = None
    goods_and_services: str | None = None
    special_considerations: str | None = None

    @classmethod
    def from_project(cls, project: Project, client: Client | None = None) -> ProjectOut:
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            status=project.status,
            type=project.type,
            due_date=project.due_date,
            reference_number=project.reference_number,
            created_at=project.created_at,
            created_by=project.created_by,
            client_id=project.client_id,
            client=ClientOut.from_client(client) if client else None,
            trademark_name=project.trademark_name,
            trademark_description=project.trademark_description,
            goods_and_services=project.goods_and_services,
            special_considerations=project.special_considerations,
        )
