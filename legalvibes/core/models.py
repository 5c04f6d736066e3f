"""
Core data models for LegalVibes.

These models represent the stored entities: Identities (users), Clients,
Projects and Documents. Clients and Projects are owned by the identity
that created them; every read and write on them is scoped to that owner.
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel, Field

from legalvibes.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================
#
# Integer-valued: the web client sends and receives these as numbers.


class ProjectStatus(IntEnum):
    """Lifecycle of a legal matter."""

    DRAFT = 0
    IN_PROGRESS = 1
    UNDER_REVIEW = 2
    SUBMITTED = 3
    APPROVED = 4
    REJECTED = 5
    COMPLETED = 6
    ARCHIVED = 7


class ProjectType(IntEnum):
    """Kind of IP matter."""

    TRADEMARK_APPLICATION = 0
    PATENT_APPLICATION = 1
    COPYRIGHT_REGISTRATION = 2
    IP_CONSULTATION = 3
    OTHER = 4


class DocumentStatus(IntEnum):
    DRAFT = 0
    GENERATED = 1
    UNDER_REVIEW = 2
    APPROVED = 3
    REJECTED = 4
    FINAL = 5
    ARCHIVED = 6


class DocumentType(IntEnum):
    TRADEMARK_APPLICATION = 0
    SUPPORTING_DOCUMENT = 1
    CLIENT_INSTRUCTIONS = 2
    LEGAL_ANALYSIS = 3
    AI_GENERATED_DRAFT = 4
    OFFICIAL_RESPONSE = 5
    OTHER = 6


# =============================================================================
# Field limits
# =============================================================================
#
# Shared by the services (validation) and the SQL tables (column sizes).

EMAIL_MAX_LENGTH = 256
PERSON_NAME_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 20
COMPANY_MAX_LENGTH = 200
JOB_TITLE_MAX_LENGTH = 100
CLIENT_NAME_MAX_LENGTH = 200
ADDRESS_MAX_LENGTH = 500
PROJECT_NAME_MAX_LENGTH = 200
REFERENCE_MAX_LENGTH = 100
TRADEMARK_NAME_MAX_LENGTH = 200


# =============================================================================
# Identity
# =============================================================================


class Identity(BaseModel):
    """
    A registered user of the platform.

    Identities are never hard-deleted; deactivation flips ``is_active``.
    ``job_title`` and ``company_name`` only change through admin paths
    because the job title drives the derived admin role.
    """

    id: str = Field(default_factory=lambda: generate_id("usr"))
    email: str  # stored lower-cased
    password_hash: str
    first_name: str
    last_name: str
    phone_number: str = ""
    company_name: str | None = None
    job_title: str | None = None
    is_active: bool = True

    # Audit
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str = "System"
    last_modified_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def touch(self) -> None:
        self.last_modified_at = utc_now()


# =============================================================================
# Owned entities
# =============================================================================


class Client(BaseModel):
    """A client of the practice. Soft-deleted via ``is_active``."""

    id: str = Field(default_factory=lambda: generate_id("cli"))
    owner_id: str

    name: str
    email: str
    phone_number: str = ""
    company_name: str | None = None
    address: str | None = None
    is_active: bool = True

    created_at: datetime = Field(default_factory=utc_now)
    last_modified_at: datetime | None = None

    def touch(self) -> None:
        self.last_modified_at = utc_now()


class Project(BaseModel):
    """
    An IP matter handled for a client.

    The referenced client always belongs to the same owner as the project.
    """

    id: str = Field(default_factory=lambda: generate_id("prj"))
    owner_id: str
    client_id: str

    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT
    type: ProjectType = ProjectType.TRADEMARK_APPLICATION
    due_date: datetime | None = None
    reference_number: str | None = None

    # Trademark specifics
    trademark_name: str | None = None
    trademark_description: str | None = None
    goods_and_services: str | None = None
    special_considerations: str | None = None

    created_at: datetime = Field(default_factory=utc_now)
    created_by: str | None = None
    last_modified_at: datetime | None = None

    def touch(self) -> None:
        self.last_modified_at = utc_now()


class Document(BaseModel):
    """A file attached to a project. Blocks deletion of its project."""

    id: str = Field(default_factory=lambda: generate_id("doc"))
    project_id: str

    name: str
    description: str = ""
    type: DocumentType = DocumentType.OTHER
    status: DocumentStatus = DocumentStatus.DRAFT
    content_type: str = ""
    storage_path: str = ""
    size_in_bytes: int = 0
    version: str | None = None

    # For AI-generated documents
    is_ai_generated: bool = False
    generation_prompt: str | None = None
    ai_model: str | None = None

    created_at: datetime = Field(default_factory=utc_now)
