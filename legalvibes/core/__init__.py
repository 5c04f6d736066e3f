"""
Core module - data models and wire contracts.

This module contains:
- models: Stored entities (Identity, Client, Project, Document)
- contracts: Request/response shapes shared by the API and the client
- utils: Shared utility functions
"""

from legalvibes.core.models import (
    Identity,
    Client,
    Project,
    Document,
    ProjectStatus,
    ProjectType,
    DocumentStatus,
    DocumentType,
)

from legalvibes.core.utils import generate_id, utc_now

__all__ = [
    # Models
    "Identity",
    "Client",
    "Project",
    "Document",
    "ProjectStatus",
    "ProjectType",
    "DocumentStatus",
    "DocumentType",
    # Utils
    "generate_id",
    "utc_now",
]
