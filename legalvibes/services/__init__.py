"""
Services module - owner-scoped business logic for clients and projects.
"""

from legalvibes.services.base import OwnedRepository
from legalvibes.services.clients import ClientRepository
from legalvibes.services.projects import ProjectRepository

__all__ = [
    "OwnedRepository",
    "ClientRepository",
    "ProjectRepository",
]
