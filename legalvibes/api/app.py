"""
FastAPI application for LegalVibes.

This is the REST API the web client talks to. Auth endpoints live in
``legalvibes.auth.routes``; client and project endpoints are here. Entity
endpoints return raw bodies and ``{"message": ...}`` on error, unlike the
auth envelope.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from legalvibes.auth import AuthContext, AuthService, PasswordPolicy, TokenService, require_auth
from legalvibes.auth.routes import admin_router, router as auth_router
from legalvibes.config import Settings, get_settings
from legalvibes.core.contracts import (
    ClientCreate,
    ClientOut,
    ClientUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectStatusUpdate,
    ProjectUpdate,
)
from legalvibes.core.models import Project
from legalvibes.core.utils import utc_now
from legalvibes.errors import AppError, ErrorKind
from legalvibes.integrations.sentry import capture_exception, init_sentry
from legalvibes.services import ClientRepository, ProjectRepository
from legalvibes.storage import StorageProvider, create_storage

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


def _init_state(app: FastAPI, settings: Settings, storage: StorageProvider) -> None:
    tokens = TokenService.from_settings(settings)
    passwords = PasswordPolicy(iterations=settings.password_hash_iterations)

    app.state.settings = settings
    app.state.storage = storage
    app.state.tokens = tokens
    app.state.auth = AuthService(storage, passwords, tokens)
    app.state.clients = ClientRepository(storage)
    app.state.projects = ProjectRepository(storage)


def create_app(settings: Settings | None = None, storage: StorageProvider | None = None) -> FastAPI:
    """
    Build the application.

    ``storage`` overrides the backend chosen from ``settings.database_url``
    (tests pass an in-memory provider they can inspect).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_sentry(settings):
            logger.info("Sentry error tracking enabled")

        provider = storage or create_storage(settings.database_url)
        _init_state(app, settings, provider)
        backend = "SQL" if settings.use_sql else "in-memory"
        logger.info(f"LegalVibes API starting in {settings.environment} mode ({backend} storage)")

        yield

        provider.close()
        logger.info("LegalVibes API shutting down")

    app = FastAPI(
        title="LegalVibes API",
        description="Clients, IP projects and authentication for legal practices",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, _app_error_handler)

    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(admin_router, prefix=settings.api_prefix)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(health_router)

    return app


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.kind == ErrorKind.SERVICE:
        capture_exception(exc, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


# =============================================================================
# Dependencies
# =============================================================================


def get_clients(request: Request) -> ClientRepository:
    return request.app.state.clients


def get_projects(request: Request) -> ProjectRepository:
    return request.app.state.projects


# =============================================================================
# Health
# =============================================================================


health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "legalvibes-api", "timestamp": utc_now().isoformat()}


router = APIRouter()


# =============================================================================
# Client Endpoints
# =============================================================================


@router.get("/client", tags=["clients"])
async def list_clients(
    ctx: AuthContext = Depends(require_auth),
    clients: ClientRepository = Depends(get_clients),
):
    """Active clients of the current user, newest first."""
    return [ClientOut.from_client(c).to_json() for c in await clients.list(ctx.user_id)]


@router.get("/client/{client_id}", tags=["clients"])
async def get_client(
    client_id: str,
    ctx: AuthContext = Depends(require_auth),
    clients: ClientRepository = Depends(get_clients),
):
    client = await clients.get_by_id(client_id, ctx.user_id)
    return ClientOut.from_client(client).to_json()


@router.post("/client", status_code=201, tags=["clients"])
async def create_client(
    data: ClientCreate,
    ctx: AuthContext = Depends(require_auth),
    clients: ClientRepository = Depends(get_clients),
):
    client = await clients.create(data, ctx.user_id)
    return ClientOut.from_client(client).to_json()


@router.put("/client/{client_id}", tags=["clients"])
async def update_client(
    client_id: str,
    data: ClientUpdate,
    ctx: AuthContext = Depends(require_auth),
    clients: ClientRepository = Depends(get_clients),
):
    client = await clients.update(client_id, data, ctx.user_id)
    return ClientOut.from_client(client).to_json()


@router.delete("/client/{client_id}", status_code=204, tags=["clients"])
async def delete_client(
    client_id: str,
    ctx: AuthContext = Depends(require_auth),
    clients: ClientRepository = Depends(get_clients),
):
    """Soft delete. Refused while the client has non-archived projects."""
    await clients.delete(client_id, ctx.user_id)


# =============================================================================
# Project Endpoints
# =============================================================================


async def _project_out(projects: ProjectRepository, project: Project) -> dict:
    return ProjectOut.from_project(project, await projects.client_for(project)).to_json()


@router.get("/project", tags=["projects"])
async def list_projects(
    search: str | None = None,
    ctx: AuthContext = Depends(require_auth),
    projects: ProjectRepository = Depends(get_projects),
):
    """All projects of the current user, optionally filtered by ``?search=``."""
    if search:
        found = await projects.search(search, ctx.user_id)
    else:
        found = await projects.list(ctx.user_id)
    return [await _project_out(projects, p) for p in found]


@router.get("/project/{project_id}", tags=["projects"])
async def get_project(
    project_id: str,
    ctx: AuthContext = Depends(require_auth),
    projects: ProjectRepository = Depends(get_projects),
):
    project = await projects.get_by_id(project_id, ctx.user_id)
    return await _project_out(projects, project)


@router.post("/project", status_code=201, tags=["projects"])
async def create_project(
    data: ProjectCreate,
    ctx: AuthContext = Depends(require_auth),
    projects: ProjectRepository = Depends(get_projects),
):
    project = await projects.create(data, ctx.user_id)
    return await _project_out(projects, project)


@router.put("/project/{project_id}", tags=["projects"])
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    ctx: AuthContext = Depends(require_auth),
    projects: ProjectRepository = Depends(get_projects),
):
    project = await projects.update(project_id, data, ctx.user_id)
    return await _project_out(projects, project)


@router.put("/project/{project_id}/status", tags=["projects"])
async def update_project_status(
    project_id: str,
    data: ProjectStatusUpdate,
    ctx: AuthContext = Depends(require_auth),
    projects: ProjectRepository = Depends(get_projects),
):
    project = await projects.update_status(project_id, data.status, ctx.user_id)
    return await _project_out(projects, project)


@router.delete("/project/{project_id}", status_code=204, tags=["projects"])
async def delete_project(
    project_id: str,
    ctx: AuthContext = Depends(require_auth),
    projects: ProjectRepository = Depends(get_projects),
):
    """Hard delete. Refused while documents remain."""
    await projects.delete(project_id, ctx.user_id)
