# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints (all answer with the {success, message, error, data} envelope):
#   POST /auth/register        - Create account, returns token
#   POST /auth/login           - Exchange credentials for a token
#   GET  /auth/profile         - Current identity
#   PUT  /auth/profile         - Self-service profile update
#   POST /auth/validate-token  - Check the bearer token
#   POST /auth/refresh-token   - Exchange a (possibly expired) token
#
# Admin (derived admin role, raw bodies):
#   GET    /admin/users                     - All identities
#   PUT    /admin/users/{id}/organization   - Set job title / company
#   DELETE /admin/users/{id}                - Deactivate
#
# =============================================================================

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from legalvibes.auth.context import AuthContext
from legalvibes.auth.policies import (
    get_auth_service,
    require_admin,
    require_auth,
    require_bearer_token,
)
from legalvibes.auth.service import AuthResult, AuthService
from legalvibes.core.contracts import (
    ApiResponse,
    AuthPayload,
    IdentityOut,
    LoginRequest,
    OrganizationUpdate,
    ProfileUpdate,
    RegisterRequest,
    TokenCheck,
)
from legalvibes.errors import AppError

router = APIRouter(prefix="/auth", tags=["auth"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


def _ok(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    body = ApiResponse[Any](success=True, message=message, data=data)
    return JSONResponse(status_code=status_code, content=body.to_json())


def _failed(error: AppError) -> JSONResponse:
    body = ApiResponse[Any](success=False, error=error.message)
    return JSONResponse(status_code=error.status_code, content=body.to_json())


def _payload(result: AuthResult) -> dict:
    return AuthPayload(
        token=result.token,
        expires_at=result.expires_at,
        user=IdentityOut.from_identity(result.identity),
    ).to_json()


# =============================================================================
# Public Endpoints
# =============================================================================


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Create a new account and sign it in."""
    try:
        result = await auth.register(data)
    except AppError as e:
        return _failed(e)
    return _ok("Registration successful", _payload(result), status_code=201)


@router.post("/login")
async def login(
    data: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
):
    try:
        result = await auth.login(data.email, data.password)
    except AppError as e:
        return _failed(e)
    return _ok("Login successful", _payload(result))


@router.post("/refresh-token")
async def refresh_token(
    token: str = Depends(require_bearer_token),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Exchange the bearer token for a fresh one.

    The token may be expired; it must still carry a valid signature.
    """
    try:
        result = await auth.refresh(token)
    except AppError as e:
        return _failed(e)
    return _ok("Token refreshed successfully", _payload(result))


# =============================================================================
# Authenticated Endpoints
# =============================================================================


@router.get("/profile")
async def get_profile(
    ctx: AuthContext = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
):
    try:
        identity = await auth.get_profile(ctx.user_id)
    except AppError as e:
        return _failed(e)
    return _ok("Profile retrieved successfully", IdentityOut.from_identity(identity).to_json())


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    ctx: AuthContext = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
):
    try:
        identity = await auth.update_profile(ctx.user_id, data)
    except AppError as e:
        return _failed(e)
    return _ok("Profile updated successfully", IdentityOut.from_identity(identity).to_json())


@router.post("/validate-token")
async def validate_token(ctx: AuthContext = Depends(require_auth)):
    check = TokenCheck(user_id=ctx.user_id, email=ctx.email)
    return _ok("Token is valid", check.to_json())


# =============================================================================
# Admin Endpoints
# =============================================================================


@admin_router.get("/users")
async def list_users(
    ctx: AuthContext = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    identities = await auth.list_identities()
    return [IdentityOut.from_identity(i).to_json() for i in identities]


@admin_router.put("/users/{user_id}/organization")
async def assign_organization(
    user_id: str,
    data: OrganizationUpdate,
    ctx: AuthContext = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    identity = await auth.assign_organization(
        user_id,
        job_title=data.job_title,
        company_name=data.company_name,
    )
    return IdentityOut.from_identity(identity).to_json()


@admin_router.delete("/users/{user_id}", status_code=204)
async def deactivate_user(
    user_id: str,
    ctx: AuthContext = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.deactivate(user_id)
