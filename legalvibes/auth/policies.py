"""
Policies - route authorization as FastAPI dependencies.

Usage in route handlers:
    ctx: AuthContext = Depends(require_auth)     # any valid token
    ctx: AuthContext = Depends(require_admin)    # derived admin role
    token: str = Depends(require_bearer_token)   # raw token, may be expired

Services are looked up on ``request.app.state`` (set up by the app
lifespan), so these dependencies carry no global state.
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from legalvibes.auth.context import AuthContext
from legalvibes.auth.roles import ADMIN_REQUIREMENT, has_admin_role
from legalvibes.auth.service import AuthService
from legalvibes.auth.tokens import TokenError, TokenService
from legalvibes.errors import NotFoundError
from legalvibes.integrations.sentry import set_user

logger = logging.getLogger(__name__)

# Optional JWT bearer (doesn't fail if no token, we raise our own 401)
optional_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# =============================================================================
# Service lookup
# =============================================================================


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


# =============================================================================
# Dependencies
# =============================================================================


async def require_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> str:
    """The raw bearer token, unvalidated. For the refresh endpoint."""
    if not credentials or not credentials.credentials:
        raise _unauthorized("Authentication required")
    return credentials.credentials


async def require_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    tokens: TokenService = Depends(get_token_service),
) -> AuthContext:
    """
    Require a fully valid token.

    Returns the AuthContext built from its claims; raises 401 otherwise.
    """
    if not credentials or not credentials.credentials:
        raise _unauthorized("Authentication required")

    token = credentials.credentials
    try:
        claims = tokens.validate(token)
    except TokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise _unauthorized("Invalid or expired token")

    set_user(claims.sub)
    return AuthContext.from_claims(claims, token=token)


async def require_admin(
    ctx: AuthContext = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """
    Require the derived admin role.

    Evaluated against the stored identity, not the token claims, so a
    demoted user loses access before their token expires.
    """
    try:
        identity = await auth.get_profile(ctx.user_id)
    except NotFoundError:
        raise _unauthorized("User not found")

    if not identity.is_active:
        raise _unauthorized("User account is inactive")
    if not has_admin_role(identity.job_title):
        logger.warning(f"Identity {ctx.user_id} denied admin access (job title {identity.job_title!r})")
        raise HTTPException(status_code=403, detail=ADMIN_REQUIREMENT)

    return AuthContext(
        user_id=identity.id,
        email=identity.email,
        first_name=identity.first_name,
        last_name=identity.last_name,
        company_name=identity.company_name,
        job_title=identity.job_title,
        token=ctx.token,
    )
