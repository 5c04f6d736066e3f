"""
Authentication and authorization.

Quick start:
    from legalvibes.auth import require_auth, AuthContext

    @app.get("/client")
    async def list_clients(ctx: AuthContext = Depends(require_auth)):
        ...

Components:
- passwords: PasswordPolicy (hashing + strength rules)
- tokens: TokenService (JWT issue / validate / refresh support)
- service: AuthService (register, login, profile, refresh)
- policies: FastAPI dependencies
- roles: derived admin role
"""

from legalvibes.auth.context import AuthContext
from legalvibes.auth.passwords import PasswordPolicy, StrengthResult
from legalvibes.auth.policies import require_admin, require_auth, require_bearer_token
from legalvibes.auth.roles import has_admin_role
from legalvibes.auth.service import AuthResult, AuthService
from legalvibes.auth.tokens import (
    InvalidTokenError,
    IssuedToken,
    MalformedTokenError,
    TokenClaims,
    TokenError,
    TokenService,
)

__all__ = [
    "AuthContext",
    "PasswordPolicy",
    "StrengthResult",
    "require_admin",
    "require_auth",
    "require_bearer_token",
    "has_admin_role",
    "AuthResult",
    "AuthService",
    "InvalidTokenError",
    "IssuedToken",
    "MalformedTokenError",
    "TokenClaims",
    "TokenError",
    "TokenService",
]
