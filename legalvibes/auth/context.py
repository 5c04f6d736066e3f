"""
Auth context - who is making the request.

This is the lightweight object passed to route handlers. It is built from
the validated token claims, so it reflects the identity as of token issue.
Handlers that need the current stored state (admin checks) re-fetch it.
"""

from __future__ import annotations

from dataclasses import dataclass

from legalvibes.auth.roles import has_admin_role
from legalvibes.auth.tokens import TokenClaims


@dataclass(frozen=True)
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_auth)):
            clients = await repo.list(ctx.user_id)
    """

    user_id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    company_name: str | None = None
    job_title: str | None = None
    token: str = ""

    @property
    def is_admin(self) -> bool:
        """Admin role as claimed by the token."""
        return has_admin_role(self.job_title)

    @classmethod
    def from_claims(cls, claims: TokenClaims, token: str = "") -> AuthContext:
        return cls(
            user_id=claims.sub,
            email=claims.email,
            first_name=claims.given_name,
            last_name=claims.family_name,
            company_name=claims.company or None,
            job_title=claims.job_title or None,
            token=token,
        )
