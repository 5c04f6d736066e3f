# =============================================================================
# Session Tokens
# =============================================================================
#
# Self-contained signed JWTs. There is no server-side session table: a token
# is valid if its signature, issuer and audience check out and it has not
# expired. Refresh accepts an expired token as long as its structure is
# still valid, then re-issues from the current identity record.
#
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
import logging

from pydantic import BaseModel, ConfigDict, Field
import jwt

from legalvibes.core.models import Identity
from legalvibes.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "email", "exp", "iat", "jti", "iss", "aud"]


# =============================================================================
# Models
# =============================================================================


class TokenClaims(BaseModel):
    """Decoded token payload."""

    model_config = ConfigDict(populate_by_name=True)

    sub: str  # identity id
    email: str
    given_name: str = ""
    family_name: str = ""
    name: str = ""
    company: str = ""
    job_title: str = Field("", alias="jobTitle")
    is_active: bool = Field(True, alias="isActive")
    jti: str
    iat: datetime
    exp: datetime
    iss: str
    aud: str

    @property
    def identity_id(self) -> str:
        return self.sub


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    claims: TokenClaims


# =============================================================================
# Errors
# =============================================================================


class TokenError(Exception):
    """Base exception for token errors."""
    pass


class InvalidTokenError(TokenError):
    """Token failed full validation (signature, issuer, audience or expiry)."""
    pass


class MalformedTokenError(TokenError):
    """Token is structurally invalid, so it cannot even be refreshed."""
    pass


# =============================================================================
# Service
# =============================================================================


class TokenService:
    """
    Issues and validates session tokens.

    Stateless apart from its configuration. ``clock`` is consulted for
    issuance and for every expiry decision, with zero leeway.
    """

    def __init__(
        self,
        secret_key: str,
        issuer: str,
        audience: str,
        algorithm: str = "HS256",
        expiration_minutes: int = 1440,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not secret_key:
            raise ValueError("JWT secret key is not configured")
        self.secret_key = secret_key
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm
        self.expiration_minutes = expiration_minutes
        self.clock = clock

    @classmethod
    def from_settings(cls, settings) -> TokenService:
        return cls(
            secret_key=settings.jwt_secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            algorithm=settings.jwt_algorithm,
            expiration_minutes=settings.jwt_expiration_minutes,
        )

    # -------------------------------------------------------------------------
    # Issue
    # -------------------------------------------------------------------------

    def issue(self, identity: Identity) -> IssuedToken:
        """Create a token snapshotting the identity's current profile."""
        now = self.clock().replace(microsecond=0)
        expires_at = now + timedelta(minutes=self.expiration_minutes)

        payload = {
            "sub": identity.id,
            "email": identity.email,
            "given_name": identity.first_name,
            "family_name": identity.last_name,
            "name": identity.full_name,
            "company": identity.company_name or "",
            "jobTitle": identity.job_title or "",
            "isActive": identity.is_active,
            "jti": generate_id("tok"),
            "iat": now,
            "exp": expires_at,
            "iss": self.issuer,
            "aud": self.audience,
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at, claims=self._claims(payload))

    # -------------------------------------------------------------------------
    # Validate
    # -------------------------------------------------------------------------

    def validate(self, token: str) -> TokenClaims:
        """
        Full validation.

        Raises:
            InvalidTokenError: Bad signature, issuer, audience, shape, or expired
        """
        try:
            claims = self._decode(token)
        except MalformedTokenError as e:
            raise InvalidTokenError(str(e)) from e

        if self.clock() >= claims.exp:
            raise InvalidTokenError("Token has expired")
        return claims

    def validate_ignoring_expiry(self, token: str) -> TokenClaims:
        """
        Structural validation only. Used by refresh.

        Raises:
            MalformedTokenError: Bad signature, issuer, audience or shape
        """
        return self._decode(token)

    def is_expired(self, token: str) -> bool:
        """Whether the token's expiry has passed. Unreadable tokens count as expired."""
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
            exp = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (jwt.PyJWTError, KeyError, TypeError, ValueError, OverflowError):
            return True
        return self.clock() >= exp

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _decode(self, token: str) -> TokenClaims:
        if not token:
            raise MalformedTokenError("Token is empty")
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=0,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.PyJWTError as e:
            raise MalformedTokenError(f"Invalid token: {e}") from e

        try:
            return self._claims(payload)
        except (ValueError, TypeError) as e:
            raise MalformedTokenError(f"Invalid token claims: {e}") from e

    @staticmethod
    def _claims(payload: dict) -> TokenClaims:
        data = dict(payload)
        for key in ("iat", "exp"):
            if not isinstance(data[key], datetime):
                data[key] = datetime.fromtimestamp(int(data[key]), tz=timezone.utc)
        return TokenClaims.model_validate(data)
