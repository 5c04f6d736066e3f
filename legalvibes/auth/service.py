"""
Auth service - registration, login, profile and token refresh.

Coordinates the password policy, the token service and the identity store.
Everything below this layer (store errors, token errors) is translated into
the error kinds of ``legalvibes.errors`` before it leaves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from legalvibes.auth.passwords import PasswordPolicy
from legalvibes.auth.tokens import IssuedToken, TokenError, TokenService
from legalvibes.core.contracts import ProfileUpdate, RegisterRequest
from legalvibes.core.models import (
    COMPANY_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    JOB_TITLE_MAX_LENGTH,
    PERSON_NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    Identity,
)
from legalvibes.core.utils import check_max_length, clean, is_valid_email, normalize_email
from legalvibes.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)
from legalvibes.storage import DuplicateKeyError, StorageError, StorageProvider

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
JOB_TITLE_LOCKED = (
    "Job title cannot be changed through profile updates. "
    "Contact your administrator for role changes."
)
COMPANY_LOCKED = (
    "Company name cannot be changed through profile updates. "
    "Contact your administrator for organization changes."
)


@dataclass(frozen=True)
class AuthResult:
    """A successful authentication: who, plus their fresh token."""

    identity: Identity
    token: str
    expires_at: datetime

    @classmethod
    def build(cls, identity: Identity, issued: IssuedToken) -> AuthResult:
        return cls(identity=identity, token=issued.token, expires_at=issued.expires_at)


class AuthService:
    """
    Session orchestrator.

    Login failures are deliberately uniform: an unknown email, an inactive
    account and a wrong password all produce the same error, and unknown
    emails still pay for a hash verification.
    """

    def __init__(
        self,
        storage: StorageProvider,
        passwords: PasswordPolicy,
        tokens: TokenService,
    ):
        self.users = storage.users
        self.passwords = passwords
        self.tokens = tokens
        self._dummy_hash = passwords.hash("Dummy-Password-1!")

    # =========================================================================
    # Registration / Login
    # =========================================================================

    async def register(self, request: RegisterRequest) -> AuthResult:
        email = normalize_email(request.email)
        first_name = clean(request.first_name)
        last_name = clean(request.last_name)

        if not email:
            raise ValidationError("Email is required")
        if not is_valid_email(email):
            raise ValidationError("Please enter a valid email address")
        if not first_name:
            raise ValidationError("First name is required")
        if not last_name:
            raise ValidationError("Last name is required")

        phone = (request.phone_number or "").strip()
        company_name = clean(request.company_name)
        job_title = clean(request.job_title)
        check_max_length(email, "Email", EMAIL_MAX_LENGTH)
        check_max_length(first_name, "First name", PERSON_NAME_MAX_LENGTH)
        check_max_length(last_name, "Last name", PERSON_NAME_MAX_LENGTH)
        check_max_length(phone, "Phone number", PHONE_MAX_LENGTH)
        check_max_length(company_name, "Company name", COMPANY_MAX_LENGTH)
        check_max_length(job_title, "Job title", JOB_TITLE_MAX_LENGTH)

        strength = self.passwords.validate_strength(request.password)
        if not strength.valid:
            raise ValidationError(strength.reason)

        if await self._find_by_email(email):
            logger.warning(f"Registration rejected, email already registered: {email}")
            raise ConflictError("A user with this email already exists")

        identity = Identity(
            email=email,
            password_hash=self.passwords.hash(request.password),
            first_name=first_name,
            last_name=last_name,
            phone_number=phone,
            company_name=company_name,
            job_title=job_title,
        )

        try:
            await self.users.add(identity)
        except DuplicateKeyError as e:
            logger.warning(f"Registration lost a race for {email}: {e}")
            raise ConflictError("A user with this email already exists") from e
        except StorageError as e:
            logger.error(f"Failed to store new identity {email}: {e}")
            raise ServiceError("An error occurred during registration") from e

        logger.info(f"Registered identity {identity.id} ({email})")
        return AuthResult.build(identity, self.tokens.issue(identity))

    async def login(self, email: str, password: str) -> AuthResult:
        email = normalize_email(email)
        if not email or not password:
            raise UnauthorizedError("Email and password are required")

        identity = await self._find_by_email(email)
        if identity is None:
            # Same cost as a real check so response time leaks nothing
            self.passwords.verify(password, self._dummy_hash)
            logger.warning(f"Login failed for unknown email: {email}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        password_ok = self.passwords.verify(password, identity.password_hash)
        if not identity.is_active:
            logger.warning(f"Login attempt for inactive identity {identity.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not password_ok:
            logger.warning(f"Login failed, wrong password for {identity.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        logger.info(f"Identity {identity.id} logged in")
        return AuthResult.build(identity, self.tokens.issue(identity))

    # =========================================================================
    # Refresh
    # =========================================================================

    async def refresh(self, token: str) -> AuthResult:
        """
        Exchange a (possibly expired) token for a new one.

        The new token is built from the stored identity, not the old claims,
        so edits and deactivation take effect at the next refresh.
        """
        try:
            claims = self.tokens.validate_ignoring_expiry(token)
        except TokenError as e:
            logger.warning(f"Refresh rejected: {e}")
            raise UnauthorizedError("Invalid token") from e

        identity = await self._get(claims.sub)
        if identity is None:
            logger.warning(f"Refresh rejected, identity {claims.sub} no longer exists")
            raise UnauthorizedError("User not found")
        if not identity.is_active:
            logger.warning(f"Refresh rejected, identity {identity.id} is inactive")
            raise UnauthorizedError("User account is inactive")

        logger.info(f"Refreshed token for identity {identity.id}")
        return AuthResult.build(identity, self.tokens.issue(identity))

    # =========================================================================
    # Profile
    # =========================================================================

    async def get_profile(self, identity_id: str) -> Identity:
        identity = await self._get(identity_id)
        if identity is None:
            raise NotFoundError("User not found")
        return identity

    async def update_profile(self, identity_id: str, patch: ProfileUpdate) -> Identity:
        """
        Self-service update of names and phone number.

        Job title and company are locked: a value that differs from the
        stored one is refused outright, whoever asks.
        """
        identity = await self.get_profile(identity_id)

        if patch.job_title is not None and clean(patch.job_title) != identity.job_title:
            logger.warning(f"Identity {identity_id} tried to change job title")
            raise ForbiddenError(JOB_TITLE_LOCKED)
        if patch.company_name is not None and clean(patch.company_name) != identity.company_name:
            logger.warning(f"Identity {identity_id} tried to change company name")
            raise ForbiddenError(COMPANY_LOCKED)

        # Blank values leave the stored field unchanged
        first_name = clean(patch.first_name)
        last_name = clean(patch.last_name)
        phone = clean(patch.phone_number)

        if first_name is not None and len(first_name) < 2:
            raise ValidationError("First name must be at least 2 characters long")
        if last_name is not None and len(last_name) < 2:
            raise ValidationError("Last name must be at least 2 characters long")
        if phone is not None and len(phone) < 10:
            raise ValidationError("Phone number must be at least 10 characters long")
        check_max_length(first_name, "First name", PERSON_NAME_MAX_LENGTH)
        check_max_length(last_name, "Last name", PERSON_NAME_MAX_LENGTH)
        check_max_length(phone, "Phone number", PHONE_MAX_LENGTH)

        if first_name is not None:
            identity.first_name = first_name
        if last_name is not None:
            identity.last_name = last_name
        if phone is not None:
            identity.phone_number = phone

        identity.touch()
        await self._save(identity)
        logger.info(f"Updated profile of identity {identity_id}")
        return identity

    # =========================================================================
    # Privileged
    # =========================================================================

    async def list_identities(self) -> list[Identity]:
        try:
            identities = await self.users.find()
        except StorageError as e:
            logger.error(f"Failed to list identities: {e}")
            raise ServiceError("An error occurred while retrieving users") from e
        return sorted(identities, key=lambda i: i.created_at)

    async def assign_organization(
        self,
        identity_id: str,
        job_title: str | None = None,
        company_name: str | None = None,
    ) -> Identity:
        """Admin path for the fields self-service update refuses to touch."""
        check_max_length(clean(job_title), "Job title", JOB_TITLE_MAX_LENGTH)
        check_max_length(clean(company_name), "Company name", COMPANY_MAX_LENGTH)
        identity = await self.get_profile(identity_id)
        if job_title is not None:
            identity.job_title = clean(job_title)
        if company_name is not None:
            identity.company_name = clean(company_name)
        identity.touch()
        await self._save(identity)
        logger.info(
            f"Organization of identity {identity_id} set to "
            f"job_title={identity.job_title!r} company={identity.company_name!r}"
        )
        return identity

    async def deactivate(self, identity_id: str) -> Identity:
        """Soft delete. The identity can no longer log in or refresh."""
        identity = await self.get_profile(identity_id)
        identity.is_active = False
        identity.touch()
        await self._save(identity)
        logger.info(f"Deactivated identity {identity_id}")
        return identity

    # =========================================================================
    # Store access
    # =========================================================================

    async def _find_by_email(self, email: str) -> Identity | None:
        try:
            matches = await self.users.find(email=email)
        except StorageError as e:
            logger.error(f"Identity lookup by email failed: {e}")
            raise ServiceError("An error occurred while accessing user data") from e
        return matches[0] if matches else None

    async def _get(self, identity_id: str) -> Identity | None:
        try:
            return await self.users.get(identity_id)
        except StorageError as e:
            logger.error(f"Identity lookup {identity_id} failed: {e}")
            raise ServiceError("An error occurred while accessing user data") from e

    async def _save(self, identity: Identity) -> None:
        try:
            await self.users.update(identity)
        except StorageError as e:
            logger.error(f"Failed to save identity {identity.id}: {e}")
            raise ServiceError("An error occurred while saving user data") from e
