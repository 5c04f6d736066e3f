# =============================================================================
# Password Policy
# =============================================================================
#
# Hashing, verification and strength rules for account passwords.
#
# Hashes are PBKDF2-SHA256 in "iterations:salt:digest" form, so the work
# factor can be raised later without invalidating existing hashes.
#
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import logging
import re
import secrets

from legalvibes.errors import ValidationError

logger = logging.getLogger(__name__)

MIN_LENGTH = 8
MAX_LENGTH = 128
SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

_SPECIAL = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


@dataclass(frozen=True)
class StrengthResult:
    """Outcome of a strength check. ``reason`` names the first failed rule."""
    valid: bool
    reason: str | None = None


_OK = StrengthResult(valid=True)


class PasswordPolicy:
    """Salted, slow password hashing plus the account strength rules."""

    def __init__(self, iterations: int = 100_000):
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self.iterations = iterations

    def hash(self, password: str) -> str:
        """Hash a password. Every call uses a fresh salt."""
        if not password:
            raise ValidationError("Password cannot be empty")
        salt = secrets.token_hex(32)
        digest = self._digest(password, salt, self.iterations)
        return f"{self.iterations}:{salt}:{digest}"

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. Never raises."""
        if not password or not password_hash:
            return False
        try:
            iterations, salt, stored = password_hash.split(":")
            digest = self._digest(password, salt, int(iterations))
            return secrets.compare_digest(digest, stored)
        except (ValueError, AttributeError, TypeError) as e:
            logger.warning(f"Unreadable password hash: {e}")
            return False

    def validate_strength(self, password: str | None) -> StrengthResult:
        if not password:
            return StrengthResult(False, "Password is required")
        if len(password) < MIN_LENGTH:
            return StrengthResult(False, f"Password must be at least {MIN_LENGTH} characters long")
        if len(password) > MAX_LENGTH:
            return StrengthResult(False, f"Password must not exceed {MAX_LENGTH} characters")
        if not any(c.isupper() for c in password):
            return StrengthResult(False, "Password must contain at least one uppercase letter")
        if not any(c.islower() for c in password):
            return StrengthResult(False, "Password must contain at least one lowercase letter")
        if not any(c.isdigit() for c in password):
            return StrengthResult(False, "Password must contain at least one number")
        if not _SPECIAL.search(password):
            return StrengthResult(
                False,
                f"Password must contain at least one special character ({SPECIAL_CHARACTERS})",
            )
        return _OK

    @staticmethod
    def _digest(password: str, salt: str, iterations: int) -> str:
        if iterations < 1:
            raise ValueError("iterations must be positive")
        return hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=iterations,
        ).hex()
