"""
Shared utility functions for the LegalVibes backend.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email

from legalvibes.errors import ValidationError


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "usr", "cli", "prj")

    Returns:
        A unique ID like "prj_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def clean(value: str | None) -> str | None:
    """Trim a string; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def normalize_email(email: str | None) -> str:
    """Emails compare case-insensitively; store them trimmed and lower-cased."""
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    """
    Syntax check only. No DNS lookup, and private or test domains such as
    ``firm.test`` or ``intranet`` pass. Reserved names that can never
    receive mail (``localhost``, ``.local``, ``.invalid``) are refused.
    """
    try:
        validate_email(
            email,
            check_deliverability=False,
            test_environment=True,
            globally_deliverable=False,
        )
        return True
    except EmailNotValidError:
        return False


def check_max_length(value: str | None, label: str, max_length: int) -> None:
    """Raise ValidationError when ``value`` is longer than its column allows."""
    if value is not None and len(value) > max_length:
        raise ValidationError(f"{label} cannot exceed {max_length} characters")
