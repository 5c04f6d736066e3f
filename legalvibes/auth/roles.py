"""
Derived roles.

There is no stored role. Admin rights follow from the job title and are
re-evaluated on every check, so a title change takes effect immediately.
"""

from __future__ import annotations

ADMIN_TITLE_MARKERS = ("admin", "partner")

ADMIN_REQUIREMENT = 'Admin access requires a job title containing "admin" or "partner"'


def has_admin_role(job_title: str | None) -> bool:
    """True if the job title contains "admin" or "partner" (any case)."""
    if not job_title:
        return False
    title = job_title.lower()
    return any(marker in title for marker in ADMIN_TITLE_MARKERS)
