"""
Route guards.

Pure decisions over the session state: given where the user is trying to
go, render it, show a loading indicator, redirect, or deny. The
presentation layer maps each outcome onto its own widgets and navigation.

    outcome = protected_route(store.state, Location("/projects"))
    if isinstance(outcome, Redirect):
        navigate(outcome.to, state=outcome.state)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from legalvibes.auth.roles import ADMIN_REQUIREMENT, has_admin_role
from legalvibes.client.state import AuthState

LOGIN_PATH = "/login"
DEFAULT_PATH = "/dashboard"
LOADING_MESSAGE = "Verifying your authentication..."


@dataclass(frozen=True)
class Location:
    """Where navigation is headed, plus any state carried by a redirect."""
    path: str
    state: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Render:
    pass


@dataclass(frozen=True)
class Loading:
    message: str = LOADING_MESSAGE


@dataclass(frozen=True)
class Redirect:
    to: str
    state: dict[str, Any] = field(default_factory=dict)
    replace: bool = True


@dataclass(frozen=True)
class AccessDenied:
    job_title: str | None
    reason: str = ADMIN_REQUIREMENT


GuardOutcome = Union[Render, Loading, Redirect, AccessDenied]


def public_route(state: AuthState, location: Location) -> GuardOutcome:
    """Login/register pages: signed-in users go back where they came from."""
    if state.is_loading:
        return Loading()
    if state.is_authenticated:
        return Redirect(location.state.get("from") or DEFAULT_PATH)
    return Render()


def protected_route(state: AuthState, location: Location) -> GuardOutcome:
    """Pages that need a session. Remembers the path for after login."""
    if state.is_loading:
        return Loading()
    if not state.is_authenticated:
        return Redirect(LOGIN_PATH, state={"from": location.path})
    return Render()


def admin_route(state: AuthState, location: Location) -> GuardOutcome:
    outcome = protected_route(state, location)
    if not isinstance(outcome, Render):
        return outcome
    job_title = state.user.job_title if state.user else None
    if not has_admin_role(job_title):
        return AccessDenied(job_title=job_title)
    return Render()
