"""
Client session state and its transitions.

``reduce`` is a pure function from (state, action) to the next state; the
session store is the only caller. Keeping transitions here means every
possible state change is listed in one place and testable without I/O.

    restoring ──Restored──> anonymous | authenticated
    anonymous ──LoginStart──> authenticating ──LoginSuccess──> authenticated
                                             └─LoginFailure──> anonymous
    authenticated ──RefreshStart──> refreshing ──LoginSuccess──> authenticated
                                               └─LoginFailure──> anonymous
    any ──Logout──> anonymous
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

from legalvibes.core.contracts import IdentityOut


class SessionStatus(str, Enum):
    RESTORING = "restoring"
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


LOADING_STATUSES = (
    SessionStatus.RESTORING,
    SessionStatus.AUTHENTICATING,
    SessionStatus.REFRESHING,
)


@dataclass(frozen=True)
class AuthState:
    status: SessionStatus = SessionStatus.RESTORING
    token: str | None = None
    user: IdentityOut | None = None
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status in LOADING_STATUSES

    @property
    def has_session(self) -> bool:
        """Whether there is a token and user worth persisting."""
        return self.token is not None and self.user is not None

    @property
    def is_authenticated(self) -> bool:
        return self.has_session and self.status in (
            SessionStatus.AUTHENTICATED,
            SessionStatus.REFRESHING,
        )


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class Restored:
    """Start-up finished. Both None means nothing usable was persisted."""
    token: str | None = None
    user: IdentityOut | None = None


@dataclass(frozen=True)
class LoginStart:
    pass


@dataclass(frozen=True)
class LoginSuccess:
    """Login, registration or refresh produced a token."""
    token: str
    user: IdentityOut


@dataclass(frozen=True)
class LoginFailure:
    """Login, registration or refresh failed; the session is gone."""
    error: str


@dataclass(frozen=True)
class RefreshStart:
    pass


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class ClearError:
    pass


@dataclass(frozen=True)
class UpdateUser:
    """Patch the cached user (snake_case field names)."""
    changes: dict[str, Any] = field(default_factory=dict)


Action = Union[
    Restored, LoginStart, LoginSuccess, LoginFailure,
    RefreshStart, Logout, ClearError, UpdateUser,
]


# =============================================================================
# Reducer
# =============================================================================


def reduce(state: AuthState, action: Action) -> AuthState:
    """Next state for an action. Never mutates ``state``."""
    if isinstance(action, Restored):
        if action.token and action.user:
            return AuthState(SessionStatus.AUTHENTICATED, action.token, action.user)
        return AuthState(SessionStatus.ANONYMOUS)

    if isinstance(action, LoginStart):
        return replace(state, status=SessionStatus.AUTHENTICATING, error=None)

    if isinstance(action, LoginSuccess):
        return AuthState(SessionStatus.AUTHENTICATED, action.token, action.user)

    if isinstance(action, LoginFailure):
        return AuthState(SessionStatus.ANONYMOUS, error=action.error)

    if isinstance(action, RefreshStart):
        if state.status != SessionStatus.AUTHENTICATED:
            return state
        return replace(state, status=SessionStatus.REFRESHING)

    if isinstance(action, Logout):
        return AuthState(SessionStatus.ANONYMOUS)

    if isinstance(action, ClearError):
        return replace(state, error=None)

    if isinstance(action, UpdateUser):
        if state.user is None:
            return state
        user = state.user.model_copy(update=action.changes)
        user = user.model_copy(update={"full_name": f"{user.first_name} {user.last_name}"})
        return replace(state, user=user)

    return state
