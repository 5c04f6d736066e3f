"""
Client side: API access, session state and route guards.

Components:
- api: ApiClient (httpx, retries once after a token refresh)
- state: AuthState and the pure reducer
- persistence: snapshot storage (file or memory)
- session: SessionStore (login, register, logout, single-flight refresh)
- guards: public / protected / admin route decisions
"""

from legalvibes.client.api import ApiClient
from legalvibes.client.guards import (
    AccessDenied,
    Loading,
    Location,
    Redirect,
    Render,
    admin_route,
    protected_route,
    public_route,
)
from legalvibes.client.persistence import (
    FileSnapshotStorage,
    MemorySnapshotStorage,
    SnapshotStorage,
)
from legalvibes.client.session import SessionStore
from legalvibes.client.state import AuthState, SessionStatus, reduce

__all__ = [
    "ApiClient",
    "AccessDenied",
    "Loading",
    "Location",
    "Redirect",
    "Render",
    "admin_route",
    "protected_route",
    "public_route",
    "FileSnapshotStorage",
    "MemorySnapshotStorage",
    "SnapshotStorage",
    "SessionStore",
    "AuthState",
    "SessionStatus",
    "reduce",
]
