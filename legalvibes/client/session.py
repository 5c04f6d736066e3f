"""
Client-side session store.

Holds the current ``AuthState`` in memory, mirrors it to a snapshot storage
after every transition, and owns the token refresh. Presentation code reads
``state`` (or subscribes to changes) and calls the async operations; it
never touches the token or the snapshot directly.

Refresh is single-flight: while one refresh is running, every other caller
awaits the same task and gets the same new token, or the same error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import jwt
from pydantic import ValidationError as PydanticValidationError

from legalvibes.client.api import ApiClient
from legalvibes.client.persistence import (
    TOKEN_KEY,
    USER_KEY,
    FileSnapshotStorage,
    SnapshotStorage,
)
from legalvibes.client.state import (
    Action,
    AuthState,
    ClearError,
    LoginFailure,
    LoginStart,
    LoginSuccess,
    Logout,
    RefreshStart,
    Restored,
    SessionStatus,
    UpdateUser,
    reduce,
)
from legalvibes.core.contracts import AuthPayload, IdentityOut, ProfileUpdate, RegisterRequest
from legalvibes.errors import AppError, UnauthorizedError

logger = logging.getLogger(__name__)

SESSION_EXPIRED = "Session expired. Please log in again."

Listener = Callable[[AuthState], None]


def _is_structurally_valid(token: str) -> bool:
    """Three base64 segments with a readable header and payload. No signature check."""
    try:
        jwt.get_unverified_header(token)
        jwt.decode(token, options={"verify_signature": False})
        return True
    except jwt.PyJWTError:
        return False


class SessionStore:
    """
    The client's single source of truth for "who is logged in".

    Usage:
        store = SessionStore.from_settings(get_settings())
        store.init()
        await store.login("a@x.com", "Str0ng!Pass")
        clients = await store.api.list_clients()
    """

    def __init__(self, api: ApiClient, storage: SnapshotStorage):
        self.api = api
        self.storage = storage
        self._state = AuthState()
        self._listeners: list[Listener] = []
        self._refresh_task: asyncio.Task[str] | None = None

        api.bind_session(lambda: self._state.token, self.refresh)

    @classmethod
    def from_settings(cls, settings) -> SessionStore:
        return cls(
            ApiClient.from_settings(settings),
            FileSnapshotStorage(settings.client_session_file),
        )

    @property
    def state(self) -> AuthState:
        return self._state

    # =========================================================================
    # State plumbing
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every transition. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _dispatch(self, action: Action) -> AuthState:
        self._state = reduce(self._state, action)
        self._persist(self._state)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def _persist(self, state: AuthState) -> None:
        try:
            if state.status == SessionStatus.ANONYMOUS:
                self.storage.remove_item(TOKEN_KEY)
                self.storage.remove_item(USER_KEY)
            elif state.has_session and state.status != SessionStatus.RESTORING:
                self.storage.set_item(TOKEN_KEY, state.token)
                self.storage.set_item(USER_KEY, state.user.model_dump_json(by_alias=True))
        except OSError as e:
            # The in-memory state stays authoritative; the next transition retries
            logger.error(f"Failed to persist session snapshot: {e}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def init(self) -> AuthState:
        """
        Restore the persisted session, if any.

        A snapshot that does not parse is discarded and the store starts
        anonymous. The token is not checked against the server here; an
        expired token is refreshed on the first 401.
        """
        token = self.storage.get_item(TOKEN_KEY)
        raw_user = self.storage.get_item(USER_KEY)

        if token and raw_user:
            try:
                user = IdentityOut.model_validate_json(raw_user)
            except PydanticValidationError as e:
                logger.warning(f"Discarding stored session, user is unreadable: {e}")
            else:
                if _is_structurally_valid(token):
                    logger.info(f"Restored session for {user.email}")
                    return self._dispatch(Restored(token=token, user=user))
                logger.warning("Discarding stored session, token is malformed")
        elif token or raw_user:
            logger.warning("Discarding incomplete stored session")

        return self._dispatch(Restored())

    async def close(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._listeners.clear()
        await self.api.close()

    # =========================================================================
    # Operations
    # =========================================================================

    async def login(self, email: str, password: str) -> IdentityOut:
        self._dispatch(LoginStart())
        try:
            payload = await self.api.login(email, password)
        except AppError as e:
            self._dispatch(LoginFailure(e.message))
            raise
        return self._authenticated(payload)

    async def register(self, data: RegisterRequest) -> IdentityOut:
        self._dispatch(LoginStart())
        try:
            payload = await self.api.register(data)
        except AppError as e:
            self._dispatch(LoginFailure(e.message))
            raise
        return self._authenticated(payload)

    def logout(self) -> None:
        """Forget the session locally. Tokens are stateless, so there is no server call."""
        self._dispatch(Logout())

    async def refresh(self) -> str:
        """
        Exchange the current token for a new one and return it.

        Concurrent callers share one in-flight refresh. Any failure ends the
        session and raises ``UnauthorizedError`` for every waiter.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._do_refresh())
        # Shield: one waiter being cancelled must not cancel the others' refresh
        return await asyncio.shield(self._refresh_task)

    async def _do_refresh(self) -> str:
        token = self._state.token
        if not token:
            # Also reached by 401s that land after a failed refresh ended the session
            raise UnauthorizedError(SESSION_EXPIRED)

        self._dispatch(RefreshStart())
        try:
            payload = await self.api.refresh_token(token)
        except AppError as e:
            logger.warning(f"Token refresh failed, ending session: {e.message}")
            self._dispatch(LoginFailure(SESSION_EXPIRED))
            raise UnauthorizedError(SESSION_EXPIRED) from e

        if self._state.status != SessionStatus.REFRESHING:
            # Logged out while the refresh was in flight
            raise UnauthorizedError("Not authenticated")

        self._authenticated(payload)
        logger.info("Token refreshed")
        return payload.token

    async def update_profile(self, data: ProfileUpdate) -> IdentityOut:
        """Server round-trip, then patch the cached user with the server's answer."""
        user = await self.api.update_profile(data)
        self._dispatch(UpdateUser(changes=user.model_dump()))
        return self._state.user

    def update_local_profile(self, **changes: Any) -> AuthState:
        """Optimistic local patch (snake_case field names). No network."""
        return self._dispatch(UpdateUser(changes=changes))

    def clear_error(self) -> AuthState:
        return self._dispatch(ClearError())

    def _authenticated(self, payload: AuthPayload) -> IdentityOut:
        self._dispatch(LoginSuccess(token=payload.token, user=payload.user))
        return payload.user
