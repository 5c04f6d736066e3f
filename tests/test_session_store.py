"""
Tests for the client session store and API client.

The server is faked with ``httpx.MockTransport``; handlers are async so a
test can hold a response back and interleave other calls with it.
"""

import asyncio
import json

import httpx
import jwt
import pytest

from legalvibes.client import ApiClient, MemorySnapshotStorage, SessionStatus, SessionStore
from legalvibes.client.api import NETWORK_ERROR_MESSAGE
from legalvibes.client.persistence import TOKEN_KEY, USER_KEY
from legalvibes.client.session import SESSION_EXPIRED
from legalvibes.core.contracts import ClientCreate, IdentityOut, ProfileUpdate
from legalvibes.errors import (
    ConflictError,
    NetworkError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)
from tests.conftest import SECRET

BASE_URL = "https://api.legalvibes.test/api"


def make_token(n: int) -> str:
    return jwt.encode({"sub": "usr_1", "n": n}, SECRET, algorithm="HS256")


OLD = make_token(1)
NEW = make_token(2)

USER = {
    "id": "usr_1",
    "email": "alice@lawfirm.com",
    "firstName": "Alice",
    "lastName": "Smith",
    "fullName": "Alice Smith",
    "isActive": True,
}


def auth_body(token: str, **user) -> dict:
    return {
        "success": True,
        "message": "ok",
        "data": {"token": token, "expiresAt": "2026-01-16T12:00:00Z", "user": {**USER, **user}},
    }


def bearer_of(request: httpx.Request) -> str | None:
    header = request.headers.get("Authorization", "")
    return header.removeprefix("Bearer ") or None


class FakeServer:
    """Accepts one token at a time; refresh swaps in NEW."""

    def __init__(self, valid: str = NEW):
        self.valid = valid
        self.refreshes = 0
        self.refresh_gate: asyncio.Event | None = None
        self.refresh_fails = False
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.calls.append((request.method, path))
        token = bearer_of(request)

        if path == "/auth/login":
            body = json.loads(request.content)
            if body["password"] != "Str0ng!Pass":
                return httpx.Response(401, json={"success": False, "error": "Invalid email or password"})
            return httpx.Response(200, json=auth_body(self.valid))

        if path == "/auth/refresh-token":
            self.refreshes += 1
            if self.refresh_gate is not None:
                await self.refresh_gate.wait()
            else:
                await asyncio.sleep(0.01)
            if self.refresh_fails:
                return httpx.Response(401, json={"success": False, "error": "Invalid token"})
            self.valid = NEW
            return httpx.Response(200, json=auth_body(NEW))

        if token != self.valid:
            return httpx.Response(401, json={"detail": "Invalid or expired token"})

        if path == "/auth/profile" and request.method == "GET":
            return httpx.Response(200, json={"success": True, "data": USER})
        if path == "/auth/profile" and request.method == "PUT":
            changes = json.loads(request.content)
            user = {**USER, **changes, "fullName": f"{changes.get('firstName', 'Alice')} Smith"}
            return httpx.Response(200, json={"success": True, "data": user})
        if path == "/client" and request.method == "GET":
            return httpx.Response(200, json=[])
        return httpx.Response(404, json={"message": "Client not found"})


def make_store(server, snapshot: dict | None = None) -> SessionStore:
    api = ApiClient(BASE_URL, transport=httpx.MockTransport(server))
    return SessionStore(api, MemorySnapshotStorage(snapshot))


def snapshot_for(token: str) -> dict:
    return {TOKEN_KEY: token, USER_KEY: IdentityOut.model_validate(USER).model_dump_json(by_alias=True)}


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
async def store(server):
    store = make_store(server)
    store.init()
    yield store
    await store.close()


@pytest.fixture
async def stale_store(server):
    """Restored from a snapshot whose token the server no longer accepts."""
    store = make_store(server, snapshot_for(OLD))
    store.init()
    yield store
    await store.close()


# =============================================================================
# Start-up
# =============================================================================


class TestInit:
    async def test_empty_storage(self, store):
        assert store.state.status == SessionStatus.ANONYMOUS

    async def test_restores_snapshot(self, stale_store):
        assert stale_store.state.status == SessionStatus.AUTHENTICATED
        assert stale_store.state.token == OLD
        assert stale_store.state.user.email == "alice@lawfirm.com"

    @pytest.mark.parametrize(
        "snapshot",
        [
            {TOKEN_KEY: "not-a-jwt", USER_KEY: json.dumps(USER)},
            {TOKEN_KEY: OLD, USER_KEY: "{broken"},
            {TOKEN_KEY: OLD, USER_KEY: json.dumps({"id": "usr_1"})},
            {TOKEN_KEY: OLD},
            {USER_KEY: json.dumps(USER)},
        ],
    )
    async def test_unusable_snapshot_is_cleared(self, server, snapshot):
        store = make_store(server, snapshot)
        state = store.init()

        assert state.status == SessionStatus.ANONYMOUS
        assert store.storage.data == {}
        await store.close()


# =============================================================================
# Login / Logout
# =============================================================================


class TestLoginLogout:
    async def test_login_persists_snapshot(self, store):
        user = await store.login("alice@lawfirm.com", "Str0ng!Pass")

        assert user.full_name == "Alice Smith"
        assert store.state.status == SessionStatus.AUTHENTICATED
        assert store.storage.get_item(TOKEN_KEY) == NEW
        assert json.loads(store.storage.get_item(USER_KEY))["email"] == "alice@lawfirm.com"

    async def test_failed_login(self, store):
        with pytest.raises(UnauthorizedError, match="Invalid email or password"):
            await store.login("alice@lawfirm.com", "wrong")

        assert store.state.status == SessionStatus.ANONYMOUS
        assert store.state.error == "Invalid email or password"
        assert store.storage.data == {}

        store.clear_error()
        assert store.state.error is None

    async def test_logout_clears_snapshot(self, store):
        await store.login("alice@lawfirm.com", "Str0ng!Pass")
        store.logout()

        assert store.state.status == SessionStatus.ANONYMOUS
        assert store.state.token is None
        assert store.storage.data == {}

    async def test_subscribers_see_every_transition(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda state: seen.append(state.status))

        await store.login("alice@lawfirm.com", "Str0ng!Pass")
        unsubscribe()
        store.logout()

        assert seen == [SessionStatus.AUTHENTICATING, SessionStatus.AUTHENTICATED]

    async def test_update_local_profile(self, store):
        await store.login("alice@lawfirm.com", "Str0ng!Pass")
        store.update_local_profile(first_name="Alicia")

        assert store.state.user.full_name == "Alicia Smith"
        assert json.loads(store.storage.get_item(USER_KEY))["fullName"] == "Alicia Smith"

    async def test_update_profile_round_trip(self, store):
        await store.login("alice@lawfirm.com", "Str0ng!Pass")
        user = await store.update_profile(ProfileUpdate(first_name="Alicia"))

        assert user.first_name == "Alicia"
        assert store.state.user.full_name == "Alicia Smith"


# =============================================================================
# Refresh
# =============================================================================


class TestRefresh:
    async def test_401_refreshes_and_retries(self, server, stale_store):
        profile = await stale_store.api.get_profile()

        assert profile.email == "alice@lawfirm.com"
        assert server.refreshes == 1
        assert stale_store.state.token == NEW
        assert stale_store.storage.get_item(TOKEN_KEY) == NEW

    async def test_concurrent_401s_share_one_refresh(self, server, stale_store):
        results = await asyncio.gather(
            stale_store.api.get_profile(),
            stale_store.api.list_clients(),
            stale_store.api.get_profile(),
        )

        assert results[0].id == "usr_1"
        assert results[1] == []
        assert server.refreshes == 1
        assert stale_store.state.status == SessionStatus.AUTHENTICATED

    async def test_failed_refresh_ends_session_for_everyone(self, server, stale_store):
        server.refresh_fails = True

        results = await asyncio.gather(
            stale_store.api.get_profile(),
            stale_store.api.list_clients(),
            return_exceptions=True,
        )

        assert server.refreshes == 1
        assert all(isinstance(r, UnauthorizedError) for r in results)
        assert all(r.message == SESSION_EXPIRED for r in results)
        assert stale_store.state.status == SessionStatus.ANONYMOUS
        assert stale_store.state.error == SESSION_EXPIRED
        assert stale_store.storage.data == {}

    async def test_late_401_after_failed_refresh_gets_same_error(self, server, stale_store):
        server.refresh_fails = True
        with pytest.raises(UnauthorizedError):
            await stale_store.api.get_profile()

        with pytest.raises(UnauthorizedError) as late:
            await stale_store.refresh()
        assert late.value.message == SESSION_EXPIRED
        assert server.refreshes == 1

    async def test_state_during_refresh(self, server, stale_store):
        server.refresh_gate = asyncio.Event()
        pending = asyncio.create_task(stale_store.refresh())
        while server.refreshes == 0:
            await asyncio.sleep(0)

        assert stale_store.state.status == SessionStatus.REFRESHING
        assert stale_store.state.is_authenticated
        assert stale_store.storage.get_item(TOKEN_KEY) == OLD

        server.refresh_gate.set()
        assert await pending == NEW

    async def test_logout_during_refresh_wins(self, server, stale_store):
        server.refresh_gate = asyncio.Event()
        pending = asyncio.create_task(stale_store.refresh())
        while server.refreshes == 0:
            await asyncio.sleep(0)

        stale_store.logout()
        server.refresh_gate.set()

        with pytest.raises(UnauthorizedError):
            await pending
        assert stale_store.state.status == SessionStatus.ANONYMOUS
        assert stale_store.storage.data == {}

    async def test_refresh_without_session(self, store):
        with pytest.raises(UnauthorizedError):
            await store.refresh()

    async def test_token_rotated_in_flight_skips_refresh(self, server, store):
        gate = asyncio.Event()
        original = server.__call__

        async def handler(request):
            if request.url.path.endswith("/client") and bearer_of(request) == OLD:
                await gate.wait()
            return await original(request)

        store.api = ApiClient(BASE_URL, transport=httpx.MockTransport(handler))
        store.api.bind_session(lambda: store.state.token, store.refresh)
        server.valid = OLD
        await store.login("alice@lawfirm.com", "Str0ng!Pass")

        pending = asyncio.create_task(store.api.list_clients())
        await asyncio.sleep(0.01)
        server.valid = NEW
        await store.login("alice@lawfirm.com", "Str0ng!Pass")
        gate.set()

        assert await pending == []
        assert server.refreshes == 0


# =============================================================================
# Error mapping
# =============================================================================


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status, body, error, message",
        [
            (400, {"message": "Client name is required"}, ValidationError, "Client name is required"),
            (400, {"success": False, "error": "Email is required"}, ValidationError, "Email is required"),
            (404, {"message": "Client not found"}, NotFoundError, "Client not found"),
            (409, {"message": "A client with this email already exists"}, ConflictError, None),
            (422, {"detail": [{"loc": ["body", "status"], "msg": "Input should be 0, 1"}]}, ValidationError,
             "Input should be 0, 1"),
            (500, {"message": "Internal server error"}, ServiceError, "Internal server error"),
        ],
    )
    async def test_status_to_error(self, status, body, error, message):
        api = ApiClient(BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(status, json=body)))

        with pytest.raises(error) as exc:
            await api.create_client(ClientCreate(name="Acme", email="a@acme.com"))
        if message:
            assert exc.value.message == message
        await api.close()

    @pytest.mark.parametrize("failure", [httpx.ConnectError, httpx.ReadTimeout])
    async def test_transport_failure_is_network_error(self, failure):
        def handler(request):
            raise failure("boom", request=request)

        api = ApiClient(BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(NetworkError) as exc:
            await api.list_clients()
        assert exc.value.message == NETWORK_ERROR_MESSAGE
        assert exc.value.status_code == 0
        await api.close()

    async def test_no_content(self):
        api = ApiClient(BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(204)))
        assert await api.delete_client("cli_1") is None
        await api.close()

    async def test_health_is_outside_prefix(self):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json={"status": "healthy"})

        api = ApiClient(BASE_URL, transport=httpx.MockTransport(handler))
        assert (await api.health())["status"] == "healthy"
        assert seen == ["/health"]
        await api.close()
