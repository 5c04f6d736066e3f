"""
Shared fixtures.

Everything runs against the in-memory store with a cheap hash work factor;
the SQL backend has its own tests in test_sql_storage.py.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from legalvibes.api.app import create_app
from legalvibes.auth import AuthService, PasswordPolicy, TokenService
from legalvibes.config import Settings
from legalvibes.core.contracts import RegisterRequest
from legalvibes.services import ClientRepository, ProjectRepository
from legalvibes.storage import create_memory_storage

SECRET = "test-secret-key-that-is-long-enough-for-hs256-signing"
ISSUER = "https://localhost:7032"
AUDIENCE = "https://localhost:5173"
STRONG_PASSWORD = "Str0ng!Pass"


class FakeClock:
    """Settable clock for token issuance and expiry checks."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_tokens(clock=None, secret: str = SECRET) -> TokenService:
    kwargs = {"clock": clock} if clock else {}
    return TokenService(secret_key=secret, issuer=ISSUER, audience=AUDIENCE, **kwargs)


def register_request(email: str = "a@x.com", **overrides) -> RegisterRequest:
    data = {
        "email": email,
        "password": STRONG_PASSWORD,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "phone_number": "0123456789",
    }
    data.update(overrides)
    return RegisterRequest(**data)


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def settings():
    return Settings(
        environment="test",
        debug=False,
        database_url="",
        sentry_dsn="",
        jwt_secret_key=SECRET,
        jwt_issuer=ISSUER,
        jwt_audience=AUDIENCE,
        password_hash_iterations=1_000,
    )


@pytest.fixture
def storage():
    return create_memory_storage()


@pytest.fixture
def passwords():
    return PasswordPolicy(iterations=1_000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tokens(clock):
    return make_tokens(clock)


@pytest.fixture
def auth(storage, passwords, tokens):
    return AuthService(storage, passwords, tokens)


@pytest.fixture
def clients(storage):
    return ClientRepository(storage)


@pytest.fixture
def projects(storage):
    return ProjectRepository(storage)


@pytest.fixture
async def alice(auth):
    """A registered identity."""
    result = await auth.register(register_request("alice@lawfirm.com", first_name="Alice"))
    return result.identity


@pytest.fixture
async def bob(auth):
    result = await auth.register(register_request("bob@lawfirm.com", first_name="Bob"))
    return result.identity


# =============================================================================
# HTTP fixtures
# =============================================================================


@pytest.fixture
def app(settings, storage):
    return create_app(settings=settings, storage=storage)


@pytest.fixture
def http(app):
    with TestClient(app) as client:
        yield client
