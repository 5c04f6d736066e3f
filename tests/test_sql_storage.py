"""
Tests for the SQLAlchemy storage backend.

Runs against in-memory SQLite. The service-level tests repeat a few flows
from the in-memory suite to show the services do not care which backend
they sit on.
"""

from datetime import datetime, timezone

import pytest

from legalvibes.auth import AuthService
from legalvibes.core.contracts import ClientCreate, ProjectCreate
from legalvibes.core.models import Client, Document, Identity, Project, ProjectStatus, ProjectType
from legalvibes.errors import ConflictError, NotFoundError, ValidationError
from legalvibes.services import ClientRepository, ProjectRepository
from legalvibes.storage import DuplicateKeyError, StorageError, create_storage
from legalvibes.storage.sql import create_sql_storage
from tests.conftest import STRONG_PASSWORD, register_request


@pytest.fixture
def sql_storage():
    provider = create_sql_storage("sqlite://")
    yield provider
    provider.close()


def identity(email: str = "alice@lawfirm.com") -> Identity:
    return Identity(email=email, password_hash="1000:salt:digest", first_name="Alice", last_name="Smith")


# =============================================================================
# Store operations
# =============================================================================


class TestSqlEntityStore:
    async def test_add_and_get(self, sql_storage):
        user = identity()
        await sql_storage.users.add(user)

        loaded = await sql_storage.users.get(user.id)
        assert loaded == user

    async def test_get_missing(self, sql_storage):
        assert await sql_storage.users.get("usr_missing") is None

    async def test_find_by_fields(self, sql_storage):
        user = identity()
        await sql_storage.users.add(user)
        await sql_storage.clients.add(Client(owner_id=user.id, name="Acme", email="a@acme.com"))
        await sql_storage.clients.add(Client(owner_id=user.id, name="Globex", email="g@globex.com", is_active=False))

        active = await sql_storage.clients.find(owner_id=user.id, is_active=True)
        assert [c.name for c in active] == ["Acme"]
        assert len(await sql_storage.clients.find(owner_id=user.id)) == 2
        assert await sql_storage.clients.find(owner_id="usr_other") == []

    async def test_update(self, sql_storage):
        user = identity()
        await sql_storage.users.add(user)

        user.job_title = "Partner"
        user.touch()
        await sql_storage.users.update(user)

        loaded = await sql_storage.users.get(user.id)
        assert loaded.job_title == "Partner"
        assert loaded.last_modified_at is not None

    async def test_update_missing_raises(self, sql_storage):
        with pytest.raises(StorageError):
            await sql_storage.users.update(identity())

    async def test_delete(self, sql_storage):
        user = identity()
        await sql_storage.users.add(user)

        assert await sql_storage.users.delete(user.id) is True
        assert await sql_storage.users.get(user.id) is None
        assert await sql_storage.users.delete(user.id) is False

    async def test_duplicate_email(self, sql_storage):
        await sql_storage.users.add(identity())

        with pytest.raises(DuplicateKeyError) as exc:
            await sql_storage.users.add(identity())
        assert exc.value.field == "email"

    async def test_datetimes_stay_timezone_aware(self, sql_storage):
        user = identity()
        await sql_storage.users.add(user)

        loaded = await sql_storage.users.get(user.id)
        assert loaded.created_at.tzinfo is not None
        assert loaded.created_at == user.created_at

    async def test_enums_round_trip(self, sql_storage):
        user = identity()
        await sql_storage.users.add(user)
        client = Client(owner_id=user.id, name="Acme", email="a@acme.com")
        await sql_storage.clients.add(client)
        project = Project(
            owner_id=user.id,
            client_id=client.id,
            name="Patent",
            status=ProjectStatus.UNDER_REVIEW,
            type=ProjectType.PATENT_APPLICATION,
            due_date=datetime(2026, 6, 1, tzinfo=timezone.utc),
        )
        await sql_storage.projects.add(project)

        loaded = await sql_storage.projects.get(project.id)
        assert loaded.status is ProjectStatus.UNDER_REVIEW
        assert loaded.type is ProjectType.PATENT_APPLICATION
        assert loaded.due_date == project.due_date

    async def test_documents(self, sql_storage):
        document = Document(project_id="prj_1", name="Draft.pdf", is_ai_generated=True)
        await sql_storage.documents.add(document)

        found = await sql_storage.documents.find(project_id="prj_1")
        assert [d.id for d in found] == [document.id]
        assert found[0].is_ai_generated is True


def test_create_storage_picks_backend():
    memory = create_storage("")
    sql = create_storage("sqlite://")
    try:
        assert type(memory.users).__name__ == "InMemoryEntityStore"
        assert type(sql.users).__name__ == "SqlEntityStore"
    finally:
        sql.close()


# =============================================================================
# Services on SQL
# =============================================================================


class TestServicesOnSql:
    @pytest.fixture
    def sql_auth(self, sql_storage, passwords, tokens):
        return AuthService(sql_storage, passwords, tokens)

    async def test_register_and_login(self, sql_auth):
        registered = await sql_auth.register(register_request("Alice@LawFirm.com"))
        logged_in = await sql_auth.login("alice@lawfirm.com", STRONG_PASSWORD)
        assert logged_in.identity.id == registered.identity.id

    async def test_duplicate_registration(self, sql_auth):
        await sql_auth.register(register_request("a@x.com"))
        with pytest.raises(ConflictError):
            await sql_auth.register(register_request("a@x.com"))

    async def test_overlong_phone_is_a_validation_error(self, sql_storage, sql_auth):
        alice = (await sql_auth.register(register_request("alice@lawfirm.com"))).identity
        clients = ClientRepository(sql_storage)

        with pytest.raises(ValidationError, match="Phone number cannot exceed 20 characters"):
            await clients.create(
                ClientCreate(name="Acme", email="a@acme.com", phone_number="5" * 21), alice.id
            )
        assert await sql_storage.clients.find(owner_id=alice.id) == []

    async def test_owner_scoping(self, sql_storage, sql_auth):
        alice = (await sql_auth.register(register_request("alice@lawfirm.com"))).identity
        bob = (await sql_auth.register(register_request("bob@lawfirm.com"))).identity
        clients = ClientRepository(sql_storage)
        projects = ProjectRepository(sql_storage)

        acme = await clients.create(ClientCreate(name="Acme", email="a@acme.com"), alice.id)
        project = await projects.create(ProjectCreate(name="Mark", client_id=acme.id), alice.id)

        with pytest.raises(NotFoundError):
            await clients.get_by_id(acme.id, bob.id)
        with pytest.raises(NotFoundError):
            await projects.create(ProjectCreate(name="Stolen", client_id=acme.id), bob.id)
        assert [p.id for p in await projects.list(alice.id)] == [project.id]
        assert await projects.list(bob.id) == []
