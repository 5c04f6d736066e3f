"""
Relational storage implementation (SQLAlchemy).

Works with SQLite for local use and any SQLAlchemy URL in production.
SQLAlchemy sessions are synchronous, so each store operation runs in a
worker thread and opens its own short-lived session.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Generic

from pydantic import BaseModel
from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    create_engine,
    inspect,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from legalvibes.core.models import (
    ADDRESS_MAX_LENGTH,
    CLIENT_NAME_MAX_LENGTH,
    COMPANY_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    JOB_TITLE_MAX_LENGTH,
    PERSON_NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    PROJECT_NAME_MAX_LENGTH,
    REFERENCE_MAX_LENGTH,
    TRADEMARK_NAME_MAX_LENGTH,
    Client,
    Document,
    Identity,
    Project,
)
from legalvibes.storage.base import (
    DuplicateKeyError,
    EntityStore,
    StorageError,
    StorageProvider,
    T,
)

logger = logging.getLogger(__name__)


class UtcDateTime(TypeDecorator):
    """Timezone-aware datetimes on backends (SQLite) that drop the zone."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


# =============================================================================
# Tables
# =============================================================================


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(512))
    first_name: Mapped[str] = mapped_column(String(PERSON_NAME_MAX_LENGTH))
    last_name: Mapped[str] = mapped_column(String(PERSON_NAME_MAX_LENGTH))
    phone_number: Mapped[str] = mapped_column(String(PHONE_MAX_LENGTH), default="")
    company_name: Mapped[str | None] = mapped_column(String(COMPANY_MAX_LENGTH))
    job_title: Mapped[str | None] = mapped_column(String(JOB_TITLE_MAX_LENGTH))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime)
    created_by: Mapped[str] = mapped_column(String(100), default="System")
    last_modified_at: Mapped[datetime | None] = mapped_column(UtcDateTime)


class ClientRow(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    owner_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    name: Mapped[str] = mapped_column(String(CLIENT_NAME_MAX_LENGTH))
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH))
    phone_number: Mapped[str] = mapped_column(String(PHONE_MAX_LENGTH), default="")
    company_name: Mapped[str | None] = mapped_column(String(COMPANY_MAX_LENGTH))
    address: Mapped[str | None] = mapped_column(String(ADDRESS_MAX_LENGTH))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime)
    last_modified_at: Mapped[datetime | None] = mapped_column(UtcDateTime)


class ProjectRow(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    owner_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    client_id: Mapped[str] = mapped_column(ForeignKey("clients.id"), index=True)
    name: Mapped[str] = mapped_column(String(PROJECT_NAME_MAX_LENGTH))
    description: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[int] = mapped_column(Integer, default=0)
    type: Mapped[int] = mapped_column(Integer, default=0)
    due_date: Mapped[datetime | None] = mapped_column(UtcDateTime)
    reference_number: Mapped[str | None] = mapped_column(String(REFERENCE_MAX_LENGTH))
    trademark_name: Mapped[str | None] = mapped_column(String(TRADEMARK_NAME_MAX_LENGTH))
    trademark_description: Mapped[str | None] = mapped_column(Text)
    goods_and_services: Mapped[str | None] = mapped_column(Text)
    special_considerations: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime)
    created_by: Mapped[str | None] = mapped_column(String(100))
    last_modified_at: Mapped[datetime | None] = mapped_column(UtcDateTime)


class DocumentRow(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    project_id: Mapped[str] = mapped_column(ForeignKey("projects.id"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")
    type: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[int] = mapped_column(Integer, default=0)
    content_type: Mapped[str] = mapped_column(String(100), default="")
    storage_path: Mapped[str] = mapped_column(String(500), default="")
    size_in_bytes: Mapped[int] = mapped_column(Integer, default=0)
    version: Mapped[str | None] = mapped_column(String(20))
    is_ai_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    generation_prompt: Mapped[str | None] = mapped_column(Text)
    ai_model: Mapped[str | None] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(UtcDateTime)


# =============================================================================
# Store
# =============================================================================


class SqlEntityStore(EntityStore[T], Generic[T]):
    """Maps one pydantic model onto one table with identically named columns."""

    def __init__(
        self,
        sessions: sessionmaker[Session],
        model: type[T],
        row: type[Base],
        unique_fields: tuple[str, ...] = (),
    ):
        self._sessions = sessions
        self._model = model
        self._row = row
        self._unique_fields = unique_fields
        self._columns = {attr.key for attr in inspect(row).column_attrs}

    def _to_model(self, row: Base) -> T:
        return self._model.model_validate(
            {key: getattr(row, key) for key in self._columns}
        )

    def _values(self, entity: BaseModel) -> dict[str, Any]:
        data = entity.model_dump()
        return {key: data[key] for key in self._columns}

    async def _run(self, op: Callable[[Session], Any]) -> Any:
        def work() -> Any:
            with self._sessions() as session:
                try:
                    result = op(session)
                    session.commit()
                    return result
                except IntegrityError as e:
                    session.rollback()
                    raise self._duplicate(e) from e
                except SQLAlchemyError as e:
                    session.rollback()
                    logger.error(f"{self._row.__tablename__} operation failed: {e}")
                    raise StorageError(str(e)) from e

        return await asyncio.to_thread(work)

    def _duplicate(self, error: IntegrityError) -> StorageError:
        text = str(error.orig).lower()
        for field in self._unique_fields:
            if field in text:
                return DuplicateKeyError(self._row.__tablename__, field, None)
        if "unique" in text or "primary key" in text:
            return DuplicateKeyError(self._row.__tablename__, "id", None)
        return StorageError(str(error))

    async def get(self, id: str) -> T | None:
        def op(session: Session):
            row = session.get(self._row, id)
            return self._to_model(row) if row else None

        return await self._run(op)

    async def find(self, **filters: Any) -> list[T]:
        def op(session: Session):
            stmt = select(self._row).filter_by(**filters)
            return [self._to_model(row) for row in session.scalars(stmt)]

        return await self._run(op)

    async def add(self, entity: T) -> T:
        def op(session: Session):
            session.add(self._row(**self._values(entity)))
            session.flush()

        await self._run(op)
        return entity

    async def update(self, entity: T) -> T:
        def op(session: Session):
            row = session.get(self._row, entity.id)
            if row is None:
                raise StorageError(f"{self._row.__tablename__}/{entity.id} does not exist")
            for key, value in self._values(entity).items():
                setattr(row, key, value)
            session.flush()

        await self._run(op)
        return entity

    async def delete(self, id: str) -> bool:
        def op(session: Session):
            row = session.get(self._row, id)
            if row is None:
                return False
            session.delete(row)
            return True

        return await self._run(op)


# =============================================================================
# Factory
# =============================================================================


def create_sql_storage(database_url: str, echo: bool = False) -> StorageProvider:
    """Create a StorageProvider backed by a SQLAlchemy engine, creating tables."""
    kwargs: dict[str, Any] = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
            # One shared connection, or every thread would see an empty database
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    sessions = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info(f"SQL storage ready at {engine.url.render_as_string(hide_password=True)}")

    return StorageProvider(
        users=SqlEntityStore(sessions, Identity, UserRow, unique_fields=("email",)),
        clients=SqlEntityStore(sessions, Client, ClientRow),
        projects=SqlEntityStore(sessions, Project, ProjectRow),
        documents=SqlEntityStore(sessions, Document, DocumentRow),
        on_close=engine.dispose,
    )
