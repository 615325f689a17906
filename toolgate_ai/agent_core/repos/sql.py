from __future__ import annotations

"""SQLAlchemy async keyed store implementation.

This module provides a SQL-backed implementation of the ``KeyedStore``
interface defined in ``toolgate_ai.agent_core.repos.interfaces``. Postgres
(asyncpg) and SQLite (aiosqlite) are both supported.

Usage
-----

Typical wiring (tests or application setup):

- Create an async engine with ``create_engine``.
- Create tables with ``create_all`` (for tests/dev; production typically uses
  migrations).
- Create a session factory with ``create_sessionmaker``.
- Build store instances with ``build_sql_stores``.

Transaction model
-----------------

Each store method opens an ``AsyncSession``, performs its operation, and
commits. A record is therefore durable when the method returns, which is what
lets the message queue persist a message before dispatching it.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar

from pydantic import TypeAdapter
from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..errors import RecordNotFoundError
from ..schemas.approvals import PendingApproval
from ..schemas.messages import CONTEXT_MESSAGE_ADAPTER, MESSAGE_ADAPTER
from .interfaces import KeyedStore, StoreBundle, StoredRecord
from .models import Base, RecordRow

T = TypeVar("T")

MESSAGES_NAMESPACE = "messages"
CONTEXT_NAMESPACE = "context"
APPROVALS_NAMESPACE = "approvals"

# Dialects with a native INSERT ... ON CONFLICT; others fall back to read-then-write.
_UPSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The helper normalizes Postgres URLs to ensure the async driver is used.
    For example, it rewrites ``postgresql://`` and other variants to
    ``postgresql+asyncpg://``. Other URLs (e.g. ``sqlite+aiosqlite://``) are
    passed through unchanged.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    if url.startswith("postgresql+asyncpg://"):
        return create_async_engine(url, pool_pre_ping=True)
    return create_async_engine(url)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata.

    This is mainly intended for tests and local development.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SqlKeyedStore(KeyedStore[T]):
    """SQL implementation of ``KeyedStore``.

    Payloads are converted to JSON-compatible values with ``adapter`` on write
    and validated back into ``T`` on read.
    """

    session_factory: async_sessionmaker[AsyncSession]
    namespace: str
    adapter: TypeAdapter[Any]

    def _to_record(self, row: RecordRow) -> StoredRecord[T]:
        return StoredRecord(
            primary_key=row.primary_key,
            secondary_key=row.secondary_key,
            payload=self.adapter.validate_python(row.payload),
        )

    def _select_row(self, primary_key: str):
        return select(RecordRow).where(RecordRow.namespace == self.namespace, RecordRow.primary_key == primary_key)

    async def create(self, primary_key: str, secondary_key: str, payload: T) -> StoredRecord[T]:
        """
        Insert a record, or overwrite it in place if the key already exists.

        On Postgres and SQLite this is a single upsert, so concurrent first
        writes of one key are last-writer-wins instead of a unique violation.

        Args:
            primary_key: Unique record identifier within this namespace.
            secondary_key: Partition of the record.
            payload: The value to persist.

        Returns:
            The stored record.
        """
        data = self.adapter.dump_python(payload, mode="json")
        now = _utc_now()
        async with self.session_factory() as s:
            upsert = _UPSERTS.get(s.get_bind().dialect.name)
            if upsert is not None:
                stmt = upsert(RecordRow).values(
                    namespace=self.namespace,
                    primary_key=primary_key,
                    secondary_key=secondary_key,
                    payload=data,
                    created_at=now,
                    updated_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["namespace", "primary_key"],
                    set_={
                        "secondary_key": stmt.excluded.secondary_key,
                        "payload": stmt.excluded.payload,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                await s.execute(stmt)
                await s.commit()
                return StoredRecord(primary_key=primary_key, secondary_key=secondary_key, payload=payload)

            row = (await s.execute(self._select_row(primary_key))).scalar_one_or_none()
            if row is None:
                row = RecordRow(
                    namespace=self.namespace,
                    primary_key=primary_key,
                    secondary_key=secondary_key,
                    payload=data,
                    created_at=now,
                    updated_at=now,
                )
                s.add(row)
            else:
                row.secondary_key = secondary_key
                row.payload = data
                row.updated_at = now
            await s.commit()
        return StoredRecord(primary_key=primary_key, secondary_key=secondary_key, payload=payload)

    async def read_by_id(self, primary_key: str) -> Optional[StoredRecord[T]]:
        """
        Retrieve a record by its primary key.

        Args:
            primary_key: The record identifier.

        Returns:
            The record if found, otherwise None.
        """
        async with self.session_factory() as s:
            row = (await s.execute(self._select_row(primary_key))).scalar_one_or_none()
            if row is None:
                return None
            return self._to_record(row)

    async def read(self, secondary_key: str, limit: Optional[int] = None, offset: int = 0) -> list[StoredRecord[T]]:
        """
        List the records of one partition in insertion order.

        Args:
            secondary_key: The partition to read.
            limit: Max number of records to return (all if None).
            offset: Pagination offset.

        Returns:
            A list of records.
        """
        async with self.session_factory() as s:
            stmt = (
                select(RecordRow)
                .where(RecordRow.namespace == self.namespace, RecordRow.secondary_key == secondary_key)
                .order_by(RecordRow.seq.asc())
                .offset(offset)
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = (await s.execute(stmt)).scalars().all()
            return [self._to_record(row) for row in rows]

    async def update(self, primary_key: str, payload: T) -> StoredRecord[T]:
        """
        Replace the payload of an existing record.

        Args:
            primary_key: The record identifier.
            payload: The new value.

        Returns:
            The stored record.

        Raises:
            RecordNotFoundError: If no record has this primary key.
        """
        async with self.session_factory() as s:
            row = (await s.execute(self._select_row(primary_key))).scalar_one_or_none()
            if row is None:
                raise RecordNotFoundError(primary_key)
            row.payload = self.adapter.dump_python(payload, mode="json")
            row.updated_at = _utc_now()
            secondary_key = row.secondary_key
            await s.commit()
        return StoredRecord(primary_key=primary_key, secondary_key=secondary_key, payload=payload)

    async def delete(self, primary_key: str) -> str:
        """
        Delete a record if it exists.

        Args:
            primary_key: The record identifier.

        Returns:
            The primary key.
        """
        async with self.session_factory() as s:
            await s.execute(
                delete(RecordRow).where(RecordRow.namespace == self.namespace, RecordRow.primary_key == primary_key)
            )
            await s.commit()
        return primary_key

    async def partitions(self) -> list[str]:
        """
        List distinct secondary keys ordered by their first record.

        Returns:
            Secondary keys of this namespace.
        """
        async with self.session_factory() as s:
            first_seq = func.min(RecordRow.seq)
            stmt = (
                select(RecordRow.secondary_key, first_seq)
                .where(RecordRow.namespace == self.namespace)
                .group_by(RecordRow.secondary_key)
                .order_by(first_seq.asc())
            )
            result = await s.execute(stmt)
            return [secondary_key for secondary_key, _ in result.all()]


def build_sql_stores(*, session_factory: async_sessionmaker[AsyncSession]) -> StoreBundle:
    """Build a ``StoreBundle`` from a session factory."""
    return StoreBundle(
        messages=SqlKeyedStore(session_factory=session_factory, namespace=MESSAGES_NAMESPACE, adapter=MESSAGE_ADAPTER),
        context=SqlKeyedStore(
            session_factory=session_factory, namespace=CONTEXT_NAMESPACE, adapter=CONTEXT_MESSAGE_ADAPTER
        ),
        approvals=SqlKeyedStore(
            session_factory=session_factory,
            namespace=APPROVALS_NAMESPACE,
            adapter=TypeAdapter(PendingApproval),
        ),
    )
