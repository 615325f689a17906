from __future__ import annotations

"""SQLAlchemy ORM models for keyed store persistence.

These ORM models define the SQL schema used by the SQL keyed store
implementation in ``toolgate_ai.agent_core.repos.sql``.

Design
------

All logical stores share one table and are told apart by ``namespace``:

- ``seq`` is an autoincrement surrogate key. It only exists to give records
  a stable insertion order inside a partition.
- ``primary_key`` is the logical record id, unique per namespace.
- ``secondary_key`` is the partition (e.g. a conversation id).
- ``payload`` is the JSON-serialized record value (JSONB on Postgres).

Table names are prefixed with ``tg_`` to avoid collisions in shared databases.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class RecordRow(Base):
    """Row model for ``tg_records``."""

    __tablename__ = "tg_records"
    __table_args__ = (
        UniqueConstraint("namespace", "primary_key", name="uq_tg_records_namespace_primary_key"),
        Index("ix_tg_records_namespace_secondary_key", "namespace", "secondary_key"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64))
    primary_key: Mapped[str] = mapped_column(String(255))
    secondary_key: Mapped[str] = mapped_column(String(255))

    payload: Mapped[Any] = mapped_column(JSON().with_variant(JSONB(), "postgresql"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
