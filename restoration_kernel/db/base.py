"""
Module: restoration_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the type annotation map, and the
    TrackedBase mixin for audit timestamps.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/, selectors/ or outer layers.

Invariants enforced:
    - UUID primary keys generated with uuid4, stored as String(36) so the same
      schema runs on PostgreSQL and SQLite.
    - Money columns are BigInteger minor units next to a String(3) currency; no Numeric
      or Float column ever holds an amount.
    - Timestamps are timezone-aware.  They are written by services from the
      injected Clock, not by server defaults, so tests stay deterministic.
"""

from datetime import datetime, timezone
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime that round-trips as UTC on every backend.

    SQLite drops tzinfo on read; this re-attaches UTC so comparisons between
    stored and freshly stamped values never mix naive and aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            raise ValueError("naive datetime passed to a UTCDateTime column")
        return value.astimezone(timezone.utc) if value is not None else None

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - datetime maps to UTCDateTime -- always timezone-aware.
        - int maps to BigInteger -- safe for minor units and sequences.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamp and actor tracking.

    Guarantees:
        - created_at / updated_at are required; services set both from the
          injected Clock and refresh updated_at on every mutation.
        - created_by_id is required -- every record has a creator.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)
    created_by_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)


UUID = PyUUID
