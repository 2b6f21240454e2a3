"""
Module: accounting_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the surrogate integer primary key convention, the type annotation map for
    consistent column types, and the audit / soft-delete mixins.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, or domain/.

Invariants enforced:
    - Integer surrogate keys: every model inherits an autoincrement id.
    - Decimal precision: Decimal columns default to Numeric(18, 2); quantity,
      unit-price and rate columns override via db/types.py aliases.
      NEVER use float for monetary amounts.
    - UTC timestamps: UTCDateTime stores naive UTC and always returns aware
      UTC datetimes, on every backend.

Failure modes:
    - ValueError when a naive datetime is bound to a UTCDateTime column.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from accounting_kernel.db.types import TYPE_ANNOTATION_MAP


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetime, portable across PostgreSQL and SQLite.

    Contract:
        Binds only aware datetimes (converted to UTC, stored without tzinfo)
        and hands back aware UTC datetimes on load.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all models.

    Guarantees:
        - id is an autoincrement integer primary key.
        - Decimal maps to Numeric(18, 2) (Amount precision).
        - datetime maps to UTCDateTime.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 2),
        datetime: UTCDateTime(),
        str: String(255),
        **TYPE_ANNOTATION_MAP,
    }

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    created_at_utc is assigned once from the service clock; updated_at_utc
    stays NULL until the first update.
    """

    __abstract__ = True

    created_at_utc: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    updated_at_utc: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )


class SoftDeleteMixin:
    """Soft delete: rows are flagged, never physically removed."""

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    deleted_at_utc: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    def soft_delete(self, now: datetime) -> None:
        """Flag the row as deleted at ``now`` (no-op if already deleted)."""
        if self.is_deleted:
            return
        self.is_deleted = True
        self.deleted_at_utc = now
