"""Database layer - engine, base classes, column types."""

from accounting_kernel.db.base import Base, SoftDeleteMixin, TrackedBase, UTCDateTime
from accounting_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from accounting_kernel.db.types import (
    Amount,
    CurrencyCode,
    CurrencyRate,
    Percent,
    Quantity,
    UnitPrice,
)

__all__ = [
    "Amount",
    "Base",
    "CurrencyCode",
    "CurrencyRate",
    "Percent",
    "Quantity",
    "SoftDeleteMixin",
    "TrackedBase",
    "UTCDateTime",
    "UnitPrice",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
]
