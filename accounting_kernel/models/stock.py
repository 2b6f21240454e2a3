"""
Module: accounting_kernel.models.stock
Responsibility: ORM persistence for stock movements.
Architecture position: Kernel > Models.  May import from db/ and
    domain/enums.py only.

Invariants enforced:
    - quantity is always positive; movement_type carries the direction.
    - invoice_id, once set, ties the movement to that invoice for the
      reset-and-recreate synchronization.  Movements without invoice_id
      are manual or transfer movements and are never touched by invoice
      synchronization.
    - On-hand stock is never cached: it is the sum of live movements.
"""

from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from accounting_kernel.db.base import SoftDeleteMixin, TrackedBase, UTCDateTime
from accounting_kernel.db.types import Quantity
from accounting_kernel.domain.enums import StockMovementType


class StockMovement(TrackedBase, SoftDeleteMixin):
    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_stock_movement_invoice", "invoice_id"),
        Index("idx_stock_movement_branch_item", "branch_id", "item_id"),
    )

    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
    )

    warehouse_id: Mapped[int] = mapped_column(
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id"),
        nullable=False,
    )

    movement_type: Mapped[StockMovementType] = mapped_column(
        Enum(
            StockMovementType,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    quantity: Mapped[Quantity] = mapped_column(nullable=False)

    # Equal to the invoice date for invoice-generated movements
    transaction_date_utc: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    note: Mapped[str | None] = mapped_column(String(500), nullable=True)

    invoice_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoices.id"),
        nullable=True,
    )

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}
