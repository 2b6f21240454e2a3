"""
Module: accounting_kernel.models.item
Responsibility: ORM persistence for items (inventory goods, services,
    expense items, fixed assets).  Items are global: they are not scoped
    to a branch.
Architecture position: Kernel > Models.  May import from db/ and
    domain/enums.py only.

Invariants enforced:
    - Item code is unique.
    - Only ItemType.INVENTORY items generate stock movements.
    - Invoice lines snapshot code/name/unit/account code at creation, so
      later edits here never rewrite posted lines.
"""

from sqlalchemy import Enum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from accounting_kernel.db.base import SoftDeleteMixin, TrackedBase
from accounting_kernel.domain.enums import ItemType


class Item(TrackedBase, SoftDeleteMixin):
    __tablename__ = "items"

    __table_args__ = (UniqueConstraint("code", name="uq_item_code"),)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Unit of measure, e.g. "adet", "kg"
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="adet")

    item_type: Mapped[ItemType] = mapped_column(
        Enum(
            ItemType,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ItemType.INVENTORY,
    )

    vat_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=20)

    # Used when an invoice line omits its withholding rate
    default_withholding_rate: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    purchase_account_code: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    sales_account_code: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
