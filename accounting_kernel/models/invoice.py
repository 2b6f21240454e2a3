"""
Module: accounting_kernel.models.invoice
Responsibility: ORM persistence for the invoice aggregate: the Invoice
    header and its InvoiceLine rows.
Architecture position: Kernel > Models.  May import from db/ and
    domain/enums.py only.

Invariants enforced:
    - invoice_number is unique per branch (uq_invoice_branch_number); the
      per-year uniqueness follows from the year being part of the number.
    - Header totals equal the rounded sums of the active lines' fields
      after every successful save (maintained by InvoiceAggregateBuilder).
    - Lines are never hard-deleted; removal sets is_deleted/deleted_at_utc.
    - row_version is the optimistic-concurrency version (version_id_col):
      SQLAlchemy adds "AND row_version = :old" to every UPDATE and raises
      StaleDataError when no row matches.

Failure modes:
    - IntegrityError on duplicate invoice number within a branch.
    - StaleDataError on flush when another transaction bumped row_version.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accounting_kernel.db.base import SoftDeleteMixin, TrackedBase, UTCDateTime
from accounting_kernel.db.types import (
    Amount,
    CurrencyCode,
    CurrencyRate,
    Percent,
    Quantity,
    UnitPrice,
)
from accounting_kernel.domain.enums import DocumentType, InvoiceType

_ZERO = Decimal("0.00")


def _enum_column(enum_cls):
    return Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
    )


class Invoice(TrackedBase, SoftDeleteMixin):
    """
    Invoice header.

    Contract:
        Totals and balance are derived state, written only by the invoice
        builder and the balance recalculator.  The header is rewritten on
        every update, so every update bumps row_version.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("branch_id", "invoice_number", name="uq_invoice_branch_number"),
        Index("idx_invoice_branch_date", "branch_id", "date_utc"),
        Index("idx_invoice_contact", "contact_id"),
    )

    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
    )

    contact_id: Mapped[int] = mapped_column(
        ForeignKey("contacts.id"),
        nullable=False,
    )

    # Source order, if the invoice was raised from one
    order_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    invoice_type: Mapped[InvoiceType] = mapped_column(
        _enum_column(InvoiceType),
        nullable=False,
    )

    document_type: Mapped[DocumentType] = mapped_column(
        _enum_column(DocumentType),
        nullable=False,
        default=DocumentType.INVOICE,
    )

    # Business date
    date_utc: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    # {prefix}-{year}-{sequence}, e.g. SAT-2024-000001
    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False)

    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)

    currency_rate: Mapped[CurrencyRate] = mapped_column(
        nullable=False,
        default=Decimal("1.0000"),
    )

    waybill_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    waybill_date_utc: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    payment_due_date_utc: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    # Totals (Amount precision)
    total_line_gross: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)
    total_discount: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)
    total_net: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)
    total_vat: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)
    total_withholding: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)
    total_gross: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)

    # Outstanding amount: gross - withholding - linked payments
    balance: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}

    lines: Mapped[list["InvoiceLine"]] = relationship(
        back_populates="invoice",
        order_by="InvoiceLine.id",
        cascade="all, delete-orphan",
    )

    @property
    def active_lines(self) -> list["InvoiceLine"]:
        return [line for line in self.lines if not line.is_deleted]

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} ({self.invoice_type.value})>"


class InvoiceLine(TrackedBase, SoftDeleteMixin):
    """
    One invoice line with its snapshot fields and derived amounts.

    Contract:
        item_code/item_name/unit/account_code are copied from the item when
        the line is created or updated and never re-read afterwards.
        quantity is always stored positive.  Derived amounts are persisted,
        not recomputed on read.
    """

    __tablename__ = "invoice_lines"

    __table_args__ = (
        Index("idx_invoice_line_invoice", "invoice_id"),
        Index("idx_invoice_line_item", "item_id"),
    )

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id"),
        nullable=False,
    )

    item_id: Mapped[int | None] = mapped_column(
        ForeignKey("items.id"),
        nullable=True,
    )

    # Snapshot fields
    item_code: Mapped[str] = mapped_column(String(50), nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    account_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Inputs
    quantity: Mapped[Quantity] = mapped_column(nullable=False)
    unit_price: Mapped[UnitPrice] = mapped_column(nullable=False)
    vat_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_rate: Mapped[Percent] = mapped_column(nullable=False, default=_ZERO)
    withholding_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Derived amounts
    gross: Mapped[Amount] = mapped_column(nullable=False)
    discount_amount: Mapped[Amount] = mapped_column(nullable=False)
    net: Mapped[Amount] = mapped_column(nullable=False)
    vat: Mapped[Amount] = mapped_column(nullable=False)
    withholding_amount: Mapped[Amount] = mapped_column(nullable=False)
    grand_total: Mapped[Amount] = mapped_column(nullable=False)

    invoice: Mapped[Invoice] = relationship(back_populates="lines")
