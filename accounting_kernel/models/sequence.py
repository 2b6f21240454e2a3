"""
Module: accounting_kernel.models.sequence
Responsibility: Counter rows backing invoice number allocation.
Architecture position: Kernel > Models.  Written only by
    InvoiceNumberService, always under SELECT ... FOR UPDATE.

Invariants enforced:
    - One counter per (branch, prefix, year) (uq_invoice_counter).
    - current_value only increases; the aggregate-max-plus-one pattern
      over invoice numbers is never used.
"""

from sqlalchemy import BigInteger, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from accounting_kernel.db.base import Base


class InvoiceNumberCounter(Base):
    """
    Invoice number counter table.

    Each row holds the last sequence value issued for one branch, prefix
    and year.  Row-level locking ensures uniqueness under concurrency.
    """

    __tablename__ = "invoice_number_counters"

    __table_args__ = (
        UniqueConstraint("branch_id", "prefix", "year", name="uq_invoice_counter"),
    )

    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
    )

    # Invoice type prefix, e.g. "SAT"
    prefix: Mapped[str] = mapped_column(String(10), nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
