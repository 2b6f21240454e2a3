"""
Module: accounting_kernel.models.contact
Responsibility: ORM persistence for counterparties (customers, vendors,
    employees) that invoices and payments are issued against.
Architecture position: Kernel > Models.  May import from db/ and
    domain/enums.py only.

Invariants enforced:
    - Contact code is unique within a branch.
    - balance is derived state: only ContactBalanceService writes it.
      Positive means the contact owes the branch (receivable).
"""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from accounting_kernel.db.base import SoftDeleteMixin, TrackedBase
from accounting_kernel.db.types import Amount


class Contact(TrackedBase, SoftDeleteMixin):
    __tablename__ = "contacts"

    __table_args__ = (
        UniqueConstraint("branch_id", "code", name="uq_contact_branch_code"),
        Index("idx_contact_branch", "branch_id"),
    )

    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Receivable-positive running balance
    balance: Mapped[Amount] = mapped_column(
        nullable=False,
        default=Decimal("0.00"),
    )
