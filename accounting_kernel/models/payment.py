"""
Module: accounting_kernel.models.payment
Responsibility: ORM persistence for cash/bank accounts and the payments
    posted against them.
Architecture position: Kernel > Models.  May import from db/ and
    domain/enums.py only.

Invariants enforced:
    - Payment amounts are positive; direction carries the sign.
    - CashBankAccount.balance and the balances a payment touches are derived
      state, rewritten by the balance recalculators in the same transaction
      as the payment.
    - Payments are soft-deleted under their row_version token.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from accounting_kernel.db.base import SoftDeleteMixin, TrackedBase, UTCDateTime
from accounting_kernel.db.types import Amount, CurrencyCode, CurrencyRate
from accounting_kernel.domain.enums import CashBankAccountType, PaymentDirection

_ZERO = Decimal("0.00")


class CashBankAccount(TrackedBase, SoftDeleteMixin):
    __tablename__ = "cash_bank_accounts"

    __table_args__ = (
        UniqueConstraint("branch_id", "code", name="uq_cash_bank_branch_code"),
    )

    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[CashBankAccountType] = mapped_column(
        Enum(
            CashBankAccountType,
            native_enum=False,
            length=10,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=CashBankAccountType.CASH,
    )

    currency: Mapped[CurrencyCode] = mapped_column(nullable=False, default="TRY")

    opening_balance: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)

    balance: Mapped[Amount] = mapped_column(nullable=False, default=_ZERO)


class Payment(TrackedBase, SoftDeleteMixin):
    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payment_invoice", "invoice_id"),
        Index("idx_payment_contact", "contact_id"),
        Index("idx_payment_account", "account_id"),
    )

    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
    )

    account_id: Mapped[int] = mapped_column(
        ForeignKey("cash_bank_accounts.id"),
        nullable=False,
    )

    contact_id: Mapped[int] = mapped_column(
        ForeignKey("contacts.id"),
        nullable=False,
    )

    # Settled invoice, if any
    invoice_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoices.id"),
        nullable=True,
    )

    direction: Mapped[PaymentDirection] = mapped_column(
        Enum(
            PaymentDirection,
            native_enum=False,
            length=10,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    amount: Mapped[Amount] = mapped_column(nullable=False)

    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)

    currency_rate: Mapped[CurrencyRate] = mapped_column(
        nullable=False,
        default=Decimal("1.0000"),
    )

    date_utc: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": row_version}
