"""
Balance recalculators -- invoice, contact and cash/bank account balances.

Responsibility:
    Recompute stored running balances from their source rows after an
    invoice or payment mutation.  Each recalculation reads the full live
    source set and overwrites the stored value; nothing is adjusted
    incrementally.

Architecture position:
    Kernel > Services.  Called by InvoiceService and PaymentService inside
    their transactions; flushes only.  The orchestrators depend on the
    Protocol contracts below, so hosts may substitute their own
    implementations.

Invariants enforced:
    - Invoice: balance = total_gross - total_withholding - sum(linked live
      payments).  With no payments this equals the inline pre-payment
      balance the invoice builder writes, so the two never disagree.
    - Contact (receivable-positive): + outstanding of SALES and
      PURCHASE_RETURN invoices, - PURCHASE, SALES_RETURN and EXPENSE
      invoices, - IN payments, + OUT payments.
    - Account: opening_balance + sum(IN payments) - sum(OUT payments).
    - Only live (non-soft-deleted) rows count.

Failure modes:
    - NotFoundError when the target row does not exist.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy import func, select

from accounting_kernel.domain.enums import InvoiceType, PaymentDirection
from accounting_kernel.domain.rounding import round_amount
from accounting_kernel.exceptions import NotFoundError
from accounting_kernel.logging_config import get_logger
from accounting_kernel.models.contact import Contact
from accounting_kernel.models.invoice import Invoice
from accounting_kernel.models.payment import CashBankAccount, Payment
from accounting_kernel.services.base import BaseService

logger = get_logger("services.balance")

_RECEIVABLE_TYPES = frozenset({InvoiceType.SALES, InvoiceType.PURCHASE_RETURN})


class InvoiceBalanceRecalculator(Protocol):
    def recalculate(self, invoice_id: int) -> Decimal: ...


class ContactBalanceRecalculator(Protocol):
    def recalculate(self, contact_id: int) -> Decimal: ...


class AccountBalanceRecalculator(Protocol):
    def recalculate(self, account_id: int) -> Decimal: ...


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal(0)


class InvoiceBalanceService(BaseService):
    """Outstanding amount of one invoice after linked payments."""

    def recalculate(self, invoice_id: int) -> Decimal:
        invoice = self.session.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)

        paid = self.session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.invoice_id == invoice_id,
                Payment.is_deleted.is_(False),
            )
        ).scalar_one()

        balance = round_amount(
            invoice.total_gross - invoice.total_withholding - _decimal(paid)
        )
        invoice.balance = balance
        self.session.flush()

        logger.debug(
            "invoice_balance_recalculated",
            extra={"invoice_id": invoice_id, "balance": balance},
        )
        return balance


class ContactBalanceService(BaseService):
    """Receivable-positive running balance of one contact."""

    def recalculate(self, contact_id: int) -> Decimal:
        contact = self.session.get(Contact, contact_id)
        if contact is None:
            raise NotFoundError("Contact", contact_id)

        invoice_rows = self.session.execute(
            select(
                Invoice.invoice_type,
                func.coalesce(func.sum(Invoice.total_gross - Invoice.total_withholding), 0),
            )
            .where(Invoice.contact_id == contact_id, Invoice.is_deleted.is_(False))
            .group_by(Invoice.invoice_type)
        ).all()

        payment_rows = self.session.execute(
            select(Payment.direction, func.coalesce(func.sum(Payment.amount), 0))
            .where(Payment.contact_id == contact_id, Payment.is_deleted.is_(False))
            .group_by(Payment.direction)
        ).all()

        balance = Decimal(0)
        for invoice_type, outstanding in invoice_rows:
            if invoice_type in _RECEIVABLE_TYPES:
                balance += _decimal(outstanding)
            else:
                balance -= _decimal(outstanding)

        for direction, amount in payment_rows:
            if direction == PaymentDirection.IN:
                balance -= _decimal(amount)
            else:
                balance += _decimal(amount)

        contact.balance = round_amount(balance)
        self.session.flush()

        logger.debug(
            "contact_balance_recalculated",
            extra={"contact_id": contact_id, "balance": contact.balance},
        )
        return contact.balance


class AccountBalanceService(BaseService):
    """Cash/bank account balance from its opening balance and payments."""

    def recalculate(self, account_id: int) -> Decimal:
        account = self.session.get(CashBankAccount, account_id)
        if account is None:
            raise NotFoundError("CashBankAccount", account_id)

        rows = self.session.execute(
            select(Payment.direction, func.coalesce(func.sum(Payment.amount), 0))
            .where(Payment.account_id == account_id, Payment.is_deleted.is_(False))
            .group_by(Payment.direction)
        ).all()

        balance = account.opening_balance
        for direction, amount in rows:
            if direction == PaymentDirection.IN:
                balance += _decimal(amount)
            else:
                balance -= _decimal(amount)

        account.balance = round_amount(balance)
        self.session.flush()

        logger.debug(
            "account_balance_recalculated",
            extra={"account_id": account_id, "balance": account.balance},
        )
        return account.balance
