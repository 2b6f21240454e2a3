"""
PaymentService -- cash/bank payments and the balances they move.

Responsibility:
    Records a payment against a cash/bank account (optionally settling an
    invoice) and soft-deletes payments.  In the same transaction it
    recalculates every balance the payment touches: the settled invoice,
    the account and the contact.

Architecture position:
    Kernel > Services -- write-side orchestrator, like InvoiceService.

Invariants enforced:
    - A payment and its balance updates commit or roll back together.
    - Account, contact and invoice must be live rows of the caller's
      branch; anything else is reported as not found.
    - Amount is positive and rounded to AMOUNT precision; the direction
      carries the sign.
    - Deletion is guarded by the payment's concurrency token.

Failure modes:
    - UnauthorizedError, ValidationError, NotFoundError,
      UnsupportedCurrencyError, ConcurrencyConflictError.
"""

from uuid import uuid4

from sqlalchemy.orm import Session

from accounting_config import EngineConfig, get_active_config
from accounting_kernel.domain.clock import Clock, SystemClock
from accounting_kernel.domain.context import BranchContext, require_branch
from accounting_kernel.domain.dtos import CreatePaymentCommand, PaymentDetail, encode_token
from accounting_kernel.domain.rounding import round_amount, round_currency
from accounting_kernel.exceptions import (
    NotFoundError,
    UnsupportedCurrencyError,
    ValidationError,
)
from accounting_kernel.logging_config import LogContext
from accounting_kernel.models.contact import Contact
from accounting_kernel.models.invoice import Invoice
from accounting_kernel.models.payment import CashBankAccount, Payment
from accounting_kernel.services.balance_service import (
    AccountBalanceRecalculator,
    AccountBalanceService,
    ContactBalanceRecalculator,
    ContactBalanceService,
    InvoiceBalanceRecalculator,
    InvoiceBalanceService,
)
from accounting_kernel.services.base import unit_of_work
from accounting_kernel.services.concurrency_guard import ConcurrencyGuard


def _payment_detail(payment: Payment) -> PaymentDetail:
    return PaymentDetail(
        id=payment.id,
        branch_id=payment.branch_id,
        account_id=payment.account_id,
        contact_id=payment.contact_id,
        invoice_id=payment.invoice_id,
        direction=payment.direction,
        amount=payment.amount,
        currency=payment.currency,
        currency_rate=payment.currency_rate,
        date_utc=payment.date_utc,
        description=payment.description,
        concurrency_token=encode_token(payment.row_version),
    )


class PaymentService:
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        invoice_balance: InvoiceBalanceRecalculator | None = None,
        contact_balance: ContactBalanceRecalculator | None = None,
        account_balance: AccountBalanceRecalculator | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._auto_commit = auto_commit
        self._guard = ConcurrencyGuard()
        self._invoice_balance = invoice_balance or InvoiceBalanceService(session)
        self._contact_balance = contact_balance or ContactBalanceService(session)
        self._account_balance = account_balance or AccountBalanceService(session)

    def create_payment(
        self,
        context: BranchContext,
        command: CreatePaymentCommand,
    ) -> PaymentDetail:
        """
        Record a payment and recalculate the balances it affects.

        Postconditions:
            - Account balance = opening + IN - OUT over live payments.
            - The linked invoice (if any) and the contact are recalculated.
        """
        branch_id = require_branch(context)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            branch_id=branch_id,
            actor_id=context.user_id,
            invoice_id=command.invoice_id,
            operation="create_payment",
        ):
            with unit_of_work(
                self.session,
                "create_payment",
                self._auto_commit,
                direction=command.direction,
                amount=command.amount,
            ) as outcome:
                detail = self._do_create(branch_id, command)
                outcome["payment_id"] = detail.id
            return detail

    def _do_create(self, branch_id: int, command: CreatePaymentCommand) -> PaymentDetail:
        amount = round_amount(command.amount)
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero", field="amount")
        currency = self._normalize_currency(command.currency)

        account = self.session.get(CashBankAccount, command.account_id)
        if account is None or account.is_deleted or account.branch_id != branch_id:
            raise NotFoundError("CashBankAccount", command.account_id)

        contact = self.session.get(Contact, command.contact_id)
        if contact is None or contact.is_deleted or contact.branch_id != branch_id:
            raise NotFoundError("Contact", command.contact_id)

        if command.invoice_id is not None:
            invoice = self.session.get(Invoice, command.invoice_id)
            if invoice is None or invoice.is_deleted or invoice.branch_id != branch_id:
                raise NotFoundError("Invoice", command.invoice_id)

        payment = Payment(
            branch_id=branch_id,
            account_id=account.id,
            contact_id=contact.id,
            invoice_id=command.invoice_id,
            direction=command.direction,
            amount=amount,
            currency=currency,
            currency_rate=round_currency(
                command.currency_rate or self._config.default_currency_rate
            ),
            date_utc=command.date_utc,
            description=command.description,
            created_at_utc=self._clock.now_utc(),
        )
        self.session.add(payment)
        self.session.flush()

        self._recalculate(payment)
        return _payment_detail(payment)

    def soft_delete_payment(
        self,
        context: BranchContext,
        payment_id: int,
        concurrency_token: str,
    ) -> None:
        """
        Soft-delete a payment and recalculate the balances it affected.

        Raises:
            NotFoundError: no live payment with this id in the branch.
            ConcurrencyConflictError: stale token.
        """
        branch_id = require_branch(context)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            branch_id=branch_id,
            actor_id=context.user_id,
            operation="delete_payment",
        ):
            with unit_of_work(
                self.session, "delete_payment", self._auto_commit, payment_id=payment_id
            ):
                payment = self.session.get(Payment, payment_id, populate_existing=True)
                if payment is None or payment.is_deleted or payment.branch_id != branch_id:
                    raise NotFoundError("Payment", payment_id)
                self._guard.check(
                    "Payment", payment.id, payment.row_version, concurrency_token
                )

                now = self._clock.now_utc()
                payment.soft_delete(now)
                payment.updated_at_utc = now
                with self._guard.translate_conflicts("Payment", payment.id):
                    self.session.flush()

                self._recalculate(payment)

    def _recalculate(self, payment: Payment) -> None:
        if payment.invoice_id is not None:
            self._invoice_balance.recalculate(payment.invoice_id)
        self._account_balance.recalculate(payment.account_id)
        self._contact_balance.recalculate(payment.contact_id)

    def _normalize_currency(self, currency: str | None) -> str:
        normalized = (currency or self._config.default_currency).strip().upper()
        if not self._config.is_allowed_currency(normalized):
            raise UnsupportedCurrencyError(currency, self._config.allowed_currencies)
        return normalized
