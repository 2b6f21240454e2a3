"""
Tests for PaymentService and the balance recalculators.

Verifies:
- Invoice balance = total_gross - total_withholding - linked live payments
- Contact balance is receivable-positive across invoices and payments
- Account balance = opening + IN - OUT over live payments
- Payment soft delete restores every balance it moved
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from accounting_kernel.domain.dtos import CreatePaymentCommand, encode_token
from accounting_kernel.domain.enums import InvoiceType, PaymentDirection
from accounting_kernel.exceptions import (
    ConcurrencyConflictError,
    NotFoundError,
    UnsupportedCurrencyError,
    ValidationError,
)
from accounting_kernel.models.contact import Contact
from accounting_kernel.models.invoice import Invoice
from accounting_kernel.models.payment import CashBankAccount
from accounting_kernel.services.balance_service import (
    AccountBalanceService,
    ContactBalanceService,
    InvoiceBalanceService,
)

PAYMENT_DATE = datetime(2024, 1, 20, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def payment_command(seed):
    def _build(amount: str, direction=PaymentDirection.IN, **overrides):
        values = {
            "account_id": seed.cash_account_id,
            "contact_id": seed.customer_id,
            "direction": direction,
            "amount": Decimal(amount),
            "date_utc": PAYMENT_DATE,
            "currency": "TRY",
        }
        values.update(overrides)
        return CreatePaymentCommand(**values)

    return _build


@pytest.fixture
def balances(session, seed):
    """Current (invoice, account, contact) balances, re-read from the database."""

    def _read(invoice_id=None, contact_id=None):
        session.expire_all()
        invoice = session.get(Invoice, invoice_id).balance if invoice_id else None
        account = session.get(CashBankAccount, seed.cash_account_id).balance
        contact = session.get(Contact, contact_id or seed.customer_id).balance
        return invoice, account, contact

    return _read


@pytest.fixture
def sales_invoice(invoice_service, context, seed, line, create_command):
    """Sales invoice for 100 + 20% VAT = 120.00."""
    return invoice_service.create_invoice(
        context, create_command([line(seed.service_item_id, "1", "100", 20)])
    )


class TestInvoiceSettlement:

    def test_partial_collection(
        self, payment_service, context, sales_invoice, payment_command, balances
    ):
        detail = payment_service.create_payment(
            context, payment_command("50", invoice_id=sales_invoice.id)
        )

        assert detail.amount == Decimal("50.00")
        assert detail.direction == PaymentDirection.IN
        assert detail.currency_rate == Decimal("1.0000")
        assert detail.concurrency_token == encode_token(1)
        assert balances(sales_invoice.id) == (
            Decimal("70.00"), Decimal("1050.00"), Decimal("70.00"),
        )

    def test_supplier_purchase_settled_by_outgoing_payment(
        self, invoice_service, payment_service, context, seed, line, create_command,
        payment_command, balances,
    ):
        purchase = invoice_service.create_invoice(
            context,
            create_command(
                [line(seed.service_item_id, "1", "100", 18)],
                invoice_type=InvoiceType.PURCHASE,
                contact_id=seed.supplier_id,
            ),
        )
        assert balances(purchase.id, seed.supplier_id)[2] == Decimal("-118.00")

        payment_service.create_payment(
            context,
            payment_command(
                "118",
                direction=PaymentDirection.OUT,
                contact_id=seed.supplier_id,
                invoice_id=purchase.id,
            ),
        )
        assert balances(purchase.id, seed.supplier_id) == (
            Decimal("0.00"), Decimal("882.00"), Decimal("0.00"),
        )

    def test_withholding_reduces_outstanding(
        self, invoice_service, payment_service, context, seed, line, create_command,
        payment_command, balances,
    ):
        # 1000 net, 200 VAT, 50% withholding on VAT -> 100 withheld
        invoice = invoice_service.create_invoice(
            context, create_command([line(seed.consulting_item_id, "1", "1000", 20)])
        )
        assert balances(invoice.id)[0] == Decimal("1100.00")

        payment_service.create_payment(
            context, payment_command("1100", invoice_id=invoice.id)
        )
        assert balances(invoice.id) == (
            Decimal("0.00"), Decimal("2100.00"), Decimal("0.00"),
        )

    def test_unlinked_payment_moves_contact_and_account_only(
        self, payment_service, context, sales_invoice, payment_command, balances
    ):
        payment_service.create_payment(context, payment_command("20"))

        assert balances(sales_invoice.id) == (
            Decimal("120.00"), Decimal("1020.00"), Decimal("100.00"),
        )


class TestPaymentDeletion:

    def test_soft_delete_restores_balances(
        self, payment_service, context, sales_invoice, payment_command, balances
    ):
        payment = payment_service.create_payment(
            context, payment_command("50", invoice_id=sales_invoice.id)
        )

        payment_service.soft_delete_payment(
            context, payment.id, payment.concurrency_token
        )

        assert balances(sales_invoice.id) == (
            Decimal("120.00"), Decimal("1000.00"), Decimal("120.00"),
        )

    def test_deleted_payment_cannot_be_deleted_again(
        self, payment_service, context, payment_command
    ):
        payment = payment_service.create_payment(context, payment_command("10"))
        payment_service.soft_delete_payment(
            context, payment.id, payment.concurrency_token
        )

        with pytest.raises(NotFoundError) as exc_info:
            payment_service.soft_delete_payment(
                context, payment.id, payment.concurrency_token
            )
        assert exc_info.value.entity_type == "Payment"

    def test_stale_token_conflicts(
        self, payment_service, context, payment_command, balances
    ):
        payment = payment_service.create_payment(context, payment_command("10"))

        with pytest.raises(ConcurrencyConflictError):
            payment_service.soft_delete_payment(context, payment.id, encode_token(99))

        assert balances()[1] == Decimal("1010.00")

    def test_other_branch_cannot_delete(
        self, payment_service, context, other_branch_context, payment_command
    ):
        payment = payment_service.create_payment(context, payment_command("10"))

        with pytest.raises(NotFoundError):
            payment_service.soft_delete_payment(
                other_branch_context, payment.id, payment.concurrency_token
            )


class TestPaymentValidation:

    @pytest.mark.parametrize("amount", ["0", "-5", "0.004"])
    def test_amount_must_be_positive(
        self, payment_service, context, payment_command, amount
    ):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.create_payment(context, payment_command(amount))
        assert exc_info.value.field == "amount"

    def test_unsupported_currency(self, payment_service, context, payment_command):
        with pytest.raises(UnsupportedCurrencyError):
            payment_service.create_payment(
                context, payment_command("10", currency="XYZ")
            )

    def test_account_of_other_branch(self, payment_service, context, seed, payment_command):
        with pytest.raises(NotFoundError) as exc_info:
            payment_service.create_payment(
                context, payment_command("10", account_id=seed.other_branch_account_id)
            )
        assert exc_info.value.entity_type == "CashBankAccount"

    def test_contact_of_other_branch(self, payment_service, context, seed, payment_command):
        with pytest.raises(NotFoundError) as exc_info:
            payment_service.create_payment(
                context,
                payment_command("10", contact_id=seed.other_branch_contact_id),
            )
        assert exc_info.value.entity_type == "Contact"

    def test_unknown_invoice(self, payment_service, context, payment_command, balances):
        with pytest.raises(NotFoundError) as exc_info:
            payment_service.create_payment(
                context, payment_command("10", invoice_id=424242)
            )
        assert exc_info.value.entity_type == "Invoice"
        assert balances()[1] == Decimal("1000.00")


class TestRecalculators:

    def test_missing_targets(self, session, seed):
        with pytest.raises(NotFoundError):
            InvoiceBalanceService(session).recalculate(999)
        with pytest.raises(NotFoundError):
            ContactBalanceService(session).recalculate(999)
        with pytest.raises(NotFoundError):
            AccountBalanceService(session).recalculate(999)

    def test_contact_balance_across_invoice_types(
        self, invoice_service, context, session, seed, line, create_command,
        receive_stock,
    ):
        receive_stock(seed.stock_item_id, "10")
        for invoice_type, price in [
            (InvoiceType.SALES, "100"),
            (InvoiceType.SALES_RETURN, "30"),
            (InvoiceType.PURCHASE_RETURN, "10"),
            (InvoiceType.EXPENSE, "5"),
        ]:
            invoice_service.create_invoice(
                context,
                create_command(
                    [line(seed.stock_item_id, "1", price, 0)], invoice_type=invoice_type
                ),
            )

        # +100 - 30 + 10 - 5
        assert ContactBalanceService(session).recalculate(seed.customer_id) == Decimal(
            "75.00"
        )

    def test_account_balance_without_payments(self, session, seed):
        assert AccountBalanceService(session).recalculate(seed.cash_account_id) == Decimal(
            "1000.00"
        )
