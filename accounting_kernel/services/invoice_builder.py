"""
InvoiceAggregateBuilder -- header and line construction for create/update.

Responsibility:
    Validates invoice input, resolves item snapshots, and writes every
    derived monetary field of the Invoice aggregate in memory:
    - build(): a new header plus one line per input line.
    - apply_update(): header overwrite plus the line diff (soft-delete
      removed lines, update matched lines in place, append new lines).
    Both paths compute lines with LineCalculator and re-sum the header
    from the full active-line set.

Architecture position:
    Kernel > Services.  Called by InvoiceService.  Performs read queries
    (contact, items) but never flushes or commits; the orchestrator owns
    persistence.

Invariants enforced:
    - Header totals always equal the rounded sums of the active lines.
    - Header balance before payments = total_gross - total_withholding.
    - Snapshot fields (code, name, unit, account code) are copied from the
      item whenever a line is written.
    - Lines are never hard-deleted.

Failure modes:
    - ValidationError: no lines, missing item id, out-of-range values,
      duplicate line ids.
    - UnsupportedCurrencyError: currency outside the allowed list.
    - NotFoundError: unknown contact (or another branch's), unknown item,
      or an incoming line id that is not a live line of the invoice.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from accounting_config import EngineConfig, get_active_config
from accounting_kernel.domain.clock import Clock, SystemClock
from accounting_kernel.domain.dtos import (
    CreateInvoiceCommand,
    InvoiceLineInput,
    ItemSnapshot,
    UpdateInvoiceCommand,
)
from accounting_kernel.domain.enums import DocumentType, InvoiceType
from accounting_kernel.domain.line_calculator import (
    LineInputs,
    calculate_line,
    sum_header_totals,
)
from accounting_kernel.domain.rounding import round_currency
from accounting_kernel.exceptions import (
    NotFoundError,
    UnsupportedCurrencyError,
    ValidationError,
)
from accounting_kernel.logging_config import get_logger
from accounting_kernel.models.contact import Contact
from accounting_kernel.models.invoice import Invoice, InvoiceLine
from accounting_kernel.models.item import Item
from accounting_kernel.services.base import BaseService

logger = get_logger("services.invoice_builder")


class InvoiceAggregateBuilder(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()

    # ------------------------------------------------------------------
    # Validation and lookups
    # ------------------------------------------------------------------

    def normalize_currency(self, currency: str | None) -> str:
        """Uppercase the currency (default when empty) and check the whitelist."""
        normalized = (currency or self._config.default_currency).strip().upper()
        if not self._config.is_allowed_currency(normalized):
            raise UnsupportedCurrencyError(currency, self._config.allowed_currencies)
        return normalized

    def validate_lines(self, lines: Sequence[InvoiceLineInput]) -> None:
        if not lines:
            raise ValidationError("At least one line is required", field="lines")

        seen_ids: set[int] = set()
        for index, line in enumerate(lines):
            field = f"lines[{index}]"
            if line.item_id is None or line.item_id <= 0:
                raise ValidationError("itemId is required", field=f"{field}.itemId")
            if line.quantity <= 0:
                raise ValidationError(
                    "Quantity must be greater than zero", field=f"{field}.quantity"
                )
            if line.unit_price < 0:
                raise ValidationError(
                    "Unit price cannot be negative", field=f"{field}.unitPrice"
                )
            if not 0 <= line.vat_rate <= 100:
                raise ValidationError(
                    "VAT rate must be between 0 and 100", field=f"{field}.vatRate"
                )
            if line.discount_rate is not None and not 0 <= line.discount_rate <= 100:
                raise ValidationError(
                    "Discount rate must be between 0 and 100",
                    field=f"{field}.discountRate",
                )
            if line.withholding_rate is not None and not 0 <= line.withholding_rate <= 100:
                raise ValidationError(
                    "Withholding rate must be between 0 and 100",
                    field=f"{field}.withholdingRate",
                )
            if line.id is not None:
                if line.id in seen_ids:
                    raise ValidationError(
                        f"Line id {line.id} appears more than once", field=f"{field}.id"
                    )
                seen_ids.add(line.id)

    def require_contact(self, branch_id: int, contact_id: int) -> Contact:
        """Live contact of the caller's branch; anything else is not found."""
        contact = self.session.get(Contact, contact_id)
        if contact is None or contact.is_deleted or contact.branch_id != branch_id:
            raise NotFoundError("Contact", contact_id)
        return contact

    def load_item_snapshots(self, item_ids: Iterable[int]) -> dict[int, ItemSnapshot]:
        """
        Resolve every referenced item in one query.

        Raises:
            NotFoundError: an id does not match a live item.
        """
        ids = sorted(set(item_ids))
        if not ids:
            return {}

        items = self.session.execute(
            select(Item).where(Item.id.in_(ids), Item.is_deleted.is_(False))
        ).scalars()
        snapshots = {
            item.id: ItemSnapshot(
                id=item.id,
                code=item.code,
                name=item.name,
                unit=item.unit,
                item_type=item.item_type,
                default_withholding_rate=item.default_withholding_rate or 0,
                sales_account_code=item.sales_account_code,
                purchase_account_code=item.purchase_account_code,
            )
            for item in items
        }
        for item_id in ids:
            if item_id not in snapshots:
                raise NotFoundError("Item", item_id)
        return snapshots

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def build(
        self,
        branch_id: int,
        command: CreateInvoiceCommand,
        currency: str,
        invoice_number: str,
        snapshots: dict[int, ItemSnapshot],
    ) -> Invoice:
        """
        Construct a new, unsaved Invoice with its lines and totals.

        Preconditions:
            - validate_lines() passed and snapshots cover every line item.
        """
        now = self._clock.now_utc()
        invoice = Invoice(
            branch_id=branch_id,
            contact_id=command.contact_id,
            order_id=command.order_id,
            invoice_type=command.invoice_type,
            document_type=command.document_type or DocumentType.INVOICE,
            date_utc=command.date_utc,
            invoice_number=invoice_number,
            currency=currency,
            currency_rate=round_currency(
                command.currency_rate or self._config.default_currency_rate
            ),
            waybill_number=command.waybill_number,
            waybill_date_utc=command.waybill_date_utc,
            payment_due_date_utc=command.payment_due_date_utc,
            created_at_utc=now,
        )

        for line_input in command.lines:
            line = InvoiceLine(created_at_utc=now)
            self._fill_line(line, line_input, snapshots, command.invoice_type)
            invoice.lines.append(line)

        self._apply_totals(invoice)
        return invoice

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def apply_update(
        self,
        invoice: Invoice,
        command: UpdateInvoiceCommand,
        currency: str,
        snapshots: dict[int, ItemSnapshot],
    ) -> None:
        """
        Overwrite header fields and reconcile the line set in memory.

        Preconditions:
            - ``invoice.lines`` is loaded; the concurrency token was checked.
        """
        now = self._clock.now_utc()
        persisted = {line.id: line for line in invoice.active_lines}
        incoming = {line.id: line for line in command.lines if line.id is not None}

        for line_id in incoming:
            if line_id not in persisted:
                raise NotFoundError("InvoiceLine", line_id)

        invoice.currency = currency
        invoice.date_utc = command.date_utc
        invoice.contact_id = command.contact_id
        invoice.invoice_type = command.invoice_type
        if command.document_type is not None:
            invoice.document_type = command.document_type
        if command.currency_rate is not None:
            invoice.currency_rate = round_currency(command.currency_rate)
        if command.order_id is not None:
            invoice.order_id = command.order_id
        invoice.waybill_number = command.waybill_number
        invoice.waybill_date_utc = command.waybill_date_utc
        invoice.payment_due_date_utc = command.payment_due_date_utc

        removed = 0
        for line_id, line in persisted.items():
            if line_id not in incoming:
                line.soft_delete(now)
                line.updated_at_utc = now
                removed += 1

        for line_id, line_input in incoming.items():
            line = persisted[line_id]
            self._fill_line(line, line_input, snapshots, command.invoice_type)
            line.updated_at_utc = now

        added = 0
        for line_input in command.lines:
            if line_input.id is None:
                line = InvoiceLine(created_at_utc=now)
                self._fill_line(line, line_input, snapshots, command.invoice_type)
                invoice.lines.append(line)
                added += 1

        self._apply_totals(invoice)
        invoice.updated_at_utc = now

        logger.debug(
            "invoice_lines_reconciled",
            extra={
                "invoice_id": invoice.id,
                "updated": len(incoming),
                "removed": removed,
                "added": added,
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fill_line(
        self,
        line: InvoiceLine,
        line_input: InvoiceLineInput,
        snapshots: dict[int, ItemSnapshot],
        invoice_type: InvoiceType,
    ) -> None:
        if line_input.item_id is None:
            raise ValidationError("itemId is required", field="itemId")
        snapshot = snapshots.get(line_input.item_id)
        if snapshot is None:
            raise NotFoundError("Item", line_input.item_id)

        withholding_rate = (
            line_input.withholding_rate
            if line_input.withholding_rate is not None
            else snapshot.default_withholding_rate
        )
        inputs = LineInputs(
            quantity=abs(line_input.quantity),
            unit_price=line_input.unit_price,
            vat_rate=line_input.vat_rate,
            discount_rate=line_input.discount_rate or Decimal(0),
            withholding_rate=withholding_rate,
        )
        amounts = calculate_line(inputs)

        line.item_id = snapshot.id
        line.item_code = snapshot.code
        line.item_name = snapshot.name
        line.unit = snapshot.unit
        line.account_code = snapshot.account_code_for(invoice_type)

        line.quantity = inputs.quantity
        line.unit_price = inputs.unit_price
        line.vat_rate = inputs.vat_rate
        line.discount_rate = inputs.discount_rate
        line.withholding_rate = amounts.withholding_rate

        line.gross = amounts.gross
        line.discount_amount = amounts.discount_amount
        line.net = amounts.net
        line.vat = amounts.vat
        line.withholding_amount = amounts.withholding_amount
        line.grand_total = amounts.grand_total

    @staticmethod
    def _apply_totals(invoice: Invoice) -> None:
        totals = sum_header_totals(invoice.active_lines)
        invoice.total_line_gross = totals.total_line_gross
        invoice.total_discount = totals.total_discount
        invoice.total_net = totals.total_net
        invoice.total_vat = totals.total_vat
        invoice.total_withholding = totals.total_withholding
        invoice.total_gross = totals.total_gross
        invoice.balance = totals.balance
