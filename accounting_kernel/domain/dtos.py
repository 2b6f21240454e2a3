"""
DTOs -- immutable commands, results and read models, plus wire rendering.

Responsibility:
    Typed inputs for the invoice and payment orchestrators, typed outputs
    returned to callers, and their JSON-ready wire forms.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimals cross the wire as strings at their category precision
      ("118.00", never 118.0 or "118").  Inbound values may be strings or
      numbers; both are rounded to the category on parse.
    - Concurrency tokens are opaque base64 strings of the 8-byte big-endian
      row version.
    - Datetimes are timezone-aware UTC; naive inbound values are taken as UTC.

Failure modes:
    - InvalidAmountError for unparseable decimal strings.
    - ValidationError for malformed tokens, dates, enums or integer rates.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from accounting_kernel.domain.enums import (
    DocumentType,
    InvoiceType,
    ItemType,
    PaymentDirection,
    StockMovementType,
)
from accounting_kernel.domain.rounding import (
    ROUNDING_POLICY,
    PrecisionCategory,
    coerce,
    format_amount,
    format_currency,
    format_percent,
    format_quantity,
    format_unit_price,
)
from accounting_kernel.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------


def encode_token(version: int) -> str:
    """Render a row version as the opaque wire token."""
    return base64.b64encode(int(version).to_bytes(8, "big")).decode("ascii")


def decode_token(token: str | None) -> int:
    """
    Parse a wire token back into its row version.

    Raises:
        ValidationError: token missing, not base64, or not 8 bytes.
    """
    if not token:
        raise ValidationError("Concurrency token is required", field="concurrencyToken")
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(
            "Invalid concurrency token", field="concurrencyToken"
        ) from exc
    if len(raw) != 8:
        raise ValidationError("Invalid concurrency token", field="concurrencyToken")
    return int.from_bytes(raw, "big")


def parse_utc_datetime(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"Invalid datetime: {value!r}", field=field_name) from exc
    else:
        raise ValidationError(f"Invalid datetime: {value!r}", field=field_name)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _optional_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or value == "":
        return None
    return parse_utc_datetime(value, field_name)


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _int_value(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Expected an integer, got {value!r}", field=field_name)
    if isinstance(value, int):
        return value
    if isinstance(value, (Decimal, float)) and value == int(value):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        return int(value.strip())
    raise ValidationError(f"Expected an integer, got {value!r}", field=field_name)


def _optional_int(value: Any, field_name: str) -> int | None:
    if value is None or value == "":
        return None
    return _int_value(value, field_name)


def _required(payload: Mapping[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise ValidationError("Field is required", field=key)
    return value


def _enum_value(enum_cls: type, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown value {value!r}", field=field_name) from exc


# ---------------------------------------------------------------------------
# Item snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemSnapshot:
    """
    Read-only item data copied onto invoice lines at creation time.

    Resolved once per request into a dict keyed by item id, so the line
    loop never goes back to the database.
    """

    id: int
    code: str
    name: str
    unit: str
    item_type: ItemType
    default_withholding_rate: int = 0
    sales_account_code: str | None = None
    purchase_account_code: str | None = None

    def account_code_for(self, invoice_type: InvoiceType) -> str | None:
        if invoice_type in (InvoiceType.SALES, InvoiceType.SALES_RETURN):
            return self.sales_account_code
        return self.purchase_account_code


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoiceLineInput:
    """
    One requested invoice line.

    id is None for a new line; on update an id matching a persisted line
    updates that line in place.  withholding_rate None falls back to the
    item's default rate.
    """

    item_id: int | None
    quantity: Decimal
    unit_price: Decimal
    vat_rate: int
    discount_rate: Decimal | None = None
    withholding_rate: int | None = None
    id: int | None = None

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> InvoiceLineInput:
        line_id = _optional_int(payload.get("id"), "id")
        return cls(
            item_id=_optional_int(payload.get("itemId"), "itemId"),
            quantity=coerce(payload.get("quantity"), PrecisionCategory.QUANTITY),
            unit_price=coerce(payload.get("unitPrice"), PrecisionCategory.UNIT_PRICE),
            vat_rate=_int_value(_required(payload, "vatRate"), "vatRate"),
            discount_rate=(
                None
                if payload.get("discountRate") is None
                else coerce(payload["discountRate"], PrecisionCategory.PERCENT)
            ),
            withholding_rate=_optional_int(
                payload.get("withholdingRate"), "withholdingRate"
            ),
            id=line_id or None,
        )


def _header_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    lines = payload.get("lines") or ()
    document_type = payload.get("documentType")
    currency_rate = payload.get("currencyRate")
    return {
        "contact_id": _int_value(_required(payload, "contactId"), "contactId"),
        "date_utc": parse_utc_datetime(_required(payload, "dateUtc"), "dateUtc"),
        "currency": str(_required(payload, "currency")),
        "invoice_type": _enum_value(InvoiceType, _required(payload, "type"), "type"),
        "lines": tuple(InvoiceLineInput.from_wire(line) for line in lines),
        "document_type": (
            None
            if document_type is None
            else _enum_value(DocumentType, document_type, "documentType")
        ),
        "currency_rate": (
            None
            if currency_rate is None
            else coerce(currency_rate, PrecisionCategory.CURRENCY)
        ),
        "waybill_number": payload.get("waybillNumber"),
        "waybill_date_utc": _optional_datetime(
            payload.get("waybillDateUtc"), "waybillDateUtc"
        ),
        "payment_due_date_utc": _optional_datetime(
            payload.get("paymentDueDateUtc"), "paymentDueDateUtc"
        ),
        "order_id": _optional_int(payload.get("orderId"), "orderId"),
    }


@dataclass(frozen=True)
class CreateInvoiceCommand:
    contact_id: int
    date_utc: datetime
    currency: str
    invoice_type: InvoiceType
    lines: tuple[InvoiceLineInput, ...]
    document_type: DocumentType | None = None
    currency_rate: Decimal | None = None
    waybill_number: str | None = None
    waybill_date_utc: datetime | None = None
    payment_due_date_utc: datetime | None = None
    order_id: int | None = None

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> CreateInvoiceCommand:
        return cls(**_header_fields(payload))


@dataclass(frozen=True)
class UpdateInvoiceCommand:
    invoice_id: int
    concurrency_token: str
    contact_id: int
    date_utc: datetime
    currency: str
    invoice_type: InvoiceType
    lines: tuple[InvoiceLineInput, ...]
    document_type: DocumentType | None = None
    currency_rate: Decimal | None = None
    waybill_number: str | None = None
    waybill_date_utc: datetime | None = None
    payment_due_date_utc: datetime | None = None
    order_id: int | None = None

    @classmethod
    def from_wire(cls, invoice_id: int, payload: Mapping[str, Any]) -> UpdateInvoiceCommand:
        token = payload.get("concurrencyToken")
        if not token:
            raise ValidationError(
                "Concurrency token is required", field="concurrencyToken"
            )
        return cls(
            invoice_id=invoice_id,
            concurrency_token=str(token),
            **_header_fields(payload),
        )


@dataclass(frozen=True)
class CreatePaymentCommand:
    account_id: int
    contact_id: int
    direction: PaymentDirection
    amount: Decimal
    date_utc: datetime
    currency: str
    invoice_id: int | None = None
    currency_rate: Decimal | None = None
    description: str | None = None

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> CreatePaymentCommand:
        currency_rate = payload.get("currencyRate")
        return cls(
            account_id=_int_value(_required(payload, "accountId"), "accountId"),
            contact_id=_int_value(_required(payload, "contactId"), "contactId"),
            direction=_enum_value(
                PaymentDirection, _required(payload, "direction"), "direction"
            ),
            amount=coerce(payload.get("amount"), PrecisionCategory.AMOUNT),
            date_utc=parse_utc_datetime(_required(payload, "dateUtc"), "dateUtc"),
            currency=str(_required(payload, "currency")),
            invoice_id=_optional_int(payload.get("invoiceId"), "invoiceId"),
            currency_rate=(
                None
                if currency_rate is None
                else coerce(currency_rate, PrecisionCategory.CURRENCY)
            ),
            description=payload.get("description"),
        )


# ---------------------------------------------------------------------------
# Results and read models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateInvoiceResult:
    id: int
    invoice_number: str
    total_net: Decimal
    total_vat: Decimal
    total_gross: Decimal
    rounding_policy: str = ROUNDING_POLICY

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "totalNet": format_amount(self.total_net),
            "totalVat": format_amount(self.total_vat),
            "totalGross": format_amount(self.total_gross),
            "roundingPolicy": self.rounding_policy,
        }


@dataclass(frozen=True)
class InvoiceLineDetail:
    id: int
    item_id: int | None
    item_code: str
    item_name: str
    unit: str
    account_code: str | None
    quantity: Decimal
    unit_price: Decimal
    vat_rate: int
    discount_rate: Decimal
    withholding_rate: int
    gross: Decimal
    discount_amount: Decimal
    net: Decimal
    vat: Decimal
    withholding_amount: Decimal
    grand_total: Decimal
    is_deleted: bool
    created_at_utc: datetime
    updated_at_utc: datetime | None
    deleted_at_utc: datetime | None

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "itemCode": self.item_code,
            "itemName": self.item_name,
            "unit": self.unit,
            "accountCode": self.account_code,
            "quantity": format_quantity(self.quantity),
            "unitPrice": format_unit_price(self.unit_price),
            "vatRate": self.vat_rate,
            "discountRate": format_percent(self.discount_rate),
            "withholdingRate": self.withholding_rate,
            "gross": format_amount(self.gross),
            "discountAmount": format_amount(self.discount_amount),
            "net": format_amount(self.net),
            "vat": format_amount(self.vat),
            "withholdingAmount": format_amount(self.withholding_amount),
            "grandTotal": format_amount(self.grand_total),
            "isDeleted": self.is_deleted,
            "createdAtUtc": _format_datetime(self.created_at_utc),
            "updatedAtUtc": _format_datetime(self.updated_at_utc),
            "deletedAtUtc": _format_datetime(self.deleted_at_utc),
        }


@dataclass(frozen=True)
class InvoiceDetail:
    """Fresh, post-commit view of an invoice aggregate."""

    id: int
    branch_id: int
    branch_code: str
    branch_name: str
    contact_id: int
    contact_code: str
    contact_name: str
    order_id: int | None
    invoice_number: str
    invoice_type: InvoiceType
    document_type: DocumentType | None
    date_utc: datetime
    currency: str
    currency_rate: Decimal
    waybill_number: str | None
    waybill_date_utc: datetime | None
    payment_due_date_utc: datetime | None
    total_line_gross: Decimal
    total_discount: Decimal
    total_net: Decimal
    total_vat: Decimal
    total_withholding: Decimal
    total_gross: Decimal
    balance: Decimal
    created_at_utc: datetime
    updated_at_utc: datetime | None
    concurrency_token: str
    lines: tuple[InvoiceLineDetail, ...] = field(default_factory=tuple)

    @property
    def active_lines(self) -> tuple[InvoiceLineDetail, ...]:
        return tuple(line for line in self.lines if not line.is_deleted)

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "branchId": self.branch_id,
            "branchCode": self.branch_code,
            "branchName": self.branch_name,
            "contactId": self.contact_id,
            "contactCode": self.contact_code,
            "contactName": self.contact_name,
            "orderId": self.order_id,
            "invoiceNumber": self.invoice_number,
            "type": self.invoice_type.value,
            "documentType": (
                self.document_type.value if self.document_type is not None else None
            ),
            "dateUtc": _format_datetime(self.date_utc),
            "currency": self.currency,
            "currencyRate": format_currency(self.currency_rate),
            "waybillNumber": self.waybill_number,
            "waybillDateUtc": _format_datetime(self.waybill_date_utc),
            "paymentDueDateUtc": _format_datetime(self.payment_due_date_utc),
            "totalLineGross": format_amount(self.total_line_gross),
            "totalDiscount": format_amount(self.total_discount),
            "totalNet": format_amount(self.total_net),
            "totalVat": format_amount(self.total_vat),
            "totalWithholding": format_amount(self.total_withholding),
            "totalGross": format_amount(self.total_gross),
            "balance": format_amount(self.balance),
            "createdAtUtc": _format_datetime(self.created_at_utc),
            "updatedAtUtc": _format_datetime(self.updated_at_utc),
            "concurrencyToken": self.concurrency_token,
            "lines": [line.to_wire() for line in self.lines],
        }


@dataclass(frozen=True)
class StockMovementDetail:
    id: int
    branch_id: int
    warehouse_id: int
    item_id: int
    movement_type: StockMovementType
    quantity: Decimal
    transaction_date_utc: datetime
    note: str | None
    invoice_id: int | None
    is_deleted: bool
    concurrency_token: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "branchId": self.branch_id,
            "warehouseId": self.warehouse_id,
            "itemId": self.item_id,
            "type": self.movement_type.value,
            "quantity": format_quantity(self.quantity),
            "transactionDateUtc": _format_datetime(self.transaction_date_utc),
            "note": self.note,
            "invoiceId": self.invoice_id,
            "isDeleted": self.is_deleted,
            "concurrencyToken": self.concurrency_token,
        }


@dataclass(frozen=True)
class PaymentDetail:
    id: int
    branch_id: int
    account_id: int
    contact_id: int
    invoice_id: int | None
    direction: PaymentDirection
    amount: Decimal
    currency: str
    currency_rate: Decimal
    date_utc: datetime
    description: str | None
    concurrency_token: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "branchId": self.branch_id,
            "accountId": self.account_id,
            "contactId": self.contact_id,
            "invoiceId": self.invoice_id,
            "direction": self.direction.value,
            "amount": format_amount(self.amount),
            "currency": self.currency,
            "currencyRate": format_currency(self.currency_rate),
            "dateUtc": _format_datetime(self.date_utc),
            "description": self.description,
            "concurrencyToken": self.concurrency_token,
        }
