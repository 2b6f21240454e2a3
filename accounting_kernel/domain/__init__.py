"""
Pure domain layer.

This module contains value objects and calculation logic with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- System time (time comes from an injected Clock)

All domain objects are immutable and deterministic.
"""

from accounting_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from accounting_kernel.domain.context import (
    BranchContext,
    StaticBranchContext,
    require_branch,
)
from accounting_kernel.domain.dtos import (
    CreateInvoiceCommand,
    CreateInvoiceResult,
    CreatePaymentCommand,
    InvoiceDetail,
    InvoiceLineDetail,
    InvoiceLineInput,
    ItemSnapshot,
    PaymentDetail,
    StockMovementDetail,
    UpdateInvoiceCommand,
    decode_token,
    encode_token,
)
from accounting_kernel.domain.enums import (
    CashBankAccountType,
    DocumentType,
    InvoiceType,
    ItemType,
    PaymentDirection,
    StockMovementType,
)
from accounting_kernel.domain.line_calculator import (
    HeaderTotals,
    LineAmounts,
    LineInputs,
    calculate_line,
    sum_header_totals,
)
from accounting_kernel.domain.rounding import (
    ROUNDING_POLICY,
    PrecisionCategory,
    format_value,
    parse_value,
    round_value,
)
from accounting_kernel.domain.stock_rules import (
    INBOUND_MOVEMENT_TYPES,
    OUTBOUND_MOVEMENT_TYPES,
    participates_in_stock,
    requires_availability_check,
    resolve_movement_type,
)

__all__ = [
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Context
    "BranchContext",
    "StaticBranchContext",
    "require_branch",
    # DTOs
    "CreateInvoiceCommand",
    "CreateInvoiceResult",
    "CreatePaymentCommand",
    "InvoiceDetail",
    "InvoiceLineDetail",
    "InvoiceLineInput",
    "ItemSnapshot",
    "PaymentDetail",
    "StockMovementDetail",
    "UpdateInvoiceCommand",
    "decode_token",
    "encode_token",
    # Enums
    "CashBankAccountType",
    "DocumentType",
    "InvoiceType",
    "ItemType",
    "PaymentDirection",
    "StockMovementType",
    # Calculation
    "HeaderTotals",
    "LineAmounts",
    "LineInputs",
    "calculate_line",
    "sum_header_totals",
    # Rounding
    "ROUNDING_POLICY",
    "PrecisionCategory",
    "format_value",
    "parse_value",
    "round_value",
    # Stock
    "INBOUND_MOVEMENT_TYPES",
    "OUTBOUND_MOVEMENT_TYPES",
    "participates_in_stock",
    "requires_availability_check",
    "resolve_movement_type",
]
