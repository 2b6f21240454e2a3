"""
Stock rules -- which invoice lines move stock, and in which direction.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Only INVENTORY items participate in stock.
    - Movement quantities are always positive; direction lives in the type.
    - Invoice types without a mapping (e.g. EXPENSE) produce no movements.
"""

from __future__ import annotations

from accounting_kernel.domain.enums import InvoiceType, ItemType, StockMovementType

_MOVEMENT_BY_INVOICE_TYPE: dict[InvoiceType, StockMovementType] = {
    InvoiceType.SALES: StockMovementType.SALES_OUT,
    InvoiceType.SALES_RETURN: StockMovementType.SALES_RETURN,
    InvoiceType.PURCHASE: StockMovementType.PURCHASE_IN,
    InvoiceType.PURCHASE_RETURN: StockMovementType.PURCHASE_RETURN,
}

INBOUND_MOVEMENT_TYPES: frozenset[StockMovementType] = frozenset(
    {
        StockMovementType.PURCHASE_IN,
        StockMovementType.SALES_RETURN,
        StockMovementType.TRANSFER_IN,
        StockMovementType.ADJUSTMENT_IN,
    }
)

OUTBOUND_MOVEMENT_TYPES: frozenset[StockMovementType] = frozenset(
    {
        StockMovementType.SALES_OUT,
        StockMovementType.PURCHASE_RETURN,
        StockMovementType.TRANSFER_OUT,
        StockMovementType.ADJUSTMENT_OUT,
    }
)


def resolve_movement_type(invoice_type: InvoiceType) -> StockMovementType | None:
    """Movement type produced by an invoice type, or None if it moves no stock."""
    return _MOVEMENT_BY_INVOICE_TYPE.get(invoice_type)


def participates_in_stock(item_type: ItemType) -> bool:
    return item_type == ItemType.INVENTORY


def requires_availability_check(invoice_type: InvoiceType) -> bool:
    """Sales invoices are validated against available stock before saving."""
    return invoice_type == InvoiceType.SALES
