"""Enumerations shared by the domain core and the ORM models."""

from enum import Enum


class InvoiceType(str, Enum):
    """Commercial direction of an invoice.

    Contract: the type decides the number prefix, the stock movement
    direction and which item account code is snapshotted on lines.
    """

    SALES = "sales"
    PURCHASE = "purchase"
    SALES_RETURN = "sales_return"
    PURCHASE_RETURN = "purchase_return"
    EXPENSE = "expense"


class DocumentType(str, Enum):
    """Paper form of the invoice. Does not affect calculation."""

    INVOICE = "invoice"
    PROFORMA = "proforma"
    E_INVOICE = "e_invoice"
    E_ARCHIVE = "e_archive"


class ItemType(str, Enum):
    """Item classification. Only INVENTORY items move stock."""

    INVENTORY = "inventory"
    SERVICE = "service"
    EXPENSE = "expense"
    FIXED_ASSET = "fixed_asset"


class StockMovementType(str, Enum):
    """Direction-bearing movement kind. Quantities are always positive."""

    PURCHASE_IN = "purchase_in"
    SALES_OUT = "sales_out"
    SALES_RETURN = "sales_return"  # inbound
    PURCHASE_RETURN = "purchase_return"  # outbound
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    ADJUSTMENT_IN = "adjustment_in"
    ADJUSTMENT_OUT = "adjustment_out"


class PaymentDirection(str, Enum):
    """IN: money received from the contact. OUT: money paid to the contact."""

    IN = "in"
    OUT = "out"


class CashBankAccountType(str, Enum):
    CASH = "cash"
    BANK = "bank"
