"""ORM models for the accounting kernel."""

from accounting_kernel.models.branch import Branch, Warehouse
from accounting_kernel.models.contact import Contact
from accounting_kernel.models.invoice import Invoice, InvoiceLine
from accounting_kernel.models.item import Item
from accounting_kernel.models.payment import CashBankAccount, Payment
from accounting_kernel.models.sequence import InvoiceNumberCounter
from accounting_kernel.models.stock import StockMovement

__all__ = [
    "Branch",
    "CashBankAccount",
    "Contact",
    "Invoice",
    "InvoiceLine",
    "InvoiceNumberCounter",
    "Item",
    "Payment",
    "StockMovement",
    "Warehouse",
]
