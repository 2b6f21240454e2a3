"""Selectors for the accounting kernel (read side)."""

from accounting_kernel.selectors.invoice_selector import InvoiceSelector
from accounting_kernel.selectors.stock_selector import StockSelector

__all__ = [
    "InvoiceSelector",
    "StockSelector",
]
