"""
Write-side services for the accounting kernel.

InvoiceService and PaymentService own the transaction of each public
operation; every other service flushes inside the caller's transaction.
"""

from accounting_kernel.services.balance_service import (
    AccountBalanceRecalculator,
    AccountBalanceService,
    ContactBalanceRecalculator,
    ContactBalanceService,
    InvoiceBalanceRecalculator,
    InvoiceBalanceService,
)
from accounting_kernel.services.base import BaseService, unit_of_work
from accounting_kernel.services.concurrency_guard import ConcurrencyGuard
from accounting_kernel.services.invoice_builder import InvoiceAggregateBuilder
from accounting_kernel.services.invoice_number_service import InvoiceNumberService
from accounting_kernel.services.invoice_service import InvoiceService
from accounting_kernel.services.payment_service import PaymentService
from accounting_kernel.services.stock_availability_service import (
    StockAvailabilityService,
)
from accounting_kernel.services.stock_movement_sync import StockMovementSynchronizer
from accounting_kernel.services.warehouse_resolver import WarehouseResolver

__all__ = [
    "AccountBalanceRecalculator",
    "AccountBalanceService",
    "BaseService",
    "ConcurrencyGuard",
    "ContactBalanceRecalculator",
    "ContactBalanceService",
    "InvoiceAggregateBuilder",
    "InvoiceBalanceRecalculator",
    "InvoiceBalanceService",
    "InvoiceNumberService",
    "InvoiceService",
    "PaymentService",
    "StockAvailabilityService",
    "StockMovementSynchronizer",
    "WarehouseResolver",
    "unit_of_work",
]
