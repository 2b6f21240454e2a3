"""
Typed Exception Hierarchy for the Accounting Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Invoice posting touches several aggregates in one transaction. Callers must
be able to tell a stale concurrency token apart from a missing warehouse
without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (ids, fields, shortages)

Example - WRONG way to handle errors:
    try:
        service.update_invoice(command)
    except Exception as e:
        if "modified" in str(e):  # FRAGILE
            refetch()

Example - RIGHT way:
    try:
        service.update_invoice(command)
    except ConcurrencyConflictError as e:
        api_response(code=e.code, invoice_id=e.entity_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    AccountingKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |
    +-- NotFoundError
    |
    +-- ConcurrencyConflictError
    |
    +-- BusinessRuleError
    |   +-- InsufficientStockError
    |   +-- WarehouseNotConfiguredError
    |   +-- UnsupportedCurrencyError
    |
    +-- UnauthorizedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                      | When Raised
--------------------------|------------------------------------------------
VALIDATION_ERROR          | Missing/malformed required input
INVALID_AMOUNT            | Money string is empty or not a number
NOT_FOUND                 | Id does not exist or is outside the branch
CONCURRENCY_CONFLICT      | Stale concurrency token (pre-check or commit)
BUSINESS_RULE_VIOLATION   | Generic domain rule violation
INSUFFICIENT_STOCK        | One or more items short of stock (batch)
WAREHOUSE_NOT_CONFIGURED  | Branch has no usable warehouse
UNSUPPORTED_CURRENCY      | Currency outside the configured whitelist
UNAUTHORIZED              | No branch context for the caller

===============================================================================
PROPAGATION
===============================================================================

None of these are retried inside the kernel. Orchestrators roll back the
unit of work and re-raise unmodified; retry is a caller decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


class AccountingKernelError(Exception):
    """
    Base exception for all accounting kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ACCOUNTING_KERNEL_ERROR"


# Validation


class ValidationError(AccountingKernelError):
    """Malformed or missing required input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        self.message = message
        super().__init__(message if field is None else f"{field}: {message}")


class InvalidAmountError(ValidationError):
    """A decimal string could not be parsed for its precision category."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: object, category: str):
        self.value = value
        self.category = category
        super().__init__(f"Invalid {category} value: {value!r}", field=category)


# Lookup


class NotFoundError(AccountingKernelError):
    """
    Entity does not exist or is outside the caller's branch.

    Cross-branch access is reported as not-found so existence never leaks.
    """

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: object):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Concurrency


class ConcurrencyConflictError(AccountingKernelError):
    """Supplied concurrency token does not match the stored row version."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, entity_type: str, entity_id: object):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Concurrency conflict on {entity_type} {entity_id}: "
            "record was modified by another transaction"
        )


# Business rules


class BusinessRuleError(AccountingKernelError):
    """A domain rule was violated. The message is meant for end users."""

    code: str = "BUSINESS_RULE_VIOLATION"


@dataclass(frozen=True)
class StockShortage:
    """One item that cannot cover its requested quantity."""

    item_id: int
    required: Decimal
    available: Decimal

    @property
    def missing(self) -> Decimal:
        return self.required - self.available


class InsufficientStockError(BusinessRuleError):
    """
    One or more items lack stock.

    Carries every shortage found in the batch, never just the first one.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, shortages: list[StockShortage]):
        self.shortages = tuple(shortages)
        details = "; ".join(
            f"item {s.item_id}: required {s.required}, available {s.available}"
            for s in self.shortages
        )
        super().__init__(f"Insufficient stock: {details}")


class WarehouseNotConfiguredError(BusinessRuleError):
    """The branch has neither a default nor a fallback warehouse."""

    code: str = "WAREHOUSE_NOT_CONFIGURED"

    def __init__(self, branch_id: int):
        self.branch_id = branch_id
        super().__init__(f"No warehouse configured for branch {branch_id}")


class UnsupportedCurrencyError(BusinessRuleError):
    """Currency is not in the configured whitelist."""

    code: str = "UNSUPPORTED_CURRENCY"

    def __init__(self, currency: str | None, allowed: tuple[str, ...]):
        self.currency = currency
        self.allowed = allowed
        super().__init__(
            f"Currency {currency!r} is not supported. Allowed: {', '.join(allowed)}"
        )


# Authorization


class UnauthorizedError(AccountingKernelError):
    """Caller has no resolvable branch context."""

    code: str = "UNAUTHORIZED"

    def __init__(self, message: str = "Branch context missing"):
        super().__init__(message)
