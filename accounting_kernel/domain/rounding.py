"""
MoneyRounding -- fixed-precision rounding, formatting and parsing.

Responsibility:
    The single source of numeric precision for the engine.  Every value is
    classified into a PrecisionCategory with a fixed number of decimal
    places, and rounded half-away-from-zero:

        Category     | Places | Used for
        -------------|--------|-------------------------------------------
        AMOUNT       |   2    | line and header money, balances, payments
        QUANTITY     |   3    | stock and line quantities
        UNIT_PRICE   |   4    | line unit prices
        CURRENCY     |   4    | currency rate snapshots
        PERCENT      |   2    | discount rates

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Half-away-from-zero: 100.005 -> 100.01, -100.005 -> -100.01,
      0.125 -> 0.13.  Python's ROUND_HALF_UP is exactly this mode; banker's
      rounding (ROUND_HALF_EVEN, the builtin round()) is never used.
    - Formatting always renders exactly the category's decimal places
      ("118.00", never "118").
    - Parsing never defaults to zero: empty or non-numeric input raises
      InvalidAmountError.

Failure modes:
    - InvalidAmountError from parse_value()/coerce() on bad input.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from accounting_kernel.exceptions import InvalidAmountError

ROUNDING_POLICY = "AwayFromZero"


class PrecisionCategory(str, Enum):
    AMOUNT = "amount"
    QUANTITY = "quantity"
    UNIT_PRICE = "unit_price"
    CURRENCY = "currency"
    PERCENT = "percent"


DECIMAL_PLACES: dict[PrecisionCategory, int] = {
    PrecisionCategory.AMOUNT: 2,
    PrecisionCategory.QUANTITY: 3,
    PrecisionCategory.UNIT_PRICE: 4,
    PrecisionCategory.CURRENCY: 4,
    PrecisionCategory.PERCENT: 2,
}

_QUANTUMS: dict[PrecisionCategory, Decimal] = {
    category: Decimal(1).scaleb(-places) for category, places in DECIMAL_PLACES.items()
}

# Invariant-culture number: optional sign, optional thousands groups, optional fraction.
_NUMBER_RE = re.compile(r"^[+-]?(?:\d{1,3}(?:,\d{3})+|\d+)?(?:\.\d+)?$")


def _to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric value")
    # str() first so floats keep their shortest repr (100.005, not 100.00499...)
    return Decimal(str(value))


def round_value(value: Decimal | int | float | str, category: PrecisionCategory) -> Decimal:
    """
    Round ``value`` to the category's decimal places, half away from zero.

    Postconditions:
        - Result has exactly DECIMAL_PLACES[category] fractional digits.
        - A zero result is never negative ("-0.00" becomes "0.00").
    """
    result = _to_decimal(value).quantize(_QUANTUMS[category], rounding=ROUND_HALF_UP)
    if result.is_zero() and result.is_signed():
        result = result.copy_abs()
    return result


def format_value(value: Decimal | int | float | str, category: PrecisionCategory) -> str:
    """Render ``value`` as a fixed-point string at the category precision."""
    return f"{round_value(value, category):f}"


def parse_value(text: str | None, category: PrecisionCategory) -> Decimal:
    """
    Parse an invariant-culture decimal string and round it.

    Raises:
        InvalidAmountError: empty, whitespace-only or non-numeric input.
    """
    if text is None or not text.strip():
        raise InvalidAmountError(text, category.value)
    candidate = text.strip()
    if not _NUMBER_RE.match(candidate) or candidate in ("+", "-", "."):
        raise InvalidAmountError(text, category.value)
    try:
        parsed = Decimal(candidate.replace(",", ""))
    except InvalidOperation as exc:
        raise InvalidAmountError(text, category.value) from exc
    return round_value(parsed, category)


def coerce(value: Decimal | int | float | str | None, category: PrecisionCategory) -> Decimal:
    """
    Accept a wire value (string or number) and round it to its category.

    Strings go through parse_value(); numbers are rounded directly.
    """
    if isinstance(value, str) or value is None:
        return parse_value(value, category)
    try:
        return round_value(value, category)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidAmountError(value, category.value) from exc


# Category shorthands used throughout the engine


def round_amount(value: Decimal | int | str) -> Decimal:
    return round_value(value, PrecisionCategory.AMOUNT)


def round_quantity(value: Decimal | int | str) -> Decimal:
    return round_value(value, PrecisionCategory.QUANTITY)


def round_unit_price(value: Decimal | int | str) -> Decimal:
    return round_value(value, PrecisionCategory.UNIT_PRICE)


def round_currency(value: Decimal | int | str) -> Decimal:
    return round_value(value, PrecisionCategory.CURRENCY)


def round_percent(value: Decimal | int | str) -> Decimal:
    return round_value(value, PrecisionCategory.PERCENT)


def format_amount(value: Decimal | int | str) -> str:
    return format_value(value, PrecisionCategory.AMOUNT)


def format_quantity(value: Decimal | int | str) -> str:
    return format_value(value, PrecisionCategory.QUANTITY)


def format_unit_price(value: Decimal | int | str) -> str:
    return format_value(value, PrecisionCategory.UNIT_PRICE)


def format_currency(value: Decimal | int | str) -> str:
    return format_value(value, PrecisionCategory.CURRENCY)


def format_percent(value: Decimal | int | str) -> str:
    return format_value(value, PrecisionCategory.PERCENT)
