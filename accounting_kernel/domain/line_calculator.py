"""
LineCalculator -- deterministic invoice line and header arithmetic.

Responsibility:
    Computes every monetary field of an invoice line from its inputs, and
    the header totals from a set of lines.  Every create and update path
    goes through calculate_line(); there is no second implementation.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Algorithm (each step rounded to AMOUNT before the next step uses it):
    gross     = round(quantity * unit_price)
    discount  = round(gross * discount_rate / 100)
    net       = gross - discount
    vat       = round(net * vat_rate / 100)
    withhold  = round(vat * withholding_rate / 100)
    grand     = net + vat

Header totals are rounded sums over the active lines; the header gross is
net + vat and the header balance is gross - withholding.

Failure modes:
    - ValueError if inputs violate the line preconditions (negative
      quantity or price, rates outside 0..100).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from accounting_kernel.domain.rounding import (
    round_amount,
    round_percent,
    round_quantity,
    round_unit_price,
)

_HUNDRED = Decimal(100)


@dataclass(frozen=True)
class LineInputs:
    """
    Caller-supplied line values, normalized to their stored precision.

    quantity is rounded to 3 places, unit_price to 4, discount_rate to 2.
    """

    quantity: Decimal
    unit_price: Decimal
    vat_rate: int
    discount_rate: Decimal = Decimal("0")
    withholding_rate: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", round_quantity(self.quantity))
        object.__setattr__(self, "unit_price", round_unit_price(self.unit_price))
        object.__setattr__(self, "discount_rate", round_percent(self.discount_rate))

        if self.quantity < 0:
            raise ValueError(f"quantity must be non-negative: {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"unit_price must be non-negative: {self.unit_price}")
        if not 0 <= self.discount_rate <= 100:
            raise ValueError(f"discount_rate must be within 0..100: {self.discount_rate}")
        if not 0 <= self.vat_rate <= 100:
            raise ValueError(f"vat_rate must be within 0..100: {self.vat_rate}")
        if not 0 <= self.withholding_rate <= 100:
            raise ValueError(
                f"withholding_rate must be within 0..100: {self.withholding_rate}"
            )


@dataclass(frozen=True)
class LineAmounts:
    """Computed monetary fields of one line, all at AMOUNT precision."""

    gross: Decimal
    discount_amount: Decimal
    net: Decimal
    vat: Decimal
    withholding_rate: int
    withholding_amount: Decimal
    grand_total: Decimal


def calculate_line(inputs: LineInputs) -> LineAmounts:
    gross = round_amount(inputs.quantity * inputs.unit_price)
    discount = round_amount(gross * inputs.discount_rate / _HUNDRED)
    net = round_amount(gross - discount)
    vat = round_amount(net * Decimal(inputs.vat_rate) / _HUNDRED)
    withholding = round_amount(vat * Decimal(inputs.withholding_rate) / _HUNDRED)
    return LineAmounts(
        gross=gross,
        discount_amount=discount,
        net=net,
        vat=vat,
        withholding_rate=inputs.withholding_rate,
        withholding_amount=withholding,
        grand_total=round_amount(net + vat),
    )


class LineTotals(Protocol):
    """Anything carrying line money fields (LineAmounts or a persisted line)."""

    gross: Decimal
    discount_amount: Decimal
    net: Decimal
    vat: Decimal
    withholding_amount: Decimal


@dataclass(frozen=True)
class HeaderTotals:
    total_line_gross: Decimal
    total_discount: Decimal
    total_net: Decimal
    total_vat: Decimal
    total_withholding: Decimal
    total_gross: Decimal
    balance: Decimal


def sum_header_totals(lines: Iterable[LineTotals]) -> HeaderTotals:
    """
    Sum line amounts into header totals.

    The caller passes only active lines; soft-deleted lines must be
    filtered out beforehand.
    """
    line_gross = discount = net = vat = withholding = Decimal(0)
    for line in lines:
        line_gross += line.gross
        discount += line.discount_amount
        net += line.net
        vat += line.vat
        withholding += line.withholding_amount

    total_net = round_amount(net)
    total_vat = round_amount(vat)
    total_withholding = round_amount(withholding)
    total_gross = round_amount(total_net + total_vat)
    return HeaderTotals(
        total_line_gross=round_amount(line_gross),
        total_discount=round_amount(discount),
        total_net=total_net,
        total_vat=total_vat,
        total_withholding=total_withholding,
        total_gross=total_gross,
        balance=round_amount(total_gross - total_withholding),
    )
