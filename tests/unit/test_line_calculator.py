"""
Unit tests for LineCalculator.

Verifies:
- Reference scenarios (simple sale; discount plus withholding)
- Rounding after every intermediate step
- Header re-summation from active lines
- Input preconditions
"""

from decimal import Decimal

import pytest

from accounting_kernel.domain.line_calculator import (
    LineInputs,
    calculate_line,
    sum_header_totals,
)


def _line(quantity, unit_price, vat_rate, discount_rate="0", withholding_rate=0):
    return calculate_line(
        LineInputs(
            quantity=Decimal(quantity),
            unit_price=Decimal(unit_price),
            vat_rate=vat_rate,
            discount_rate=Decimal(discount_rate),
            withholding_rate=withholding_rate,
        )
    )


class TestReferenceScenarios:

    def test_simple_sales_line(self):
        """1 x 100.0000 at 20% VAT."""
        amounts = _line("1.000", "100.0000", 20)

        assert amounts.gross == Decimal("100.00")
        assert amounts.discount_amount == Decimal("0.00")
        assert amounts.net == Decimal("100.00")
        assert amounts.vat == Decimal("20.00")
        assert amounts.withholding_amount == Decimal("0.00")
        assert amounts.grand_total == Decimal("120.00")

        totals = sum_header_totals([amounts])
        assert totals.total_gross == Decimal("120.00")
        assert totals.balance == Decimal("120.00")

    def test_discount_and_withholding(self):
        """2 x 100.0000, 10% discount, 18% VAT, 50% withholding."""
        amounts = _line("2.000", "100.0000", 18, "10", 50)

        assert amounts.gross == Decimal("200.00")
        assert amounts.discount_amount == Decimal("20.00")
        assert amounts.net == Decimal("180.00")
        assert amounts.vat == Decimal("32.40")
        assert amounts.withholding_rate == 50
        assert amounts.withholding_amount == Decimal("16.20")
        assert amounts.grand_total == Decimal("212.40")

        totals = sum_header_totals([amounts])
        assert totals.total_gross == Decimal("212.40")
        assert totals.total_withholding == Decimal("16.20")
        assert totals.balance == Decimal("196.20")


class TestStepwiseRounding:

    def test_each_step_rounded_before_next(self):
        amounts = _line("3", "0.3333", 18, "15")

        # 0.9999 -> 1.00, 15% -> 0.15, net 0.85, 18% of 0.85 = 0.153 -> 0.15
        assert amounts.gross == Decimal("1.00")
        assert amounts.discount_amount == Decimal("0.15")
        assert amounts.net == Decimal("0.85")
        assert amounts.vat == Decimal("0.15")
        assert amounts.grand_total == Decimal("1.00")

    def test_vat_tie_rounds_away_from_zero(self):
        # net 0.25 at 10% -> 0.025 -> 0.03
        amounts = _line("1", "0.25", 10)
        assert amounts.vat == Decimal("0.03")

    def test_composition_is_exact(self):
        amounts = _line("7.5", "13.3333", 8, "2.5", 20)
        assert amounts.gross - amounts.discount_amount == amounts.net
        assert amounts.net + amounts.vat == amounts.grand_total

    def test_inputs_normalized_to_stored_precision(self):
        inputs = LineInputs(
            quantity=Decimal("1.0005"),
            unit_price=Decimal("2.00005"),
            vat_rate=0,
            discount_rate=Decimal("3.335"),
        )
        assert inputs.quantity == Decimal("1.001")
        assert inputs.unit_price == Decimal("2.0001")
        assert inputs.discount_rate == Decimal("3.34")

    def test_identical_inputs_give_identical_output(self):
        first = _line("2.125", "19.9999", 18, "7.5", 30)
        second = _line("2.125", "19.9999", 18, "7.5", 30)
        assert first == second


class TestHeaderTotals:

    def test_sums_every_line(self):
        totals = sum_header_totals([
            _line("1", "100", 20),
            _line("2", "100", 18, "10", 50),
        ])
        assert totals.total_line_gross == Decimal("300.00")
        assert totals.total_discount == Decimal("20.00")
        assert totals.total_net == Decimal("280.00")
        assert totals.total_vat == Decimal("52.40")
        assert totals.total_withholding == Decimal("16.20")
        assert totals.total_gross == Decimal("332.40")
        assert totals.balance == Decimal("316.20")

    def test_no_lines_sum_to_zero(self):
        totals = sum_header_totals([])
        assert totals.total_net == Decimal("0.00")
        assert totals.total_gross == Decimal("0.00")
        assert totals.balance == Decimal("0.00")


class TestPreconditions:

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"quantity": Decimal("-1")},
            {"unit_price": Decimal("-0.01")},
            {"vat_rate": 101},
            {"vat_rate": -1},
            {"discount_rate": Decimal("100.01")},
            {"withholding_rate": 101},
        ],
    )
    def test_out_of_range_input_rejected(self, kwargs):
        values = {
            "quantity": Decimal("1"),
            "unit_price": Decimal("1"),
            "vat_rate": 20,
        }
        values.update(kwargs)
        with pytest.raises(ValueError):
            LineInputs(**values)

    def test_zero_quantity_allowed(self):
        amounts = _line("0", "100", 20)
        assert amounts.grand_total == Decimal("0.00")
