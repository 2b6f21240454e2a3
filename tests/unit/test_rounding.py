"""
Unit tests for the rounding contract.

Verifies:
- Half-away-from-zero at every precision category
- No negative zero
- Fixed-precision formatting
- Parsing of invariant-culture strings and rejection of garbage
"""

from decimal import Decimal

import pytest

from accounting_kernel.domain.rounding import (
    DECIMAL_PLACES,
    ROUNDING_POLICY,
    PrecisionCategory,
    coerce,
    format_amount,
    format_quantity,
    format_unit_price,
    parse_value,
    round_amount,
    round_currency,
    round_percent,
    round_quantity,
    round_unit_price,
    round_value,
)
from accounting_kernel.exceptions import InvalidAmountError


class TestHalfAwayFromZero:
    """Ties round away from zero, never to even."""

    def test_positive_tie_rounds_up(self):
        assert round_amount(Decimal("100.005")) == Decimal("100.01")

    def test_negative_tie_rounds_down(self):
        assert round_amount(Decimal("-100.005")) == Decimal("-100.01")

    def test_not_bankers_rounding(self):
        """0.125 would be 0.12 under round-half-even."""
        assert round_amount(Decimal("0.125")) == Decimal("0.13")

    def test_float_input_uses_shortest_repr(self):
        assert round_amount(100.005) == Decimal("100.01")

    def test_quantity_three_places(self):
        assert round_quantity(Decimal("1.2345")) == Decimal("1.235")

    def test_unit_price_four_places(self):
        assert round_unit_price(Decimal("9.99995")) == Decimal("10.0000")

    def test_currency_four_places(self):
        assert round_currency(Decimal("32.12345")) == Decimal("32.1235")

    def test_percent_two_places(self):
        assert round_percent(Decimal("18.005")) == Decimal("18.01")

    def test_result_has_exact_scale(self):
        for category, places in DECIMAL_PLACES.items():
            result = round_value(Decimal("7"), category)
            assert result.as_tuple().exponent == -places

    def test_policy_tag(self):
        assert ROUNDING_POLICY == "AwayFromZero"


class TestNegativeZero:

    def test_tiny_negative_amount_becomes_positive_zero(self):
        result = round_amount(Decimal("-0.001"))
        assert result == Decimal("0.00")
        assert not result.is_signed()

    def test_formatted_negative_zero(self):
        assert format_amount(Decimal("-0.004")) == "0.00"


class TestFormatting:

    def test_amount_always_two_digits(self):
        assert format_amount(Decimal("118")) == "118.00"

    def test_quantity_three_digits(self):
        assert format_quantity(Decimal("2")) == "2.000"

    def test_unit_price_four_digits(self):
        assert format_unit_price(Decimal("100")) == "100.0000"

    def test_no_exponent_notation(self):
        assert format_amount(Decimal("1E+3")) == "1000.00"


class TestParsing:

    def test_plain_number(self):
        assert parse_value("100.50", PrecisionCategory.AMOUNT) == Decimal("100.50")

    def test_thousands_separators(self):
        assert parse_value("1,234,567.891", PrecisionCategory.AMOUNT) == Decimal("1234567.89")

    def test_leading_sign_and_whitespace(self):
        assert parse_value("  -3.5 ", PrecisionCategory.QUANTITY) == Decimal("-3.500")

    def test_rounds_on_parse(self):
        assert parse_value("0.125", PrecisionCategory.AMOUNT) == Decimal("0.13")

    @pytest.mark.parametrize("text", [None, "", "   ", "abc", "1.2.3", "12,34", "-", ".", "1e5"])
    def test_invalid_input_rejected(self, text):
        with pytest.raises(InvalidAmountError) as exc_info:
            parse_value(text, PrecisionCategory.AMOUNT)
        assert exc_info.value.code == "INVALID_AMOUNT"
        assert exc_info.value.category == "amount"


class TestCoerce:

    def test_string_goes_through_parser(self):
        assert coerce("2", PrecisionCategory.QUANTITY) == Decimal("2.000")

    def test_int_is_rounded(self):
        assert coerce(100, PrecisionCategory.UNIT_PRICE) == Decimal("100.0000")

    def test_decimal_is_rounded(self):
        assert coerce(Decimal("0.125"), PrecisionCategory.AMOUNT) == Decimal("0.13")

    def test_none_is_invalid(self):
        with pytest.raises(InvalidAmountError):
            coerce(None, PrecisionCategory.AMOUNT)

    def test_bool_is_invalid(self):
        with pytest.raises(InvalidAmountError):
            coerce(True, PrecisionCategory.AMOUNT)
