"""Tests for ledger/money.py - fixed-precision amounts."""

from decimal import Decimal

import pytest
from pydantic import BaseModel, ValidationError

from ledger.money import (
    AmountRangeError,
    MoneyValue,
    QuantityValue,
    ZERO,
    money_sum,
    parse_amount,
    to_money,
    to_quantity,
    to_rate,
)


class _Amounts(BaseModel):
    amount: MoneyValue = ZERO
    optional: MoneyValue | None = None
    quantity: QuantityValue = Decimal("0")


# =============================================================================
# PARSING
# =============================================================================


class TestParseAmount:
    """Tests for spreadsheet-style amount strings."""

    def test_plain_number(self):
        assert parse_amount("1234.50") == Decimal("1234.50")

    def test_strips_thousands_separators(self):
        """Indian grouping is accepted."""
        assert parse_amount("1,18,000.00") == Decimal("118000.00")

    def test_strips_currency_symbol_and_whitespace(self):
        assert parse_amount(" ₹ 2,500 ") == Decimal("2500")

    def test_empty_is_zero(self):
        assert parse_amount("") == 0
        assert parse_amount("   ") == 0

    def test_rejects_text(self):
        with pytest.raises(ValueError, match="Not a decimal amount"):
            parse_amount("twelve")

    def test_rejects_infinity(self):
        with pytest.raises(ValueError, match="finite"):
            parse_amount("Infinity")


# =============================================================================
# QUANTIZATION
# =============================================================================


class TestQuantize:
    """Tests for to_money, to_quantity and to_rate."""

    def test_money_rounds_half_up(self):
        assert to_money(Decimal("0.005")) == Decimal("0.01")
        assert to_money(Decimal("2.675")) == Decimal("2.68")

    def test_money_from_int(self):
        result = to_money(100)
        assert result == Decimal("100.00")
        assert result.as_tuple().exponent == -2

    def test_quantity_has_three_places(self):
        assert to_quantity("1.2345") == Decimal("1.235")

    def test_rate_has_two_places(self):
        assert to_rate(Decimal("3.3333")) == Decimal("3.33")

    def test_float_rejected(self):
        """Binary floats never become amounts."""
        with pytest.raises(TypeError, match="Binary floats"):
            to_money(0.1)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_money(True)

    def test_nan_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            to_money(Decimal("NaN"))

    def test_too_many_digits_is_range_error(self):
        """More digits than the decimal context holds is a ValueError."""
        with pytest.raises(AmountRangeError, match="out of range"):
            to_money(Decimal("1e40"))
        assert issubclass(AmountRangeError, ValueError)

    def test_money_sum_empty_is_zero(self):
        assert money_sum([]) == ZERO

    def test_money_sum_is_exact(self):
        """Ten 0.10 amounts sum to exactly 1.00."""
        assert money_sum([Decimal("0.10")] * 10) == Decimal("1.00")


# =============================================================================
# PYDANTIC FIELDS
# =============================================================================


class TestAnnotatedFields:
    """Tests for MoneyValue and QuantityValue as model fields."""

    def test_string_input_is_parsed(self):
        model = _Amounts(amount="1,000.456")
        assert model.amount == Decimal("1000.46")

    def test_none_allowed_for_optional(self):
        assert _Amounts(optional=None).optional is None

    def test_float_is_validation_error(self):
        """Floats surface as ValidationError, not TypeError."""
        with pytest.raises(ValidationError, match="Binary floats"):
            _Amounts(amount=1.5)

    def test_garbage_is_validation_error(self):
        with pytest.raises(ValidationError, match="Not a decimal amount"):
            _Amounts(amount="abc")

    def test_oversized_amount_is_validation_error(self):
        with pytest.raises(ValidationError, match="out of range"):
            _Amounts(amount="1e40")

    def test_quantity_field(self):
        assert _Amounts(quantity=3).quantity == Decimal("3.000")
