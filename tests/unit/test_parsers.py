"""Unit tests for parsers module."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from messledger.services.parsers import MAX_AMOUNT, parse_amount, parse_date, parse_positive_amount, quantize_money

pytestmark = pytest.mark.unit


class TestParseAmount:
    """Tests for parse_amount function."""

    def test_parse_plain_number(self):
        assert parse_amount("100") == Decimal("100")

    def test_parse_with_thousand_separator(self):
        assert parse_amount("1,250.50") == Decimal("1250.50")

    def test_parse_with_space_separator(self):
        assert parse_amount("1 000.25") == Decimal("1000.25")

    def test_parse_comma_decimal(self):
        """Comma without a dot is a decimal separator."""
        assert parse_amount("2,5") == Decimal("2.5")

    def test_parse_currency_prefix(self):
        assert parse_amount("Rs. 75") == Decimal("75")
        assert parse_amount("LKR 1,200.00") == Decimal("1200.00")

    def test_parse_float_keeps_decimal_digits(self):
        """Floats go through str() so 0.1 does not pick up binary noise."""
        assert parse_amount(0.1) == Decimal("0.1")

    def test_parse_int_and_decimal(self):
        assert parse_amount(50) == Decimal("50")
        assert parse_amount(Decimal("12.34")) == Decimal("12.34")

    def test_parse_empty_returns_none(self):
        assert parse_amount("") is None
        assert parse_amount("   ") is None
        assert parse_amount(None) is None

    def test_parse_negative(self):
        assert parse_amount("-10") == Decimal("-10")

    def test_parse_invalid_raises(self):
        with pytest.raises(ValueError, match="Cannot parse amount"):
            parse_amount("abc")

    def test_parse_non_finite_raises(self):
        with pytest.raises(ValueError, match="finite"):
            parse_amount("NaN")
        with pytest.raises(ValueError, match="finite"):
            parse_amount("Infinity")

    def test_parse_bool_raises(self):
        with pytest.raises(ValueError):
            parse_amount(True)

    def test_largest_amount_accepted(self):
        assert parse_amount("99,999,999.99") == MAX_AMOUNT

    @pytest.mark.parametrize("value", ["1e30", "100000000", "-100000000", 1e30])
    def test_out_of_range_raises(self, value):
        with pytest.raises(ValueError, match="largest amount"):
            parse_amount(value)


class TestParsePositiveAmount:
    """Blank or invalid input means "skip", never an error."""

    @pytest.mark.parametrize("value", ["0", "-10", "abc", "", None, "0.00", "1e30"])
    def test_not_positive_returns_none(self, value):
        assert parse_positive_amount(value) is None

    def test_positive(self):
        assert parse_positive_amount("50") == Decimal("50")


class TestQuantizeMoney:
    def test_rounds_half_up(self):
        assert quantize_money(Decimal("0.005")) == Decimal("0.01")
        assert quantize_money(Decimal("2.344")) == Decimal("2.34")

    def test_always_two_places(self):
        assert str(quantize_money(Decimal("100"))) == "100.00"

    def test_too_many_digits_raises(self):
        with pytest.raises(ValueError, match="too large"):
            quantize_money(Decimal("1e30"))


class TestParseDate:
    """Tests for parse_date function."""

    def test_parse_iso_date(self):
        assert parse_date("2025-06-23") == date(2025, 6, 23)

    def test_parse_iso_timestamp_keeps_day(self):
        assert parse_date("2025-06-23T18:30:00") == date(2025, 6, 23)

    def test_parse_date_and_datetime_objects(self):
        assert parse_date(date(2025, 1, 1)) == date(2025, 1, 1)
        assert parse_date(datetime(2025, 1, 1, 12, 0)) == date(2025, 1, 1)

    def test_parse_empty_returns_none(self):
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_parse_invalid_format(self):
        with pytest.raises(ValueError, match="Cannot parse date"):
            parse_date("23.06.2025")

    def test_parse_invalid_day(self):
        with pytest.raises(ValueError, match="Cannot parse date"):
            parse_date("2025-02-30")
