"""Tests for the Numeric Normalizer.

Each standard parses with a fixed mode; these tests pin the behaviour
of every mode, including the zero-on-invalid contract.
"""

from decimal import Decimal

import pytest

from ghg_engine.normalizer import (
    EUROPEAN_NORMALIZER,
    NormalizationMode,
    NumericNormalizer,
    format_number,
)


@pytest.fixture
def european():
    return NumericNormalizer(NormalizationMode.EUROPEAN)


@pytest.fixture
def us():
    return NumericNormalizer("us")


@pytest.fixture
def spreadsheet():
    return NumericNormalizer(NormalizationMode.SPREADSHEET)


class TestEuropeanMode:

    def test_grouped_decimal(self, european):
        assert european.parse("1.234,5") == Decimal("1234.5")

    @pytest.mark.parametrize("raw", ["", None, "   ", "abc", "n/a", "12abc", "3.5kg", "12,5 kg", "1-2", "e5"])
    def test_empty_and_invalid_parse_to_zero(self, european, raw):
        assert european.parse(raw) == Decimal("0")

    @pytest.mark.parametrize("raw,expected", [
        ("12,5", "12.5"),
        ("20.000.000", "20000000"),
        ("12.5", "12.5"),
        (" 1 234,5 ", "1234.5"),
        ("-3,5", "-3.5"),
    ])
    def test_variants(self, european, raw, expected):
        assert european.parse(raw) == Decimal(expected)

    @pytest.mark.parametrize("raw", ["1.234,5", "0,001", "42", "7.25"])
    def test_idempotent_on_canonical_output(self, european, raw):
        once = european.parse(raw)

        assert european.parse(str(once)) == once


class TestUSMode:

    @pytest.mark.parametrize("raw,expected", [
        ("1,234.5", "1234.5"),
        ("1,234,567", "1234567"),
        ("12,5", "12.5"),
        ("0.75", "0.75"),
    ])
    def test_variants(self, us, raw, expected):
        assert us.parse(raw) == Decimal(expected)


class TestSpreadsheetMode:

    @pytest.mark.parametrize("raw,expected", [
        ("20.000", "20000"),
        ("20.000.000", "20000000"),
        ("12.50", "12.50"),
        ("1.5", "1.5"),
        ("1.234,5", "1234.5"),
    ])
    def test_dot_grouping_heuristic(self, spreadsheet, raw, expected):
        assert spreadsheet.parse(raw) == Decimal(expected)

    @pytest.mark.parametrize("raw,expected", [
        ("1e5", "100000"),
        ("2,5E-3", "0.0025"),
        ("-1.5e2", "-150"),
    ])
    def test_exponent_notation(self, spreadsheet, raw, expected):
        assert spreadsheet.parse(raw) == Decimal(expected)

    @pytest.mark.parametrize("raw", ["12abc", "3.5kg", "1e", "1e5x"])
    def test_trailing_text_is_not_truncated(self, spreadsheet, raw):
        assert spreadsheet.parse(raw) == Decimal("0")


class TestNumericInput:

    def test_numbers_pass_through(self, european):
        assert european.parse(5) == Decimal("5")
        assert european.parse(2.5) == Decimal("2.5")
        assert european.parse(Decimal("1.10")) == Decimal("1.10")

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), Decimal("Infinity"), True])
    def test_non_finite_and_bool_are_zero(self, european, raw):
        assert european.parse(raw) == Decimal("0")

    def test_callable_alias(self):
        assert EUROPEAN_NORMALIZER("1.234,5") == Decimal("1234.5")

    def test_mode_is_fixed(self, us):
        assert us.mode is NormalizationMode.US
        assert "us" in repr(us)


class TestFormatNumber:

    def test_grouping_and_decimals(self):
        assert format_number(Decimal("1234.5"), 2) == "1.234,50"
        assert format_number(1234567) == "1.234.567"

    def test_rounding_modes(self):
        assert format_number(Decimal("2.5"), 0, "floor") == "2"
        assert format_number(Decimal("2.1"), 0, "ceil") == "3"
        assert format_number(Decimal("2.5"), 0, "round") == "3"

    def test_invalid_value(self):
        assert format_number("not a number") == "0"

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            format_number(1, 0, "truncate")
