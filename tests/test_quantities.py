"""Tests for familyhub.core.quantities."""

import pytest

from familyhub.core.quantities import format_quantity, format_scaled, parse_quantity


class TestParseQuantity:
    @pytest.mark.parametrize("text, expected", [
        ("2", 2.0),
        ("0.5", 0.5),
        ("1,5", 1.5),
        (" 3 ", 3.0),
        ("250 g", 250.0),
        (".5", 0.5),
        ("-1", -1.0),
    ])
    def test_numbers(self, text, expected):
        assert parse_quantity(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "etwas", None, "g 250"])
    def test_unparsable_is_zero(self, text):
        assert parse_quantity(text) == 0.0

    def test_numeric_input(self):
        assert parse_quantity(4) == 4.0
        assert parse_quantity(float("nan")) == 0.0


class TestFormatting:
    def test_two_decimals(self):
        assert format_quantity(3) == "3.00"
        assert format_quantity(0.125) == "0.12"

    def test_scaled_trims_zeros(self):
        assert format_scaled(4.0) == "4"
        assert format_scaled(0.5) == "0.5"
        assert format_scaled(1 / 3) == "0.333333"
        assert format_scaled(0.0) == "0"
        assert format_scaled(-0.0000001) == "0"
