"""Test price and size rounding rules."""

from decimal import Decimal

import pytest

from hyperworld.core.precision import (
    format_decimal,
    lot_size,
    price_tick,
    round_price,
    round_size,
    to_decimal,
)
from hyperworld.core.types import MarketKind


class TestToDecimal:
    """Test parsing of exchange values."""

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity"])
    def test_unusable_values(self, raw):
        assert to_decimal(raw) is None

    def test_string_and_float(self):
        assert to_decimal("25.5") == Decimal("25.5")
        assert to_decimal(0.1) == Decimal("0.1")


class TestSteps:
    """Test lot and tick derivation."""

    def test_lot_size(self):
        assert lot_size(0) == Decimal("1")
        assert lot_size(2) == Decimal("0.01")
        assert lot_size(5) == Decimal("0.00001")

    def test_spot_tick_uses_eight_decimals(self):
        assert price_tick(2, MarketKind.SPOT) == Decimal("0.000001")

    def test_perp_tick_uses_six_decimals(self):
        assert price_tick(4, MarketKind.PERP) == Decimal("0.01")
        assert price_tick(6, MarketKind.PERP) == Decimal("1")


class TestRoundSize:
    """Test size flooring to lot."""

    def test_floors_by_default(self):
        assert round_size(Decimal("0.4999"), Decimal("0.01")) == Decimal("0.49")

    def test_round_up(self):
        assert round_size(Decimal("0.4001"), Decimal("0.01"), "up") == Decimal("0.41")

    def test_exact_multiple_unchanged(self):
        assert round_size(Decimal("5"), Decimal("0.0001")) == Decimal("5.0000")


class TestRoundPrice:
    """Test tick and significant-figure rounding."""

    def test_buy_rounds_up_sell_rounds_down(self):
        tick = Decimal("0.01")
        assert round_price(Decimal("3030.004"), tick, "up") == Decimal("3030.1")
        assert round_price(Decimal("2969.996"), tick, "down") == Decimal("2969.9")

    def test_five_significant_figures(self):
        price = round_price(Decimal("25.123456"), Decimal("0.000001"), "nearest")
        assert price == Decimal("25.123")

    def test_integer_prices_exempt(self):
        assert round_price(Decimal("123456"), Decimal("1"), "down") == Decimal("123456")

    def test_direction_invariant(self):
        tick = Decimal("0.000001")
        for raw in ["0.0123456", "1.234567", "98.76543", "25.00001"]:
            value = Decimal(raw)
            assert round_price(value, tick, "up") >= value
            assert round_price(value, tick, "down") <= value

    def test_non_positive_price(self):
        assert round_price(Decimal("0"), Decimal("0.01")) == Decimal("0")


class TestFormatDecimal:
    """Test wire formatting."""

    def test_trailing_zeros_removed(self):
        assert format_decimal(Decimal("10.500")) == "10.5"
        assert format_decimal(Decimal("3031.00")) == "3031"

    def test_no_exponent(self):
        assert format_decimal(Decimal("1E-7")) == "0.0000001"
