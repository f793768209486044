"""Price and size rounding helpers.

Hyperliquid accepts prices with at most five significant figures and at most
``MAX_DECIMALS - szDecimals`` decimal places (8 for spot, 6 for perps).
Integer prices are always accepted. Sizes must be multiples of
``10 ** -szDecimals``.
"""

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Literal

from hyperworld.core.types import MarketKind

RoundingMode = Literal["up", "down", "nearest"]

SPOT_MAX_DECIMALS = 8
PERP_MAX_DECIMALS = 6
MAX_SIGNIFICANT_FIGURES = 5

_ROUNDING = {
    "up": ROUND_CEILING,
    "down": ROUND_FLOOR,
    "nearest": ROUND_HALF_EVEN,
}


def to_decimal(value: object) -> Decimal | None:
    """Parse an exchange value into a finite Decimal, or None."""
    if value is None or value == "":
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def is_positive(value: Decimal | None) -> bool:
    return value is not None and value.is_finite() and value > 0


def lot_size(sz_decimals: int) -> Decimal:
    """Minimum size increment for an asset."""
    return Decimal(1).scaleb(-max(sz_decimals, 0))


def price_tick(sz_decimals: int, market: MarketKind) -> Decimal:
    """Finest price increment allowed for an asset."""
    max_decimals = SPOT_MAX_DECIMALS if market is MarketKind.SPOT else PERP_MAX_DECIMALS
    return Decimal(1).scaleb(-max(max_decimals - sz_decimals, 0))


def round_to_step(value: Decimal, step: Decimal, mode: RoundingMode = "down") -> Decimal:
    """Snap ``value`` onto a multiple of ``step``."""
    if step <= 0:
        return value.quantize(Decimal(1), rounding=_ROUNDING[mode])
    steps = (value / step).quantize(Decimal(1), rounding=_ROUNDING[mode])
    return (steps * step).quantize(step)


def round_size(size: Decimal, lot: Decimal, mode: RoundingMode = "down") -> Decimal:
    return round_to_step(size, lot, mode)


def round_price(price: Decimal, tick: Decimal, mode: RoundingMode = "nearest") -> Decimal:
    """Round a price onto the tick and the significant-figure limit.

    Both steps use the same direction, so an "up" rounded price is never
    below the input and a "down" rounded price is never above it.
    """
    if price <= 0:
        return Decimal(0)
    snapped = round_to_step(price, tick, mode)
    if snapped == snapped.to_integral_value():
        return snapped
    # Integer prices are exempt from the significant-figure limit.
    exponent = min(snapped.adjusted() - (MAX_SIGNIFICANT_FIGURES - 1), 0)
    if exponent > snapped.as_tuple().exponent:
        sig_step = Decimal(1).scaleb(exponent)
        snapped = round_to_step(snapped, max(sig_step, tick), mode)
    return snapped


def format_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros."""
    if not value.is_finite():
        return "0"
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
