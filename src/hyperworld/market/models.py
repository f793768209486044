"""Data models for market data."""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from hyperworld.core.types import MarketKind


@dataclass(frozen=True)
class SpotMarket:
    """One spot market from the exchange universe."""

    base: str
    quote: str
    order_name: str  # universe name used for orders ("PURR/USDC", "@107")
    index: int
    sz_decimals: int
    mid_px: Decimal | None = None
    mark_px: Decimal | None = None

    @property
    def pair(self) -> str:
        return f"{self.base}/{self.quote}"

    @property
    def asset_id(self) -> int:
        # Spot assets are addressed as 10000 + universe index
        return 10_000 + self.index


@dataclass(frozen=True)
class PerpMarket:
    """One perpetual asset from the exchange universe."""

    coin: str
    index: int
    sz_decimals: int
    mid_px: Decimal | None = None
    mark_px: Decimal | None = None
    oracle_px: Decimal | None = None
    funding: Decimal | None = None
    max_leverage: int = 1

    @property
    def asset_id(self) -> int:
        return self.index


@dataclass(frozen=True)
class Candle:
    """Candlestick data."""

    open_time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = Decimal("0")


@dataclass(frozen=True)
class FundingPoint:
    """Historical funding rate entry."""

    coin: str
    funding_rate: Decimal
    time: datetime
    premium: Decimal | None = None


@dataclass(frozen=True)
class MarketSnapshot:
    """Immutable market view shared by every agent in one cycle."""

    pair: str
    order_name: str
    asset_id: int
    kind: MarketKind
    price: Decimal
    price_str: str
    tick: Decimal
    lot: Decimal
    sz_decimals: int
    source: str
    captured_at: datetime

    def __post_init__(self) -> None:
        if not self.price.is_finite() or self.price <= 0:
            raise ValueError(f"Invalid snapshot price for {self.pair}: {self.price}")

    def age_seconds(self, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.captured_at).total_seconds()
