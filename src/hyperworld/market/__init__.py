"""Market data module - snapshots, signals and fallback resolution."""

from hyperworld.market.fallback import Attempt, resolve_first, resolve_or_default
from hyperworld.market.models import Candle, FundingPoint, MarketSnapshot, PerpMarket, SpotMarket
from hyperworld.market.resolver import NEUTRAL_FUNDING, MarketSnapshotResolver

__all__ = [
    "NEUTRAL_FUNDING",
    "Attempt",
    "Candle",
    "FundingPoint",
    "MarketSnapshot",
    "MarketSnapshotResolver",
    "PerpMarket",
    "SpotMarket",
    "resolve_first",
    "resolve_or_default",
]
