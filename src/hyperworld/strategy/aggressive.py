"""Aggressive strategy: follow short-term perp momentum."""

from decimal import Decimal
from typing import Any

from hyperworld.config import EngineConfig
from hyperworld.core.types import Side
from hyperworld.execution.models import AccountState
from hyperworld.market.models import Candle, MarketSnapshot
from hyperworld.strategy.base import NoAction, StrategyContext, StrategyDecision
from hyperworld.strategy.perp import PerpEntryStrategy


def momentum_pct(candles: list[Candle], lookback: int = 2) -> Decimal | None:
    """Percent change from ``lookback`` candles ago to the latest close.

    Uses the previous candle when history is shorter than ``lookback``.
    None with fewer than two candles or a non-positive base price.
    """
    closes = [c.close for c in candles]
    if len(closes) < 2:
        return None
    p1 = closes[-1]
    p0 = closes[-1 - lookback] if len(closes) > lookback else closes[-2]
    if p0 <= 0 or not p0.is_finite() or not p1.is_finite():
        return None
    return (p1 - p0) / p0 * 100


class AggressiveStrategy(PerpEntryStrategy):
    """Momentum follower.

    Goes long when momentum exceeds the threshold, short when it is below
    the negative threshold.
    """

    uses_candles = True

    def __init__(self, config: EngineConfig) -> None:
        super().__init__("aggressive", config)

    def decide(
        self,
        snapshot: MarketSnapshot,
        account: AccountState,
        context: StrategyContext,
    ) -> list[StrategyDecision]:
        blocked = self._precheck(snapshot, account)
        if blocked is not None:
            return [blocked]

        momentum = momentum_pct(context.candles, self._config.momentum_lookback)
        if momentum is None:
            return [NoAction(f"not enough candle history ({len(context.candles)} candles)")]

        threshold = self._config.momentum_threshold
        if momentum > threshold:
            side = Side.BUY
        elif momentum < -threshold:
            side = Side.SELL
        else:
            return [NoAction(f"momentum {momentum:.3f}% within +/-{threshold}%")]

        reason = f"momentum {momentum:.3f}% beyond {threshold}%"
        return [self._entry(side, snapshot, account, context, reason)]

    def get_config(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pair": self._config.perp_coin,
            "momentum_threshold": str(self._config.momentum_threshold),
            "momentum_lookback": self._config.momentum_lookback,
            "min_balance": str(self._config.min_balance),
        }
