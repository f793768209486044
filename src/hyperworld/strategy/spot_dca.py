"""Spot-only accumulation with a take-profit exit."""

import logging
from typing import Any

from hyperworld.config import EngineConfig
from hyperworld.core.precision import is_positive, round_price, round_size
from hyperworld.core.types import ActionKind, MarketKind, Side, TimeInForce
from hyperworld.execution.models import AccountState
from hyperworld.market.models import MarketSnapshot
from hyperworld.strategy.base import (
    NoAction,
    OrderDecision,
    Strategy,
    StrategyContext,
    StrategyDecision,
)

logger = logging.getLogger(__name__)


class SpotDcaStrategy(Strategy):
    """Dollar-cost averaging into the spot base asset.

    Each cycle it may sell the whole available base once the price is the
    take-profit percentage above the average entry, and may buy one
    minimum-notional slice. Both checks read the same account state.
    """

    market_kind = MarketKind.SPOT

    def __init__(self, config: EngineConfig) -> None:
        super().__init__("spot_dca", config)

    def decide(
        self,
        snapshot: MarketSnapshot,
        account: AccountState,
        context: StrategyContext,
    ) -> list[StrategyDecision]:
        if not is_positive(snapshot.price):
            return [NoAction(f"invalid {snapshot.pair} price {snapshot.price}")]

        decisions: list[StrategyDecision] = []
        take_profit = self._take_profit(snapshot, account, context)
        if take_profit is not None:
            decisions.append(take_profit)
        decisions.append(self._accumulate(snapshot, account, context))
        return decisions

    def _take_profit(
        self,
        snapshot: MarketSnapshot,
        account: AccountState,
        context: StrategyContext,
    ) -> StrategyDecision | None:
        base = account.balance(self._config.spot_base)
        if base.available <= 0:
            return None
        entry = base.average_entry_price
        if entry <= 0:
            return None

        target = entry * (1 + self._config.take_profit_pct)
        if snapshot.price < target:
            logger.debug(f"{snapshot.pair} {snapshot.price_str} below take-profit {target:.6f}")
            return None
        if context.throttled(ActionKind.SELL):
            return NoAction("take-profit reached but sell cooldown active")

        price = round_price(snapshot.price, snapshot.tick, "down")
        size = round_size(base.available, snapshot.lot, "down")
        gain = (snapshot.price / entry - 1) * 100
        return self._checked(
            OrderDecision(
                side=Side.SELL,
                price=price,
                size=size,
                action_kind=ActionKind.SELL,
                reason=f"take-profit: {snapshot.price_str} is {gain:.2f}% above entry {entry:.6f}",
            )
        )

    def _accumulate(
        self,
        snapshot: MarketSnapshot,
        account: AccountState,
        context: StrategyContext,
    ) -> StrategyDecision:
        quote = account.available(self._config.spot_quote)
        minimum = self._config.min_order_notional
        if quote < minimum:
            return NoAction(f"{self._config.spot_quote} available {quote:.2f} below {minimum}")
        if context.throttled(ActionKind.BUY):
            return NoAction("buy cooldown active")

        notional = min(quote, minimum)
        price = round_price(snapshot.price, snapshot.tick, "up")
        if not is_positive(price):
            return NoAction(f"invalid {snapshot.pair} price {snapshot.price}")

        # Round up so the order clears the minimum, unless that overspends
        size = round_size(notional / price, snapshot.lot, "up")
        if size * price > quote:
            size = round_size(notional / price, snapshot.lot, "down")

        return self._checked(
            OrderDecision(
                side=Side.BUY,
                price=price,
                size=size,
                action_kind=ActionKind.BUY,
                reason=f"accumulate {notional:.2f} {self._config.spot_quote}",
                time_in_force=TimeInForce.GTC,
            )
        )

    def get_config(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pair": self._config.spot_pair,
            "min_order_notional": str(self._config.min_order_notional),
            "take_profit_pct": str(self._config.take_profit_pct),
            "buy_cooldown_seconds": self._config.buy_cooldown_seconds,
            "sell_cooldown_seconds": self._config.sell_cooldown_seconds,
        }
