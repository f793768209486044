"""Shared entry logic of the perp strategies."""

from decimal import Decimal

from hyperworld.core.precision import is_positive, round_price, round_size
from hyperworld.core.types import ActionKind, MarketKind, Side, TimeInForce
from hyperworld.execution.models import AccountState
from hyperworld.market.models import MarketSnapshot
from hyperworld.strategy.base import NoAction, OrderDecision, Strategy, StrategyContext, StrategyDecision

QUOTE_COIN = "USDC"


class PerpEntryStrategy(Strategy):
    """Opens one IOC perp position sized from available margin."""

    market_kind = MarketKind.PERP

    def _leverage(self, context: StrategyContext) -> int:
        return min(max(context.leverage, 1), self._config.max_leverage)

    def _precheck(self, snapshot: MarketSnapshot, account: AccountState) -> NoAction | None:
        if not is_positive(snapshot.price):
            return NoAction(f"invalid {snapshot.pair} price {snapshot.price}")
        if account.has_open_positions:
            return NoAction("perp position already open")
        margin = account.available(QUOTE_COIN)
        if margin < self._config.min_balance:
            return NoAction(
                f"available margin {margin:.2f} below minimum balance {self._config.min_balance}"
            )
        return None

    def _entry(
        self,
        side: Side,
        snapshot: MarketSnapshot,
        account: AccountState,
        context: StrategyContext,
        reason: str,
    ) -> StrategyDecision:
        notional = (
            account.available(QUOTE_COIN)
            * self._config.position_fraction
            * Decimal(self._leverage(context))
        )
        price = round_price(snapshot.price, snapshot.tick, "up" if side is Side.BUY else "down")
        if not is_positive(price):
            return NoAction(f"invalid {snapshot.pair} price {snapshot.price}")
        size = round_size(notional / price, snapshot.lot, "down")
        return self._checked(
            OrderDecision(
                side=side,
                price=price,
                size=size,
                action_kind=ActionKind.for_side(side),
                reason=reason,
                time_in_force=TimeInForce.IOC,
            )
        )
