"""Conservative strategy: short perps while funding pays shorts."""

from typing import Any

from hyperworld.config import EngineConfig
from hyperworld.core.types import Side
from hyperworld.execution.models import AccountState
from hyperworld.market.models import MarketSnapshot
from hyperworld.strategy.base import NoAction, StrategyContext, StrategyDecision
from hyperworld.strategy.perp import PerpEntryStrategy


class ConservativeStrategy(PerpEntryStrategy):
    """Funding capture.

    Positive funding means longs pay shorts, so the strategy opens a short
    when funding is above the threshold and no position is open.
    """

    uses_funding = True

    def __init__(self, config: EngineConfig) -> None:
        super().__init__("conservative", config)

    def decide(
        self,
        snapshot: MarketSnapshot,
        account: AccountState,
        context: StrategyContext,
    ) -> list[StrategyDecision]:
        blocked = self._precheck(snapshot, account)
        if blocked is not None:
            return [blocked]

        funding = context.funding_rate
        if not funding.is_finite() or funding <= self._config.funding_threshold:
            return [
                NoAction(
                    f"funding {funding * 100:.4f}% not above threshold "
                    f"{self._config.funding_threshold * 100:.4f}%"
                )
            ]

        reason = f"funding {funding * 100:.4f}% > {self._config.funding_threshold * 100:.4f}%"
        return [self._entry(Side.SELL, snapshot, account, context, reason)]

    def get_config(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pair": self._config.perp_coin,
            "funding_threshold": str(self._config.funding_threshold),
            "min_balance": str(self._config.min_balance),
            "position_fraction": str(self._config.position_fraction),
        }
