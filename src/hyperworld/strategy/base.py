"""Base strategy class and decision types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from hyperworld.config import EngineConfig
from hyperworld.core.cooldown import CooldownTracker
from hyperworld.core.precision import is_positive
from hyperworld.core.types import ActionKind, Mandate, MarketKind, Side, SubAccount, TimeInForce
from hyperworld.execution.models import AccountState
from hyperworld.market.models import Candle, MarketSnapshot


@dataclass(frozen=True)
class NoAction:
    """Strategy decided not to trade."""

    reason: str


@dataclass(frozen=True)
class OrderDecision:
    """Order the strategy wants submitted."""

    side: Side
    price: Decimal
    size: Decimal
    action_kind: ActionKind
    reason: str
    reduce_only: bool = False
    time_in_force: TimeInForce = TimeInForce.GTC

    @property
    def notional(self) -> Decimal:
        return self.price * self.size


StrategyDecision = NoAction | OrderDecision


@dataclass(frozen=True)
class StrategyContext:
    """Per-agent inputs a strategy needs besides price and balances."""

    agent_id: str
    now: datetime
    leverage: int = 1
    funding_rate: Decimal = Decimal("0")
    candles: list[Candle] = field(default_factory=list)
    cooldowns: CooldownTracker | None = None

    def throttled(self, kind: ActionKind) -> bool:
        if self.cooldowns is None:
            return False
        return self.cooldowns.should_throttle(self.agent_id, kind, self.now)


class Strategy(ABC):
    """Abstract base class for per-agent strategies.

    ``decide`` is pure: it describes the next orders and never performs I/O
    or mutates state. Invalid numbers lead to ``NoAction``, not exceptions.
    """

    market_kind: MarketKind = MarketKind.PERP
    uses_funding: bool = False
    uses_candles: bool = False

    def __init__(self, name: str, config: EngineConfig) -> None:
        self._name = name
        self._config = config

    @property
    def name(self) -> str:
        """Strategy name."""
        return self._name

    @property
    def mandate(self) -> Mandate:
        """Exposure the strategy's agents may hold."""
        return Mandate.SPOT_ONLY if self.market_kind is MarketKind.SPOT else Mandate.PERPS_ALLOWED

    @property
    def sub_account(self) -> SubAccount:
        """Sub-account the strategy trades from."""
        return SubAccount.SPOT if self.market_kind is MarketKind.SPOT else SubAccount.PERP

    @abstractmethod
    def decide(
        self,
        snapshot: MarketSnapshot,
        account: AccountState,
        context: StrategyContext,
    ) -> list[StrategyDecision]:
        """Decide what to do for one agent this cycle.

        Args:
            snapshot: Market snapshot of the pair the strategy trades
            account: Fresh state of the strategy's sub-account
            context: Signals, leverage and cooldowns for the agent

        Returns:
            Decisions in submission order; at least one element
        """
        ...

    @abstractmethod
    def get_config(self) -> dict[str, Any]:
        """Get strategy configuration."""
        ...

    def _checked(self, decision: OrderDecision) -> StrategyDecision:
        """Apply the numeric and minimum-notional guards every order must pass."""
        if not is_positive(decision.price) or not is_positive(decision.size):
            return NoAction(
                f"invalid order numbers (price={decision.price}, size={decision.size})"
            )
        if decision.notional < self._config.min_order_notional:
            return NoAction(
                f"notional {decision.notional:.2f} below minimum "
                f"{self._config.min_order_notional}"
            )
        return decision
