"""Execution layer data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from hyperworld.core.types import PositionSide, Side, SubAccount, TimeInForce


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Balance:
    """Balance of one coin in one sub-account."""

    coin: str
    total: Decimal
    hold: Decimal = Decimal("0")
    entry_notional: Decimal = Decimal("0")

    @property
    def available(self) -> Decimal:
        """Free balance (total minus held), never negative."""
        return max(Decimal("0"), self.total - self.hold)

    @property
    def average_entry_price(self) -> Decimal:
        """Cost basis per unit, or 0 when nothing is held."""
        if self.total <= 0 or self.entry_notional <= 0:
            return Decimal("0")
        return self.entry_notional / self.total


@dataclass(frozen=True)
class Position:
    """Open perpetual position."""

    coin: str
    size: Decimal  # signed: negative = short
    entry_notional: Decimal = Decimal("0")
    leverage: int = 1

    @property
    def side(self) -> PositionSide:
        return PositionSide.SHORT if self.size < 0 else PositionSide.LONG

    @property
    def abs_size(self) -> Decimal:
        return abs(self.size)

    @property
    def closing_side(self) -> Side:
        """Order side that reduces this position."""
        return Side.BUY if self.size < 0 else Side.SELL


@dataclass(frozen=True)
class AccountState:
    """Snapshot of one sub-account of an agent."""

    sub_account: SubAccount
    balances: dict[str, Balance] = field(default_factory=dict)
    positions: list[Position] = field(default_factory=list)
    account_value: Decimal = Decimal("0")
    fetched_at: datetime = field(default_factory=utc_now)

    def balance(self, coin: str) -> Balance:
        return self.balances.get(coin, Balance(coin=coin, total=Decimal("0")))

    def available(self, coin: str) -> Decimal:
        return self.balance(coin).available

    @property
    def open_positions(self) -> list[Position]:
        return [p for p in self.positions if p.size != 0]

    @property
    def has_open_positions(self) -> bool:
        return bool(self.open_positions)


@dataclass(frozen=True)
class AgentAccounts:
    """Both sub-accounts of an agent, fetched together."""

    spot: AccountState
    perp: AccountState

    def for_sub_account(self, sub_account: SubAccount) -> AccountState:
        return self.spot if sub_account is SubAccount.SPOT else self.perp


@dataclass(frozen=True)
class OrderRequest:
    """Limit order to submit to the exchange."""

    order_name: str  # coin name as the exchange addresses it ("ETH", "@107")
    asset_id: int
    side: Side
    price: Decimal
    size: Decimal
    reduce_only: bool = False
    time_in_force: TimeInForce = TimeInForce.GTC

    @property
    def notional(self) -> Decimal:
        return self.price * self.size


@dataclass
class OrderAck:
    """Exchange acknowledgement of an accepted order."""

    request: OrderRequest
    order_id: str = ""
    status: str = "resting"  # "resting" | "filled"
    filled_size: Decimal = Decimal("0")
    avg_fill_price: Decimal | None = None
    raw: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_filled(self) -> bool:
        return self.status == "filled"
