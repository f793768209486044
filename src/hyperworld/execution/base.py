"""Abstract exchange gateway interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any

from hyperworld.execution.models import AccountState, OrderAck, OrderRequest
from hyperworld.market.models import Candle, FundingPoint, PerpMarket, SpotMarket


class ExchangeGateway(ABC):
    """Contract the engine consumes from the exchange.

    Read operations return parsed models. Write operations take the agent's
    signing capability and either succeed or raise a ``GatewayError``
    subclass; callers treat a returned acknowledgement as success.
    Implementations enforce their own per-call timeout.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway name."""
        ...

    # Market data

    @abstractmethod
    async def get_spot_markets(self) -> list[SpotMarket]:
        """Spot universe with per-market context (prices, size decimals)."""
        ...

    @abstractmethod
    async def get_perp_markets(self) -> list[PerpMarket]:
        """Perp universe with per-asset context (prices, funding, size decimals)."""
        ...

    @abstractmethod
    async def get_all_mids(self) -> dict[str, Decimal]:
        """Mid price per coin/order name."""
        ...

    @abstractmethod
    async def get_funding_history(self, coin: str, start_time: datetime) -> list[FundingPoint]:
        """Funding payments for a perp coin since ``start_time``, oldest first."""
        ...

    @abstractmethod
    async def get_candles(
        self,
        coin: str,
        interval: str,
        start_time: datetime,
    ) -> list[Candle]:
        """Candles for a perp coin since ``start_time``, oldest first."""
        ...

    # Account state

    @abstractmethod
    async def get_spot_state(self, address: str) -> AccountState:
        """Spot balances for a wallet."""
        ...

    @abstractmethod
    async def get_perp_state(self, address: str) -> AccountState:
        """Perp margin summary and open positions for a wallet."""
        ...

    # Writes

    @abstractmethod
    async def place_order(self, signer: Any, address: str, request: OrderRequest) -> OrderAck:
        """Submit a limit order on behalf of ``address``."""
        ...

    @abstractmethod
    async def transfer(self, signer: Any, address: str, amount: Decimal, to_perp: bool) -> None:
        """Move USDC between the spot and perp sub-accounts of ``address``."""
        ...
