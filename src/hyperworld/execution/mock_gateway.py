"""Mock gateway for DRY_RUN mode and tests.

Simulates agent accounts, fills and transfers locally. Market data comes
either from a wrapped live gateway or from in-memory fixtures.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from hyperworld.core.errors import OrderRejectedError, TransferError
from hyperworld.core.types import Side, SubAccount
from hyperworld.execution.base import ExchangeGateway
from hyperworld.execution.models import AccountState, Balance, OrderAck, OrderRequest, Position
from hyperworld.market.models import Candle, FundingPoint, PerpMarket, SpotMarket

logger = logging.getLogger(__name__)

QUOTE_COIN = "USDC"
EXCHANGE_MIN_NOTIONAL = Decimal("10")


@dataclass
class _SpotHolding:
    total: Decimal = Decimal("0")
    hold: Decimal = Decimal("0")
    entry_notional: Decimal = Decimal("0")


@dataclass
class _PerpPosition:
    size: Decimal
    entry_notional: Decimal
    leverage: int


@dataclass
class SimulatedAccount:
    """Simulated balances of one wallet."""

    spot: dict[str, _SpotHolding] = field(default_factory=dict)
    perp_collateral: Decimal = Decimal("0")
    perp_positions: dict[str, _PerpPosition] = field(default_factory=dict)

    def holding(self, coin: str) -> _SpotHolding:
        return self.spot.setdefault(coin, _SpotHolding())


class MockGateway(ExchangeGateway):
    """In-memory exchange simulation.

    Orders fill immediately at their limit price. Orders below the exchange
    minimum notional, reduce-only orders that would not reduce, and orders
    without enough balance are rejected like the real exchange would.
    """

    def __init__(
        self,
        market_source: ExchangeGateway | None = None,
        initial_balance: Decimal = Decimal("0"),
        leverage: int = 1,
    ) -> None:
        """Initialize mock gateway.

        Args:
            market_source: Live gateway used for market data reads (optional)
            initial_balance: Spot USDC given to unknown wallets on first access
            leverage: Leverage used to compute simulated perp margin
        """
        self._market_source = market_source
        self._initial_balance = initial_balance
        self._leverage = max(leverage, 1)

        self.spot_markets: list[SpotMarket] = []
        self.perp_markets: list[PerpMarket] = []
        self.mids: dict[str, Decimal] = {}
        self.funding_history: dict[str, list[FundingPoint]] = {}
        self.candles: dict[str, list[Candle]] = {}
        self.accounts: dict[str, SimulatedAccount] = {}
        self._spot_bases: dict[int, str] = {}

        # Recorded I/O for inspection
        self.calls: list[str] = []
        self.orders: list[tuple[str, OrderRequest]] = []
        self.transfers: list[tuple[str, Decimal, bool]] = []
        self.failures: dict[str, Exception] = {}

    @property
    def name(self) -> str:
        return "MOCK"

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        failure = self.failures.get(method)
        if failure is not None:
            raise failure

    def account(self, address: str) -> SimulatedAccount:
        if address not in self.accounts:
            account = SimulatedAccount()
            if self._initial_balance > 0:
                account.holding(QUOTE_COIN).total = self._initial_balance
                logger.info(f"[MOCK] New wallet {address} funded with {self._initial_balance} USDC")
            self.accounts[address] = account
        return self.accounts[address]

    # Fixture helpers

    def set_spot_balance(
        self,
        address: str,
        coin: str,
        total: Decimal,
        hold: Decimal = Decimal("0"),
        entry_notional: Decimal = Decimal("0"),
    ) -> None:
        holding = self.account(address).holding(coin)
        holding.total = total
        holding.hold = hold
        holding.entry_notional = entry_notional

    def set_perp_collateral(self, address: str, amount: Decimal) -> None:
        self.account(address).perp_collateral = amount

    def set_perp_position(
        self,
        address: str,
        coin: str,
        size: Decimal,
        entry_price: Decimal,
        leverage: int = 1,
    ) -> None:
        self.account(address).perp_positions[coin] = _PerpPosition(
            size=size,
            entry_notional=abs(size) * entry_price,
            leverage=leverage,
        )

    # Market data

    async def get_spot_markets(self) -> list[SpotMarket]:
        self._enter("get_spot_markets")
        if self._market_source is not None:
            markets = await self._market_source.get_spot_markets()
        else:
            markets = list(self.spot_markets)
        self._spot_bases.update({m.asset_id: m.base for m in markets})
        return markets

    async def get_perp_markets(self) -> list[PerpMarket]:
        self._enter("get_perp_markets")
        if self._market_source is not None:
            return await self._market_source.get_perp_markets()
        return list(self.perp_markets)

    async def get_all_mids(self) -> dict[str, Decimal]:
        self._enter("get_all_mids")
        if self._market_source is not None:
            return await self._market_source.get_all_mids()
        return dict(self.mids)

    async def get_funding_history(self, coin: str, start_time: datetime) -> list[FundingPoint]:
        self._enter("get_funding_history")
        if self._market_source is not None:
            return await self._market_source.get_funding_history(coin, start_time)
        return [p for p in self.funding_history.get(coin, []) if p.time >= start_time]

    async def get_candles(self, coin: str, interval: str, start_time: datetime) -> list[Candle]:
        self._enter("get_candles")
        if self._market_source is not None:
            return await self._market_source.get_candles(coin, interval, start_time)
        return [c for c in self.candles.get(coin, []) if c.open_time >= start_time]

    # Account state

    async def get_spot_state(self, address: str) -> AccountState:
        self._enter("get_spot_state")
        account = self.account(address)
        balances = {
            coin: Balance(
                coin=coin,
                total=h.total,
                hold=h.hold,
                entry_notional=h.entry_notional,
            )
            for coin, h in account.spot.items()
            if h.total != 0 or h.hold != 0
        }
        return AccountState(sub_account=SubAccount.SPOT, balances=balances)

    def _margin_used(self, account: SimulatedAccount) -> Decimal:
        return sum(
            (p.entry_notional / Decimal(p.leverage) for p in account.perp_positions.values()),
            Decimal("0"),
        )

    async def get_perp_state(self, address: str) -> AccountState:
        self._enter("get_perp_state")
        account = self.account(address)
        margin_used = self._margin_used(account)
        positions = [
            Position(coin=coin, size=p.size, entry_notional=p.entry_notional, leverage=p.leverage)
            for coin, p in account.perp_positions.items()
            if p.size != 0
        ]
        usdc = Balance(coin=QUOTE_COIN, total=account.perp_collateral, hold=margin_used)
        return AccountState(
            sub_account=SubAccount.PERP,
            balances={QUOTE_COIN: usdc},
            positions=positions,
            account_value=account.perp_collateral,
        )

    # Writes

    async def place_order(self, signer: Any, address: str, request: OrderRequest) -> OrderAck:
        self._enter("place_order")
        _ = signer  # Signatures are not simulated
        notional = request.notional
        if request.size <= 0 or request.price <= 0:
            raise OrderRejectedError(f"Invalid order: size={request.size} price={request.price}")
        if not request.reduce_only and notional < EXCHANGE_MIN_NOTIONAL:
            raise OrderRejectedError(
                f"Order must have minimum value of {EXCHANGE_MIN_NOTIONAL} USDC (got {notional:.2f})"
            )

        account = self.account(address)
        if request.asset_id >= 10_000:
            self._fill_spot(account, request)
        else:
            self._fill_perp(account, request)

        self.orders.append((address, request))
        logger.info(
            f"[MOCK] {address} {request.side.value} {request.size} {request.order_name} "
            f"@ {request.price} ({request.time_in_force.value}"
            f"{', reduce-only' if request.reduce_only else ''})"
        )
        return OrderAck(
            request=request,
            order_id=f"mock_{uuid.uuid4().hex[:12]}",
            status="filled",
            filled_size=request.size,
            avg_fill_price=request.price,
        )

    def _spot_base(self, request: OrderRequest) -> str:
        if request.asset_id in self._spot_bases:
            return self._spot_bases[request.asset_id]
        market = next((m for m in self.spot_markets if m.asset_id == request.asset_id), None)
        return market.base if market else request.order_name

    def _fill_spot(self, account: SimulatedAccount, request: OrderRequest) -> None:
        base = account.holding(self._spot_base(request))
        quote = account.holding(QUOTE_COIN)
        notional = request.notional
        if request.side is Side.BUY:
            if quote.total - quote.hold < notional:
                raise OrderRejectedError("Insufficient spot balance")
            quote.total -= notional
            base.total += request.size
            base.entry_notional += notional
        else:
            if base.total - base.hold < request.size:
                raise OrderRejectedError("Insufficient spot balance")
            if base.total > 0:
                base.entry_notional -= base.entry_notional * request.size / base.total
            base.total -= request.size
            quote.total += notional

    def _fill_perp(self, account: SimulatedAccount, request: OrderRequest) -> None:
        signed = request.size if request.side is Side.BUY else -request.size
        position = account.perp_positions.get(request.order_name)

        if request.reduce_only:
            if position is None or position.size == 0 or (position.size > 0) == (signed > 0):
                raise OrderRejectedError("Reduce only order would increase position")
            closed = min(abs(signed), abs(position.size))
            entry_price = position.entry_notional / abs(position.size)
            direction = Decimal(1) if position.size > 0 else Decimal(-1)
            account.perp_collateral += closed * (request.price - entry_price) * direction
            position.entry_notional -= entry_price * closed
            position.size += closed if position.size < 0 else -closed
            if position.size == 0:
                del account.perp_positions[request.order_name]
            return

        required = request.notional / Decimal(self._leverage)
        free = account.perp_collateral - self._margin_used(account)
        if required > free:
            raise OrderRejectedError("Insufficient margin to place order")
        if position is None:
            account.perp_positions[request.order_name] = _PerpPosition(
                size=signed,
                entry_notional=request.notional,
                leverage=self._leverage,
            )
        else:
            position.size += signed
            position.entry_notional += request.notional

    async def transfer(self, signer: Any, address: str, amount: Decimal, to_perp: bool) -> None:
        self._enter("transfer")
        _ = signer
        if amount <= 0:
            raise TransferError(f"Invalid transfer amount: {amount}")
        account = self.account(address)
        quote = account.holding(QUOTE_COIN)
        if to_perp:
            if quote.total - quote.hold < amount:
                raise TransferError("Insufficient spot balance for transfer")
            quote.total -= amount
            account.perp_collateral += amount
        else:
            withdrawable = account.perp_collateral - self._margin_used(account)
            if withdrawable < amount:
                raise TransferError("Insufficient perp balance for transfer")
            account.perp_collateral -= amount
            quote.total += amount
        self.transfers.append((address, amount, to_perp))
        logger.info(
            f"[MOCK] {address} transferred {amount} USDC {'spot -> perp' if to_perp else 'perp -> spot'}"
        )

    def get_summary(self) -> dict[str, Any]:
        """Summary of the simulated session."""
        return {
            "wallets": len(self.accounts),
            "orders": len(self.orders),
            "transfers": len(self.transfers),
        }
