"""Pytest configuration and shared fixtures."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from hyperworld.agents import Agent, InMemoryAgentStore, StrategyConfig
from hyperworld.config import EngineConfig
from hyperworld.core.cooldown import CooldownTracker
from hyperworld.core.types import MarketKind, RiskProfile
from hyperworld.execution import MockGateway, OrderAck
from hyperworld.market import MarketSnapshot, MarketSnapshotResolver, PerpMarket, SpotMarket

START = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class StubSigner:
    """Signer resolver that hands out an opaque token per secret."""

    def __init__(self) -> None:
        self.resolved: list[str] = []

    def resolve(self, encrypted_secret: str) -> object:
        self.resolved.append(encrypted_secret)
        return object()


def make_agent(
    agent_id: str = "1",
    risk: RiskProfile = RiskProfile.SPOT_DCA,
    leverage: int = 1,
    is_active: bool = True,
) -> Agent:
    return Agent(
        id=agent_id,
        wallet_address=f"0xagent{agent_id}",
        encrypted_secret=f"cipher-{agent_id}",
        strategy_config=StrategyConfig(risk=risk, leverage=leverage),
        is_active=is_active,
    )


def make_snapshot(
    price: str = "25",
    kind: MarketKind = MarketKind.SPOT,
    captured_at: datetime = START,
) -> MarketSnapshot:
    if kind is MarketKind.SPOT:
        return MarketSnapshot(
            pair="HYPE/USDC",
            order_name="@107",
            asset_id=10107,
            kind=kind,
            price=Decimal(price),
            price_str=price,
            tick=Decimal("0.000001"),
            lot=Decimal("0.01"),
            sz_decimals=2,
            source="spot_ctx.midPx",
            captured_at=captured_at,
        )
    return MarketSnapshot(
        pair="ETH",
        order_name="ETH",
        asset_id=1,
        kind=kind,
        price=Decimal(price),
        price_str=price,
        tick=Decimal("0.01"),
        lot=Decimal("0.0001"),
        sz_decimals=4,
        source="perp_ctx.midPx",
        captured_at=captured_at,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine_config():
    return EngineConfig(interval_seconds=60.0)


class PartialCloseGateway(MockGateway):
    """Executes only half of every reduce-only close.

    With ``report_full_fill`` the ack still claims the whole size, like a
    venue whose fill report and position state disagree.
    """

    report_full_fill = False

    async def place_order(self, signer, address, request):
        if not request.reduce_only:
            return await super().place_order(signer, address, request)
        half = request.size / 2
        await super().place_order(signer, address, replace(request, size=half))
        filled = request.size if self.report_full_fill else half
        return OrderAck(request=request, status="filled", filled_size=filled)


def market_gateway(gateway_cls: type[MockGateway] = MockGateway) -> MockGateway:
    """Mock gateway with HYPE/USDC spot and BTC/ETH perp markets."""
    gw = gateway_cls()
    gw.spot_markets = [
        SpotMarket(
            base="HYPE",
            quote="USDC",
            order_name="@107",
            index=107,
            sz_decimals=2,
            mid_px=Decimal("25"),
            mark_px=Decimal("25.01"),
        ),
    ]
    gw.perp_markets = [
        PerpMarket(coin="BTC", index=0, sz_decimals=5, mid_px=Decimal("60000"), max_leverage=50),
        PerpMarket(
            coin="ETH",
            index=1,
            sz_decimals=4,
            mid_px=Decimal("3000"),
            mark_px=Decimal("3000.5"),
            oracle_px=Decimal("2999"),
            funding=Decimal("0.0001"),
            max_leverage=50,
        ),
    ]
    gw.mids = {"@107": Decimal("25.02"), "ETH": Decimal("3000.2"), "BTC": Decimal("60010")}
    return gw


@pytest.fixture
def gateway():
    return market_gateway()


@pytest.fixture
def resolver(gateway, clock):
    return MarketSnapshotResolver(gateway, cache_ttl=30, max_price_age=30, clock=clock)


@pytest.fixture
def cooldowns():
    return CooldownTracker()


@pytest.fixture
def store():
    return InMemoryAgentStore()


@pytest.fixture
def signer():
    return StubSigner()
