"""Test strategy decisions."""

from datetime import timedelta
from decimal import Decimal

import pytest
from conftest import START, make_snapshot

from hyperworld.config import EngineConfig
from hyperworld.core.cooldown import CooldownTracker
from hyperworld.core.types import (
    ActionKind,
    Mandate,
    MarketKind,
    RiskProfile,
    Side,
    SubAccount,
    TimeInForce,
)
from hyperworld.execution.models import AccountState, Balance, Position
from hyperworld.market.models import Candle
from hyperworld.strategy import (
    AggressiveStrategy,
    ConservativeStrategy,
    NoAction,
    OrderDecision,
    SpotDcaStrategy,
    StrategyContext,
    StrategyRegistry,
    momentum_pct,
)


def spot_account(usdc: str = "0", hype: str = "0", entry_notional: str = "0") -> AccountState:
    return AccountState(
        sub_account=SubAccount.SPOT,
        balances={
            "USDC": Balance(coin="USDC", total=Decimal(usdc)),
            "HYPE": Balance(coin="HYPE", total=Decimal(hype), entry_notional=Decimal(entry_notional)),
        },
    )


def perp_account(margin: str = "100", positions: list[Position] | None = None) -> AccountState:
    return AccountState(
        sub_account=SubAccount.PERP,
        balances={"USDC": Balance(coin="USDC", total=Decimal(margin))},
        positions=positions or [],
        account_value=Decimal(margin),
    )


def context(**kwargs) -> StrategyContext:
    kwargs.setdefault("agent_id", "1")
    kwargs.setdefault("now", START)
    return StrategyContext(**kwargs)


def candles(*closes: str) -> list[Candle]:
    return [
        Candle(
            open_time=START + timedelta(minutes=15 * i),
            open=Decimal(c),
            high=Decimal(c),
            low=Decimal(c),
            close=Decimal(c),
        )
        for i, c in enumerate(closes)
    ]


def orders(decisions) -> list[OrderDecision]:
    return [d for d in decisions if isinstance(d, OrderDecision)]


class TestSpotDca:
    """Test spot accumulation and take-profit."""

    def test_buys_minimum_notional(self):
        strategy = SpotDcaStrategy(EngineConfig())
        decisions = strategy.decide(make_snapshot("25"), spot_account(usdc="100"), context())

        [buy] = orders(decisions)
        assert buy.side is Side.BUY
        assert buy.notional == Decimal("10")
        assert buy.size == Decimal("0.4")
        assert buy.time_in_force is TimeInForce.GTC
        assert Decimal("100") - buy.notional == Decimal("90")

    def test_size_rounded_up_to_clear_minimum(self):
        strategy = SpotDcaStrategy(EngineConfig())
        [buy] = orders(strategy.decide(make_snapshot("3"), spot_account(usdc="100"), context()))
        assert buy.notional >= Decimal("10")
        assert buy.size == Decimal("3.34")

    def test_insufficient_quote(self):
        strategy = SpotDcaStrategy(EngineConfig())
        decisions = strategy.decide(make_snapshot("25"), spot_account(usdc="9.99"), context())
        assert orders(decisions) == []
        assert isinstance(decisions[-1], NoAction)

    def test_buy_cooldown(self):
        tracker = CooldownTracker()
        tracker.record_action("1", ActionKind.BUY, START - timedelta(minutes=5))
        strategy = SpotDcaStrategy(EngineConfig())
        decisions = strategy.decide(
            make_snapshot("25"), spot_account(usdc="100"), context(cooldowns=tracker)
        )
        assert orders(decisions) == []

    @pytest.mark.parametrize(
        "price,should_sell",
        [("20.19", False), ("20.2", True), ("21", True), ("19", False)],
    )
    def test_take_profit_threshold(self, price, should_sell):
        # 1 HYPE bought for 20 USDC, take-profit 1% => 20.2
        strategy = SpotDcaStrategy(EngineConfig())
        decisions = strategy.decide(
            make_snapshot(price), spot_account(hype="1", entry_notional="20"), context()
        )
        sells = [d for d in orders(decisions) if d.side is Side.SELL]
        assert bool(sells) is should_sell

    def test_take_profit_sells_all_available(self):
        strategy = SpotDcaStrategy(EngineConfig())
        account = spot_account(hype="1.237", entry_notional="24.74")
        [sell] = orders(strategy.decide(make_snapshot("25"), account, context()))
        assert sell.side is Side.SELL
        assert sell.size == Decimal("1.23")

    def test_take_profit_respects_sell_cooldown(self):
        tracker = CooldownTracker()
        tracker.record_action("1", ActionKind.SELL, START - timedelta(minutes=1))
        strategy = SpotDcaStrategy(EngineConfig())
        decisions = strategy.decide(
            make_snapshot("25"),
            spot_account(hype="1", entry_notional="20"),
            context(cooldowns=tracker),
        )
        assert orders(decisions) == []

    def test_take_profit_and_buy_in_same_cycle(self):
        strategy = SpotDcaStrategy(EngineConfig())
        decisions = strategy.decide(
            make_snapshot("25"),
            spot_account(usdc="50", hype="1", entry_notional="20"),
            context(),
        )
        assert [d.side for d in orders(decisions)] == [Side.SELL, Side.BUY]

    def test_held_base_not_sold(self):
        strategy = SpotDcaStrategy(EngineConfig())
        account = AccountState(
            sub_account=SubAccount.SPOT,
            balances={
                "HYPE": Balance(
                    coin="HYPE",
                    total=Decimal("1"),
                    hold=Decimal("1"),
                    entry_notional=Decimal("20"),
                )
            },
        )
        assert orders(strategy.decide(make_snapshot("25"), account, context())) == []


class TestConservative:
    """Test funding capture entries."""

    def test_shorts_on_positive_funding(self):
        strategy = ConservativeStrategy(EngineConfig())
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP),
            perp_account("100"),
            context(funding_rate=Decimal("0.0001")),
        )
        assert isinstance(decision, OrderDecision)
        assert decision.side is Side.SELL
        assert decision.size == Decimal("0.03")
        assert decision.time_in_force is TimeInForce.IOC
        assert decision.reduce_only is False

    def test_leverage_scales_size(self):
        strategy = ConservativeStrategy(EngineConfig())
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP),
            perp_account("100"),
            context(funding_rate=Decimal("0.0001"), leverage=3),
        )
        assert decision.size == Decimal("0.09")

    @pytest.mark.parametrize("funding", ["0", "-0.0001"])
    def test_no_trade_at_or_below_threshold(self, funding):
        strategy = ConservativeStrategy(EngineConfig())
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP),
            perp_account("100"),
            context(funding_rate=Decimal(funding)),
        )
        assert isinstance(decision, NoAction)

    def test_open_position_blocks(self):
        strategy = ConservativeStrategy(EngineConfig())
        account = perp_account("100", [Position(coin="ETH", size=Decimal("-0.01"))])
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP), account, context(funding_rate=Decimal("0.001"))
        )
        assert isinstance(decision, NoAction)

    def test_low_margin_blocks(self):
        strategy = ConservativeStrategy(EngineConfig())
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP),
            perp_account("4.99"),
            context(funding_rate=Decimal("0.001")),
        )
        assert isinstance(decision, NoAction)

    def test_below_min_notional(self):
        strategy = ConservativeStrategy(EngineConfig())
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP),
            perp_account("10"),
            context(funding_rate=Decimal("0.001")),
        )
        assert isinstance(decision, NoAction)
        assert "minimum" in decision.reason


class TestMomentum:
    """Test momentum calculation."""

    def test_two_candles(self):
        assert momentum_pct(candles("100", "101")) == Decimal("1")

    def test_lookback_two(self):
        assert momentum_pct(candles("100", "105", "99"), lookback=2) == Decimal("-1")

    def test_not_enough_history(self):
        assert momentum_pct(candles("100")) is None
        assert momentum_pct([]) is None

    @pytest.mark.parametrize(
        "p0,p1,expected",
        [
            ("100", "100.6", Side.BUY),
            ("100", "100.5", None),
            ("100", "99.5", None),
            ("100", "99.4", Side.SELL),
        ],
    )
    def test_direction(self, p0, p1, expected):
        strategy = AggressiveStrategy(EngineConfig())
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP),
            perp_account("100"),
            context(candles=candles(p0, p1)),
        )
        if expected is None:
            assert isinstance(decision, NoAction)
        else:
            assert isinstance(decision, OrderDecision)
            assert decision.side is expected

    def test_no_candles_no_action(self):
        strategy = AggressiveStrategy(EngineConfig())
        [decision] = strategy.decide(
            make_snapshot("3000", MarketKind.PERP), perp_account("100"), context()
        )
        assert isinstance(decision, NoAction)


class TestStrategyRegistry:
    """Test profile to strategy mapping."""

    def test_every_profile_registered(self):
        registry = StrategyRegistry(EngineConfig())
        for profile in RiskProfile:
            assert registry.get(profile) is not None

    def test_mandates(self):
        registry = StrategyRegistry(EngineConfig())
        assert registry.get(RiskProfile.SPOT_DCA).mandate is Mandate.SPOT_ONLY
        assert registry.get(RiskProfile.SPOT_DCA).sub_account is SubAccount.SPOT
        assert registry.get(RiskProfile.CONSERVATIVE).mandate is Mandate.PERPS_ALLOWED
        assert registry.get(RiskProfile.AGGRESSIVE).sub_account is SubAccount.PERP

    def test_spot_only_overrides_profile(self):
        from conftest import make_agent

        registry = StrategyRegistry(EngineConfig(spot_only=True))
        agent = make_agent(risk=RiskProfile.AGGRESSIVE)
        assert registry.for_agent(agent).name == "spot_dca"
