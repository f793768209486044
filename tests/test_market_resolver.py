"""Test market snapshot resolution and signal fallbacks."""

from dataclasses import replace
from decimal import Decimal

import pytest
from conftest import START, make_snapshot

from hyperworld.core.errors import GatewayError, MarketDataUnavailable
from hyperworld.core.types import MarketKind
from hyperworld.market.fallback import Attempt, resolve_first, resolve_or_default
from hyperworld.market.models import FundingPoint


class TestFallbackChain:
    """Test ordered source resolution."""

    @pytest.mark.asyncio
    async def test_first_valid_wins(self):
        async def broken():
            raise RuntimeError("boom")

        async def empty():
            return None

        async def good():
            return Decimal("5")

        source, value = await resolve_first(
            "X", [Attempt("a", broken), Attempt("b", empty), Attempt("c", good)]
        )
        assert (source, value) == ("c", Decimal("5"))

    @pytest.mark.asyncio
    async def test_invalid_value_skipped(self):
        async def zero():
            return Decimal("0")

        async def one():
            return Decimal("1")

        source, _ = await resolve_first(
            "X", [Attempt("zero", zero), Attempt("one", one)], is_valid=lambda v: v > 0
        )
        assert source == "one"

    @pytest.mark.asyncio
    async def test_all_failed_raises_with_attempts(self):
        async def empty():
            return None

        with pytest.raises(MarketDataUnavailable) as exc_info:
            await resolve_first("X", [Attempt("a", empty), Attempt("b", empty)])
        assert exc_info.value.attempts == ["a", "b"]

    @pytest.mark.asyncio
    async def test_default_instead_of_raise(self):
        async def empty():
            return None

        assert await resolve_or_default("X", [Attempt("a", empty)], default=7) == ("default", 7)


class TestSpotSnapshot:
    """Test spot pair resolution."""

    @pytest.mark.asyncio
    async def test_mid_price_preferred(self, resolver):
        snapshot = await resolver.resolve_spot("HYPE", "USDC")
        assert snapshot.price == Decimal("25")
        assert snapshot.source == "spot_ctx.midPx"
        assert snapshot.asset_id == 10107
        assert snapshot.order_name == "@107"
        assert snapshot.lot == Decimal("0.01")
        assert snapshot.tick == Decimal("0.000001")

    @pytest.mark.asyncio
    async def test_falls_back_to_mark(self, resolver, gateway):
        gateway.spot_markets = [replace(gateway.spot_markets[0], mid_px=None)]
        snapshot = await resolver.resolve_spot("HYPE", "USDC")
        assert snapshot.source == "spot_ctx.markPx"
        assert snapshot.price == Decimal("25.01")

    @pytest.mark.asyncio
    async def test_falls_back_to_all_mids(self, resolver, gateway):
        gateway.spot_markets = [replace(gateway.spot_markets[0], mid_px=None, mark_px=None)]
        snapshot = await resolver.resolve_spot("HYPE", "USDC")
        assert snapshot.source == "allMids"
        assert snapshot.price == Decimal("25.02")

    @pytest.mark.asyncio
    async def test_no_price_anywhere(self, resolver, gateway):
        gateway.spot_markets = [replace(gateway.spot_markets[0], mid_px=None, mark_px=None)]
        gateway.failures["get_all_mids"] = GatewayError("down")
        with pytest.raises(MarketDataUnavailable):
            await resolver.resolve_spot("HYPE", "USDC")

    @pytest.mark.asyncio
    async def test_unknown_pair(self, resolver):
        with pytest.raises(MarketDataUnavailable) as exc_info:
            await resolver.resolve_spot("DOGE", "USDC")
        assert exc_info.value.pair == "DOGE/USDC"


class TestPerpSnapshot:
    """Test perp coin resolution."""

    @pytest.mark.asyncio
    async def test_perp_snapshot(self, resolver):
        snapshot = await resolver.resolve_perp("ETH")
        assert snapshot.kind is MarketKind.PERP
        assert snapshot.asset_id == 1
        assert snapshot.price == Decimal("3000")
        assert snapshot.tick == Decimal("0.01")

    @pytest.mark.asyncio
    async def test_oracle_fallback(self, resolver, gateway):
        eth = gateway.perp_markets[1]
        gateway.perp_markets[1] = replace(eth, mid_px=None, mark_px=Decimal("0"))
        snapshot = await resolver.resolve_perp("ETH")
        assert snapshot.source == "perp_ctx.oraclePx"
        assert snapshot.price == Decimal("2999")


class TestCaching:
    """Test universe cache and revalidation."""

    @pytest.mark.asyncio
    async def test_universe_cached_within_ttl(self, resolver, gateway, clock):
        await resolver.resolve_spot("HYPE", "USDC")
        clock.advance(seconds=20)
        await resolver.resolve_spot("HYPE", "USDC")
        assert gateway.calls.count("get_spot_markets") == 1

        clock.advance(seconds=15)
        await resolver.resolve_spot("HYPE", "USDC")
        assert gateway.calls.count("get_spot_markets") == 2

    @pytest.mark.asyncio
    async def test_fresh_snapshot_not_revalidated(self, resolver, gateway):
        snapshot = make_snapshot(captured_at=START)
        assert await resolver.revalidate(snapshot) is snapshot
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_stale_snapshot_re_resolved(self, resolver, gateway, clock):
        snapshot = make_snapshot(price="20", captured_at=START)
        clock.advance(seconds=31)
        fresh = await resolver.revalidate(snapshot)
        assert fresh.price == Decimal("25")
        assert fresh.captured_at == clock.now

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, resolver, gateway):
        await resolver.resolve_perp("ETH")
        resolver.invalidate()
        await resolver.resolve_perp("ETH")
        assert gateway.calls.count("get_perp_markets") == 2


class TestFundingSignal:
    """Test funding rate resolution."""

    @pytest.mark.asyncio
    async def test_asset_context_funding(self, resolver):
        assert await resolver.funding_rate("ETH") == Decimal("0.0001")

    @pytest.mark.asyncio
    async def test_history_fallback(self, resolver, gateway, clock):
        gateway.perp_markets[1] = replace(gateway.perp_markets[1], funding=None)
        gateway.funding_history["ETH"] = [
            FundingPoint("ETH", Decimal("0.00002"), clock.now.replace(hour=2)),
            FundingPoint("ETH", Decimal("0.00005"), clock.now.replace(hour=10)),
        ]
        assert await resolver.funding_rate("ETH") == Decimal("0.00005")

    @pytest.mark.asyncio
    async def test_neutral_when_everything_fails(self, resolver, gateway):
        gateway.failures["get_perp_markets"] = GatewayError("down")
        gateway.failures["get_funding_history"] = GatewayError("down")
        assert await resolver.funding_rate("ETH") == Decimal("0")

    @pytest.mark.asyncio
    async def test_candles_failure_is_empty(self, resolver, gateway):
        gateway.failures["get_candles"] = GatewayError("down")
        assert await resolver.candles("ETH") == []
