"""Market snapshot resolution with caching and fallback sources."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from hyperworld.core.errors import MarketDataUnavailable
from hyperworld.core.precision import format_decimal, is_positive, lot_size, price_tick
from hyperworld.core.types import MarketKind
from hyperworld.execution.models import utc_now
from hyperworld.market.fallback import Attempt, resolve_first, resolve_or_default
from hyperworld.market.models import Candle, MarketSnapshot, PerpMarket, SpotMarket

if TYPE_CHECKING:
    from hyperworld.execution.base import ExchangeGateway

logger = logging.getLogger(__name__)

NEUTRAL_FUNDING = Decimal("0")


class _Cached:
    """Value plus the time it was fetched."""

    def __init__(self, value: list, fetched_at: datetime) -> None:
        self.value = value
        self.fetched_at = fetched_at


class MarketSnapshotResolver:
    """Resolves prices and precision for trading pairs.

    Market universes (which carry both metadata and per-asset prices) are
    cached for ``cache_ttl`` seconds. A snapshot is therefore never older
    than the TTL when handed out; ``revalidate`` forces a refresh for
    snapshots that aged past ``max_price_age`` before an order is built.
    """

    def __init__(
        self,
        gateway: "ExchangeGateway",
        cache_ttl: float = 30.0,
        max_price_age: float = 30.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._gateway = gateway
        self._cache_ttl = cache_ttl
        self._max_price_age = max_price_age
        self._clock = clock
        self._spot_cache: _Cached | None = None
        self._perp_cache: _Cached | None = None

    @property
    def cache_ttl(self) -> float:
        return self._cache_ttl

    def invalidate(self) -> None:
        """Drop cached market universes."""
        self._spot_cache = None
        self._perp_cache = None

    def _is_fresh(self, cached: _Cached | None) -> bool:
        if cached is None:
            return False
        return (self._clock() - cached.fetched_at).total_seconds() < self._cache_ttl

    async def _spot_markets(self, force: bool = False) -> tuple[list[SpotMarket], datetime]:
        cached = self._spot_cache
        if force or cached is None or not self._is_fresh(cached):
            markets = await self._gateway.get_spot_markets()
            cached = self._spot_cache = _Cached(markets, self._clock())
            logger.debug(f"Spot universe refreshed: {len(markets)} markets")
        return cached.value, cached.fetched_at

    async def _perp_markets(self, force: bool = False) -> tuple[list[PerpMarket], datetime]:
        cached = self._perp_cache
        if force or cached is None or not self._is_fresh(cached):
            markets = await self._gateway.get_perp_markets()
            cached = self._perp_cache = _Cached(markets, self._clock())
            logger.debug(f"Perp universe refreshed: {len(markets)} assets")
        return cached.value, cached.fetched_at

    async def perp_markets(self) -> dict[str, PerpMarket]:
        """Perp universe keyed by coin (cached)."""
        markets, _ = await self._perp_markets()
        return {m.coin: m for m in markets}

    # Snapshots

    async def resolve_spot(self, base: str, quote: str, force: bool = False) -> MarketSnapshot:
        """Resolve a spot pair snapshot.

        Raises:
            MarketDataUnavailable: when the pair is unknown or no price source works
        """
        pair = f"{base}/{quote}"
        try:
            markets, fetched_at = await self._spot_markets(force)
        except Exception as e:
            raise MarketDataUnavailable(pair, ["spotMetaAndAssetCtxs"]) from e

        market = next((m for m in markets if m.base == base and m.quote == quote), None)
        if market is None:
            raise MarketDataUnavailable(pair, ["spotMetaAndAssetCtxs"])

        async def from_mid() -> tuple[Decimal, datetime] | None:
            return (market.mid_px, fetched_at) if market.mid_px is not None else None

        async def from_mark() -> tuple[Decimal, datetime] | None:
            return (market.mark_px, fetched_at) if market.mark_px is not None else None

        async def from_all_mids() -> tuple[Decimal, datetime] | None:
            mids = await self._gateway.get_all_mids()
            price = mids.get(market.order_name)
            return (price, self._clock()) if price is not None else None

        source, (price, captured_at) = await resolve_first(
            pair,
            [
                Attempt("spot_ctx.midPx", from_mid),
                Attempt("spot_ctx.markPx", from_mark),
                Attempt("allMids", from_all_mids),
            ],
            is_valid=lambda v: is_positive(v[0]),
        )
        snapshot = MarketSnapshot(
            pair=pair,
            order_name=market.order_name,
            asset_id=market.asset_id,
            kind=MarketKind.SPOT,
            price=price,
            price_str=format_decimal(price),
            tick=price_tick(market.sz_decimals, MarketKind.SPOT),
            lot=lot_size(market.sz_decimals),
            sz_decimals=market.sz_decimals,
            source=source,
            captured_at=captured_at,
        )
        logger.info(f"{pair} price: {snapshot.price_str} (via {source})")
        return snapshot

    async def resolve_perp(self, coin: str, force: bool = False) -> MarketSnapshot:
        """Resolve a perp coin snapshot.

        Raises:
            MarketDataUnavailable: when the coin is unknown or no price source works
        """
        try:
            markets, fetched_at = await self._perp_markets(force)
        except Exception as e:
            raise MarketDataUnavailable(coin, ["metaAndAssetCtxs"]) from e

        market = next((m for m in markets if m.coin == coin), None)
        if market is None:
            raise MarketDataUnavailable(coin, ["metaAndAssetCtxs"])

        source, price, captured_at = await self._perp_price(market, fetched_at)
        snapshot = MarketSnapshot(
            pair=coin,
            order_name=coin,
            asset_id=market.asset_id,
            kind=MarketKind.PERP,
            price=price,
            price_str=format_decimal(price),
            tick=price_tick(market.sz_decimals, MarketKind.PERP),
            lot=lot_size(market.sz_decimals),
            sz_decimals=market.sz_decimals,
            source=source,
            captured_at=captured_at,
        )
        logger.info(f"{coin} perp price: {snapshot.price_str} (via {source})")
        return snapshot

    async def _perp_price(
        self, market: PerpMarket, fetched_at: datetime
    ) -> tuple[str, Decimal, datetime]:
        async def from_ctx(value: Decimal | None) -> tuple[Decimal, datetime] | None:
            return (value, fetched_at) if value is not None else None

        async def from_all_mids() -> tuple[Decimal, datetime] | None:
            mids = await self._gateway.get_all_mids()
            price = mids.get(market.coin)
            return (price, self._clock()) if price is not None else None

        source, (price, captured_at) = await resolve_first(
            market.coin,
            [
                Attempt("perp_ctx.midPx", lambda: from_ctx(market.mid_px)),
                Attempt("perp_ctx.markPx", lambda: from_ctx(market.mark_px)),
                Attempt("perp_ctx.oraclePx", lambda: from_ctx(market.oracle_px)),
                Attempt("allMids", from_all_mids),
            ],
            is_valid=lambda v: is_positive(v[0]),
        )
        return source, price, captured_at

    async def revalidate(self, snapshot: MarketSnapshot) -> MarketSnapshot:
        """Return ``snapshot`` if still fresh, otherwise a re-resolved one."""
        if snapshot.age_seconds(self._clock()) <= self._max_price_age:
            return snapshot
        logger.info(f"{snapshot.pair} price is {snapshot.age_seconds(self._clock()):.0f}s old, refreshing")
        if snapshot.kind is MarketKind.SPOT:
            base, quote = snapshot.pair.split("/", 1)
            return await self.resolve_spot(base, quote, force=True)
        return await self.resolve_perp(snapshot.pair, force=True)

    # Signals

    async def funding_rate(self, coin: str) -> Decimal:
        """Current funding rate for a perp coin; NEUTRAL_FUNDING when unavailable.

        Never raises.
        """

        async def from_asset_ctx() -> Decimal | None:
            markets = await self.perp_markets()
            market = markets.get(coin)
            return market.funding if market else None

        async def from_history() -> Decimal | None:
            history = await self._gateway.get_funding_history(
                coin, self._clock() - timedelta(hours=24)
            )
            logger.debug(f"{coin} funding history length: {len(history)}")
            return history[-1].funding_rate if history else None

        source, rate = await resolve_or_default(
            f"{coin} funding",
            [
                Attempt("perp_ctx.funding", from_asset_ctx),
                Attempt("fundingHistory", from_history),
            ],
            default=NEUTRAL_FUNDING,
            is_valid=lambda v: v.is_finite(),
        )
        logger.info(f"{coin} funding rate: {rate * 100:.4f}% (via {source})")
        return rate

    async def candles(
        self,
        coin: str,
        interval: str = "15m",
        window: timedelta = timedelta(hours=4),
    ) -> list[Candle]:
        """Recent candles, oldest first; empty list when unavailable."""
        try:
            return await self._gateway.get_candles(coin, interval, self._clock() - window)
        except Exception as e:
            logger.warning(f"{coin} candle history unavailable: {e}")
            return []
