"""Hyperliquid gateway implementation."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

from eth_account.signers.local import LocalAccount
from hyperliquid.exchange import Exchange
from hyperliquid.info import Info

from hyperworld.core.errors import GatewayError, GatewayTimeout, OrderRejectedError, TransferError
from hyperworld.core.precision import format_decimal, to_decimal
from hyperworld.core.types import SubAccount
from hyperworld.execution.base import ExchangeGateway
from hyperworld.execution.models import AccountState, Balance, OrderAck, OrderRequest, Position
from hyperworld.market.models import Candle, FundingPoint, PerpMarket, SpotMarket

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUOTE_COIN = "USDC"


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _from_ms(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


class HyperliquidGateway(ExchangeGateway):
    """Hyperliquid exchange gateway.

    The SDK is blocking, so every call runs in a worker thread bounded by
    ``call_timeout``. One ``Exchange`` client is kept per agent wallet.
    """

    def __init__(self, base_url: str, call_timeout: float = 10.0) -> None:
        """Initialize Hyperliquid gateway.

        Args:
            base_url: API base URL (mainnet or testnet)
            call_timeout: Per-call timeout in seconds
        """
        self._base_url = base_url
        self._call_timeout = call_timeout
        self._info: Info | None = None
        self._exchanges: dict[str, Exchange] = {}

    @property
    def name(self) -> str:
        return "HYPERLIQUID"

    async def _call(self, label: str, fn: Callable[[], T]) -> T:
        """Run a blocking SDK call in a thread with timeout."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout=self._call_timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Hyperliquid {label} timed out after {self._call_timeout}s")
            raise GatewayTimeout(f"{label} timed out after {self._call_timeout}s") from e
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(f"{label} failed: {e}") from e

    async def _get_info(self) -> Info:
        if self._info is None:
            self._info = await self._call(
                "Info", lambda: Info(self._base_url, skip_ws=True, timeout=self._call_timeout)
            )
        return self._info

    async def _get_exchange(self, signer: LocalAccount, address: str) -> Exchange:
        exchange = self._exchanges.get(address)
        if exchange is None:
            exchange = await self._call(
                "Exchange",
                lambda: Exchange(
                    signer,
                    self._base_url,
                    account_address=address,
                    timeout=self._call_timeout,
                ),
            )
            self._exchanges[address] = exchange
        return exchange

    # Market data

    async def get_spot_markets(self) -> list[SpotMarket]:
        info = await self._get_info()
        meta, ctxs = await self._call("spotMetaAndAssetCtxs", info.spot_meta_and_asset_ctxs)
        return self._parse_spot_markets(meta, ctxs)

    @staticmethod
    def _parse_spot_markets(meta: dict[str, Any], ctxs: list[dict[str, Any]]) -> list[SpotMarket]:
        tokens = {t["index"]: t for t in meta.get("tokens", [])}
        markets = []
        for position, entry in enumerate(meta.get("universe", [])):
            token_ids = entry.get("tokens") or []
            if len(token_ids) != 2:
                continue
            base = tokens.get(token_ids[0])
            quote = tokens.get(token_ids[1])
            if base is None or quote is None:
                continue
            # Contexts align with universe ordering
            ctx = ctxs[position] if position < len(ctxs) else {}
            markets.append(
                SpotMarket(
                    base=str(base["name"]).upper(),
                    quote=str(quote["name"]).upper(),
                    order_name=entry.get("name", f"@{entry.get('index', position)}"),
                    index=int(entry.get("index", position)),
                    sz_decimals=int(base.get("szDecimals", 6)),
                    mid_px=to_decimal(ctx.get("midPx")),
                    mark_px=to_decimal(ctx.get("markPx")),
                )
            )
        return markets

    async def get_perp_markets(self) -> list[PerpMarket]:
        info = await self._get_info()
        meta, ctxs = await self._call("metaAndAssetCtxs", info.meta_and_asset_ctxs)
        return self._parse_perp_markets(meta, ctxs)

    @staticmethod
    def _parse_perp_markets(meta: dict[str, Any], ctxs: list[dict[str, Any]]) -> list[PerpMarket]:
        markets = []
        for index, asset in enumerate(meta.get("universe", [])):
            ctx = ctxs[index] if index < len(ctxs) else {}
            sz_decimals = asset.get("szDecimals")
            markets.append(
                PerpMarket(
                    coin=asset["name"],
                    index=index,
                    sz_decimals=int(sz_decimals) if isinstance(sz_decimals, int) else 6,
                    mid_px=to_decimal(ctx.get("midPx")),
                    mark_px=to_decimal(ctx.get("markPx")),
                    oracle_px=to_decimal(ctx.get("oraclePx")),
                    funding=to_decimal(ctx.get("funding")),
                    max_leverage=int(asset.get("maxLeverage", 1)),
                )
            )
        return markets

    async def get_all_mids(self) -> dict[str, Decimal]:
        info = await self._get_info()
        mids = await self._call("allMids", info.all_mids)
        parsed = {}
        for coin, raw in (mids or {}).items():
            price = to_decimal(raw)
            if price is not None:
                parsed[coin] = price
        return parsed

    async def get_funding_history(self, coin: str, start_time: datetime) -> list[FundingPoint]:
        info = await self._get_info()
        history = await self._call(
            "fundingHistory", lambda: info.funding_history(coin, _ms(start_time))
        )
        points = []
        for item in history or []:
            rate = to_decimal(item.get("fundingRate"))
            if rate is None:
                continue
            points.append(
                FundingPoint(
                    coin=item.get("coin", coin),
                    funding_rate=rate,
                    time=_from_ms(item.get("time", 0)),
                    premium=to_decimal(item.get("premium")),
                )
            )
        return points

    async def get_candles(self, coin: str, interval: str, start_time: datetime) -> list[Candle]:
        info = await self._get_info()
        end_time = datetime.now(timezone.utc)
        raw = await self._call(
            "candleSnapshot",
            lambda: info.candles_snapshot(coin, interval, _ms(start_time), _ms(end_time)),
        )
        candles = []
        for item in raw or []:
            close = to_decimal(item.get("c"))
            if close is None:
                continue
            candles.append(
                Candle(
                    open_time=_from_ms(item.get("t", 0)),
                    open=to_decimal(item.get("o")) or close,
                    high=to_decimal(item.get("h")) or close,
                    low=to_decimal(item.get("l")) or close,
                    close=close,
                    volume=to_decimal(item.get("v")) or Decimal("0"),
                )
            )
        return candles

    # Account state

    async def get_spot_state(self, address: str) -> AccountState:
        info = await self._get_info()
        state = await self._call("spotClearinghouseState", lambda: info.spot_user_state(address))
        balances = {}
        for item in (state or {}).get("balances", []):
            coin = str(item.get("coin", "")).upper()
            if not coin:
                continue
            balances[coin] = Balance(
                coin=coin,
                total=to_decimal(item.get("total")) or Decimal("0"),
                hold=to_decimal(item.get("hold")) or Decimal("0"),
                entry_notional=to_decimal(item.get("entryNtl")) or Decimal("0"),
            )
        return AccountState(sub_account=SubAccount.SPOT, balances=balances)

    async def get_perp_state(self, address: str) -> AccountState:
        info = await self._get_info()
        state = await self._call("clearinghouseState", lambda: info.user_state(address)) or {}
        summary = state.get("marginSummary") or {}
        account_value = to_decimal(summary.get("accountValue")) or Decimal("0")
        margin_used = to_decimal(summary.get("totalMarginUsed")) or Decimal("0")

        positions = []
        for item in state.get("assetPositions", []):
            pos = item.get("position") or {}
            size = to_decimal(pos.get("szi"))
            if size is None or size == 0:
                continue
            entry_px = to_decimal(pos.get("entryPx")) or Decimal("0")
            leverage = (pos.get("leverage") or {}).get("value", 1)
            positions.append(
                Position(
                    coin=pos.get("coin", ""),
                    size=size,
                    entry_notional=abs(size) * entry_px,
                    leverage=int(leverage),
                )
            )

        return AccountState(
            sub_account=SubAccount.PERP,
            balances={QUOTE_COIN: Balance(coin=QUOTE_COIN, total=account_value, hold=margin_used)},
            positions=positions,
            account_value=account_value,
        )

    # Writes

    async def place_order(self, signer: Any, address: str, request: OrderRequest) -> OrderAck:
        exchange = await self._get_exchange(signer, address)
        response = await self._call(
            "order",
            lambda: exchange.order(
                request.order_name,
                request.side.is_buy,
                float(request.size),
                float(request.price),
                {"limit": {"tif": request.time_in_force.value}},
                reduce_only=request.reduce_only,
            ),
        )
        return self._parse_order_response(request, response)

    @staticmethod
    def _parse_order_response(request: OrderRequest, response: Any) -> OrderAck:
        if not isinstance(response, dict) or response.get("status") != "ok":
            raise OrderRejectedError(f"Order rejected: {response}")
        statuses = ((response.get("response") or {}).get("data") or {}).get("statuses") or []
        if not statuses:
            raise OrderRejectedError(f"Order response without status: {response}")
        status = statuses[0]
        if "error" in status:
            raise OrderRejectedError(str(status["error"]))
        if "filled" in status:
            filled = status["filled"]
            return OrderAck(
                request=request,
                order_id=str(filled.get("oid", "")),
                status="filled",
                filled_size=to_decimal(filled.get("totalSz")) or Decimal("0"),
                avg_fill_price=to_decimal(filled.get("avgPx")),
                raw=response,
            )
        resting = status.get("resting") or {}
        return OrderAck(
            request=request,
            order_id=str(resting.get("oid", "")),
            status="resting",
            raw=response,
        )

    async def transfer(self, signer: Any, address: str, amount: Decimal, to_perp: bool) -> None:
        exchange = await self._get_exchange(signer, address)
        response = await self._call(
            "usdClassTransfer",
            lambda: exchange.usd_class_transfer(float(amount), to_perp),
        )
        if not isinstance(response, dict) or response.get("status") != "ok":
            raise TransferError(f"Transfer of {format_decimal(amount)} USDC rejected: {response}")
