"""Force-closes perp positions an agent is no longer allowed to hold."""

import logging
from decimal import Decimal
from typing import Any

from hyperworld.agents.models import Agent
from hyperworld.core.errors import MarketDataUnavailable
from hyperworld.core.precision import format_decimal, is_positive, round_price, round_size
from hyperworld.core.types import Mandate, Side, TimeInForce
from hyperworld.execution.base import ExchangeGateway
from hyperworld.execution.models import AccountState, OrderRequest, Position
from hyperworld.market.models import MarketSnapshot
from hyperworld.market.resolver import MarketSnapshotResolver

logger = logging.getLogger(__name__)


def disallowed_positions(perp_state: AccountState, mandate: Mandate) -> list[Position]:
    """Open perp positions the mandate does not permit."""
    if mandate is Mandate.PERPS_ALLOWED:
        return []
    return perp_state.open_positions


def build_close_order(
    position: Position,
    snapshot: MarketSnapshot,
    slippage: Decimal,
) -> OrderRequest | None:
    """Reduce-only IOC order that flattens ``position``.

    The limit is the reference price moved by ``slippage`` toward fill and
    rounded in the same direction, so a buy-to-close never rounds below
    its bound and a sell-to-close never rounds above it.

    Returns None when the size rounds to zero or the price is unusable.
    """
    size = round_size(position.abs_size, snapshot.lot, "down")
    if not is_positive(size):
        return None
    if not is_positive(snapshot.price):
        return None

    side = position.closing_side
    if side is Side.BUY:
        price = round_price(snapshot.price * (1 + slippage), snapshot.tick, "up")
    else:
        price = round_price(snapshot.price * (1 - slippage), snapshot.tick, "down")
    if not is_positive(price):
        return None

    return OrderRequest(
        order_name=snapshot.order_name,
        asset_id=snapshot.asset_id,
        side=side,
        price=price,
        size=size,
        reduce_only=True,
        time_in_force=TimeInForce.IOC,
    )


class LegacyPositionReconciler:
    """Closes positions that violate an agent's mandate.

    Runs before any strategy for the agent. The strategy only proceeds once
    every disallowed position has been closed.
    """

    def __init__(
        self,
        gateway: ExchangeGateway,
        resolver: MarketSnapshotResolver,
        close_slippage: Decimal = Decimal("0.01"),
    ) -> None:
        self._gateway = gateway
        self._resolver = resolver
        self._close_slippage = close_slippage

    async def reconcile(
        self,
        agent: Agent,
        signer: Any,
        perp_state: AccountState,
        mandate: Mandate,
    ) -> bool:
        """Close every disallowed position.

        Returns:
            True when nothing was disallowed or every close filled in full
        """
        positions = disallowed_positions(perp_state, mandate)
        if not positions:
            return True

        logger.warning(
            f"{agent.label}: {len(positions)} legacy perp position(s) violate the "
            f"{mandate.value} mandate, closing"
        )
        all_closed = True
        for position in positions:
            if not await self._close(agent, signer, position):
                all_closed = False
        return all_closed

    async def _close(self, agent: Agent, signer: Any, position: Position) -> bool:
        try:
            snapshot = await self._resolver.resolve_perp(position.coin)
        except MarketDataUnavailable as e:
            logger.warning(f"{agent.label}: cannot close {position.coin}: {e}")
            return False

        request = build_close_order(position, snapshot, self._close_slippage)
        if request is None:
            logger.warning(
                f"{agent.label}: invalid close size or price for {position.coin} "
                f"(size={position.size}, price={snapshot.price_str})"
            )
            return False

        logger.info(
            f"{agent.label}: closing perp {position.coin} {position.side.value} "
            f"{format_decimal(request.size)} via {request.side.value} @ {format_decimal(request.price)}"
        )
        try:
            ack = await self._gateway.place_order(signer, agent.wallet_address, request)
        except Exception as e:
            logger.error(
                f"{agent.label}: failed to close {position.coin}, will retry next cycle: {e}"
            )
            return False

        if ack.status != "filled" or ack.filled_size < request.size:
            logger.warning(
                f"{agent.label}: close of {position.coin} filled "
                f"{format_decimal(ack.filled_size)} of {format_decimal(request.size)}, "
                f"will retry next cycle"
            )
            return False
        return True
