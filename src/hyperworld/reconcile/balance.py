"""Moves quote balance between an agent's spot and perp sub-accounts."""

import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from hyperworld.agents.models import Agent
from hyperworld.core.types import SubAccount
from hyperworld.execution.base import ExchangeGateway
from hyperworld.execution.models import AgentAccounts

logger = logging.getLogger(__name__)

QUOTE_COIN = "USDC"
TRANSFER_PRECISION = Decimal("0.01")
MIN_TRANSFER = Decimal("0.01")


def plan_transfer(
    target_available: Decimal,
    sibling_available: Decimal,
    min_notional: Decimal,
    buffer: Decimal = Decimal("0.01"),
) -> Decimal | None:
    """Amount to move from the sibling into the trading sub-account.

    Everything but ``buffer`` is moved, floored to cents. Moving only the
    shortfall would leave the target at exactly ``min_notional``, which a
    lot-rounded order cannot reach.

    None when the trading sub-account is already funded, when the sibling
    holds less than ``min_notional``, or when the move still leaves the
    target short.
    """
    if target_available >= min_notional or sibling_available < min_notional:
        return None

    amount = (sibling_available - buffer).quantize(TRANSFER_PRECISION, rounding=ROUND_FLOOR)
    if amount < MIN_TRANSFER:
        return None
    if target_available + amount < min_notional:
        return None
    return amount


class BalanceReconciler:
    """Funds the sub-account a strategy trades from its idle sibling.

    Best effort: a failed transfer is logged and the strategy later sees
    the unchanged balance.
    """

    def __init__(
        self,
        gateway: ExchangeGateway,
        min_notional: Decimal = Decimal("10"),
        buffer: Decimal = Decimal("0.01"),
    ) -> None:
        self._gateway = gateway
        self._min_notional = min_notional
        self._buffer = buffer

    async def reconcile(
        self,
        agent: Agent,
        signer: Any,
        accounts: AgentAccounts,
        target: SubAccount,
    ) -> Decimal | None:
        """Transfer into ``target`` when it is under-funded.

        Returns:
            Transferred amount, or None when nothing was moved
        """
        source = target.sibling
        amount = plan_transfer(
            accounts.for_sub_account(target).available(QUOTE_COIN),
            accounts.for_sub_account(source).available(QUOTE_COIN),
            self._min_notional,
            self._buffer,
        )
        if amount is None:
            return None

        to_perp = target is SubAccount.PERP
        logger.info(
            f"{agent.label}: moving {amount} {QUOTE_COIN} {source.value} -> {target.value}"
        )
        try:
            await self._gateway.transfer(signer, agent.wallet_address, amount, to_perp)
        except Exception as e:
            logger.warning(f"{agent.label}: transfer {source.value} -> {target.value} failed: {e}")
            return None
        return amount
