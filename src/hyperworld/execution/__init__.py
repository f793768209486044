"""Execution module - exchange gateways and account models."""

from hyperworld.execution.base import ExchangeGateway
from hyperworld.execution.mock_gateway import MockGateway
from hyperworld.execution.models import (
    AccountState,
    AgentAccounts,
    Balance,
    OrderAck,
    OrderRequest,
    Position,
    utc_now,
)

__all__ = [
    "AccountState",
    "AgentAccounts",
    "Balance",
    "ExchangeGateway",
    "MockGateway",
    "OrderAck",
    "OrderRequest",
    "Position",
    "utc_now",
]
