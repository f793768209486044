"""Core infrastructure module."""

from hyperworld.core.cooldown import CooldownTracker
from hyperworld.core.errors import (
    AgentStoreError,
    EngineError,
    GatewayError,
    GatewayTimeout,
    MarketDataUnavailable,
    OrderRejectedError,
    SignerError,
    TransferError,
)
from hyperworld.core.types import (
    ActionKind,
    Mandate,
    MarketKind,
    PositionSide,
    RiskProfile,
    Side,
    SubAccount,
    TimeInForce,
)

__all__ = [
    "ActionKind",
    "AgentStoreError",
    "CooldownTracker",
    "EngineError",
    "GatewayError",
    "GatewayTimeout",
    "Mandate",
    "MarketDataUnavailable",
    "MarketKind",
    "OrderRejectedError",
    "PositionSide",
    "RiskProfile",
    "Side",
    "SignerError",
    "SubAccount",
    "TimeInForce",
    "TransferError",
]
