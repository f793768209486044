"""Strategy module - per-agent trading decisions."""

from hyperworld.strategy.aggressive import AggressiveStrategy, momentum_pct
from hyperworld.strategy.base import (
    NoAction,
    OrderDecision,
    Strategy,
    StrategyContext,
    StrategyDecision,
)
from hyperworld.strategy.conservative import ConservativeStrategy
from hyperworld.strategy.registry import StrategyRegistry
from hyperworld.strategy.spot_dca import SpotDcaStrategy

__all__ = [
    "AggressiveStrategy",
    "ConservativeStrategy",
    "NoAction",
    "OrderDecision",
    "SpotDcaStrategy",
    "Strategy",
    "StrategyContext",
    "StrategyDecision",
    "StrategyRegistry",
    "momentum_pct",
]
