"""Hyperliquid exchange gateway."""

from hyperworld.execution.hyperliquid.gateway import HyperliquidGateway

__all__ = ["HyperliquidGateway"]
