"""Engine exception hierarchy."""


class EngineError(Exception):
    """Base class for all engine errors."""


class MarketDataUnavailable(EngineError):
    """No source could produce usable market data for a pair."""

    def __init__(self, pair: str, attempts: list[str] | None = None) -> None:
        self.pair = pair
        self.attempts = attempts or []
        detail = f" (tried: {', '.join(self.attempts)})" if self.attempts else ""
        super().__init__(f"Market data unavailable for {pair}{detail}")


class GatewayError(EngineError):
    """Exchange gateway call failed."""


class GatewayTimeout(GatewayError):
    """Exchange gateway call did not complete within the per-call timeout."""


class OrderRejectedError(GatewayError):
    """Exchange refused an order submission."""


class TransferError(GatewayError):
    """Exchange refused an inter-account transfer."""


class SignerError(EngineError):
    """Signing capability could not be resolved from an encrypted secret."""


class AgentStoreError(EngineError):
    """Agent records could not be loaded."""
