"""Agent records as read from the agent store."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from hyperworld.core.types import RiskProfile

logger = logging.getLogger(__name__)

MAX_LEVERAGE = 50


@dataclass(frozen=True)
class StrategyConfig:
    """Risk profile and leverage chosen for an agent."""

    risk: RiskProfile = RiskProfile.CONSERVATIVE
    leverage: int = 1
    raw_risk: str = ""

    @classmethod
    def parse(cls, raw: str | dict[str, Any] | None) -> "StrategyConfig":
        """Parse the stored JSON config.

        Malformed configs fall back to Conservative at 1x, the config
        written for newly created agents.
        """
        data: Any = raw
        if isinstance(raw, str):
            try:
                data = json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError:
                logger.warning(f"Unparseable strategy config {raw!r}, using defaults")
                data = {}
        if not isinstance(data, dict):
            data = {}

        tag = str(data.get("risk") or "")
        try:
            leverage = int(data.get("leverage") or 1)
        except (TypeError, ValueError):
            leverage = 1

        return cls(
            risk=RiskProfile.parse(tag),
            leverage=min(max(leverage, 1), MAX_LEVERAGE),
            raw_risk=tag,
        )


@dataclass(frozen=True)
class Agent:
    """A trading agent bound to one wallet."""

    id: str
    wallet_address: str
    encrypted_secret: str = field(repr=False)
    strategy_config: StrategyConfig = field(default_factory=StrategyConfig)
    is_active: bool = True

    @property
    def risk(self) -> RiskProfile:
        return self.strategy_config.risk

    @property
    def label(self) -> str:
        """Short identifier for log lines."""
        return f"agent {self.id} ({self.wallet_address})"
