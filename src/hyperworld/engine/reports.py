"""Cycle outcome records."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from hyperworld.core.precision import format_decimal
from hyperworld.execution.models import OrderAck


@dataclass
class AgentCycleReport:
    """What happened to one agent in one cycle."""

    agent_id: str
    wallet_address: str
    strategy: str
    orders: list[OrderAck] = field(default_factory=list)
    transfers: list[Decimal] = field(default_factory=list)
    legacy_closed: bool = False
    refreshed: bool = False
    reasons: list[str] = field(default_factory=list)
    skipped: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "wallet": self.wallet_address,
            "strategy": self.strategy,
            "orders": [
                {
                    "side": ack.request.side.value,
                    "coin": ack.request.order_name,
                    "size": format_decimal(ack.request.size),
                    "price": format_decimal(ack.request.price),
                    "status": ack.status,
                }
                for ack in self.orders
            ],
            "transfers": [format_decimal(t) for t in self.transfers],
            "skipped": self.skipped,
            "error": self.error,
        }


@dataclass
class CycleReport:
    """Summary of one scheduler cycle."""

    cycle: int
    started_at: datetime
    finished_at: datetime | None = None
    agents: list[AgentCycleReport] = field(default_factory=list)
    unavailable_pairs: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    skipped: bool = False

    @property
    def order_count(self) -> int:
        return sum(len(a.orders) for a in self.agents)

    @property
    def transfer_count(self) -> int:
        return sum(len(a.transfers) for a in self.agents)

    @property
    def failed_agents(self) -> list[str]:
        return [a.agent_id for a in self.agents if not a.ok]

    def agent(self, agent_id: str) -> AgentCycleReport | None:
        return next((a for a in self.agents if a.agent_id == agent_id), None)

    def summary(self) -> str:
        if self.skipped:
            return f"Cycle #{self.cycle} skipped"
        if self.error:
            return f"Cycle #{self.cycle} abandoned: {self.error}"
        return (
            f"Cycle #{self.cycle}: {len(self.agents)} agents, {self.order_count} orders, "
            f"{self.transfer_count} transfers, {len(self.failed_agents)} failed"
        )

    def to_dict(self) -> dict[str, Any]:
        duration = None
        if self.finished_at is not None:
            duration = round((self.finished_at - self.started_at).total_seconds(), 3)
        return {
            "cycle": self.cycle,
            "started_at": self.started_at.isoformat(),
            "duration_seconds": duration,
            "agents": len(self.agents),
            "orders": self.order_count,
            "transfers": self.transfer_count,
            "failed_agents": self.failed_agents,
            "unavailable_pairs": dict(self.unavailable_pairs),
            "error": self.error,
            "skipped": self.skipped,
        }
