"""Agent store adapters."""

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from hyperworld.agents.models import Agent, StrategyConfig
from hyperworld.core.errors import AgentStoreError

logger = logging.getLogger(__name__)


class AgentStore(ABC):
    """Source of agent records.

    The engine calls ``list_active_agents`` once per cycle, so activation
    changes made by the agent service are picked up on the next tick.
    """

    @abstractmethod
    async def list_active_agents(self) -> list[Agent]:
        """Return all agents whose active flag is set.

        Raises:
            AgentStoreError: when the store cannot be read
        """
        ...


class SqliteAgentStore(AgentStore):
    """Reads the ``Agent`` table written by the agent service."""

    QUERY = (
        'SELECT id, walletAddress, encryptedPrivateKey, strategyConfig, isActive '
        'FROM "Agent" WHERE isActive = 1 ORDER BY id'
    )

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)

    def _fetch(self) -> list[sqlite3.Row]:
        if not self.db_path.exists():
            raise AgentStoreError(f"Agent database not found: {self.db_path}")
        try:
            conn = sqlite3.connect(str(self.db_path))
            try:
                conn.row_factory = sqlite3.Row
                return conn.execute(self.QUERY).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise AgentStoreError(f"Failed to read agents from {self.db_path}: {e}") from e

    async def list_active_agents(self) -> list[Agent]:
        rows = await asyncio.to_thread(self._fetch)
        agents = [
            Agent(
                id=str(row["id"]),
                wallet_address=row["walletAddress"],
                encrypted_secret=row["encryptedPrivateKey"],
                strategy_config=StrategyConfig.parse(row["strategyConfig"]),
                is_active=bool(row["isActive"]),
            )
            for row in rows
        ]
        logger.debug(f"Loaded {len(agents)} active agents from {self.db_path}")
        return agents


class InMemoryAgentStore(AgentStore):
    """Agent store backed by a dict, for tests and dry runs."""

    def __init__(self, agents: list[Agent] | None = None) -> None:
        self.agents: dict[str, Agent] = {a.id: a for a in agents or []}
        self.fail_with: Exception | None = None

    def add(self, agent: Agent) -> None:
        self.agents[agent.id] = agent

    def set_active(self, agent_id: str, is_active: bool) -> None:
        agent = self.agents[agent_id]
        self.agents[agent_id] = Agent(
            id=agent.id,
            wallet_address=agent.wallet_address,
            encrypted_secret=agent.encrypted_secret,
            strategy_config=agent.strategy_config,
            is_active=is_active,
        )

    async def list_active_agents(self) -> list[Agent]:
        if self.fail_with is not None:
            raise AgentStoreError(str(self.fail_with)) from self.fail_with
        return [a for a in self.agents.values() if a.is_active]
