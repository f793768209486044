"""Agents module - agent records, stores and signing key resolution."""

from hyperworld.agents.models import Agent, StrategyConfig
from hyperworld.agents.signer import SignerResolver, encrypt_secret, parse_encryption_key
from hyperworld.agents.store import AgentStore, InMemoryAgentStore, SqliteAgentStore

__all__ = [
    "Agent",
    "AgentStore",
    "InMemoryAgentStore",
    "SignerResolver",
    "SqliteAgentStore",
    "StrategyConfig",
    "encrypt_secret",
    "parse_encryption_key",
]
