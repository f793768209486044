"""Maps risk profiles to strategy instances."""

from hyperworld.agents.models import Agent
from hyperworld.config import EngineConfig
from hyperworld.core.types import RiskProfile
from hyperworld.strategy.aggressive import AggressiveStrategy
from hyperworld.strategy.base import Strategy
from hyperworld.strategy.conservative import ConservativeStrategy
from hyperworld.strategy.spot_dca import SpotDcaStrategy


class StrategyRegistry:
    """One strategy instance per risk profile.

    With ``spot_only`` set every agent runs the spot DCA strategy regardless
    of its stored profile.
    """

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._strategies: dict[RiskProfile, Strategy] = {
            RiskProfile.CONSERVATIVE: ConservativeStrategy(config),
            RiskProfile.AGGRESSIVE: AggressiveStrategy(config),
            RiskProfile.SPOT_DCA: SpotDcaStrategy(config),
        }
        missing = set(RiskProfile) - set(self._strategies)
        if missing:
            raise ValueError(f"No strategy registered for {sorted(p.value for p in missing)}")

    def profile_for(self, agent: Agent) -> RiskProfile:
        if self._config.spot_only:
            return RiskProfile.SPOT_DCA
        return agent.risk

    def for_agent(self, agent: Agent) -> Strategy:
        return self._strategies[self.profile_for(agent)]

    def get(self, profile: RiskProfile) -> Strategy:
        return self._strategies[profile]

    def all(self) -> list[Strategy]:
        return list(self._strategies.values())
