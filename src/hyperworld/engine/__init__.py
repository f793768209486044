"""Engine module - scheduler and cycle reports."""

from hyperworld.engine.reports import AgentCycleReport, CycleReport
from hyperworld.engine.scheduler import TradingEngine

__all__ = ["AgentCycleReport", "CycleReport", "TradingEngine"]
