"""Logging configuration for the HyperWorld strategy engine.

Every line emitted while a cycle runs carries the cycle number, and lines
emitted inside an agent's pipeline also carry the agent id:

    2026-01-15 12:00:00 | INFO     | hyperworld.engine | [#12 agent 7] order filled
"""

import contextlib
import logging
import sys
from collections.abc import Iterator
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path

DEFAULT_LOG_DIR = Path(__file__).parent.parent.parent / "logs"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_current_cycle: ContextVar[int | None] = ContextVar("hyperworld_cycle", default=None)
_current_agent: ContextVar[str | None] = ContextVar("hyperworld_agent", default=None)


class EngineContextFilter(logging.Filter):
    """Stamps records with the cycle and agent being processed."""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = []
        cycle = _current_cycle.get()
        if cycle is not None:
            parts.append(f"#{cycle}")
        agent_id = _current_agent.get()
        if agent_id is not None:
            parts.append(f"agent {agent_id}")
        record.context = f"[{' '.join(parts)}] " if parts else ""
        return True


@contextlib.contextmanager
def log_context(cycle: int | None = None, agent_id: str | None = None) -> Iterator[None]:
    """Attach cycle and/or agent context to log lines in this block.

    Context variables follow the running task across awaits.
    """
    tokens = []
    if cycle is not None:
        tokens.append((_current_cycle, _current_cycle.set(cycle)))
    if agent_id is not None:
        tokens.append((_current_agent, _current_agent.set(agent_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def parse_level(name: str, default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its number."""
    level = logging.getLevelName(name.strip().upper()) if name else None
    return level if isinstance(level, int) else default


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_dir: Path | None = None,
) -> logging.Logger:
    """Configure logging for the engine.

    Args:
        level: Logging level (default: INFO)
        log_to_file: Whether to also write a daily file (default: True)
        log_dir: Directory for the daily file (default: ``logs/`` in the project)

    Returns:
        The ``hyperworld`` logger
    """
    logger = logging.getLogger("hyperworld")
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    context = EngineContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context)
    logger.addHandler(console_handler)

    if log_to_file:
        directory = log_dir or DEFAULT_LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            directory / f"engine_{datetime.now():%Y%m%d}.log", encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context)
        logger.addHandler(file_handler)

    # The exchange SDK and urllib3 are chatty at INFO
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for a specific component.

    Args:
        name: Component name (will be prefixed with 'hyperworld.')

    Returns:
        Logger instance
    """
    return logging.getLogger(f"hyperworld.{name}")
