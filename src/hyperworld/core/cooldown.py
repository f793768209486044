"""Per-agent order throttling."""

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

from hyperworld.core.types import ActionKind

logger = logging.getLogger(__name__)


class CooldownTracker:
    """Tracks when each agent last submitted a buy or a sell.

    Timestamps are only recorded after an exchange acknowledged the order,
    so a failed submission can be retried on the next cycle.

    State lives in memory. When ``state_file`` is given, it is loaded on
    construction and rewritten after every recorded action.
    """

    def __init__(
        self,
        buy_cooldown: timedelta = timedelta(minutes=10),
        sell_cooldown: timedelta = timedelta(minutes=5),
        state_file: Path | None = None,
    ) -> None:
        self._windows = {
            ActionKind.BUY: buy_cooldown,
            ActionKind.SELL: sell_cooldown,
        }
        self._last_action: dict[tuple[str, ActionKind], datetime] = {}
        self._state_file = state_file
        if state_file is not None:
            self._load(state_file)

    def window(self, kind: ActionKind) -> timedelta:
        return self._windows[kind]

    def last_action(self, agent_id: str, kind: ActionKind) -> datetime | None:
        return self._last_action.get((agent_id, kind))

    def should_throttle(self, agent_id: str, kind: ActionKind, now: datetime) -> bool:
        """Return True while the cooldown window for this agent/kind is still open."""
        last = self._last_action.get((agent_id, kind))
        if last is None:
            return False
        return now - last < self._windows[kind]

    def remaining(self, agent_id: str, kind: ActionKind, now: datetime) -> float:
        """Seconds left before the agent may act again (0 when not throttled)."""
        last = self._last_action.get((agent_id, kind))
        if last is None:
            return 0.0
        left = (last + self._windows[kind] - now).total_seconds()
        return max(left, 0.0)

    def record_action(self, agent_id: str, kind: ActionKind, now: datetime) -> None:
        """Start the cooldown window. Call only after a successful submission."""
        self._last_action[(agent_id, kind)] = now
        if self._state_file is not None:
            self._save(self._state_file)

    def clear(self, agent_id: str | None = None) -> None:
        if agent_id is None:
            self._last_action.clear()
        else:
            for key in [k for k in self._last_action if k[0] == agent_id]:
                del self._last_action[key]

    def to_dict(self) -> dict[str, dict[str, str]]:
        data: dict[str, dict[str, str]] = {}
        for (agent_id, kind), at in self._last_action.items():
            data.setdefault(agent_id, {})[kind.value] = at.isoformat()
        return data

    def _load(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            for agent_id, kinds in raw.items():
                for kind_value, stamp in kinds.items():
                    at = datetime.fromisoformat(stamp)
                    if at.tzinfo is None:
                        at = at.replace(tzinfo=timezone.utc)
                    self._last_action[(agent_id, ActionKind(kind_value))] = at
            logger.info(
                f"Loaded {len(self._last_action)} cooldown entries from {path}"
            )
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable cooldown file {path}: {e}")
            self._last_action.clear()

    def _save(self, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to persist cooldowns to {path}: {e}")
