"""Ordered fallback chains for unreliable market signals."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from hyperworld.core.errors import MarketDataUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """One named source in a fallback chain.

    ``fetch`` returns None (or raises) when the source has nothing usable.
    """

    name: str
    fetch: Callable[[], Awaitable[T | None]]


async def resolve_first(
    label: str,
    attempts: Sequence[Attempt[T]],
    is_valid: Callable[[T], bool] = lambda _: True,
) -> tuple[str, T]:
    """Try each source in order and return the first valid result.

    Every attempt is isolated: an exception or an invalid value is logged
    and the next source is tried.

    Returns:
        (source name, value) of the winning attempt

    Raises:
        MarketDataUnavailable: if every source failed
    """
    tried: list[str] = []
    for attempt in attempts:
        tried.append(attempt.name)
        try:
            value = await attempt.fetch()
        except Exception as e:
            logger.warning(f"[{label}] {attempt.name} failed: {e}")
            continue
        if value is None:
            logger.info(f"[{label}] {attempt.name} returned no data")
            continue
        if not is_valid(value):
            logger.warning(f"[{label}] {attempt.name} returned invalid value: {value!r}")
            continue
        logger.debug(f"[{label}] resolved from {attempt.name}: {value!r}")
        return attempt.name, value
    raise MarketDataUnavailable(label, tried)


async def resolve_or_default(
    label: str,
    attempts: Sequence[Attempt[T]],
    default: T,
    is_valid: Callable[[T], bool] = lambda _: True,
) -> tuple[str, T]:
    """Like ``resolve_first`` but degrade to ``default`` instead of raising."""
    try:
        return await resolve_first(label, attempts, is_valid)
    except MarketDataUnavailable as e:
        logger.warning(f"[{label}] all sources failed ({', '.join(e.attempts)}), using {default!r}")
        return "default", default
