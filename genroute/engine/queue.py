# genroute/engine/queue.py
"""
Per-tier serial execution queue.

Every tier owns exactly one ThrottledQueue. Tasks submitted to it run one
at a time, in submission order, and a task may not *start* until the
tier's minimum interval has elapsed since the previous task started. This
bounds throughput to the tier's RPM budget no matter how many callers
submit concurrently.

Back-pressure is applied purely by delaying start time. Nothing is ever
rejected or dropped, and a failing task does not affect the tasks queued
behind it.

Ordering relies on asyncio.Lock handing the lock to waiters in the order
they started waiting, which makes the lock itself the FIFO of pending
tasks.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..constants import SAFETY_MARGIN

logger = logging.getLogger(__name__)

T = TypeVar("T")


def min_interval_for(rpm_limit: int, safety_margin: float = SAFETY_MARGIN) -> float:
    """
    Return the minimum spacing, in seconds, between task starts for a tier.

    Computed as ``ceil(60000 / rpm * safety_margin)`` milliseconds, so a
    15 RPM tier with the default margin is spaced 4400ms apart.
    """
    if rpm_limit <= 0:
        raise ValueError(f"rpm_limit must be positive, got {rpm_limit}")
    # 6000 * 1.1 is 6600.000000000001 in binary floating point.
    return math.ceil(round(60_000 / rpm_limit * safety_margin, 6)) / 1000


class ThrottledQueue:
    """
    Serial, spacing-enforcing queue for one tier.

    Parameters
    ----------
    name:
        Tier identifier, used in log messages.
    min_interval:
        Minimum seconds between consecutive task starts.
    clock:
        Monotonic time source. Injectable for tests.
    """

    def __init__(
        self,
        name: str,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.min_interval = min_interval
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_start: float | None = None
        self._pending = 0

    @property
    def pending(self) -> int:
        """Tasks submitted and not yet finished (waiting or running)."""
        return self._pending

    @property
    def last_start(self) -> float | None:
        return self._last_start

    def delay(self) -> float:
        """Seconds until the spacing rule allows the next start (0 if allowed now)."""
        if self._last_start is None:
            return 0.0
        return max(0.0, self._last_start + self.min_interval - self._clock())

    def is_ready(self) -> bool:
        """True if a task submitted now would start immediately."""
        return self._pending == 0 and self.delay() == 0.0

    async def submit(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Run *task* once every earlier task has finished and the spacing
        rule allows it. Returns (or raises) whatever the task does.
        """
        # Counted before the first suspension point so routing decisions
        # made in the same tick see this queue as busy.
        self._pending += 1
        try:
            async with self._lock:
                wait = self.delay()
                if wait > 0:
                    logger.debug("queue %s: waiting %.3fs for spacing", self.name, wait)
                # The event loop may wake a timer marginally early.
                while wait > 0:
                    await asyncio.sleep(wait)
                    wait = self.delay()
                self._last_start = self._clock()
                return await task()
        finally:
            self._pending -= 1

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"{self.__class__.__name__}("
            f"name={self.name!r}, min_interval={self.min_interval}, pending={self._pending})"
        )
