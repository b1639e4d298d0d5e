# genroute/router.py
"""
BackendRouter — tier selection, cascading failover and exhaustion bookkeeping.

Routing pipeline for one execute() call:
  1. If a preferred tier is given and not exhausted, submit the call to
     that tier's queue. A rate-limit failure marks the tier exhausted; an
     unavailable failure does not. Either way, fall through to rotation.
  2. Rotation, bounded to 2 × number_of_tiers attempts:
       a. skip every exhausted tier;
       b. past the end of the list: soft reset (clear the registry, go back
          to the first tier) so a fully exhausted registry can never lock
          the process out;
       c. submit to the selected tier's queue; on rate limit mark and move
          on, on unavailable move on for this call only.
  3. Attempt bound reached → AllBackendsExhausted.

Any failure that is neither a rate limit nor an unavailability propagates
immediately.

Spill-over
----------
If the tier at the cursor is busy (a call in flight, or its spacing
interval not yet elapsed) and a later, non-exhausted tier is idle right
now, the call is sent to the idle tier instead of queueing. When no later
tier is idle, the call waits its turn on the cursor tier.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .constants import CALL_TIMEOUT_SECONDS, SAFETY_MARGIN
from .engine.classifier import FailureKind, classify
from .engine.exhaustion import ExhaustionRegistry
from .engine.queue import ThrottledQueue, min_interval_for
from .exceptions import AllBackendsExhausted, NoTiersConfigured, TierUnavailable
from .models import TierConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")
TaskFactory = Callable[[TierConfig], Awaitable[T]]


class BackendRouter:
    """
    Cascading, rate-limit-aware dispatcher over a priority-ordered tier list.

    Parameters
    ----------
    tiers:
        Tier configurations. Disabled tiers are ignored; the rest are tried
        in ascending priority (declaration order breaks ties).
    registry:
        Exhaustion registry. Defaults to an in-memory one.
    safety_margin:
        Multiplier applied to each tier's request spacing.
    call_timeout_seconds:
        Bound on one upstream call. Expiry is treated as unavailable.
    spill_over:
        Send calls to a later idle tier rather than wait on a busy one.
    clock:
        Monotonic clock used by the queues. Injectable for tests.
    """

    def __init__(
        self,
        tiers: list[TierConfig],
        registry: ExhaustionRegistry | None = None,
        *,
        safety_margin: float = SAFETY_MARGIN,
        call_timeout_seconds: float = CALL_TIMEOUT_SECONDS,
        spill_over: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        enabled = [t for t in tiers if t.enabled]
        if not enabled:
            raise NoTiersConfigured("No enabled tiers. Configure at least one tier.")

        # sorted() is stable, so equal priorities keep declaration order.
        self._tiers: list[TierConfig] = sorted(enabled, key=lambda t: t.priority)
        self._by_id = {t.id: t for t in self._tiers}
        self._queues = {
            t.id: ThrottledQueue(t.id, min_interval_for(t.rpm_limit, safety_margin), clock=clock)
            for t in self._tiers
        }
        self._registry = registry or ExhaustionRegistry()
        self._timeout = call_timeout_seconds
        self._spill_over = spill_over
        self._cursor = 0
        self._started = False
        self._start_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def tiers(self) -> tuple[TierConfig, ...]:
        """Enabled tiers in routing order."""
        return tuple(self._tiers)

    @property
    def registry(self) -> ExhaustionRegistry:
        return self._registry

    @property
    def cursor(self) -> int:
        """Index of the first tier rotation will consider."""
        return self._cursor

    def get_tier(self, tier_id: str) -> TierConfig | None:
        return self._by_id.get(tier_id)

    def queue(self, tier_id: str) -> ThrottledQueue:
        return self._queues[tier_id]

    def status(self) -> dict[str, dict[str, Any]]:
        """Per-tier routing state: spacing, exhaustion and queue occupancy."""
        result: dict[str, dict[str, Any]] = {}
        for tier in self._tiers:
            queue = self._queues[tier.id]
            result[tier.id] = {
                "name": tier.display_name,
                "priority": tier.priority,
                "rpm_limit": tier.rpm_limit,
                "min_interval_ms": round(queue.min_interval * 1000),
                "exhausted": self._registry.is_exhausted(tier.id),
                "pending": queue.pending,
                "ready": queue.is_ready(),
            }
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load the persisted exhaustion registry. Runs once; later calls are no-ops."""
        if self._started:
            return
        async with self._start_lock:
            if self._started:
                return
            await self._registry.load()
            self._advance_cursor()
            self._started = True

    async def reset(self) -> None:
        """Forget all exhausted tiers and restart rotation from the first tier."""
        await self.start()
        await self._registry.clear()
        self._cursor = 0

    # ------------------------------------------------------------------
    # Cursor helpers
    # ------------------------------------------------------------------

    def _advance_cursor(self) -> None:
        """Move the cursor past exhausted tiers; rewind it if earlier tiers became eligible."""
        if any(not self._registry.is_exhausted(t.id) for t in self._tiers[: self._cursor]):
            self._cursor = 0
        while self._cursor < len(self._tiers) and self._registry.is_exhausted(self._tiers[self._cursor].id):
            self._cursor += 1

    def _next_eligible(self, position: int) -> int:
        while position < len(self._tiers) and self._registry.is_exhausted(self._tiers[position].id):
            position += 1
        return position

    def _idle_tier_after(self, position: int, excluded: set[str]) -> int | None:
        for index in range(position + 1, len(self._tiers)):
            tier = self._tiers[index]
            if tier.id in excluded or self._registry.is_exhausted(tier.id):
                continue
            if self._queues[tier.id].is_ready():
                return index
        return None

    async def _soft_reset(self) -> None:
        logger.warning("All tiers marked exhausted. Resetting to primary tier for retry.")
        await self._registry.clear()
        self._cursor = 0

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, tier: TierConfig, task_factory: TaskFactory[T]) -> T:
        async def _call() -> T:
            try:
                return await asyncio.wait_for(task_factory(tier), timeout=self._timeout)
            except asyncio.TimeoutError as exc:
                raise TierUnavailable(
                    f"{tier.id}: call timed out after {self._timeout}s",
                    status_code=None,
                    tier_id=tier.id,
                ) from exc

        logger.debug("Dispatching to tier %s", tier.id)
        return await self._queues[tier.id].submit(_call)

    async def _absorb_failure(self, tier: TierConfig, exc: Exception) -> bool:
        """
        Record a failed attempt. Returns True if routing should move on to
        another tier, False if the error must propagate.
        """
        kind = classify(exc)
        if kind is FailureKind.RATE_LIMITED:
            await self._registry.mark(tier.id)
            self._advance_cursor()
            return True
        if kind is FailureKind.UNAVAILABLE:
            logger.warning("Tier %s unavailable (%s). Trying next tier.", tier.id, exc)
            return True
        return False

    async def execute(self, task_factory: TaskFactory[T], preferred_tier: str | None = None) -> T:
        """
        Run ``task_factory(tier)`` on the best available tier.

        Parameters
        ----------
        task_factory:
            Called with the chosen TierConfig; must return an awaitable
            performing the actual upstream call.
        preferred_tier:
            Tier id to try first. Unknown or exhausted ids fall back to
            rotation.

        Raises
        ------
        AllBackendsExhausted
            No tier succeeded within the attempt bound.
        Exception
            Any failure that is neither a rate limit nor an unavailability,
            unchanged.
        """
        await self.start()
        if await self._registry.expire_if_stale():
            self._cursor = 0

        errors: list[Exception] = []
        failed: set[str] = set()

        if preferred_tier is not None:
            tier = self._by_id.get(preferred_tier)
            if tier is None:
                logger.warning("Unknown preferred tier %s. Using rotation.", preferred_tier)
            elif self._registry.is_exhausted(tier.id):
                logger.warning("Preferred tier %s is exhausted. Falling back to rotation.", tier.id)
            else:
                try:
                    return await self._dispatch(tier, task_factory)
                except Exception as exc:
                    if not await self._absorb_failure(tier, exc):
                        raise
                    errors.append(exc)
                    failed.add(tier.id)

        attempts = 0
        max_attempts = 2 * len(self._tiers)
        self._advance_cursor()
        position = self._cursor

        while attempts < max_attempts:
            position = self._next_eligible(max(position, self._cursor))
            if position >= len(self._tiers):
                if len(self._registry):
                    await self._soft_reset()
                else:
                    logger.warning("Every tier failed for this request. Wrapping to primary tier.")
                position = 0
                attempts += 1
                continue

            index = position
            if self._spill_over and not self._queues[self._tiers[position].id].is_ready():
                idle = self._idle_tier_after(position, failed)
                if idle is not None:
                    logger.debug(
                        "Tier %s busy, spilling over to %s",
                        self._tiers[position].id,
                        self._tiers[idle].id,
                    )
                    index = idle

            tier = self._tiers[index]
            attempts += 1
            try:
                return await self._dispatch(tier, task_factory)
            except Exception as exc:
                if not await self._absorb_failure(tier, exc):
                    raise
                errors.append(exc)
                failed.add(tier.id)
                if index == position:
                    position += 1

        raise AllBackendsExhausted(
            "All tiers are currently exhausted or rate-limited. Please try again later.",
            attempts=attempts,
            errors=errors,
        )
