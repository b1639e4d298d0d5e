# genroute/engine/exhaustion.py
"""
Exhaustion registry — which tiers have spent today's quota.

Lifecycle
---------
1. ``load()`` once when the router starts. If the persisted snapshot was
   written on an earlier calendar day, it is discarded (the upstream quota
   has reset); otherwise the set is restored.
2. ``mark(tier_id)`` whenever a tier reports a hard rate-limit failure.
   The set is persisted immediately after every mutation.
3. ``clear()`` in bulk on a soft reset (every tier exhausted at once) or
   on operator request.
4. ``expire_if_stale()`` drops the set when a long-running process
   crosses a calendar-day boundary.

Readers always consult the live set; nothing caches a derived view, so no
locking is needed beyond treating "mutate then persist" as one step.

The calendar-day comparison is a pure function (``same_calendar_day``)
so it can be tested without any storage.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, tzinfo
from typing import Callable

from pydantic import ValidationError

from ..constants import EXHAUSTION_KEY
from ..exceptions import StorageUnavailable
from ..models import ExhaustionSnapshot
from ..state.base import AbstractKeyValueStore
from ..state.memory import InMemoryStore

logger = logging.getLogger(__name__)


def same_calendar_day(a: float, b: float, tz: tzinfo | None = None) -> bool:
    """
    Return True if epoch timestamps *a* and *b* fall on the same calendar
    day in *tz* (local time when *tz* is None).
    """
    return datetime.fromtimestamp(a, tz).date() == datetime.fromtimestamp(b, tz).date()


class RegistryStore:
    """
    Persistence port for the exhaustion registry.

    Stores one ExhaustionSnapshot as JSON under a single key of any
    key-value store.
    """

    def __init__(self, store: AbstractKeyValueStore, key: str = EXHAUSTION_KEY) -> None:
        self._store = store
        self._key = key

    async def load(self) -> ExhaustionSnapshot | None:
        """Return the persisted snapshot, or None if missing or unreadable."""
        try:
            raw = await self._store.get(self._key)
        except StorageUnavailable as exc:
            logger.warning("Could not read exhaustion state: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return ExhaustionSnapshot.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring corrupt exhaustion state under '%s'", self._key)
            return None

    async def save(self, snapshot: ExhaustionSnapshot) -> None:
        await self._store.set(self._key, snapshot.model_dump_json())


class ExhaustionRegistry:
    """
    Process-wide set of exhausted tier ids plus the time of the last write.

    Parameters
    ----------
    store:
        Persistence port. Defaults to an in-memory store (no persistence
        across restarts).
    tz:
        Timezone whose midnight resets the quota. Local time when None.
    clock:
        Wall-clock source returning epoch seconds. Injectable for tests.
    """

    def __init__(
        self,
        store: RegistryStore | None = None,
        tz: tzinfo | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store or RegistryStore(InMemoryStore())
        self._tz = tz
        self._clock = clock
        self._exhausted: set[str] = set()
        self._saved_at: float | None = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def exhausted(self) -> frozenset[str]:
        return frozenset(self._exhausted)

    @property
    def saved_at(self) -> float | None:
        return self._saved_at

    def is_exhausted(self, tier_id: str) -> bool:
        return tier_id in self._exhausted

    def __len__(self) -> int:
        return len(self._exhausted)

    def __contains__(self, tier_id: object) -> bool:
        return tier_id in self._exhausted

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Restore persisted state, discarding it if written on an earlier day."""
        snapshot = await self._store.load()
        if snapshot is None:
            return
        if not same_calendar_day(snapshot.saved_at, self._clock(), self._tz):
            logger.info("New day detected, resetting exhausted tiers %s", snapshot.exhausted_tier_ids)
            return
        self._exhausted = set(snapshot.exhausted_tier_ids)
        self._saved_at = snapshot.saved_at
        if self._exhausted:
            logger.info("Restored exhausted tiers: %s", sorted(self._exhausted))

    async def mark(self, tier_id: str) -> None:
        """Record *tier_id* as exhausted and persist."""
        logger.warning("Tier %s exhausted (rate limited)", tier_id)
        self._exhausted.add(tier_id)
        await self._persist()

    async def clear(self) -> None:
        """Forget every exhausted tier and persist."""
        self._exhausted.clear()
        await self._persist()

    async def expire_if_stale(self) -> bool:
        """
        Clear the set if it was last written on an earlier calendar day.

        Returns True if the set was cleared.
        """
        if not self._exhausted or self._saved_at is None:
            return False
        if same_calendar_day(self._saved_at, self._clock(), self._tz):
            return False
        logger.info("Calendar day changed, resetting exhausted tiers %s", sorted(self._exhausted))
        await self.clear()
        return True

    async def _persist(self) -> None:
        self._saved_at = self._clock()
        snapshot = ExhaustionSnapshot(
            exhausted_tier_ids=sorted(self._exhausted),
            saved_at=self._saved_at,
        )
        try:
            await self._store.save(snapshot)
        except StorageUnavailable as exc:
            logger.warning("Could not persist exhaustion state: %s", exc)
