# tests/test_exhaustion.py
"""
Tests for the exhaustion registry and its persistence.

Verifies:
  - Calendar-day comparison, local and in an explicit timezone.
  - Same-day snapshots are restored; earlier-day snapshots are discarded.
  - Every mutation is persisted immediately.
  - Missing, corrupt or unreadable state starts empty.
  - A long-running process crossing midnight drops the set.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from conftest import FakeClock
from genroute.constants import EXHAUSTION_KEY
from genroute.engine.exhaustion import ExhaustionRegistry, RegistryStore, same_calendar_day
from genroute.exceptions import StorageUnavailable
from genroute.models import ExhaustionSnapshot
from genroute.state.memory import InMemoryStore

UTC = timezone.utc


def _ts(*args: int) -> float:
    return datetime(*args, tzinfo=UTC).timestamp()


class TestSameCalendarDay:
    def test_same_day(self):
        assert same_calendar_day(_ts(2024, 5, 1, 0, 1), _ts(2024, 5, 1, 23, 59), UTC)

    def test_across_midnight(self):
        assert not same_calendar_day(_ts(2024, 5, 1, 23, 59), _ts(2024, 5, 2, 0, 1), UTC)

    def test_timezone_shifts_the_boundary(self):
        # 23:30 UTC and 00:30 UTC the next day are both 8 May in Los Angeles.
        la = ZoneInfo("America/Los_Angeles")
        a, b = _ts(2024, 5, 8, 23, 30), _ts(2024, 5, 9, 0, 30)
        assert not same_calendar_day(a, b, UTC)
        assert same_calendar_day(a, b, la)


@pytest.mark.asyncio
class TestRegistryStore:
    async def test_missing_snapshot_is_none(self):
        assert await RegistryStore(InMemoryStore()).load() is None

    async def test_round_trip(self):
        port = RegistryStore(InMemoryStore())
        await port.save(ExhaustionSnapshot(exhausted_tier_ids=["a"], saved_at=123.0))
        snapshot = await port.load()
        assert snapshot.exhausted_tier_ids == ["a"]
        assert snapshot.saved_at == 123.0

    async def test_corrupt_snapshot_is_none(self):
        store = InMemoryStore()
        await store.set(EXHAUSTION_KEY, "{not json")
        assert await RegistryStore(store).load() is None

    async def test_unreadable_store_is_none(self):
        store = AsyncMock()
        store.get.side_effect = StorageUnavailable("disk gone")
        assert await RegistryStore(store).load() is None


@pytest.mark.asyncio
class TestExhaustionRegistry:
    async def test_starts_empty(self, registry):
        await registry.load()
        assert len(registry) == 0
        assert not registry.is_exhausted("a")

    async def test_mark_persists_immediately(self, clock):
        store = InMemoryStore()
        registry = ExhaustionRegistry(RegistryStore(store), tz=UTC, clock=clock)
        await registry.mark("a")

        snapshot = ExhaustionSnapshot.model_validate_json(await store.get(EXHAUSTION_KEY))
        assert snapshot.exhausted_tier_ids == ["a"]
        assert snapshot.saved_at == clock.now

    async def test_same_day_state_is_restored(self, clock):
        store = InMemoryStore()
        first = ExhaustionRegistry(RegistryStore(store), tz=UTC, clock=clock)
        await first.mark("a")
        await first.mark("b")

        clock.advance(60)
        second = ExhaustionRegistry(RegistryStore(store), tz=UTC, clock=clock)
        await second.load()
        assert second.exhausted == frozenset({"a", "b"})

    async def test_prior_day_state_is_discarded(self):
        clock = FakeClock(_ts(2024, 5, 1, 12, 0))
        store = InMemoryStore()
        first = ExhaustionRegistry(RegistryStore(store), tz=UTC, clock=clock)
        await first.mark("a")

        clock.now = _ts(2024, 5, 2, 0, 5)
        second = ExhaustionRegistry(RegistryStore(store), tz=UTC, clock=clock)
        await second.load()
        assert len(second) == 0

    async def test_clear_persists_empty_set(self, clock):
        store = InMemoryStore()
        registry = ExhaustionRegistry(RegistryStore(store), tz=UTC, clock=clock)
        await registry.mark("a")
        await registry.clear()

        snapshot = ExhaustionSnapshot.model_validate_json(await store.get(EXHAUSTION_KEY))
        assert snapshot.exhausted_tier_ids == []
        assert "a" not in registry

    async def test_write_failure_keeps_in_memory_state(self):
        store = AsyncMock()
        store.set.side_effect = StorageUnavailable("read-only")
        registry = ExhaustionRegistry(RegistryStore(store))
        await registry.mark("a")
        assert registry.is_exhausted("a")

    async def test_expire_if_stale_after_midnight(self):
        clock = FakeClock(_ts(2024, 5, 1, 23, 50))
        registry = ExhaustionRegistry(tz=UTC, clock=clock)
        await registry.mark("a")

        assert await registry.expire_if_stale() is False
        clock.now = _ts(2024, 5, 2, 0, 10)
        assert await registry.expire_if_stale() is True
        assert len(registry) == 0

    async def test_expire_if_stale_noop_when_empty(self, registry):
        assert await registry.expire_if_stale() is False
