# tests/conftest.py
"""
Shared pytest fixtures for genroute tests.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque

import pytest
import pytest_asyncio

from genroute.config import CacheConfig, RouterConfig
from genroute.engine.exhaustion import ExhaustionRegistry
from genroute.models import TierConfig
from genroute.providers.base import BaseUpstream
from genroute.state.memory import InMemoryStore


class FakeClock:
    """Manually advanced clock for TTL and calendar-day tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream(BaseUpstream):
    """
    Scripted upstream for testing.

    ``script[tier_id]`` is a queue of outcomes consumed one per call: an
    exception instance is raised, anything else is returned. Once a tier's
    script is empty it answers ``"reply from <tier_id>"``.
    """

    def __init__(self, script: dict | None = None, delay: float = 0.0) -> None:
        self.script = defaultdict(deque)
        for tier_id, outcomes in (script or {}).items():
            self.script[tier_id].extend(outcomes)
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def generate(self, tier: TierConfig, content: str) -> str:
        self.calls.append((tier.id, content))
        if self.delay:
            await asyncio.sleep(self.delay)
        outcomes = self.script[tier.id]
        if outcomes:
            outcome = outcomes.popleft()
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return f"reply from {tier.id}"

    async def close(self) -> None:
        self.closed = True

    @property
    def tiers_called(self) -> list[str]:
        return [tier_id for tier_id, _ in self.calls]


def make_tiers(*specs: tuple[str, int]) -> list[TierConfig]:
    """Build tiers from (id, rpm) pairs, priority following argument order."""
    return [TierConfig(id=tier_id, rpm_limit=rpm, priority=i) for i, (tier_id, rpm) in enumerate(specs)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_tiers():
    # 6000 RPM ≈ 11ms spacing, so tests do not wait long.
    return make_tiers(("alpha", 6000), ("beta", 6000), ("gamma", 6000))


@pytest.fixture
def router_config(fast_tiers):
    return RouterConfig(tiers=fast_tiers, cache=CacheConfig(ttl_seconds=3600), spill_over=False)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest_asyncio.fixture
async def registry():
    return ExhaustionRegistry()
