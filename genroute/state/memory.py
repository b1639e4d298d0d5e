# genroute/state/memory.py
"""
In-process, in-memory key-value store.

Uses asyncio.Lock for safe concurrent access within a single event loop.
All state is lost when the process exits — appropriate for tests and for
deployments that do not need exhaustion state to survive a restart.

Values carrying a TTL hint are dropped on read once expired.
"""

from __future__ import annotations

import asyncio
import time

from .base import AbstractKeyValueStore


class InMemoryStore(AbstractKeyValueStore):
    """Dict-backed key-value store (default, zero deps)."""

    def __init__(self) -> None:
        # key → (value, expiry_timestamp or None)
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        now = time.time()
        async with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expiry = entry
            if expiry is not None and now > expiry:
                del self._data[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expiry = time.time() + ttl_seconds if ttl_seconds else None
        async with self._lock:
            self._data[key] = (value, expiry)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
