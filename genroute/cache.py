# genroute/cache.py
"""
Content-addressed response cache.

Identical requests (same preferred tier hint, same content) made within
the TTL window are served from here without touching the upstream or
consuming any queue slot.

Caching is an optimisation, never a correctness requirement:
  - a read that fails, or finds a corrupt entry, is a miss
  - a write that fails is logged and dropped

Entries are never mutated; an entry past its TTL is evicted lazily when
it is next read.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Callable

from pydantic import ValidationError

from .constants import CACHE_KEY_TMPL, CACHE_TTL_SECONDS
from .exceptions import StorageUnavailable
from .models import CacheEntry
from .state.base import AbstractKeyValueStore

logger = logging.getLogger(__name__)


def make_cache_key(content: str, preferred_tier: str | None = None) -> str:
    """
    Return a stable key for a request.

    The key is the SHA-256 of the canonical JSON encoding of the tier hint
    and the exact content, so it does not depend on argument order or on
    the process it was computed in.
    """
    payload = {"tier": preferred_tier or "any", "content": content}
    canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ResponseCache:
    """
    TTL cache of raw response text over any key-value store.

    Parameters
    ----------
    store:
        Backing key-value store.
    ttl_seconds:
        Age after which an entry is treated as absent.
    clock:
        Wall-clock source returning epoch seconds. Injectable for tests.
    """

    def __init__(
        self,
        store: AbstractKeyValueStore,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock

    @staticmethod
    def _storage_key(key: str) -> str:
        return CACHE_KEY_TMPL.format(key=key)

    async def get(self, key: str) -> str | None:
        """Return the cached text for *key*, or None on miss, expiry or error."""
        try:
            raw = await self._store.get(self._storage_key(key))
        except StorageUnavailable as exc:
            logger.warning("Cache read failed, treating as miss: %s", exc)
            return None
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError:
            logger.warning("Evicting corrupt cache entry %s", key)
            await self._evict(key)
            return None

        if self._clock() - entry.timestamp > self._ttl:
            await self._evict(key)
            return None
        return entry.value

    async def put(self, key: str, value: str) -> None:
        """Store *value* under *key*. Failures are logged, never raised."""
        entry = CacheEntry(value=value, timestamp=self._clock())
        try:
            await self._store.set(self._storage_key(key), entry.model_dump_json(), ttl_seconds=self._ttl)
        except StorageUnavailable as exc:
            logger.warning("Failed to save to cache (quota exceeded?): %s", exc)

    async def _evict(self, key: str) -> None:
        try:
            await self._store.delete(self._storage_key(key))
        except StorageUnavailable as exc:
            logger.debug("Could not evict cache entry %s: %s", key, exc)
