# genroute/state/base.py
"""
Abstract interface that every key-value store must implement.

The store backs two pieces of router state:
  - the persisted exhaustion registry (one small JSON record)
  - the response cache (one JSON record per cached response)

Values are opaque strings; the callers own serialisation. Implementations
must raise StorageUnavailable on any I/O failure so the callers can degrade
gracefully instead of failing the request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractKeyValueStore(ABC):
    """Interface contract for all key-value store implementations."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """
        Store *value* under *key*, replacing any previous value.

        Parameters
        ----------
        ttl_seconds:
            Optional hint that the value may be discarded after this many
            seconds. Stores without native expiry may ignore it; callers
            never rely on it for correctness.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*. Deleting a missing key is not an error."""

    async def close(self) -> None:
        """Release any resources held by this store (e.g. Redis connections)."""
