# genroute/engine/classifier.py
"""
Failure classification for upstream errors.

The router only needs to know which of three buckets an error falls in:

  RATE_LIMITED → remember the tier as exhausted and cascade
  UNAVAILABLE  → cascade for this call only
  OTHER        → propagate immediately; retrying a malformed request would
                 just burn budget on every tier

Typed exceptions raised at the upstream boundary are checked first. For
errors coming from code that does not use genroute's exception types,
the status code (``status_code`` / ``status`` attributes, or an httpx
response) and an optional ``kind`` attribute are consulted.
"""

from __future__ import annotations

import asyncio
from enum import Enum

import httpx

from ..exceptions import RateLimited, TierUnavailable

_RATE_LIMIT_STATUS = 429
_UNAVAILABLE_STATUS = 503

_RATE_LIMIT_KINDS = frozenset({"rate_limited", "rate_limit", "resource_exhausted"})
_UNAVAILABLE_KINDS = frozenset({"unavailable", "timeout"})


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    OTHER = "other"


def _status_of(exc: BaseException) -> int | None:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def classify(exc: BaseException) -> FailureKind:
    """Map an exception raised by an upstream call to a FailureKind."""
    if isinstance(exc, RateLimited):
        return FailureKind.RATE_LIMITED
    if isinstance(exc, TierUnavailable):
        return FailureKind.UNAVAILABLE
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return FailureKind.UNAVAILABLE

    kind = getattr(exc, "kind", None)
    if isinstance(kind, str):
        normalised = kind.lower()
        if normalised in _RATE_LIMIT_KINDS:
            return FailureKind.RATE_LIMITED
        if normalised in _UNAVAILABLE_KINDS:
            return FailureKind.UNAVAILABLE

    status = _status_of(exc)
    if status == _RATE_LIMIT_STATUS:
        return FailureKind.RATE_LIMITED
    if status == _UNAVAILABLE_STATUS:
        return FailureKind.UNAVAILABLE
    return FailureKind.OTHER
