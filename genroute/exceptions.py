# genroute/exceptions.py
"""
Custom exceptions for genroute.

All public exceptions inherit from GenRouteError so callers can catch
the whole family with a single except clause if preferred.

Upstream failures are split into three classes that the router treats
differently:

  RateLimited     — the tier's budget is spent. The router remembers the
                    tier as exhausted and cascades.
  TierUnavailable — transient fault or timeout. The router cascades for
                    this call only.
  UpstreamError   — anything else (malformed request, auth failure, ...).
                    Propagated immediately, never retried.
"""

from __future__ import annotations


class GenRouteError(Exception):
    """Base exception for all genroute errors."""


class NoTiersConfigured(GenRouteError):
    """Raised when a router is built without any enabled tier."""


class UpstreamError(GenRouteError):
    """
    A failed upstream call.

    Attributes
    ----------
    status_code:
        HTTP status returned by the upstream, if any.
    kind:
        Optional machine-readable signal, e.g. ``"rate_limited"`` or
        ``"unavailable"``.
    tier_id:
        Tier the call was bound to, if known.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        kind: str | None = None,
        tier_id: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.kind = kind
        self.tier_id = tier_id
        super().__init__(message)


class RateLimited(UpstreamError):
    """The tier rejected the call because its request budget is spent (HTTP 429)."""

    def __init__(self, message: str, status_code: int | None = 429, tier_id: str | None = None) -> None:
        super().__init__(message, status_code=status_code, kind="rate_limited", tier_id=tier_id)


class TierUnavailable(UpstreamError):
    """The tier is temporarily unable to serve (HTTP 503 or call timeout)."""

    def __init__(self, message: str, status_code: int | None = 503, tier_id: str | None = None) -> None:
        super().__init__(message, status_code=status_code, kind="unavailable", tier_id=tier_id)


class AllBackendsExhausted(GenRouteError):
    """
    Raised when every tier has been tried within the attempt bound and none
    succeeded. The condition is expected to clear on its own (next quota
    reset, or sooner via a soft reset), so callers should present it as
    "temporarily saturated, retry later".

    Attributes
    ----------
    attempts:
        Number of dispatch attempts made.
    errors:
        Exceptions raised by each attempt, in order.
    """

    def __init__(self, message: str, attempts: int, errors: list[Exception]) -> None:
        self.attempts = attempts
        self.errors = errors
        super().__init__(message)

    def __str__(self) -> str:  # pragma: no cover
        base = super().__str__()
        if not self.errors:
            return base
        details = "; ".join(f"[{i+1}] {type(e).__name__}: {e}" for i, e in enumerate(self.errors))
        return f"{base} | Errors: {details}"


class StorageUnavailable(GenRouteError):
    """
    Raised by key-value stores when a read or write fails.

    Never surfaced to callers: the response cache and the exhaustion
    registry catch it, log it and carry on without persistence.
    """
