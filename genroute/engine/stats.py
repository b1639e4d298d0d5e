# genroute/engine/stats.py
"""
Per-tier running statistics reported by GenerationClient.status().

Maintains an in-process EMA (alpha=EMA_ALPHA) of observed upstream latency
together with simple request, failure and cost counters. Intentionally not
shared across instances, even when a Redis store is configured — it avoids
a write on every completed request.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..constants import EMA_ALPHA


@dataclass
class TierStats:
    """Counters for one tier."""

    requests: int = 0
    failures: int = 0
    cost_usd: float = 0.0
    latency_ema_ms: float | None = None


@dataclass
class UsageStats:
    """Tier id → TierStats, plus cache hit counting."""

    alpha: float = EMA_ALPHA
    cache_hits: int = 0
    tiers: dict[str, TierStats] = field(default_factory=dict)

    def _get(self, tier_id: str) -> TierStats:
        if tier_id not in self.tiers:
            self.tiers[tier_id] = TierStats()
        return self.tiers[tier_id]

    def record_success(self, tier_id: str, latency_ms: float, cost_usd: float) -> None:
        stats = self._get(tier_id)
        stats.requests += 1
        stats.cost_usd += cost_usd
        if stats.latency_ema_ms is None:
            stats.latency_ema_ms = latency_ms
        else:
            stats.latency_ema_ms = self.alpha * latency_ms + (1 - self.alpha) * stats.latency_ema_ms

    def record_failure(self, tier_id: str) -> None:
        stats = self._get(tier_id)
        stats.requests += 1
        stats.failures += 1

    def record_cache_hit(self) -> None:
        self.cache_hits += 1

    def get(self, tier_id: str) -> TierStats:
        """Return the stats for *tier_id* (zeroed if never used)."""
        return self.tiers.get(tier_id, TierStats())
