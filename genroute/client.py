# genroute/client.py
"""
GenerationClient — the single entry point callers use.

Request pipeline:
  1. Compute the cache key; on a hit, return the cached text (no upstream
     call, no queue slot consumed).
  2. Otherwise ask the BackendRouter to run the upstream call on the best
     tier, cascading on rate limits and unavailability.
  3. Cache the text, fire the on_record callback with a UsageRecord, and
     return the text.
  4. On terminal failure, fire an error record and re-raise.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from zoneinfo import ZoneInfo

from .cache import ResponseCache, make_cache_key
from .config import RouterConfig
from .constants import DEFAULT_FEATURE
from .engine.estimator import estimate_cost, estimate_tokens
from .engine.exhaustion import ExhaustionRegistry, RegistryStore
from .engine.extractor import extract_json
from .engine.stats import UsageStats
from .models import TierConfig, UsageRecord
from .monitor import HTTPSink
from .providers.base import BaseUpstream
from .providers.gemini import GeminiUpstream
from .router import BackendRouter
from .state.base import AbstractKeyValueStore
from .state.file import FileStore
from .state.memory import InMemoryStore

logger = logging.getLogger(__name__)


def _build_store(config: RouterConfig) -> AbstractKeyValueStore:
    if config.redis_url:
        from .state.redis import RedisStore

        return RedisStore(config.redis_url)
    if config.state_dir:
        return FileStore(config.state_dir)
    return InMemoryStore()


class GenerationClient:
    """
    Cached, rate-limit-aware text generation over a set of upstream tiers.

    Parameters
    ----------
    config:
        Full configuration. Use one of the factory class methods
        (from_dict, from_yaml, from_env) for convenient construction.
    upstream:
        Upstream adapter (BYOC). Defaults to GeminiUpstream built from
        ``config.api_key`` and ``config.base_url``.
    store:
        Key-value store for the exhaustion registry and the response cache.
        Defaults to Redis, the file store or memory, depending on config.
    """

    def __init__(
        self,
        config: RouterConfig | None = None,
        upstream: BaseUpstream | None = None,
        store: AbstractKeyValueStore | None = None,
    ) -> None:
        self._config = config or RouterConfig()
        self._upstream = upstream or GeminiUpstream(
            api_key=self._config.api_key,
            base_url=self._config.base_url,
            timeout=self._config.call_timeout_seconds,
        )
        self._store = store or _build_store(self._config)

        tz = ZoneInfo(self._config.quota_reset_tz) if self._config.quota_reset_tz else None
        self._registry = ExhaustionRegistry(RegistryStore(self._store), tz=tz)
        self._router = BackendRouter(
            self._config.tiers,
            self._registry,
            safety_margin=self._config.safety_margin,
            call_timeout_seconds=self._config.call_timeout_seconds,
            spill_over=self._config.spill_over,
        )
        self._cache = ResponseCache(self._store, ttl_seconds=self._config.cache.ttl_seconds)
        self._stats = UsageStats()

        self._sinks: list[Any] = []
        if self._config.on_record is not None:
            self._sinks.append(self._config.on_record)
        if self._config.monitor_url:
            self._sinks.append(HTTPSink(self._config.monitor_url))

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> "GenerationClient":
        """Construct from a plain Python dictionary."""
        upstream = kwargs.pop("upstream", None)
        store = kwargs.pop("store", None)
        return cls(RouterConfig.from_dict(data, **kwargs), upstream=upstream, store=store)

    @classmethod
    def from_yaml(cls, path: str, **kwargs: Any) -> "GenerationClient":
        """Construct from a YAML config file."""
        upstream = kwargs.pop("upstream", None)
        store = kwargs.pop("store", None)
        return cls(RouterConfig.from_yaml(path, **kwargs), upstream=upstream, store=store)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "GenerationClient":
        """Construct from environment variables."""
        upstream = kwargs.pop("upstream", None)
        store = kwargs.pop("store", None)
        return cls(RouterConfig.from_env(**kwargs), upstream=upstream, store=store)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def router(self) -> BackendRouter:
        return self._router

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    async def _emit(self, record: UsageRecord) -> None:
        for sink in self._sinks:
            try:
                await sink(record)
            except Exception as exc:
                logger.warning("Failed to deliver usage record to %r: %s", sink, exc)

    def _build_record(
        self,
        *,
        feature: str,
        tier: TierConfig | None,
        content: str,
        text: str,
        latency_ms: float,
        error: Exception | None = None,
    ) -> UsageRecord:
        input_tokens = estimate_tokens(content)
        output_tokens = estimate_tokens(text)
        input_cost, output_cost, total_cost = estimate_cost(tier, input_tokens, output_tokens)
        return UsageRecord(
            feature=feature,
            tier_id=tier.id if tier else None,
            status="error" if error else "success",
            input_chars=len(content),
            output_chars=len(text),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            input_cost_usd=input_cost,
            output_cost_usd=output_cost,
            total_cost_usd=total_cost,
            latency_ms=latency_ms,
            error_message=str(error) if error else None,
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def request(
        self,
        content: str,
        preferred_tier: str | None = None,
        *,
        skip_cache: bool = False,
        feature: str = DEFAULT_FEATURE,
    ) -> str:
        """
        Generate text for *content*.

        Parameters
        ----------
        content:
            The prompt text, sent verbatim.
        preferred_tier:
            Tier id to try first. Fallback still applies if it fails.
        skip_cache:
            Bypass the cache for this call only ("force refresh"). The
            existing entry is neither read nor replaced.
        feature:
            Label carried on the usage record.

        Returns
        -------
        str
            The generated text.

        Raises
        ------
        AllBackendsExhausted
            Every tier was tried and none succeeded; retry later.
        UpstreamError
            A non-retryable upstream failure (e.g. malformed request).
        """
        if not content:
            return ""

        use_cache = self._config.cache.enabled and not skip_cache
        cache_key = make_cache_key(content, preferred_tier)

        if use_cache:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                logger.info("Serving %s from cache", feature)
                self._stats.record_cache_hit()
                await self._emit(
                    UsageRecord(
                        feature=feature,
                        tier_id=preferred_tier,
                        status="cached",
                        input_chars=len(content),
                        output_chars=len(cached),
                    )
                )
                return cached
        elif skip_cache:
            logger.info("Bypassing cache for %s (force refresh)", feature)

        used_tier: TierConfig | None = None
        latency_ms = 0.0

        async def _call(tier: TierConfig) -> str:
            nonlocal used_tier, latency_ms
            used_tier = tier
            logger.debug("Calling upstream with tier %s", tier.display_name)
            t0 = time.monotonic()
            try:
                return await self._upstream.generate(tier, content)
            except Exception:
                self._stats.record_failure(tier.id)
                raise
            finally:
                latency_ms = (time.monotonic() - t0) * 1000

        try:
            text = await self._router.execute(_call, preferred_tier)
        except Exception as exc:
            logger.error("Generation failed for %s: %s", feature, exc)
            await self._emit(
                self._build_record(
                    feature=feature,
                    tier=used_tier,
                    content=content,
                    text="",
                    latency_ms=latency_ms,
                    error=exc,
                )
            )
            raise

        if use_cache and text:
            await self._cache.put(cache_key, text)

        record = self._build_record(
            feature=feature,
            tier=used_tier,
            content=content,
            text=text,
            latency_ms=latency_ms,
        )
        if used_tier is not None:
            self._stats.record_success(used_tier.id, latency_ms, record.total_cost_usd)
        await self._emit(record)
        return text

    async def request_json(
        self,
        content: str,
        preferred_tier: str | None = None,
        *,
        skip_cache: bool = False,
        feature: str = DEFAULT_FEATURE,
    ) -> Any | None:
        """request() followed by extract_json(). Returns None if no JSON was found."""
        text = await self.request(content, preferred_tier, skip_cache=skip_cache, feature=feature)
        return extract_json(text)

    async def status(self) -> dict[str, Any]:
        """
        Return the current state of every tier.

        Includes spacing, exhaustion, queue occupancy, request and failure
        counts, average latency and accumulated estimated cost.
        """
        await self._router.start()
        result = self._router.status()
        for tier_id, info in result.items():
            stats = self._stats.get(tier_id)
            info["requests"] = stats.requests
            info["failures"] = stats.failures
            info["cost_usd"] = round(stats.cost_usd, 6)
            info["avg_latency_ms"] = (
                round(stats.latency_ema_ms, 1) if stats.latency_ema_ms is not None else None
            )
        return result

    @property
    def cache_hits(self) -> int:
        return self._stats.cache_hits

    async def reset_exhaustion(self) -> None:
        """Clear the exhaustion registry (persisted) and restart rotation."""
        await self._router.reset()

    async def close(self) -> None:
        """Release all resources (HTTP clients, Redis connections, etc.)."""
        await self._upstream.close()
        for sink in self._sinks:
            close = getattr(sink, "close", None)
            if close is not None:
                await close()
        await self._store.close()

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
