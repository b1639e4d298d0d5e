# genroute/__init__.py
"""
genroute — Rate-limit-aware, cascading text generation across upstream tiers.

Public API surface:
  GenerationClient     — main class; call request() / request_json()
  BackendRouter        — tier selection and cascading failover
  RouterConfig         — top-level configuration model
  CacheConfig          — response cache tuning
  TierConfig           — one upstream tier (model, RPM budget, priority, pricing)
  UsageRecord          — record fired by the on_record callback
  HTTPSink / LoggingSink — ready-made on_record callbacks
  ResponseCache        — TTL response cache over a key-value store
  ExhaustionRegistry   — persisted set of tiers that spent today's quota
  ThrottledQueue       — per-tier serial queue with start spacing
  extract_json         — recover a JSON value from free-form text
  AllBackendsExhausted — raised when every tier failed; retry later
  RateLimited / TierUnavailable / UpstreamError — upstream failure classes
"""

from .cache import ResponseCache, make_cache_key
from .client import GenerationClient
from .config import CacheConfig, RouterConfig
from .engine.exhaustion import ExhaustionRegistry, RegistryStore
from .engine.extractor import extract_json
from .engine.queue import ThrottledQueue
from .exceptions import (
    AllBackendsExhausted,
    GenRouteError,
    NoTiersConfigured,
    RateLimited,
    StorageUnavailable,
    TierUnavailable,
    UpstreamError,
)
from .models import TierConfig, UsageRecord
from .monitor import HTTPSink, LoggingSink
from .router import BackendRouter

__all__ = [
    "GenerationClient",
    "BackendRouter",
    "RouterConfig",
    "CacheConfig",
    "TierConfig",
    "UsageRecord",
    "HTTPSink",
    "LoggingSink",
    "ResponseCache",
    "make_cache_key",
    "ExhaustionRegistry",
    "RegistryStore",
    "ThrottledQueue",
    "extract_json",
    "GenRouteError",
    "AllBackendsExhausted",
    "NoTiersConfigured",
    "RateLimited",
    "TierUnavailable",
    "UpstreamError",
    "StorageUnavailable",
]

__version__ = "0.1.0"
