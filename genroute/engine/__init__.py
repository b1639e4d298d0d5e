# genroute/engine/__init__.py
from .classifier import FailureKind, classify
from .estimator import estimate_cost, estimate_tokens
from .exhaustion import ExhaustionRegistry, RegistryStore, same_calendar_day
from .extractor import extract_json
from .queue import ThrottledQueue, min_interval_for
from .stats import TierStats, UsageStats

__all__ = [
    "FailureKind",
    "classify",
    "estimate_cost",
    "estimate_tokens",
    "ExhaustionRegistry",
    "RegistryStore",
    "same_calendar_day",
    "extract_json",
    "ThrottledQueue",
    "min_interval_for",
    "TierStats",
    "UsageStats",
]
