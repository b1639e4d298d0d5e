# genroute/models.py
"""
Pydantic v2 data models used throughout genroute.

These are part of the public API surface — changes here require a major
version bump once the library reaches 1.0.
"""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DEFAULT_FEATURE,
    DEFAULT_INPUT_COST_PER_MILLION,
    DEFAULT_OUTPUT_COST_PER_MILLION,
    RECORD_STATUSES,
)


class TierConfig(BaseModel):
    """
    Static configuration for one backend tier (one upstream model).

    Tiers are immutable for the lifetime of a router. The enabled tiers,
    ordered by priority, are the routing search space.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Upstream model identifier, e.g. 'gemini-2.5-flash'.")
    name: str = Field(default="", description="Human-readable display name.")
    rpm_limit: int = Field(..., gt=0, description="Requests-per-minute budget for this tier.")
    priority: int = Field(default=0, description="Lower is more preferred.")
    input_cost_per_million: float = Field(default=DEFAULT_INPUT_COST_PER_MILLION, ge=0.0)
    output_cost_per_million: float = Field(default=DEFAULT_OUTPUT_COST_PER_MILLION, ge=0.0)
    enabled: bool = Field(default=True, description="Toggle without removing from config.")

    @property
    def display_name(self) -> str:
        return self.name or self.id


class ExhaustionSnapshot(BaseModel):
    """
    Persisted form of the exhaustion registry.

    Written on every registry change and read once when a router starts.
    """

    exhausted_tier_ids: list[str] = Field(default_factory=list)
    saved_at: float = Field(..., description="Epoch seconds of the write.")


class CacheEntry(BaseModel):
    """A cached response. Never mutated after it is written."""

    value: str
    timestamp: float = Field(default_factory=time.time)


class UsageRecord(BaseModel):
    """
    One observability record per completed request.

    Delivered to the optional on_record callback. Developers can forward it
    to a log collector, a database, or any internal system.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: float = Field(default_factory=time.time)
    feature: str = DEFAULT_FEATURE
    tier_id: str | None = None
    status: str = "success"
    input_chars: int = 0
    output_chars: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    input_cost_usd: float = 0.0
    output_cost_usd: float = 0.0
    total_cost_usd: float = 0.0
    latency_ms: float = 0.0
    error_message: str | None = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in RECORD_STATUSES:
            raise ValueError(f"status must be one of {sorted(RECORD_STATUSES)}, got '{v}'")
        return v
