# genroute/config.py
"""
RouterConfig and related sub-configs.

Supports construction from:
  - Python dict   → RouterConfig.from_dict(data)
  - YAML file     → RouterConfig.from_yaml("genroute.yaml")
  - Environment   → RouterConfig.from_env()
"""

from __future__ import annotations

import os
import re
from typing import Any, Callable

from pydantic import BaseModel, Field, field_validator

from .constants import (
    CACHE_TTL_SECONDS,
    CALL_TIMEOUT_SECONDS,
    DEFAULT_TIERS,
    GEMINI_BASE_URL,
    SAFETY_MARGIN,
)
from .models import TierConfig


def _default_tiers() -> list[TierConfig]:
    return [TierConfig(**t) for t in DEFAULT_TIERS]


class CacheConfig(BaseModel):
    """Configuration for the response cache."""

    enabled: bool = Field(default=True, description="Turn the response cache off entirely.")
    ttl_seconds: int = Field(
        default=CACHE_TTL_SECONDS,
        gt=0,
        description="Entries older than this are treated as absent.",
    )


class RouterConfig(BaseModel):
    """
    Top-level configuration for genroute.

    Instantiate directly or use one of the factory class methods:
      RouterConfig.from_dict(data)
      RouterConfig.from_yaml(path)
      RouterConfig.from_env()
    """

    model_config = {"arbitrary_types_allowed": True}

    tiers: list[TierConfig] = Field(default_factory=_default_tiers)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    api_key: str | None = Field(default=None, description="Upstream API key.")
    base_url: str = Field(default=GEMINI_BASE_URL, description="Upstream models endpoint.")
    safety_margin: float = Field(
        default=SAFETY_MARGIN,
        ge=1.0,
        description="Multiplier applied to the per-tier request spacing.",
    )
    call_timeout_seconds: float = Field(
        default=CALL_TIMEOUT_SECONDS,
        gt=0,
        description="Bound on a single upstream call; expiry counts as unavailable.",
    )
    spill_over: bool = Field(
        default=True,
        description="Dispatch to a later idle tier instead of waiting on a busy preferred one.",
    )
    quota_reset_tz: str | None = Field(
        default=None,
        description="IANA timezone in which the daily quota resets. Local time when unset.",
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL. If set, exhaustion state and cache live in Redis.",
    )
    state_dir: str | None = Field(
        default=None,
        description="Directory for the JSON file store. Used when redis_url is not set.",
    )
    monitor_url: str | None = Field(
        default=None,
        description="If set, usage records are POSTed here as JSON.",
    )
    on_record: Callable | None = Field(
        default=None,
        description="Optional async callback fired after every request. Receives a UsageRecord.",
        exclude=True,
    )

    @field_validator("tiers")
    @classmethod
    def validate_unique_ids(cls, v: list[TierConfig]) -> list[TierConfig]:
        seen: set[str] = set()
        for tier in v:
            if tier.id in seen:
                raise ValueError(f"duplicate tier id '{tier.id}'")
            seen.add(tier.id)
        return v

    @field_validator("quota_reset_tz")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone '{v}'") from exc
        return v

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> "RouterConfig":
        """Build config from a plain Python dictionary."""
        merged = {**data, **kwargs}
        return cls.model_validate(merged)

    @classmethod
    def from_yaml(cls, path: str, **kwargs: Any) -> "RouterConfig":
        """
        Build config from a YAML file.

        Environment variable interpolation is supported:
          api_key: "${GEMINI_API_KEY}"
        """
        import yaml

        with open(path) as f:
            raw = f.read()

        # Interpolate ${ENV_VAR} placeholders
        def _replace(match: re.Match) -> str:  # type: ignore[type-arg]
            var = match.group(1)
            value = os.environ.get(var)
            if value is None:
                raise EnvironmentError(
                    f"Environment variable '{var}' referenced in '{path}' is not set."
                )
            return value

        raw = re.sub(r"\$\{([^}]+)\}", _replace, raw)
        data = yaml.safe_load(raw) or {}
        return cls.from_dict(data, **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "RouterConfig":
        """
        Build a config from environment variables, using the default tier table.

          GEMINI_API_KEY                → api_key
          GENROUTE_BASE_URL             → base_url
          GENROUTE_REDIS_URL            → redis_url
          GENROUTE_STATE_DIR            → state_dir
          GENROUTE_MONITOR_URL          → monitor_url
          GENROUTE_QUOTA_RESET_TZ       → quota_reset_tz
          GENROUTE_CALL_TIMEOUT_SECONDS → call_timeout_seconds
        """
        data: dict[str, Any] = {}

        _known = [
            ("GEMINI_API_KEY", "api_key"),
            ("GENROUTE_BASE_URL", "base_url"),
            ("GENROUTE_REDIS_URL", "redis_url"),
            ("GENROUTE_STATE_DIR", "state_dir"),
            ("GENROUTE_MONITOR_URL", "monitor_url"),
            ("GENROUTE_QUOTA_RESET_TZ", "quota_reset_tz"),
        ]
        for env_var, field_name in _known:
            value = os.environ.get(env_var)
            if value:
                data[field_name] = value

        timeout = os.environ.get("GENROUTE_CALL_TIMEOUT_SECONDS")
        if timeout:
            data["call_timeout_seconds"] = float(timeout)

        data.update(kwargs)
        return cls.from_dict(data)
