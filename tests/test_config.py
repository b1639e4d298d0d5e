# tests/test_config.py
"""Tests for RouterConfig construction and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from genroute.config import RouterConfig
from genroute.constants import DEFAULT_TIERS, GEMINI_BASE_URL


class TestRouterConfig:
    def test_defaults(self):
        config = RouterConfig()
        assert [t.id for t in config.tiers] == [t["id"] for t in DEFAULT_TIERS]
        assert config.base_url == GEMINI_BASE_URL
        assert config.safety_margin == pytest.approx(1.1)
        assert config.cache.ttl_seconds == 86400

    def test_from_dict(self):
        config = RouterConfig.from_dict(
            {"tiers": [{"id": "m1", "rpm_limit": 5}], "cache": {"enabled": False}},
            spill_over=False,
        )
        assert config.tiers[0].id == "m1"
        assert config.cache.enabled is False
        assert config.spill_over is False

    def test_duplicate_tier_ids_rejected(self):
        with pytest.raises(ValidationError):
            RouterConfig(tiers=[{"id": "m1", "rpm_limit": 5}, {"id": "m1", "rpm_limit": 10}])

    def test_non_positive_rpm_rejected(self):
        with pytest.raises(ValidationError):
            RouterConfig(tiers=[{"id": "m1", "rpm_limit": 0}])

    def test_safety_margin_below_one_rejected(self):
        with pytest.raises(ValidationError):
            RouterConfig(safety_margin=0.9)

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            RouterConfig(quota_reset_tz="Mars/Olympus_Mons")

    def test_known_timezone_accepted(self):
        assert RouterConfig(quota_reset_tz="America/Los_Angeles").quota_reset_tz == "America/Los_Angeles"


class TestFromYaml:
    def test_env_interpolation(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_GEMINI_KEY", "secret")
        path = tmp_path / "genroute.yaml"
        path.write_text(
            "api_key: ${TEST_GEMINI_KEY}\n"
            "tiers:\n"
            "  - id: gemini-2.5-flash\n"
            "    rpm_limit: 10\n"
            "    priority: 0\n"
        )
        config = RouterConfig.from_yaml(str(path))
        assert config.api_key == "secret"
        assert config.tiers[0].rpm_limit == 10

    def test_missing_env_var_raises(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_GEMINI_KEY_MISSING", raising=False)
        path = tmp_path / "genroute.yaml"
        path.write_text("api_key: ${TEST_GEMINI_KEY_MISSING}\n")
        with pytest.raises(EnvironmentError):
            RouterConfig.from_yaml(str(path))

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "genroute.yaml"
        path.write_text("")
        assert len(RouterConfig.from_yaml(str(path)).tiers) == len(DEFAULT_TIERS)


class TestFromEnv:
    def test_reads_known_variables(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        monkeypatch.setenv("GENROUTE_STATE_DIR", "/tmp/genroute")
        monkeypatch.setenv("GENROUTE_CALL_TIMEOUT_SECONDS", "12.5")
        config = RouterConfig.from_env()
        assert config.api_key == "k"
        assert config.state_dir == "/tmp/genroute"
        assert config.call_timeout_seconds == 12.5

    def test_kwargs_override_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert RouterConfig.from_env(api_key="explicit").api_key == "explicit"
