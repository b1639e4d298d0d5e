# tests/test_classifier.py
"""Tests for upstream failure classification."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from genroute.engine.classifier import FailureKind, classify
from genroute.exceptions import RateLimited, TierUnavailable, UpstreamError


class _StatusError(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"status {status}")
        self.status = status


def _http_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.test/")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("boom", request=request, response=response)


class TestClassify:
    def test_typed_rate_limit(self):
        assert classify(RateLimited("spent")) is FailureKind.RATE_LIMITED

    def test_typed_unavailable(self):
        assert classify(TierUnavailable("down")) is FailureKind.UNAVAILABLE

    def test_timeouts_are_unavailable(self):
        assert classify(asyncio.TimeoutError()) is FailureKind.UNAVAILABLE
        assert classify(httpx.ReadTimeout("slow")) is FailureKind.UNAVAILABLE

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (UpstreamError("x", status_code=429), FailureKind.RATE_LIMITED),
            (UpstreamError("x", status_code=503), FailureKind.UNAVAILABLE),
            (UpstreamError("x", status_code=400), FailureKind.OTHER),
            (_StatusError(429), FailureKind.RATE_LIMITED),
            (_StatusError(503), FailureKind.UNAVAILABLE),
            (_http_error(429), FailureKind.RATE_LIMITED),
            (_http_error(503), FailureKind.UNAVAILABLE),
            (_http_error(500), FailureKind.OTHER),
        ],
    )
    def test_status_codes(self, exc, expected):
        assert classify(exc) is expected

    def test_kind_signal(self):
        assert classify(UpstreamError("x", kind="RESOURCE_EXHAUSTED")) is FailureKind.RATE_LIMITED
        assert classify(UpstreamError("x", kind="UNAVAILABLE")) is FailureKind.UNAVAILABLE

    def test_kind_takes_precedence_over_status(self):
        exc = UpstreamError("x", status_code=400, kind="rate_limited")
        assert classify(exc) is FailureKind.RATE_LIMITED

    def test_anything_else_is_other(self):
        assert classify(ValueError("bad prompt")) is FailureKind.OTHER
        assert classify(UpstreamError("forbidden", status_code=403, kind="PERMISSION_DENIED")) is FailureKind.OTHER
