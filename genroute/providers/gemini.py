# genroute/providers/gemini.py
"""
Google Gemini upstream adapter.

Calls the ``generateContent`` REST endpoint with httpx. Supports BYOC
(pass an existing, fully configured ``httpx.AsyncClient``) or creates its
own client.

Error mapping
-------------
  429 or status RESOURCE_EXHAUSTED → RateLimited
  503 or status UNAVAILABLE        → TierUnavailable
  any other non-2xx                → UpstreamError(status_code)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .base import BaseUpstream
from ..constants import CALL_TIMEOUT_SECONDS, GEMINI_BASE_URL
from ..exceptions import RateLimited, TierUnavailable, UpstreamError
from ..models import TierConfig

logger = logging.getLogger(__name__)


def _error_status(response: httpx.Response) -> tuple[str | None, str]:
    """Pull ``error.status`` and ``error.message`` out of a Gemini error body."""
    try:
        body = response.json()
    except ValueError:
        return None, response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return None, response.text[:200]
    return error.get("status"), error.get("message", "")


def _first_text(data: Any) -> str:
    """Return candidates[0].content.parts[0].text, or '' if any level is missing."""
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


class GeminiUpstream(BaseUpstream):
    """
    Adapter for the Gemini ``models/{id}:generateContent`` endpoint.

    Parameters
    ----------
    api_key:
        Gemini API key, sent as the ``key`` query parameter.
    base_url:
        Models endpoint; the tier id and ``:generateContent`` are appended.
    client:
        Optional pre-configured httpx.AsyncClient (BYOC). Not closed by
        this adapter, and its own timeout settings are left alone.
    timeout:
        Total per-request timeout in seconds for the client this adapter
        creates. Match it to the router's call timeout; httpx's own
        default of 5s is too short for long generations.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = GEMINI_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = CALL_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        )

    async def generate(self, tier: TierConfig, content: str) -> str:
        url = f"{self._base_url}{tier.id}:generateContent"
        params = {"key": self._api_key} if self._api_key else None
        payload = {"contents": [{"parts": [{"text": content}]}]}

        response = await self._client.post(url, params=params, json=payload)

        if response.status_code >= 400:
            status, message = _error_status(response)
            logger.error("Gemini API error (%s): %s %s", tier.id, response.status_code, message)
            detail = f"{tier.id}: {response.status_code} {message}".strip()
            if response.status_code == 429 or status == "RESOURCE_EXHAUSTED":
                raise RateLimited(f"Rate limit exceeded on {detail}", status_code=response.status_code, tier_id=tier.id)
            if response.status_code == 503 or status == "UNAVAILABLE":
                raise TierUnavailable(f"Service unavailable on {detail}", status_code=response.status_code, tier_id=tier.id)
            raise UpstreamError(
                f"Failed to fetch from Gemini {detail}",
                status_code=response.status_code,
                kind=status,
                tier_id=tier.id,
            )

        return _first_text(response.json())

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
