# examples/byoc.py
"""
BYOC — Bring Your Own Client.

Two ways to plug existing infrastructure into genroute:
  1. Hand GeminiUpstream a fully configured httpx.AsyncClient (proxies,
     timeouts, transport retries stay under your control).
  2. Implement BaseUpstream for a different backend entirely. Translate
     its errors into RateLimited / TierUnavailable at the boundary and the
     router handles the rest.

Run with:
  GEMINI_API_KEY=... python examples/byoc.py
"""

import asyncio
import os

import httpx

from genroute import GenerationClient, RateLimited, RouterConfig, TierUnavailable
from genroute.models import TierConfig
from genroute.providers import BaseUpstream, GeminiUpstream
from genroute.state import FileStore


class EchoUpstream(BaseUpstream):
    """A toy backend: the 'primary' tier is always out of quota."""

    async def generate(self, tier: TierConfig, content: str) -> str:
        if tier.id == "primary":
            raise RateLimited("primary quota spent", tier_id=tier.id)
        if tier.id == "flaky":
            raise TierUnavailable("flaky is overloaded", tier_id=tier.id)
        return f"[{tier.id}] {content}"


async def main():
    # 1. Existing httpx client, used as is.
    http_client = httpx.AsyncClient(timeout=30, headers={"x-team": "research"})
    upstream = GeminiUpstream(api_key=os.environ["GEMINI_API_KEY"], client=http_client)

    async with GenerationClient(RouterConfig(), upstream=upstream, store=FileStore(".genroute")) as client:
        print(await client.request("Hello, which model am I talking to?"))
    await http_client.aclose()

    # 2. Custom backend.
    config = RouterConfig(
        tiers=[
            {"id": "primary", "rpm_limit": 60, "priority": 0},
            {"id": "flaky", "rpm_limit": 60, "priority": 1},
            {"id": "backup", "rpm_limit": 60, "priority": 2},
        ]
    )
    async with GenerationClient(config, upstream=EchoUpstream()) as client:
        print(await client.request("ping"))
        status = await client.status()
        print({tier_id: info["exhausted"] for tier_id, info in status.items()})


if __name__ == "__main__":
    asyncio.run(main())
