# examples/quickstart.py
"""
Quickstart — genroute via dict config.

Run with:
  GEMINI_API_KEY=... python examples/quickstart.py
"""

import asyncio
import logging
import os

from genroute import AllBackendsExhausted, GenerationClient, LoggingSink


async def main():
    logging.basicConfig(level=logging.INFO)

    client = GenerationClient.from_dict({
        "api_key": os.environ["GEMINI_API_KEY"],
        "state_dir": ".genroute",
        "tiers": [
            {"id": "gemini-2.5-flash-lite", "rpm_limit": 15, "priority": 0},
            {"id": "gemini-2.5-flash", "rpm_limit": 10, "priority": 1},
            {"id": "gemini-2.5-pro", "rpm_limit": 2, "priority": 2},
        ],
        "on_record": LoggingSink(),
    })

    async with client:
        try:
            text = await client.request(
                "Summarise the benefits of functional programming in three bullets.",
                feature="quickstart",
            )
        except AllBackendsExhausted:
            print("All tiers are saturated right now. Try again later.")
            return
        print(f"Content: {text[:200]}...")

        # Served from cache: no upstream call, no queue slot.
        await client.request(
            "Summarise the benefits of functional programming in three bullets.",
            feature="quickstart",
        )

        verdict = await client.request_json(
            'Reply with JSON only: {"language": <name>, "paradigm": <paradigm>} for Haskell.',
            feature="quickstart-json",
        )
        print(f"Parsed:  {verdict}")

        status = await client.status()
        for tier_id, info in status.items():
            print(
                f"\n{tier_id}: every {info['min_interval_ms']}ms, "
                f"{'EXHAUSTED' if info['exhausted'] else 'ok'}, "
                f"{info['requests']} requests, "
                f"${info['cost_usd']:.6f}"
            )


if __name__ == "__main__":
    asyncio.run(main())
