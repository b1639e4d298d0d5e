# genroute/engine/estimator.py
"""
Size-based token and cost estimation for observability records.

The upstream reports no usage for failed calls and the router does not
need exact counts, so tokens are approximated from character length
(CHARS_PER_TOKEN characters per token, rounded up) and priced with the
tier's per-million rates. The estimate is only ever used for reporting;
it never influences routing.
"""

from __future__ import annotations

import math

from ..constants import CHARS_PER_TOKEN
from ..models import TierConfig


def estimate_tokens(text: str) -> int:
    """Estimate the token count of *text* (1 token ≈ CHARS_PER_TOKEN chars)."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_cost(tier: TierConfig | None, input_tokens: int, output_tokens: int) -> tuple[float, float, float]:
    """
    Return ``(input_cost_usd, output_cost_usd, total_cost_usd)`` for a call
    on *tier*. An unknown tier costs nothing.
    """
    if tier is None:
        return 0.0, 0.0, 0.0
    input_cost = input_tokens / 1_000_000 * tier.input_cost_per_million
    output_cost = output_tokens / 1_000_000 * tier.output_cost_per_million
    return input_cost, output_cost, input_cost + output_cost
