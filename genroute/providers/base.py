# genroute/providers/base.py
"""
BaseUpstream — abstract contract every upstream adapter must implement.

An adapter performs one text-completion call against one concrete tier.
The router never talks to the upstream API directly; it always goes
through an adapter.

This design means:
  - Provider-specific error payloads are translated at the boundary into
    RateLimited / TierUnavailable / UpstreamError, so the router never
    inspects status codes or message text.
  - Adding a new upstream requires only implementing this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import TierConfig


class BaseUpstream(ABC):
    """Abstract base class for all upstream adapters."""

    @abstractmethod
    async def generate(self, tier: TierConfig, content: str) -> str:
        """
        Send *content* to the model behind *tier* and return its text.

        Returns
        -------
        str
            The completion text (may be empty if the model returned none).

        Raises
        ------
        RateLimited
            The tier's request budget is spent.
        TierUnavailable
            The tier is temporarily unable to serve.
        UpstreamError
            Any other failure; the router will not retry it.
        """

    async def close(self) -> None:
        """Release any resources held by this adapter (HTTP clients, etc.)."""

    def __repr__(self) -> str:  # pragma: no cover
        return f"{self.__class__.__name__}()"
