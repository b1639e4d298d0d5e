# genroute/monitor.py
"""
Ready-made observability sinks for UsageRecord.

Any async callable accepting a UsageRecord can be used as
``RouterConfig.on_record``. Two are provided:

  HTTPSink    — POSTs each record as JSON to a collector URL
  LoggingSink — writes each record to the ``genroute.monitor`` logger

Sink failures never affect routing: GenerationClient catches and logs
anything a sink raises.
"""

from __future__ import annotations

import logging

import httpx

from .models import UsageRecord

logger = logging.getLogger(__name__)


class HTTPSink:
    """
    POST usage records to a remote log collector.

    Parameters
    ----------
    url:
        Collector endpoint accepting a JSON body.
    client:
        Optional pre-configured httpx.AsyncClient. Not closed by the sink.
    timeout:
        Per-request timeout in seconds.
    """

    def __init__(self, url: str, client: httpx.AsyncClient | None = None, timeout: float = 5.0) -> None:
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __call__(self, record: UsageRecord) -> None:
        response = await self._client.post(self.url, json=record.model_dump(mode="json"))
        response.raise_for_status()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LoggingSink:
    """Write usage records to a logger, one line each."""

    def __init__(self, level: int = logging.INFO, sink_logger: logging.Logger | None = None) -> None:
        self._level = level
        self._logger = sink_logger or logger

    async def __call__(self, record: UsageRecord) -> None:
        self._logger.log(
            self._level,
            "%s feature=%s tier=%s latency=%.0fms tokens=%d/%d cost=$%.6f%s",
            record.status,
            record.feature,
            record.tier_id,
            record.latency_ms,
            record.input_tokens,
            record.output_tokens,
            record.total_cost_usd,
            f" error={record.error_message}" if record.error_message else "",
        )
