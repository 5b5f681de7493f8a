"""Async FDSN client for downloading an earthquake catalog as GeoJSON."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import httpx

from quake_explorer.config import FeedConfig

logger = logging.getLogger(__name__)

EMPTY_GEOJSON = '{"type":"FeatureCollection","features":[]}'


class FDSNClient:
    """Async HTTP client for FDSN event web services.

    Works with any FDSN-compliant source that can answer in GeoJSON
    (USGS carries the cdi/mmi/sig/tsunami properties the explorer uses).
    """

    def __init__(self, config: FeedConfig):
        self.config = config
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch_events(
        self,
        start_time: datetime,
        end_time: datetime,
        min_magnitude: float = 0.0,
        limit: int = 20000,
    ) -> str:
        """Fetch earthquake events from the FDSN service.

        Args:
            start_time: Start of time window (UTC).
            end_time: End of time window (UTC).
            min_magnitude: Minimum magnitude filter.
            limit: Maximum number of events the service should return.

        Returns:
            Raw GeoJSON response text.
        """
        params = {
            "format": "geojson",
            "starttime": start_time.strftime("%Y-%m-%dT%H:%M:%S"),
            "endtime": end_time.strftime("%Y-%m-%dT%H:%M:%S"),
            "minmagnitude": str(min_magnitude),
            "orderby": "time-asc",
            "limit": str(limit),
        }

        return await self._request_with_retry(params)

    async def _request_with_retry(self, params: dict) -> str:
        """Make HTTP request with exponential backoff retry."""
        client = await self._get_client()
        last_exc: Exception | None = None

        for attempt in range(self.config.max_retries + 1):
            try:
                resp = await client.get(self.config.base_url, params=params)
                # FDSN returns 204 No Content when no events match
                if resp.status_code == 204:
                    return EMPTY_GEOJSON
                resp.raise_for_status()
                return resp.text
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                last_exc = exc
                if attempt < self.config.max_retries:
                    backoff = self.config.retry_backoff_base ** attempt
                    logger.warning(
                        "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                        self.config.name, attempt + 1, self.config.max_retries + 1,
                        exc, backoff,
                    )
                    await asyncio.sleep(backoff)

        raise RuntimeError(
            f"{self.config.name}: all {self.config.max_retries + 1} attempts failed"
        ) from last_exc


async def download_catalog(
    config: FeedConfig,
    start_time: datetime,
    end_time: datetime,
    min_magnitude: float = 0.0,
) -> str:
    client = FDSNClient(config)
    try:
        return await client.fetch_events(start_time, end_time, min_magnitude)
    finally:
        await client.close()
