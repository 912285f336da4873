"""HTTP data source for sensor readings."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import httpx

from models.metrics import MetricDescriptor
from models.records import Reading
from services.ingestion import sanitize_payload

logger = logging.getLogger(__name__)


class SourceError(RuntimeError):
    """Raised when readings cannot be fetched; always treated as retryable."""


class HttpReadingSource:
    """Minimal async client for the readings API."""

    def __init__(
        self,
        base_url: str,
        metrics: Sequence[MetricDescriptor],
        readings_path: str = "/readings",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.metrics = tuple(metrics)
        self.readings_path = readings_path
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    async def __call__(self) -> List[Reading]:
        return await self.fetch_readings()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_readings(self) -> List[Reading]:
        return await self._get(self.readings_path)

    async def fetch_history(self, collection: str) -> List[Reading]:
        return await self._get(f"/history/{collection}")

    async def _get(self, path: str) -> List[Reading]:
        try:
            response = await self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SourceError(
                f"Request to {path} failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceError(f"Request to {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceError(f"Response from {path} is not valid JSON.") from exc

        items = self._unwrap(payload)
        readings = sanitize_payload(items, self.metrics)
        logger.debug(
            "Fetched readings",
            extra={"source": path, "reading_count": len(readings)},
        )
        return readings

    @staticmethod
    def _unwrap(payload: Any) -> list:
        if isinstance(payload, dict):
            payload = payload.get("readings")
        if not isinstance(payload, list):
            raise SourceError("Unexpected response payload: expected a list of readings.")
        return payload
