"""Fuentes de lecturas para el Polling Reconciler.

- StoreReadingsSource: consulta un BoundedHistoryStore del mismo proceso
- HttpReadingsSource: consulta la Query interface de una API remota

Cualquier fallo se expone como StoreUnavailable para que el reconciliador
lo trate como "sin actualización este tick".
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import httpx

from telemetry_api.core.domain.reading import Reading
from telemetry_api.core.errors import StoreUnavailable
from telemetry_api.core.store.history_store import BoundedHistoryStore

logger = logging.getLogger(__name__)

READINGS_PATH = "/api/readings"


class StoreReadingsSource:
    """Fuente en proceso; la consulta al store corre fuera del event loop."""

    def __init__(self, store: BoundedHistoryStore):
        self._store = store

    async def fetch(self, limit: int) -> List[Reading]:
        return await asyncio.to_thread(self._store.query, None, None, limit)


class HttpReadingsSource:
    """Fuente remota sobre ``GET /api/readings?limit=N``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._url = base_url.rstrip("/") + READINGS_PATH
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def url(self) -> str:
        return self._url

    async def fetch(self, limit: int) -> List[Reading]:
        try:
            resp = await self._client.get(self._url, params={"limit": limit})
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"{type(e).__name__}: {e}", operation="fetch") from e

        if not resp.is_success:
            raise StoreUnavailable(f"HTTP {resp.status_code} from {self._url}", operation="fetch")

        try:
            payload = resp.json()
            raw_readings = payload["readings"]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreUnavailable(f"Malformed response body: {e}", operation="fetch") from e

        if not isinstance(raw_readings, list):
            raise StoreUnavailable("Malformed response body: readings is not a list", operation="fetch")

        readings: List[Reading] = []
        for item in raw_readings:
            try:
                readings.append(Reading.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("[SOURCE] Skipping malformed reading %r: %s", item, e)
        return readings

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
