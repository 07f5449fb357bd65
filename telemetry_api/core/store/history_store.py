"""Bounded History Store.

Secuencia append-only y acotada de lecturas, compartida por todos los
nodos que ingestan y por el consumidor que hace polling.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..domain.reading import Reading
from ..monitoring import metrics
from .backends import HistoryBackend, InMemoryHistoryBackend

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 500
DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500


class BoundedHistoryStore:
    """Store acotado con desalojo FIFO global.

    Garantías:
    - Orden de llegada, sin reordenar por timestamp del emisor
    - Nunca supera ``capacity``; lo retenido es siempre un sufijo
      contiguo de todos los appends
    - El desalojo es global, no por canal: un canal ruidoso puede
      desplazar por completo a uno silencioso
    - Los errores del backend se propagan como StoreUnavailable, sin reintento

    Uso:
        store = BoundedHistoryStore(capacity=500)
        store.append(reading)
        recent = store.query(location="Ward A", limit=50)
    """

    def __init__(
        self,
        backend: Optional[HistoryBackend] = None,
        capacity: int = DEFAULT_CAPACITY,
        default_limit: int = DEFAULT_QUERY_LIMIT,
        max_limit: int = MAX_QUERY_LIMIT,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._backend = backend if backend is not None else InMemoryHistoryBackend()
        self._capacity = int(capacity)
        self._default_limit = int(default_limit)
        self._max_limit = int(max_limit)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def backend(self) -> HistoryBackend:
        return self._backend

    def __len__(self) -> int:
        return self._backend.size()

    def append(self, reading: Reading) -> Reading:
        """Añade una lectura al final del histórico.

        Raises:
            StoreUnavailable: si el backend falla
        """
        size = self._backend.append(reading, self._capacity)
        metrics.HISTORY_SIZE.set(size)
        logger.debug(
            "[STORE] Appended device=%s location=%s ts=%d size=%d",
            reading.device_id,
            reading.location,
            reading.timestamp,
            size,
        )
        return reading

    def normalize_limit(self, limit: Optional[int]) -> int:
        """Aplica default y tope duro al límite pedido."""
        if limit is None or limit <= 0:
            limit = self._default_limit
        return min(int(limit), self._max_limit)

    def query(
        self,
        location: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Reading]:
        """Lecturas más recientes que cumplen los filtros.

        Args:
            location: Solo lecturas de esta location
            since: Cota inferior EXCLUSIVA de timestamp (ms)
            limit: Máximo de lecturas (default 100, tope 500)

        Returns:
            Las ``limit`` últimas por orden de llegada, ordenadas por
            timestamp ascendente (orden estable ante empates).

        Raises:
            StoreUnavailable: si el backend falla
        """
        limit = self.normalize_limit(limit)
        readings = self._backend.snapshot()

        if location:
            readings = [r for r in readings if r.location == location]
        if since is not None:
            readings = [r for r in readings if r.timestamp > since]

        readings = readings[-limit:]
        readings.sort(key=lambda r: r.timestamp)
        return readings

    def is_available(self) -> bool:
        return self._backend.ping()

    def clear(self) -> None:
        self._backend.clear()
        metrics.HISTORY_SIZE.set(0)
