"""Backends del Bounded History Store.

Cada backend guarda la secuencia de lecturas en orden de llegada y aplica
el recorte FIFO global en la misma operación atómica que el append.
"""

from __future__ import annotations

import logging
import threading
from typing import List, NamedTuple, Protocol

import orjson
import redis

from ..domain.reading import Reading
from ..errors import StoreUnavailable
from ..redis.connection import RedisConnection

logger = logging.getLogger(__name__)


class HistoryBackend(Protocol):
    """Interfaz de almacenamiento de la secuencia acotada."""

    def append(self, reading: Reading, capacity: int) -> int:
        """Añade al final, recorta la cabeza hasta ``capacity`` y devuelve el tamaño."""
        ...

    def snapshot(self) -> List[Reading]:
        """Copia consistente de la secuencia, en orden de llegada."""
        ...

    def size(self) -> int:
        ...

    def ping(self) -> bool:
        ...

    def clear(self) -> None:
        ...


class _Window(NamedTuple):
    buffer: list
    head: int
    tail: int


class InMemoryHistoryBackend:
    """Backend en memoria del proceso.

    - Un único lock serializa a los escritores.
    - Los lectores no toman lock: leen la última ventana publicada
      (buffer, head, tail). Las posiciones < tail de un buffer nunca se
      modifican; la compactación crea un buffer nuevo.
    - Append O(1) amortizado: la compactación copia ``capacity``
      elementos cada ``capacity`` appends.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._window = _Window([], 0, 0)

    def append(self, reading: Reading, capacity: int) -> int:
        with self._lock:
            buffer, head, tail = self._window
            buffer.append(reading)
            tail += 1
            if tail - head > capacity:
                head = tail - capacity
            if head >= capacity:
                buffer = buffer[head:tail]
                tail -= head
                head = 0
            self._window = _Window(buffer, head, tail)
            return tail - head

    def snapshot(self) -> List[Reading]:
        window = self._window
        return window.buffer[window.head:window.tail]

    def size(self) -> int:
        window = self._window
        return window.tail - window.head

    def ping(self) -> bool:
        return True

    def clear(self) -> None:
        with self._lock:
            self._window = _Window([], 0, 0)


class RedisHistoryBackend:
    """Backend sobre una lista Redis compartida entre procesos.

    RPUSH + LTRIM van en una transacción MULTI/EXEC, así que un LRANGE
    concurrente nunca observa el append sin el recorte. Los errores y
    timeouts de Redis se traducen a StoreUnavailable, sin reintentos.
    """

    DEFAULT_KEY = "safeward:readings"

    def __init__(self, connection: RedisConnection, key: str = DEFAULT_KEY) -> None:
        self._conn = connection
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def _client(self, operation: str) -> redis.Redis:
        if self._conn.client is None and not self._conn.connect():
            raise StoreUnavailable("redis not connected", operation=operation)
        return self._conn.client

    def append(self, reading: Reading, capacity: int) -> int:
        client = self._client("append")
        payload = orjson.dumps(reading.to_dict())
        try:
            with client.pipeline(transaction=True) as pipe:
                pipe.rpush(self._key, payload)
                pipe.ltrim(self._key, -capacity, -1)
                pipe.llen(self._key)
                _, _, size = pipe.execute()
        except redis.RedisError as e:
            logger.warning("[STORE] Redis append failed key=%s err=%s", self._key, e)
            raise StoreUnavailable(str(e), operation="append") from e
        return int(size)

    def snapshot(self) -> List[Reading]:
        client = self._client("query")
        try:
            raw_items = client.lrange(self._key, 0, -1)
        except redis.RedisError as e:
            logger.warning("[STORE] Redis read failed key=%s err=%s", self._key, e)
            raise StoreUnavailable(str(e), operation="query") from e

        readings = []
        for item in raw_items:
            try:
                readings.append(Reading.from_dict(orjson.loads(item)))
            except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                # Entrada corrupta en la lista: se omite, el resto sigue siendo válido.
                logger.error("[STORE] Skipping corrupt entry key=%s err=%s", self._key, e)
        return readings

    def size(self) -> int:
        client = self._client("size")
        try:
            return int(client.llen(self._key))
        except redis.RedisError as e:
            raise StoreUnavailable(str(e), operation="size") from e

    def ping(self) -> bool:
        return self._conn.ping()

    def clear(self) -> None:
        client = self._client("clear")
        try:
            client.delete(self._key)
        except redis.RedisError as e:
            raise StoreUnavailable(str(e), operation="clear") from e
