"""Conexión a Redis."""

from __future__ import annotations

import logging
import os
from typing import Optional

import redis

logger = logging.getLogger(__name__)


class RedisConnection:
    """Gestiona la conexión a Redis.

    Los timeouts de socket acotan cada operación: un Redis lento falla
    rápido en vez de bloquear la ingesta o el polling.
    """

    def __init__(self, url: Optional[str] = None, timeout_seconds: float = 3.0):
        self._url = url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._timeout = float(timeout_seconds)
        self._client: Optional[redis.Redis] = None
        self._connected = False

    @property
    def client(self) -> Optional[redis.Redis]:
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def safe_url(self) -> str:
        """URL sin credenciales, apta para logs."""
        return self._url.split("@")[-1]

    def connect(self) -> bool:
        """Conecta a Redis."""
        try:
            self._client = redis.Redis.from_url(
                self._url,
                decode_responses=False,
                socket_timeout=self._timeout,
                socket_connect_timeout=self._timeout,
            )
            self._client.ping()
            self._connected = True
            logger.info("[REDIS] Connected: %s", self.safe_url)
            return True
        except redis.RedisError as e:
            self._connected = False
            logger.warning("[REDIS] Connection failed: %s", e)
            return False

    def ping(self) -> bool:
        """Comprueba la conexión sin lanzar."""
        if self._client is None:
            return self.connect()
        try:
            self._client.ping()
            self._connected = True
        except redis.RedisError as e:
            logger.warning("[REDIS] Ping failed: %s", e)
            self._connected = False
        return self._connected

    def disconnect(self):
        """Desconecta de Redis."""
        if self._client:
            try:
                self._client.close()
            except redis.RedisError as e:
                logger.debug("[REDIS] Close failed: %s", e)
        self._connected = False
