"""Redis layer - Conexión al backend Redis."""

from .connection import RedisConnection

__all__ = ["RedisConnection"]
