"""Store layer - Bounded History Store y sus backends."""

from .backends import HistoryBackend, InMemoryHistoryBackend, RedisHistoryBackend
from .history_store import (
    DEFAULT_CAPACITY,
    DEFAULT_QUERY_LIMIT,
    MAX_QUERY_LIMIT,
    BoundedHistoryStore,
)

__all__ = [
    "HistoryBackend",
    "InMemoryHistoryBackend",
    "RedisHistoryBackend",
    "BoundedHistoryStore",
    "DEFAULT_CAPACITY",
    "DEFAULT_QUERY_LIMIT",
    "MAX_QUERY_LIMIT",
]
