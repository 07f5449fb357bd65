"""Liveness Classifier.

Deriva ONLINE / OFFLINE / ERROR de la recencia de la última lectura de un
canal y de su flag de fallo. Es una función pura: ``now`` siempre llega
como parámetro, nunca se lee del reloj del sistema.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

# Umbral por canal (vista de sensores).
OFFLINE_THRESHOLD_MS = 15_000
# Umbral más corto para el indicador agregado "sistema conectado".
CONNECTED_THRESHOLD_MS = 10_000


class Liveness(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    ERROR = "ERROR"


class TimestampedSample(Protocol):
    timestamp: int
    error: Optional[str]


def is_stale(timestamp: int, now: int, threshold_ms: int = OFFLINE_THRESHOLD_MS) -> bool:
    """True si la muestra superó el umbral de staleness (estrictamente mayor)."""
    return now - timestamp > threshold_ms


def classify(
    latest: Optional[TimestampedSample],
    now: int,
    offline_threshold_ms: int = OFFLINE_THRESHOLD_MS,
) -> Liveness:
    """Clasifica la liveness de un canal a partir de su última lectura.

    - OFFLINE si no hay lectura o si ``now - latest.timestamp > offline_threshold_ms``
    - ERROR si la lectura trae un ``error`` no vacío y no está OFFLINE
    - ONLINE en cualquier otro caso
    """
    if latest is None or is_stale(latest.timestamp, now, offline_threshold_ms):
        return Liveness.OFFLINE
    if latest.error:
        return Liveness.ERROR
    return Liveness.ONLINE


def is_connected(
    latest_timestamp: Optional[int],
    now: int,
    threshold_ms: int = CONNECTED_THRESHOLD_MS,
) -> bool:
    """Indicador agregado: la lectura más reciente (de cualquier canal) es fresca."""
    if latest_timestamp is None:
        return False
    return not is_stale(latest_timestamp, now, threshold_ms)
