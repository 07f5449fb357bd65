"""Modelo de dominio para alertas."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, NamedTuple


class Severity(str, Enum):
    """Severidad de una alerta."""
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Orden de presentación: CRITICAL antes que WARNING."""
        return 0 if self is Severity.CRITICAL else 1


class AlertKey(NamedTuple):
    """Identidad estructurada de una alerta: (canal, instante de creación)."""
    channel_id: str
    created_at: int


@dataclass(frozen=True)
class Alert:
    """Evento de desviación notable sobre un canal.

    ``acknowledged`` solo transiciona false -> true, una vez.
    """

    channel_id: str
    message: str
    severity: Severity
    timestamp: int
    acknowledged: bool = False

    @property
    def key(self) -> AlertKey:
        return AlertKey(self.channel_id, self.timestamp)

    def acknowledge(self) -> "Alert":
        if self.acknowledged:
            return self
        return replace(self, acknowledged=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "created_at": self.timestamp,
            "message": self.message,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
            "acknowledged": self.acknowledged,
        }
