"""Modelo de dominio para lecturas de sensores."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class MeasurementType(str, Enum):
    """Tipos de medición soportados por un nodo."""
    METHANE = "METHANE"
    TEMPERATURE = "TEMPERATURE"
    HUMIDITY = "HUMIDITY"

    @property
    def reading_field(self) -> str:
        """Campo del registro de ingesta que contiene esta medición."""
        return self.value.lower()


@dataclass(frozen=True)
class Reading:
    """Lectura cruda de un nodo - modelo canónico de dominio.

    Inmutable una vez almacenada. ``timestamp`` está en milisegundos epoch
    y lo asigna el nodo; el store no la re-sella al recibirla.

    Un valor 0 con ``error`` presente significa "sin dato"; un 0 sin
    ``error`` es una lectura válida de cero.
    """

    device_id: str
    location: str
    methane: float
    temperature: float
    humidity: float
    timestamp: int
    error: Optional[str] = None

    @property
    def has_fault(self) -> bool:
        return bool(self.error)

    def value_of(self, measurement: MeasurementType) -> float:
        return getattr(self, measurement.reading_field)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "device_id": self.device_id,
            "location": self.location,
            "methane": self.methane,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "timestamp": self.timestamp,
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reading":
        """Reconstruye una lectura ya validada (store o API remota)."""
        return cls(
            device_id=str(data["device_id"]),
            location=str(data["location"]),
            methane=float(data["methane"]),
            temperature=float(data["temperature"]),
            humidity=float(data["humidity"]),
            timestamp=int(data["timestamp"]),
            error=data.get("error") or None,
        )


@dataclass(frozen=True)
class ChannelReading:
    """Lectura derivada para un canal (location, tipo de medición).

    Un registro de ingesta produce una ChannelReading por cada canal
    configurado en su location.
    """

    channel_id: str
    measurement: MeasurementType
    value: float
    unit: str
    timestamp: int
    location: str
    error: Optional[str] = None

    @property
    def key(self) -> tuple[str, int]:
        """Clave de deduplicación del reconciliador."""
        return (self.channel_id, self.timestamp)

    @property
    def has_fault(self) -> bool:
        return bool(self.error)
