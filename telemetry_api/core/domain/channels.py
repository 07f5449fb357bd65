"""Configuración estática de canales.

Un canal es el par (location, tipo de medición). Su configuración se
carga una sola vez al arrancar el proceso y no se muta en runtime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import orjson

from .reading import MeasurementType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelConfig:
    """Configuración de un canal de medición."""
    id: str
    location: str
    measurement: MeasurementType
    label: str
    unit: str
    safe_range: Tuple[float, float]
    warning_threshold: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "location": self.location,
            "type": self.measurement.value,
            "label": self.label,
            "unit": self.unit,
            "safe_range": list(self.safe_range),
            "warning_threshold": self.warning_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChannelConfig":
        try:
            safe_min, safe_max = data["safe_range"]
            return cls(
                id=str(data["id"]),
                location=str(data["location"]),
                measurement=MeasurementType(str(data["type"]).upper()),
                label=str(data.get("label") or data["id"]),
                unit=str(data["unit"]),
                safe_range=(float(safe_min), float(safe_max)),
                warning_threshold=float(data["warning_threshold"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid channel config {data!r}: {e}") from e


DEFAULT_LOCATIONS: Tuple[str, ...] = ("Ward A", "Ward B", "Ward C")

# (sufijo id, tipo, etiqueta, unidad, rango seguro, umbral de warning)
_DEFAULT_CHANNEL_TEMPLATE = (
    ("temp", MeasurementType.TEMPERATURE, "Temp", "°C", (22.0, 26.0), 26.0),
    ("hum", MeasurementType.HUMIDITY, "Humidity", "%", (40.0, 60.0), 60.0),
    ("meth", MeasurementType.METHANE, "Methane", "ppm", (0.0, 200.0), 200.0),
)


def _build_default_channels() -> Tuple[ChannelConfig, ...]:
    channels = []
    for location in DEFAULT_LOCATIONS:
        # "Ward A" -> "wa"
        prefix = "w" + location.split()[-1].lower()
        for suffix, measurement, label, unit, safe_range, threshold in _DEFAULT_CHANNEL_TEMPLATE:
            channels.append(
                ChannelConfig(
                    id=f"{prefix}-{suffix}",
                    location=location,
                    measurement=measurement,
                    label=f"{location} {label}",
                    unit=unit,
                    safe_range=safe_range,
                    warning_threshold=threshold,
                )
            )
    return tuple(channels)


# Despliegue por defecto: 3 locations x 3 canales = 9 canales.
DEFAULT_CHANNEL_CONFIGS: Tuple[ChannelConfig, ...] = _build_default_channels()


def load_channel_configs(path: Optional[str] = None) -> Tuple[ChannelConfig, ...]:
    """Carga la configuración de canales.

    Sin ``path`` devuelve el despliegue por defecto. Con ``path`` lee un
    JSON con una lista de objetos ``{id, location, type, unit, safe_range,
    warning_threshold, label?}``.

    Raises:
        ValueError: si el archivo está malformado o repite ids.
    """
    if not path:
        return DEFAULT_CHANNEL_CONFIGS

    raw = orjson.loads(Path(path).read_bytes())
    if not isinstance(raw, list) or not raw:
        raise ValueError(f"Channel config file {path} must contain a non-empty list")

    channels = tuple(ChannelConfig.from_dict(item) for item in raw)
    ids = [c.id for c in channels]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Duplicate channel ids in {path}")

    logger.info("[CONFIG] Loaded %d channels from %s", len(channels), path)
    return channels


def channels_for_location(
    channels: Iterable[ChannelConfig],
    location: str,
) -> Tuple[ChannelConfig, ...]:
    return tuple(c for c in channels if c.location == location)
