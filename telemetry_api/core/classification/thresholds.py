"""Threshold Evaluator.

Mapea una lectura de canal + su configuración a una severidad:

- CRITICAL si ``value > w * 1.2``
- WARNING si ``value >= w`` (metano) o ``value > w`` (resto de tipos)
- sin alerta en otro caso

El borde asimétrico es intencional: el metano alerta "en o por encima"
del umbral, las demás mediciones solo al superarlo estrictamente.

Evaluación pura y sin estado: el debounce vive en el AlertLedger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..domain.alert import Severity
from ..domain.channels import ChannelConfig
from ..domain.reading import ChannelReading, MeasurementType
from .liveness import OFFLINE_THRESHOLD_MS, is_stale

logger = logging.getLogger(__name__)

CRITICAL_MULTIPLIER = 1.2


@dataclass(frozen=True)
class Evaluation:
    """Resultado de evaluar una lectura contra su canal."""
    severity: Optional[Severity]
    message: str = ""

    @property
    def is_alert(self) -> bool:
        return self.severity is not None


NO_ALERT = Evaluation(severity=None)


def format_value(value: float) -> str:
    """Renderiza un valor para mensajes: 950 -> "950", 26.14 -> "26.1"."""
    value = round(float(value), 1)
    if value.is_integer():
        return str(int(value))
    return str(value)


def format_message(config: ChannelConfig, severity: Severity, value: float) -> str:
    """Mensaje determinista por tipo de canal.

    Los consumidores categorizan por substring (methane/temperature/humidity
    y "Ward X"), así que el formato no debe cambiar.
    """
    rendered = f"{format_value(value)}{config.unit}"
    if config.measurement is MeasurementType.METHANE:
        if severity is Severity.CRITICAL:
            return f"CRITICAL METHANE LEAK at {config.location}: {rendered}"
        return f"Elevated Methane levels at {config.location}: {rendered}"
    return f"{config.measurement.value} High at {config.location}: {rendered}"


class ThresholdEvaluator:
    """Evalúa lecturas de canal contra su umbral de warning."""

    def __init__(
        self,
        critical_multiplier: float = CRITICAL_MULTIPLIER,
        offline_threshold_ms: int = OFFLINE_THRESHOLD_MS,
    ):
        self._critical_multiplier = float(critical_multiplier)
        self._offline_threshold_ms = int(offline_threshold_ms)

    @property
    def critical_multiplier(self) -> float:
        return self._critical_multiplier

    def severity_for(self, value: float, config: ChannelConfig) -> Optional[Severity]:
        """Severidad de un valor crudo, sin mirar staleness ni fallos."""
        w = config.warning_threshold
        if value > w * self._critical_multiplier:
            return Severity.CRITICAL
        if config.measurement is MeasurementType.METHANE:
            if value >= w:
                return Severity.WARNING
        elif value > w:
            return Severity.WARNING
        return None

    def evaluate(
        self,
        reading: ChannelReading,
        config: ChannelConfig,
        now: Optional[int] = None,
    ) -> Evaluation:
        """Evalúa una lectura de canal.

        Args:
            reading: Lectura derivada del canal
            config: Configuración estática del canal
            now: Instante actual (ms). Si se indica, una lectura stale
                (OFFLINE) no se evalúa.

        Returns:
            Evaluation con severidad y mensaje, o NO_ALERT
        """
        if reading.channel_id != config.id:
            raise ValueError(
                f"Reading for channel {reading.channel_id} evaluated against {config.id}"
            )

        if now is not None and is_stale(reading.timestamp, now, self._offline_threshold_ms):
            return NO_ALERT

        # Con fallo de sensor los valores numéricos no son válidos para severidad.
        if reading.has_fault:
            logger.debug(
                "[THRESHOLD] Skipping faulted reading channel=%s error=%s",
                reading.channel_id,
                reading.error,
            )
            return NO_ALERT

        severity = self.severity_for(reading.value, config)
        if severity is None:
            return NO_ALERT
        return Evaluation(severity=severity, message=format_message(config, severity, reading.value))
