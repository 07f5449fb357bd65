"""Validador de registros de ingesta."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ...schemas import DEFAULT_DEVICE_ID, DEFAULT_LOCATION, MEASUREMENT_FIELDS, ReadingIn
from ..domain.reading import Reading
from ..errors import InvalidPayload

logger = logging.getLogger(__name__)

_MEASUREMENT_MESSAGE = "Invalid data format. Required: methane, temperature, humidity (numbers)"


def _to_invalid_payload(exc: ValidationError) -> InvalidPayload:
    first = exc.errors()[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else None
    if field is None:
        return InvalidPayload("Reading must be a JSON object")
    if field in MEASUREMENT_FIELDS:
        return InvalidPayload(_MEASUREMENT_MESSAGE, field=field)
    if field == "timestamp":
        return InvalidPayload("timestamp must be a positive number of milliseconds", field=field)
    return InvalidPayload(f"{field} must be a string", field=field)


class ReadingValidator:
    """Normaliza y valida registros de ingesta antes de almacenarlos.

    Las reglas de forma viven en ``ReadingIn``; aquí se completa el
    timestamp y se traduce el fallo de pydantic a ``InvalidPayload``.
    El validador no almacena nada.
    """

    def validate(self, data: Any, received_at: int) -> Reading:
        """Valida un registro y devuelve la lectura normalizada.

        Args:
            data: Cuerpo JSON ya decodificado
            received_at: Instante de recepción en ms, usado si falta timestamp

        Raises:
            InvalidPayload: si el registro no es aceptable
        """
        try:
            payload = ReadingIn.model_validate(data)
        except ValidationError as e:
            raise _to_invalid_payload(e) from e

        reading = Reading(
            device_id=payload.device_id,
            location=payload.location,
            methane=payload.methane,
            temperature=payload.temperature,
            humidity=payload.humidity,
            # 0 y ausente significan "usar el instante de recepción".
            timestamp=payload.timestamp or int(received_at),
            error=payload.error,
        )

        if reading.error:
            logger.debug(
                "[VALIDATOR] Sensor fault reported: device=%s location=%s error=%s",
                reading.device_id,
                reading.location,
                reading.error,
            )
        return reading


_default_validator = ReadingValidator()


def validate_reading(data: Any, received_at: int) -> Reading:
    """Atajo sobre un ReadingValidator compartido (sin estado)."""
    return _default_validator.validate(data, received_at)


__all__ = ["DEFAULT_DEVICE_ID", "DEFAULT_LOCATION", "ReadingValidator", "validate_reading"]
