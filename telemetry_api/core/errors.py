"""Taxonomía de errores del motor de telemetría.

- InvalidPayload: registro de ingesta malformado (4xx, nunca se almacena).
- StoreUnavailable: fallo de I/O del backend del store (5xx, sin reintento interno).
- AlertNotFound: acknowledge sobre una alerta inexistente (404).

Un fallo de sensor (campo ``error`` en la lectura) NO es una excepción:
es un dato que viaja hasta el clasificador de liveness.
"""

from __future__ import annotations

from typing import Optional


class TelemetryError(Exception):
    """Base de los errores del motor."""


class InvalidPayload(TelemetryError, ValueError):
    """Registro de ingesta rechazado en el borde."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class StoreUnavailable(TelemetryError):
    """El backend del History Store no respondió o falló."""

    def __init__(self, message: str, operation: str = "unknown"):
        self.message = message
        self.operation = operation
        super().__init__(f"Store unavailable during {operation}: {message}")


class AlertNotFound(TelemetryError, KeyError):
    """No existe una alerta con esa clave en el ledger."""

    def __init__(self, channel_id: str, created_at: int):
        self.channel_id = channel_id
        self.created_at = created_at
        super().__init__(f"Alert not found: channel={channel_id} created_at={created_at}")

    def __str__(self) -> str:
        return self.args[0]
