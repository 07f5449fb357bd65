"""Validation layer - Validación de registros de ingesta."""

from .reading_validator import (
    DEFAULT_DEVICE_ID,
    DEFAULT_LOCATION,
    ReadingValidator,
    validate_reading,
)

__all__ = ["DEFAULT_DEVICE_ID", "DEFAULT_LOCATION", "ReadingValidator", "validate_reading"]
