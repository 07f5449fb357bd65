"""Fixtures compartidas por la suite."""

from typing import Callable, Optional

import pytest

from telemetry_api.core.domain.channels import DEFAULT_CHANNEL_CONFIGS, ChannelConfig
from telemetry_api.core.domain.reading import MeasurementType, Reading

BASE_TS = 1_700_000_000_000


@pytest.fixture
def make_reading() -> Callable[..., Reading]:
    """Factory de lecturas válidas con valores dentro de rango."""

    def _make(
        timestamp: int = BASE_TS,
        location: str = "Ward A",
        methane: float = 50.0,
        temperature: float = 24.0,
        humidity: float = 50.0,
        device_id: str = "esp32-001",
        error: Optional[str] = None,
    ) -> Reading:
        return Reading(
            device_id=device_id,
            location=location,
            methane=methane,
            temperature=temperature,
            humidity=humidity,
            timestamp=timestamp,
            error=error,
        )

    return _make


@pytest.fixture
def channels():
    return DEFAULT_CHANNEL_CONFIGS


@pytest.fixture
def methane_channel() -> ChannelConfig:
    """Canal de metano con umbral 800 ppm (escenario de despliegue real)."""
    return ChannelConfig(
        id="wa-meth",
        location="Ward A",
        measurement=MeasurementType.METHANE,
        label="Ward A Methane",
        unit="ppm",
        safe_range=(0.0, 800.0),
        warning_threshold=800.0,
    )
