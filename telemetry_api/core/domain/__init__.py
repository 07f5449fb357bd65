"""Domain layer - Modelos de lecturas, canales y alertas."""

from .alert import Alert, AlertKey, Severity
from .channels import (
    DEFAULT_CHANNEL_CONFIGS,
    DEFAULT_LOCATIONS,
    ChannelConfig,
    channels_for_location,
    load_channel_configs,
)
from .reading import ChannelReading, MeasurementType, Reading

__all__ = [
    "Alert",
    "AlertKey",
    "Severity",
    "ChannelConfig",
    "DEFAULT_CHANNEL_CONFIGS",
    "DEFAULT_LOCATIONS",
    "channels_for_location",
    "load_channel_configs",
    "ChannelReading",
    "MeasurementType",
    "Reading",
]
