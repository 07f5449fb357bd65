"""Classification layer - Liveness y evaluación de umbrales."""

from .liveness import (
    CONNECTED_THRESHOLD_MS,
    OFFLINE_THRESHOLD_MS,
    Liveness,
    classify,
    is_connected,
    is_stale,
)
from .thresholds import (
    CRITICAL_MULTIPLIER,
    NO_ALERT,
    Evaluation,
    ThresholdEvaluator,
    format_message,
    format_value,
)

__all__ = [
    "CONNECTED_THRESHOLD_MS",
    "OFFLINE_THRESHOLD_MS",
    "Liveness",
    "classify",
    "is_connected",
    "is_stale",
    "CRITICAL_MULTIPLIER",
    "NO_ALERT",
    "Evaluation",
    "ThresholdEvaluator",
    "format_message",
    "format_value",
]
