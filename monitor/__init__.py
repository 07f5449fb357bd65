"""Monitor - Polling Reconciler y sus fuentes de lecturas."""

from .reconciler import (
    ChannelStatus,
    MergeResult,
    PollingReconciler,
    ReadingsSource,
    TickResult,
    TickStatus,
)
from .sources import HttpReadingsSource, StoreReadingsSource

__all__ = [
    "ChannelStatus",
    "MergeResult",
    "PollingReconciler",
    "ReadingsSource",
    "TickResult",
    "TickStatus",
    "HttpReadingsSource",
    "StoreReadingsSource",
]
