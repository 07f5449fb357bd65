"""Métricas Prometheus del motor de telemetría."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

READINGS_INGESTED = Counter(
    "safeward_readings_ingested_total",
    "Readings received on the ingestion interface",
    ["status"],  # accepted, rejected, store_error
)

HISTORY_SIZE = Gauge(
    "safeward_history_size",
    "Readings currently retained by the bounded history store",
)

ALERTS_CREATED = Counter(
    "safeward_alerts_created_total",
    "Alerts created by the alert ledger",
    ["severity"],
)

ALERTS_DEBOUNCED = Counter(
    "safeward_alerts_debounced_total",
    "Qualifying evaluations suppressed by the debounce window",
)

RECONCILER_TICKS = Counter(
    "safeward_reconciler_ticks_total",
    "Polling reconciler ticks",
    ["result"],  # ok, failed, skipped
)

RECONCILER_CONNECTED = Gauge(
    "safeward_reconciler_connected",
    "1 when the most recent reading is within the connected threshold",
)
