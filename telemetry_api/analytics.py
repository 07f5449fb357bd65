"""Resumen analítico de alertas y lecturas.

La categorización de alertas se hace por substring sobre el mensaje, que
tiene formato fijo por tipo de canal (ver thresholds.format_message).
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Sequence

from .core.domain.alert import Alert, Severity
from .core.domain.reading import ChannelReading, MeasurementType

_LOCATION_PATTERN = re.compile(r"Ward [A-Z]")
UNKNOWN_LOCATION = "Unknown"


def location_of(message: str) -> str:
    match = _LOCATION_PATTERN.search(message)
    return match.group(0) if match else UNKNOWN_LOCATION


def alert_stats(alerts: Sequence[Alert]) -> Dict[str, Any]:
    by_type = {m.reading_field: 0 for m in MeasurementType}
    by_location: Dict[str, int] = {}

    for alert in alerts:
        lowered = alert.message.lower()
        for keyword in by_type:
            if keyword in lowered:
                by_type[keyword] += 1
        location = location_of(alert.message)
        by_location[location] = by_location.get(location, 0) + 1

    return {
        "total": len(alerts),
        "critical": sum(1 for a in alerts if a.severity is Severity.CRITICAL),
        "warning": sum(1 for a in alerts if a.severity is Severity.WARNING),
        "acknowledged": sum(1 for a in alerts if a.acknowledged),
        "by_type": by_type,
        "by_location": by_location,
    }


def reading_stats(entries: Iterable[ChannelReading]) -> Dict[str, Any]:
    values: Dict[MeasurementType, List[float]] = {m: [] for m in MeasurementType}
    total = 0
    for entry in entries:
        values[entry.measurement].append(entry.value)
        total += 1

    stats: Dict[str, Any] = {}
    for measurement, series in values.items():
        if not series:
            stats[measurement.reading_field] = {"avg": 0.0, "min": 0.0, "max": 0.0}
            continue
        stats[measurement.reading_field] = {
            "avg": sum(series) / len(series),
            "min": min(series),
            "max": max(series),
        }
    return {"readings": stats, "total_readings": total}


def summarize(alerts: Sequence[Alert], entries: Iterable[ChannelReading]) -> Dict[str, Any]:
    """Resumen combinado que sirve /api/analytics."""
    summary = {"alerts": alert_stats(alerts)}
    summary.update(reading_stats(entries))
    return summary
