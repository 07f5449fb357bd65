"""Polling Reconciler.

Loop del lado consumidor que convierte el History Store (push) en estado
local vivo. En cada tick:

1. Pide las últimas N lecturas a la fuente
2. Expande cada lectura en una entrada por canal configurado
3. Mergea deduplicando por (channel_id, timestamp)
4. Reordena por timestamp y recorta a ``history_limit * len(channels)``
5. Evalúa SOLO las entradas nuevas y alimenta el AlertLedger
6. Recalcula el indicador agregado "connected"

Si un fetch tarda más que el intervalo, el tick siguiente se salta en vez
de solaparse. Un fetch fallido no borra el estado local.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from telemetry_api.alerts.ledger import AlertLedger
from telemetry_api.core.classification.liveness import (
    CONNECTED_THRESHOLD_MS,
    OFFLINE_THRESHOLD_MS,
    Liveness,
    classify,
    is_connected,
    is_stale,
)
from telemetry_api.core.classification.thresholds import ThresholdEvaluator
from telemetry_api.core.domain.alert import Alert, Severity
from telemetry_api.core.domain.channels import ChannelConfig, channels_for_location
from telemetry_api.core.domain.reading import ChannelReading, Reading
from telemetry_api.core.errors import StoreUnavailable
from telemetry_api.core.monitoring import metrics

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 50
DEFAULT_HISTORY_LIMIT = 100
DEFAULT_FETCH_TIMEOUT = 5.0


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class ReadingsSource(Protocol):
    async def fetch(self, limit: int) -> List[Reading]:
        ...


class TickStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class MergeResult:
    added: int
    evaluated: Tuple[ChannelReading, ...] = ()
    alerts: Tuple[Alert, ...] = ()


@dataclass(frozen=True)
class TickResult:
    status: TickStatus
    merge: Optional[MergeResult] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ChannelStatus:
    """Vista por canal: liveness, valor a mostrar y severidad actual."""
    channel: ChannelConfig
    liveness: Liveness
    latest: Optional[ChannelReading]
    severity: Optional[Severity]

    @property
    def value(self) -> Optional[float]:
        # OFFLINE se muestra como "--", nunca con el último valor stale.
        if self.latest is None or self.liveness is Liveness.OFFLINE:
            return None
        return self.latest.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel_id": self.channel.id,
            "location": self.channel.location,
            "type": self.channel.measurement.value,
            "label": self.channel.label,
            "unit": self.channel.unit,
            "status": self.liveness.value,
            "value": self.value,
            "timestamp": self.latest.timestamp if self.latest else None,
            "error": self.latest.error if self.latest else None,
            "severity": self.severity.value if self.severity else None,
        }


class PollingReconciler:
    """Reconciliador periódico de lecturas hacia estado local + alertas."""

    def __init__(
        self,
        source: ReadingsSource,
        channels: Sequence[ChannelConfig],
        ledger: AlertLedger,
        evaluator: Optional[ThresholdEvaluator] = None,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        offline_threshold_ms: int = OFFLINE_THRESHOLD_MS,
        connected_threshold_ms: int = CONNECTED_THRESHOLD_MS,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        clock: Optional[Callable[[], int]] = None,
    ):
        if not channels:
            raise ValueError("at least one channel is required")
        self._source = source
        self._channels: Tuple[ChannelConfig, ...] = tuple(channels)
        self._by_id: Dict[str, ChannelConfig] = {c.id: c for c in self._channels}
        self._by_location: Dict[str, Tuple[ChannelConfig, ...]] = {
            location: channels_for_location(self._channels, location)
            for location in dict.fromkeys(c.location for c in self._channels)
        }

        self._ledger = ledger
        self._evaluator = evaluator or ThresholdEvaluator(offline_threshold_ms=offline_threshold_ms)
        self._fetch_limit = int(fetch_limit)
        self._retention = int(history_limit) * len(self._channels)
        self._offline_threshold_ms = int(offline_threshold_ms)
        self._connected_threshold_ms = int(connected_threshold_ms)
        self._fetch_timeout = float(fetch_timeout)
        self._clock = clock or _wall_clock_ms

        self._lock = threading.Lock()
        self._entries: Tuple[ChannelReading, ...] = ()
        self._keys: Set[Tuple[str, int]] = set()
        self._connected = False
        self._in_flight = False

        # Stats
        self._ticks_ok = 0
        self._ticks_failed = 0
        self._ticks_skipped = 0
        self._last_error: Optional[str] = None

    @property
    def channels(self) -> Tuple[ChannelConfig, ...]:
        return self._channels

    @property
    def ledger(self) -> AlertLedger:
        return self._ledger

    @property
    def entries(self) -> Tuple[ChannelReading, ...]:
        """Snapshot local ordenado por timestamp ascendente."""
        return self._entries

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def retention(self) -> int:
        return self._retention

    @property
    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "retention": self._retention,
            "connected": self._connected,
            "ticks_ok": self._ticks_ok,
            "ticks_failed": self._ticks_failed,
            "ticks_skipped": self._ticks_skipped,
            "last_error": self._last_error,
        }

    def expand(self, readings: Iterable[Reading]) -> List[ChannelReading]:
        """Una entrada por canal configurado en la location de cada lectura."""
        expanded: List[ChannelReading] = []
        for reading in readings:
            for channel in self._by_location.get(reading.location, ()):
                expanded.append(
                    ChannelReading(
                        channel_id=channel.id,
                        measurement=channel.measurement,
                        value=round(reading.value_of(channel.measurement), 1),
                        unit=channel.unit,
                        timestamp=reading.timestamp,
                        location=reading.location,
                        error=reading.error,
                    )
                )
        return expanded

    def merge(self, readings: Iterable[Reading], now: int) -> MergeResult:
        """Mergea lecturas en el estado local y evalúa las entradas nuevas.

        Re-entregar el mismo (channel_id, timestamp) no crea entradas ni
        alertas duplicadas.
        """
        with self._lock:
            fresh: Dict[Tuple[str, int], ChannelReading] = {}
            for entry in self.expand(readings):
                if entry.key not in self._keys and entry.key not in fresh:
                    fresh[entry.key] = entry

            if not fresh:
                return MergeResult(added=0)

            combined = list(self._entries)
            combined.extend(fresh.values())
            combined.sort(key=lambda e: e.timestamp)
            if len(combined) > self._retention:
                combined = combined[-self._retention:]

            keys = {e.key for e in combined}
            survivors = [e for e in fresh.values() if e.key in keys]

            self._entries = tuple(combined)
            self._keys = keys

        # Solo la entrada nueva más reciente de cada canal llega al evaluador.
        latest_new: Dict[str, ChannelReading] = {}
        for entry in survivors:
            current = latest_new.get(entry.channel_id)
            if current is None or entry.timestamp >= current.timestamp:
                latest_new[entry.channel_id] = entry

        evaluated: List[ChannelReading] = []
        created: List[Alert] = []
        for channel_id, entry in latest_new.items():
            if is_stale(entry.timestamp, now, self._offline_threshold_ms):
                continue
            evaluated.append(entry)
            evaluation = self._evaluator.evaluate(entry, self._by_id[channel_id], now)
            alert = self._ledger.record(channel_id, evaluation, now)
            if alert is not None:
                created.append(alert)

        logger.debug(
            "[RECONCILER] Merged added=%d evaluated=%d alerts=%d entries=%d",
            len(survivors),
            len(evaluated),
            len(created),
            len(self._entries),
        )
        return MergeResult(added=len(survivors), evaluated=tuple(evaluated), alerts=tuple(created))

    def _set_connected(self, value: bool) -> None:
        if value != self._connected:
            logger.info("[RECONCILER] Connected changed: %s -> %s", self._connected, value)
        self._connected = value
        metrics.RECONCILER_CONNECTED.set(1 if value else 0)

    def refresh_connected(self, now: int) -> bool:
        """Recalcula "connected" con la entrada más reciente de cualquier canal."""
        entries = self._entries
        latest_ts = entries[-1].timestamp if entries else None
        self._set_connected(is_connected(latest_ts, now, self._connected_threshold_ms))
        return self._connected

    async def tick(self, now: Optional[int] = None) -> TickResult:
        """Ejecuta un ciclo fetch + merge.

        Un tick con otro aún en vuelo se salta. Un fallo de fetch marca
        ``connected = False`` y conserva el estado local previo.
        """
        if self._in_flight:
            self._ticks_skipped += 1
            metrics.RECONCILER_TICKS.labels(result=TickStatus.SKIPPED.value).inc()
            logger.debug("[RECONCILER] Previous fetch still in flight, skipping tick")
            return TickResult(status=TickStatus.SKIPPED)

        self._in_flight = True
        try:
            try:
                readings = await asyncio.wait_for(
                    self._source.fetch(self._fetch_limit),
                    timeout=self._fetch_timeout,
                )
            except asyncio.TimeoutError:
                return self._fail(f"fetch timed out after {self._fetch_timeout:.1f}s")
            except StoreUnavailable as e:
                return self._fail(str(e))

            if now is None:
                now = self._clock()
            result = self.merge(readings, now)
            self.refresh_connected(now)
            self._ticks_ok += 1
            self._last_error = None
            metrics.RECONCILER_TICKS.labels(result=TickStatus.OK.value).inc()
            return TickResult(status=TickStatus.OK, merge=result)
        finally:
            self._in_flight = False

    def _fail(self, error: str) -> TickResult:
        self._ticks_failed += 1
        self._last_error = error
        self._set_connected(False)
        metrics.RECONCILER_TICKS.labels(result=TickStatus.FAILED.value).inc()
        logger.warning("[RECONCILER] Fetch failed, keeping local state: %s", error)
        return TickResult(status=TickStatus.FAILED, error=error)

    async def _guarded_tick(self) -> None:
        try:
            await self.tick()
        except Exception as e:
            # El loop sigue vivo; el próximo tick se ejecuta igual.
            self._fail(f"unexpected error: {e}")
            logger.exception("[RECONCILER] Unexpected error in tick")

    async def run(self, interval: float, stop_event: Optional[asyncio.Event] = None) -> None:
        """Loop de intervalo fijo hasta que se active ``stop_event``.

        Cada tick se lanza como tarea propia; si el anterior sigue en vuelo
        el nuevo se salta, sin acumular backlog.
        """
        stop_event = stop_event or asyncio.Event()
        pending: Set[asyncio.Task] = set()
        logger.info(
            "[RECONCILER] Started interval=%.1fs fetch_limit=%d retention=%d channels=%d",
            interval,
            self._fetch_limit,
            self._retention,
            len(self._channels),
        )
        try:
            while not stop_event.is_set():
                task = asyncio.create_task(self._guarded_tick())
                pending.add(task)
                task.add_done_callback(pending.discard)
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            for task in list(pending):
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            logger.info("[RECONCILER] Stopped")

    def latest_by_channel(self) -> Dict[str, ChannelReading]:
        latest: Dict[str, ChannelReading] = {}
        for entry in self._entries:
            latest[entry.channel_id] = entry
        return latest

    def channel_statuses(self, now: Optional[int] = None) -> List[ChannelStatus]:
        """Estado de cada canal configurado en el instante ``now``."""
        if now is None:
            now = self._clock()
        latest = self.latest_by_channel()
        statuses: List[ChannelStatus] = []
        for channel in self._channels:
            entry = latest.get(channel.id)
            liveness = classify(entry, now, self._offline_threshold_ms)
            severity = None
            if entry is not None and liveness is not Liveness.OFFLINE:
                severity = self._evaluator.evaluate(entry, channel, now).severity
            statuses.append(ChannelStatus(channel=channel, liveness=liveness, latest=entry, severity=severity))
        return statuses
