"""Alert Ledger - creación, debounce y reconocimiento de alertas.

Máquina de estados por canal::

    {sin alerta activa} --[severidad]--> {activa, no reconocida}
                        --[ack del operador]--> {reconocida, en histórico}

Debounce: se crea una alerta nueva solo si NO existe otra alerta del mismo
canal que esté sin reconocer Y creada hace menos de ``debounce_ms``.

Las mutaciones se serializan con un único lock; las lecturas trabajan sobre
la última tupla publicada, sin tomar el lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Tuple

from ..core.classification.thresholds import Evaluation
from ..core.domain.alert import Alert, AlertKey, Severity
from ..core.errors import AlertNotFound
from ..core.monitoring import metrics
from .notifier import Notifier

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 10_000
DEFAULT_HISTORY_LIMIT = 10


class AlertLedger:
    """Libro de alertas en memoria, retenidas durante toda la vida del proceso."""

    def __init__(
        self,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        notifier: Optional[Notifier] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self._debounce_ms = int(debounce_ms)
        self._notifier = notifier
        self._history_limit = max(1, int(history_limit))

        self._lock = threading.Lock()
        # Snapshot inmutable en orden de creación; se reemplaza entero en cada mutación.
        self._alerts: Tuple[Alert, ...] = ()
        self._index: Dict[AlertKey, int] = {}

        # Stats
        self._created = 0
        self._debounced = 0
        self._notify_failures = 0

    @property
    def debounce_ms(self) -> int:
        return self._debounce_ms

    @property
    def stats(self) -> dict:
        """Estadísticas del ledger."""
        alerts = self._alerts
        return {
            "total": len(alerts),
            "active": sum(1 for a in alerts if not a.acknowledged),
            "created": self._created,
            "debounced": self._debounced,
            "notify_failures": self._notify_failures,
        }

    def _is_debounced(self, channel_id: str, now: int) -> bool:
        for alert in reversed(self._alerts):
            if alert.channel_id != channel_id or alert.acknowledged:
                continue
            if now - alert.timestamp < self._debounce_ms:
                return True
        return False

    def record(self, channel_id: str, evaluation: Evaluation, now: int) -> Optional[Alert]:
        """Registra el resultado de una evaluación.

        Args:
            channel_id: Canal evaluado
            evaluation: Resultado del ThresholdEvaluator
            now: Instante de creación (ms)

        Returns:
            La alerta creada, o None si no hubo severidad o aplicó el debounce
        """
        if not evaluation.is_alert:
            return None

        with self._lock:
            if self._is_debounced(channel_id, now):
                self._debounced += 1
                metrics.ALERTS_DEBOUNCED.inc()
                logger.debug("[ALERT] Debounced channel=%s severity=%s", channel_id, evaluation.severity.value)
                return None

            alert = Alert(
                channel_id=channel_id,
                message=evaluation.message,
                severity=evaluation.severity,
                timestamp=int(now),
            )
            if alert.key in self._index:
                # Mismo canal y mismo instante: la identidad ya está tomada.
                logger.debug("[ALERT] Duplicate key channel=%s created_at=%s", channel_id, now)
                return None

            self._index[alert.key] = len(self._alerts)
            self._alerts = self._alerts + (alert,)
            self._created += 1

        metrics.ALERTS_CREATED.labels(severity=alert.severity.value).inc()
        logger.info(
            "[ALERT] Created channel=%s severity=%s message=%r",
            channel_id,
            alert.severity.value,
            alert.message,
        )

        # WARNING es solo visual; únicamente CRITICAL dispara el notificador.
        if alert.severity is Severity.CRITICAL:
            self._notify(alert)
        return alert

    def _notify(self, alert: Alert) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify(alert)
        except Exception as e:
            with self._lock:
                self._notify_failures += 1
            logger.error("[NOTIFY] Notifier failed for channel=%s: %s", alert.channel_id, e)

    def acknowledge(self, channel_id: str, created_at: int) -> Alert:
        """Marca una alerta como reconocida. Idempotente.

        Raises:
            AlertNotFound: si no existe alerta con esa clave
        """
        key = AlertKey(channel_id, int(created_at))
        with self._lock:
            position = self._index.get(key)
            if position is None:
                raise AlertNotFound(channel_id, int(created_at))

            current = self._alerts[position]
            if current.acknowledged:
                return current

            updated = current.acknowledge()
            alerts = list(self._alerts)
            alerts[position] = updated
            self._alerts = tuple(alerts)

        logger.info("[ALERT] Acknowledged channel=%s created_at=%s", channel_id, created_at)
        return updated

    def get(self, channel_id: str, created_at: int) -> Optional[Alert]:
        alerts = self._alerts
        position = self._index.get(AlertKey(channel_id, int(created_at)))
        if position is None or position >= len(alerts):
            return None
        return alerts[position]

    def active(self) -> List[Alert]:
        """Alertas sin reconocer: CRITICAL antes que WARNING, luego las más recientes primero."""
        pending = [a for a in self._alerts if not a.acknowledged]
        return sorted(pending, key=lambda a: (a.severity.rank, -a.timestamp))

    def history(self, limit: Optional[int] = None) -> List[Alert]:
        """Alertas reconocidas, más recientes primero, recortadas para presentación."""
        if limit is None or limit <= 0:
            limit = self._history_limit
        done = [a for a in self._alerts if a.acknowledged]
        done.sort(key=lambda a: a.timestamp, reverse=True)
        return done[:limit]

    def all(self) -> List[Alert]:
        """Todas las alertas retenidas, en orden de creación."""
        return list(self._alerts)

    def __len__(self) -> int:
        return len(self._alerts)
