"""Notificadores para alertas CRITICAL.

Entrega best-effort, fire-and-forget: un fallo al notificar se loguea y
nunca interrumpe la creación de la alerta.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Protocol

import requests

from ..core.domain.alert import Alert

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, alert: Alert) -> None:
        ...


class LoggingNotifier:
    """Notificador por defecto: deja constancia en el log."""

    def notify(self, alert: Alert) -> None:
        logger.warning("[NOTIFY] CRITICAL alert channel=%s message=%r", alert.channel_id, alert.message)


class WebhookNotifier:
    """Dispara un POST JSON a un webhook externo sin bloquear al llamador."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        executor: Optional[ThreadPoolExecutor] = None,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._timeout = timeout_seconds
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="notify")
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return self._url

    def _post(self, alert: Alert) -> int:
        response = self._session.post(
            self._url,
            json={"type": "alert", "alert": alert.to_dict()},
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        if not response.ok:
            logger.warning(
                "[NOTIFY] Webhook rejected alert channel=%s: %s %s",
                alert.channel_id,
                response.status_code,
                response.text,
            )
        else:
            logger.info("[NOTIFY] Webhook notified channel=%s", alert.channel_id)
        return response.status_code

    def _on_done(self, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error("[NOTIFY] Error triggering webhook notification: %s", error)

    def notify(self, alert: Alert) -> Future:
        future = self._executor.submit(self._post, alert)
        future.add_done_callback(self._on_done)
        return future

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        self._session.close()


def build_notifier(webhook_url: Optional[str], timeout_seconds: float = 5.0) -> Notifier:
    if webhook_url:
        logger.info("[NOTIFY] Using webhook notifier url=%s", webhook_url)
        return WebhookNotifier(webhook_url, timeout_seconds=timeout_seconds)
    return LoggingNotifier()
