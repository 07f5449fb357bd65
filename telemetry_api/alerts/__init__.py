"""Alertas - Ledger con debounce y notificadores."""

from .ledger import DEFAULT_DEBOUNCE_MS, DEFAULT_HISTORY_LIMIT, AlertLedger
from .notifier import LoggingNotifier, Notifier, WebhookNotifier, build_notifier

__all__ = [
    "AlertLedger",
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_HISTORY_LIMIT",
    "Notifier",
    "LoggingNotifier",
    "WebhookNotifier",
    "build_notifier",
]
