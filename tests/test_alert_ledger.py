"""Tests del Alert Ledger y notificadores.

Ejecutar:
    pytest tests/test_alert_ledger.py -v
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
import requests

from telemetry_api.alerts import AlertLedger, LoggingNotifier, WebhookNotifier, build_notifier
from telemetry_api.core.classification import NO_ALERT, Evaluation
from telemetry_api.core.domain import Alert, Severity
from telemetry_api.core.errors import AlertNotFound

NOW = 1_700_000_100_000

WARNING_EVAL = Evaluation(Severity.WARNING, "Elevated Methane levels at Ward A: 950ppm")
CRITICAL_EVAL = Evaluation(Severity.CRITICAL, "CRITICAL METHANE LEAK at Ward A: 961ppm")


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def ledger(notifier) -> AlertLedger:
    return AlertLedger(debounce_ms=10_000, notifier=notifier)


# =============================================================================
# CREACIÓN Y DEBOUNCE
# =============================================================================

class TestDebounce:
    """Una sola alerta por canal dentro de la ventana mientras no se reconozca."""

    def test_no_severity_creates_nothing(self, ledger):
        assert ledger.record("wa-meth", NO_ALERT, NOW) is None
        assert len(ledger) == 0

    def test_two_qualifying_within_window_create_one(self, ledger):
        first = ledger.record("wa-meth", WARNING_EVAL, NOW)
        second = ledger.record("wa-meth", WARNING_EVAL, NOW + 5_000)

        assert first is not None
        assert second is None
        assert len(ledger) == 1
        assert ledger.stats["debounced"] == 1

    def test_acknowledged_first_allows_second_within_window(self, ledger):
        first = ledger.record("wa-meth", WARNING_EVAL, NOW)
        ledger.acknowledge(first.channel_id, first.timestamp)
        second = ledger.record("wa-meth", WARNING_EVAL, NOW + 5_000)

        assert second is not None
        assert len(ledger) == 2

    def test_window_expiry_allows_new_alert(self, ledger):
        ledger.record("wa-meth", WARNING_EVAL, NOW)
        assert ledger.record("wa-meth", WARNING_EVAL, NOW + 9_999) is None
        assert ledger.record("wa-meth", WARNING_EVAL, NOW + 10_000) is not None

    def test_escalation_within_window_is_debounced(self, ledger):
        ledger.record("wa-meth", WARNING_EVAL, NOW)
        assert ledger.record("wa-meth", CRITICAL_EVAL, NOW + 1_000) is None

    def test_debounce_is_per_channel(self, ledger):
        assert ledger.record("wa-meth", WARNING_EVAL, NOW) is not None
        assert ledger.record("wb-meth", WARNING_EVAL, NOW) is not None

    def test_alert_fields(self, ledger):
        alert = ledger.record("wa-meth", WARNING_EVAL, NOW)

        assert alert.channel_id == "wa-meth"
        assert alert.message == WARNING_EVAL.message
        assert alert.severity is Severity.WARNING
        assert alert.timestamp == NOW
        assert alert.acknowledged is False
        assert alert.key == ("wa-meth", NOW)


# =============================================================================
# NOTIFICADOR
# =============================================================================

class TestNotifierPolicy:
    """Solo CRITICAL dispara el notificador; WARNING es visual."""

    def test_critical_notifies_once(self, ledger, notifier):
        alert = ledger.record("wa-meth", CRITICAL_EVAL, NOW)
        notifier.notify.assert_called_once_with(alert)

    def test_warning_does_not_notify(self, ledger, notifier):
        ledger.record("wa-meth", WARNING_EVAL, NOW)
        notifier.notify.assert_not_called()

    def test_debounced_critical_does_not_notify(self, ledger, notifier):
        ledger.record("wa-meth", CRITICAL_EVAL, NOW)
        ledger.record("wa-meth", CRITICAL_EVAL, NOW + 1_000)
        assert notifier.notify.call_count == 1

    def test_notifier_failure_keeps_alert(self, ledger, notifier):
        notifier.notify.side_effect = RuntimeError("speaker offline")

        alert = ledger.record("wa-meth", CRITICAL_EVAL, NOW)

        assert alert is not None
        assert ledger.active() == [alert]
        assert ledger.stats["notify_failures"] == 1

    def test_concurrent_notifier_failures_are_all_counted(self, ledger, notifier):
        notifier.notify.side_effect = RuntimeError("speaker offline")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: ledger.record(f"ch-{i}", CRITICAL_EVAL, NOW), range(200)))

        assert len(ledger) == 200
        assert ledger.stats["notify_failures"] == 200

    def test_build_notifier(self):
        assert isinstance(build_notifier(None), LoggingNotifier)
        webhook = build_notifier("http://hooks.local/alert")
        assert isinstance(webhook, WebhookNotifier)
        webhook.close()


class TestWebhookNotifier:
    def test_posts_alert_json(self):
        session = MagicMock()
        session.post.return_value = MagicMock(ok=True, status_code=200)
        executor = ThreadPoolExecutor(max_workers=1)
        webhook = WebhookNotifier("http://hooks.local/alert", timeout_seconds=2, executor=executor, session=session)
        alert = Alert("wa-meth", "CRITICAL METHANE LEAK at Ward A: 961ppm", Severity.CRITICAL, NOW)

        assert webhook.notify(alert).result(timeout=5) == 200
        session.post.assert_called_once_with(
            "http://hooks.local/alert",
            json={"type": "alert", "alert": alert.to_dict()},
            headers={"Content-Type": "application/json"},
            timeout=2,
        )
        executor.shutdown()

    def test_transport_error_is_logged_not_raised(self, caplog):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        executor = ThreadPoolExecutor(max_workers=1)
        webhook = WebhookNotifier("http://hooks.local/alert", executor=executor, session=session)
        alert = Alert("wa-meth", "msg", Severity.CRITICAL, NOW)

        future = webhook.notify(alert)
        executor.shutdown(wait=True)

        assert isinstance(future.exception(), requests.ConnectionError)
        assert "[NOTIFY] Error triggering webhook notification" in caplog.text


# =============================================================================
# ACKNOWLEDGE Y VISTAS
# =============================================================================

class TestAcknowledge:
    """El reconocimiento es monótono e idempotente."""

    def test_acknowledge_moves_to_history(self, ledger):
        alert = ledger.record("wa-meth", WARNING_EVAL, NOW)

        acked = ledger.acknowledge("wa-meth", NOW)

        assert acked.acknowledged is True
        assert ledger.active() == []
        assert ledger.history() == [acked]
        assert ledger.all() == [acked]
        assert alert.acknowledged is False

    def test_acknowledge_is_idempotent(self, ledger):
        ledger.record("wa-meth", WARNING_EVAL, NOW)
        first = ledger.acknowledge("wa-meth", NOW)
        second = ledger.acknowledge("wa-meth", NOW)

        assert first == second
        assert ledger.get("wa-meth", NOW).acknowledged is True

    def test_unknown_alert_raises(self, ledger):
        with pytest.raises(AlertNotFound):
            ledger.acknowledge("wa-meth", NOW)


class TestViews:
    def test_active_sorted_critical_first_then_newest(self, ledger):
        ledger.record("wa-temp", Evaluation(Severity.WARNING, "TEMPERATURE High at Ward A: 27°C"), NOW)
        ledger.record("wb-meth", CRITICAL_EVAL, NOW + 1)
        ledger.record("wc-hum", Evaluation(Severity.WARNING, "HUMIDITY High at Ward C: 65%"), NOW + 2)
        ledger.record("wa-meth", CRITICAL_EVAL, NOW + 3)

        order = [(a.channel_id, a.severity) for a in ledger.active()]
        assert order == [
            ("wa-meth", Severity.CRITICAL),
            ("wb-meth", Severity.CRITICAL),
            ("wc-hum", Severity.WARNING),
            ("wa-temp", Severity.WARNING),
        ]

    def test_history_newest_first_and_capped(self):
        ledger = AlertLedger(debounce_ms=10_000, history_limit=10)
        for i in range(15):
            ledger.record("wa-meth", WARNING_EVAL, NOW + i * 20_000)
            ledger.acknowledge("wa-meth", NOW + i * 20_000)

        history = ledger.history()
        assert len(history) == 10
        assert [a.timestamp for a in history] == [NOW + i * 20_000 for i in range(14, 4, -1)]
        assert len(ledger.history(limit=3)) == 3
        # Todo se retiene aunque la vista esté recortada.
        assert len(ledger.all()) == 15
