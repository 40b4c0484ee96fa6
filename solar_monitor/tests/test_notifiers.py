import urllib.error
import urllib.parse
from datetime import timedelta
from types import SimpleNamespace

import requests

from solar_monitor.config import PushoverConfig, ReportWebhookConfig
from solar_monitor.models.alert import AlertType, CandidateAlert, Severity
from solar_monitor.services.notification_manager import NotificationManager
from solar_monitor.services.notifiers import pushover as pushover_module
from solar_monitor.services.notifiers.pushover import PushoverNotifier
from solar_monitor.services.notifiers.webhook import ReportWebhookSink
from solar_monitor.services.period_summary import PeriodSummaryBuilder
from solar_monitor.tests.fake_readings import BASE_TIME, constant_power


def _log():
    return SimpleNamespace(
        debug=lambda *args, **kwargs: None,
        info=lambda *args, **kwargs: None,
        warning=lambda *args, **kwargs: None,
    )


def _alert(severity=Severity.CRITICAL):
    return CandidateAlert(
        type=AlertType.VOLTAGE_DROP,
        severity=severity,
        message="Critical voltage drop detected: 1.00V",
        value=1.0,
        previous_value=12.5,
        threshold="10% of normal",
        device_id="DEV-1",
    )


def _report():
    return PeriodSummaryBuilder().build(constant_power(100.0, 3), BASE_TIME, BASE_TIME + timedelta(hours=2))


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code


class FakeSession:
    def __init__(self, status_code=200, exc=None):
        self.status_code = status_code
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.exc is not None:
            raise self.exc
        return FakeResponse(self.status_code)


def _capture_urlopen(monkeypatch, fail=False):
    sent = []

    def fake_urlopen(req, timeout=None):
        if fail:
            raise urllib.error.URLError("offline")
        sent.append(dict(urllib.parse.parse_qsl(req.data.decode("utf-8"))))
        return SimpleNamespace()

    monkeypatch.setattr(pushover_module.urllib.request, "urlopen", fake_urlopen)
    return sent


# ------------------------------------------------------------------
# Pushover
# ------------------------------------------------------------------
def test_pushover_alert_message(monkeypatch):
    sent = _capture_urlopen(monkeypatch)
    notifier = PushoverNotifier(PushoverConfig(token="t", user="u", enabled=True), _log())

    assert notifier.notify(_alert())
    (payload,) = sent
    assert payload["title"] == "Solar Alert [CRITICAL]: voltage drop"
    assert payload["priority"] == "1"
    assert "Value: 1.00 V" in payload["message"]
    assert "Previous: 12.50 V" in payload["message"]
    assert "Device: DEV-1" in payload["message"]


def test_pushover_high_severity_is_normal_priority(monkeypatch):
    sent = _capture_urlopen(monkeypatch)
    notifier = PushoverNotifier(PushoverConfig(token="t", user="u", enabled=True), _log())
    notifier.notify(_alert(Severity.HIGH))
    assert sent[0]["priority"] == "0"


def test_pushover_disabled_without_credentials(monkeypatch):
    sent = _capture_urlopen(monkeypatch)
    notifier = PushoverNotifier(PushoverConfig(token=None, user="u", enabled=True), _log())
    assert not notifier.enabled
    assert notifier.notify(_alert()) is False
    assert sent == []


def test_pushover_network_failure_returns_false(monkeypatch):
    _capture_urlopen(monkeypatch, fail=True)
    notifier = PushoverNotifier(PushoverConfig(token="t", user="u", enabled=True), _log())
    assert notifier.send_alerts([_alert(), _alert()]) == 0


# ------------------------------------------------------------------
# Report webhook
# ------------------------------------------------------------------
def test_webhook_posts_report_json():
    session = FakeSession()
    sink = ReportWebhookSink(ReportWebhookConfig(url="https://hook.test/r", enabled=True, timeout=3), _log(), session)

    assert sink.deliver(_report())
    url, body, timeout = session.calls[0]
    assert url == "https://hook.test/r"
    assert timeout == 3
    assert body["summary"]["totalEnergy"] == 0.2
    assert body["reportType"] == "custom"


def test_webhook_http_error_is_failure():
    sink = ReportWebhookSink(ReportWebhookConfig(url="https://hook.test/r", enabled=True), _log(), FakeSession(500))
    assert sink.deliver(_report()) is False


def test_webhook_connection_error_is_failure():
    session = FakeSession(exc=requests.ConnectionError("refused"))
    sink = ReportWebhookSink(ReportWebhookConfig(url="https://hook.test/r", enabled=True), _log(), session)
    assert sink.deliver(_report()) is False


def test_webhook_disabled_does_not_post():
    session = FakeSession()
    sink = ReportWebhookSink(ReportWebhookConfig(url=None, enabled=True), _log(), session)
    assert sink.deliver(_report()) is False
    assert session.calls == []


# ------------------------------------------------------------------
# Manager
# ------------------------------------------------------------------
def test_manager_only_pushes_notifiable_alerts(monkeypatch):
    sent = _capture_urlopen(monkeypatch)
    manager = NotificationManager(
        PushoverConfig(token="t", user="u", enabled=True),
        ReportWebhookConfig(),
        _log(),
        webhook=ReportWebhookSink(ReportWebhookConfig(), _log(), FakeSession()),
    )

    count = manager.handle_alerts([_alert(), _alert(Severity.MEDIUM), _alert(Severity.LOW)])
    assert count == 1
    assert len(sent) == 1


def test_manager_delivers_report_to_both_sinks(monkeypatch):
    sent = _capture_urlopen(monkeypatch)
    session = FakeSession()
    manager = NotificationManager(
        PushoverConfig(token="t", user="u", enabled=True),
        ReportWebhookConfig(url="https://hook.test/r", enabled=True),
        _log(),
        webhook=ReportWebhookSink(ReportWebhookConfig(url="https://hook.test/r", enabled=True), _log(), session),
    )

    assert manager.deliver(_report())
    assert len(session.calls) == 1
    assert sent[0]["title"].endswith("0.200 kWh")
