from datetime import timedelta
from types import SimpleNamespace

from solar_monitor.models.alert import AlertType, CandidateAlert, Severity
from solar_monitor.services.alert_state import AlertStateManager, dedupe_key, deduplicate
from solar_monitor.services.repository import ReadingStore
from solar_monitor.tests.fake_readings import BASE_TIME


QUIET = SimpleNamespace(debug=lambda *args, **kwargs: None)


def _alert(value, *, type=AlertType.VOLTAGE_DROP, severity=Severity.HIGH, device_id="DEV-1"):
    return CandidateAlert(
        type=type,
        severity=severity,
        message=f"value {value}",
        value=value,
        device_id=device_id,
    )


def test_values_agreeing_to_one_decimal_are_duplicates():
    unique = deduplicate([_alert(11.51), _alert(11.54)])
    assert len(unique) == 1
    assert unique[0].value == 11.51


def test_values_differing_at_one_decimal_are_kept():
    assert len(deduplicate([_alert(11.51), _alert(11.65)])) == 2


def test_same_value_different_type_is_kept():
    alerts = [_alert(0.0, type=AlertType.CURRENT_ANOMALY), _alert(0.0, type=AlertType.VOLTAGE_DROP)]
    assert len(deduplicate(alerts)) == 2


def test_dedupe_key_rounds_half_up():
    assert dedupe_key(_alert(0.25)) == ("voltage_drop", 3)
    assert dedupe_key(_alert(1.25)) == ("voltage_drop", 13)


def test_only_high_and_critical_are_notified():
    mgr = AlertStateManager(log=QUIET)
    dispatch = mgr.process(
        [
            _alert(1.0, severity=Severity.CRITICAL),
            _alert(9.0, severity=Severity.MEDIUM),
            _alert(0.1, type=AlertType.CURRENT_ANOMALY, severity=Severity.HIGH),
        ],
        now=BASE_TIME,
    )

    assert len(dispatch.alerts) == 3
    assert [a.severity for a in dispatch.notify] == [Severity.CRITICAL, Severity.HIGH]
    assert dispatch.suppressed == []


def test_recent_alert_in_store_suppresses_repeat():
    store = ReadingStore(persist=False)
    store.record_alerts([_alert(1.0)], BASE_TIME - timedelta(minutes=30))

    mgr = AlertStateManager(log=QUIET, recent_alerts=store, window_minutes=60)
    dispatch = mgr.process(
        [_alert(1.5), _alert(65.0, type=AlertType.TEMPERATURE_HIGH)],
        now=BASE_TIME,
    )

    assert [a.type for a in dispatch.suppressed] == [AlertType.VOLTAGE_DROP]
    assert [a.type for a in dispatch.alerts] == [AlertType.TEMPERATURE_HIGH]


def test_alert_outside_window_is_not_suppressed():
    store = ReadingStore(persist=False)
    store.record_alerts([_alert(1.0)], BASE_TIME - timedelta(hours=2))

    mgr = AlertStateManager(log=QUIET, recent_alerts=store, window_minutes=60)
    dispatch = mgr.process([_alert(1.5)], now=BASE_TIME)

    assert dispatch.suppressed == []
    assert len(dispatch.notify) == 1


def test_zero_window_disables_cross_call_suppression():
    store = ReadingStore(persist=False)
    store.record_alerts([_alert(1.0)], BASE_TIME)

    mgr = AlertStateManager(log=QUIET, recent_alerts=store, window_minutes=0)
    assert mgr.process([_alert(1.0)], now=BASE_TIME).suppressed == []
