from datetime import timedelta

from solar_monitor.models.alert import AlertType, CandidateAlert, Severity
from solar_monitor.services.repository import ReadingStore
from solar_monitor.services.state_maintenance import prune
from solar_monitor.tests.fake_readings import BASE_TIME, make_reading


def _alert():
    return CandidateAlert(type=AlertType.TEMPERATURE_HIGH, severity=Severity.HIGH, message="hot", value=65.0)


def _populate(store):
    store.insert(make_reading(at=BASE_TIME - timedelta(days=100)))
    store.insert(make_reading(at=BASE_TIME - timedelta(days=10)))
    store.record_alerts([_alert()], BASE_TIME - timedelta(days=200))
    store.record_alerts([_alert()], BASE_TIME - timedelta(days=100))


def test_prune_respects_retention_windows(tmp_path):
    store = ReadingStore(path=tmp_path / "solar.db")
    _populate(store)

    removed = prune(store, reading_days=90, alert_days=180, now=BASE_TIME)

    assert removed == (1, 1)
    assert store.count_range(None, BASE_TIME - timedelta(days=365), BASE_TIME) == 1
    assert len(store.list_alerts(unresolved_only=False)) == 1


def test_prune_in_memory_store_skips_vacuum():
    store = ReadingStore(persist=False)
    _populate(store)

    assert prune(store, reading_days=5, alert_days=5, now=BASE_TIME) == (2, 2)


def test_prune_closed_store_is_noop():
    store = ReadingStore(persist=False)
    store.close()
    assert prune(store, reading_days=1, alert_days=1) == (0, 0)
