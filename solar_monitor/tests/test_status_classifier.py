from datetime import timedelta
from types import SimpleNamespace

import pytest

from solar_monitor.models.alert import AlertType, Severity
from solar_monitor.models.reading import ReadingStatus
from solar_monitor.services.alert_state import AlertStateManager
from solar_monitor.services.repository import ReadingStore
from solar_monitor.services.status_classifier import (
    check_device_health,
    check_system_offline,
    classify_status,
    reading_recommendations,
)
from solar_monitor.tests.fake_readings import BASE_TIME, make_reading


@pytest.mark.parametrize(
    "voltage,current,temperature,expected",
    [
        pytest.param(9.5, 0.0, 30.0, ReadingStatus.CRITICAL, id="low-voltage-wins"),
        pytest.param(None, 2.0, 30.0, ReadingStatus.CRITICAL, id="voltage-missing"),
        pytest.param(12.0, None, 30.0, ReadingStatus.WARNING, id="current-missing"),
        pytest.param(12.0, 0.05, 30.0, ReadingStatus.WARNING, id="current-low"),
        pytest.param(12.0, 2.0, 61.0, ReadingStatus.WARNING, id="hot"),
        pytest.param(12.0, 2.0, 60.0, ReadingStatus.NORMAL, id="at-temperature-limit"),
        pytest.param(12.0, 2.0, None, ReadingStatus.NORMAL, id="temperature-missing"),
        pytest.param(10.0, 0.1, 20.0, ReadingStatus.NORMAL, id="boundaries"),
    ],
)
def test_classify_status(voltage, current, temperature, expected):
    assert classify_status(voltage, current, temperature) is expected


def test_reading_recommendations():
    tips = reading_recommendations(make_reading(12.5, 0.05, 65.0))
    assert "High temperature detected. Ensure proper ventilation." in tips
    assert "Voltage present but low current. Check solar panel output." in tips
    assert reading_recommendations(make_reading(11.0, 2.0, 25.0)) == [
        "Low voltage detected. Check battery and connections."
    ]


def test_device_health_offline_without_data():
    health = check_device_health("DEV-1", None, BASE_TIME)
    assert health.status == "offline"
    assert health.last_update is None
    assert health.recommendations


def test_device_health_offline_when_stale():
    latest = make_reading(minutes=0)
    health = check_device_health("DEV-1", latest, BASE_TIME + timedelta(minutes=11))
    assert health.status == "offline"
    assert health.minutes_since_update == 11


def test_device_health_mirrors_reading_status():
    latest = make_reading(9.0, 2.0, 30.0, status=ReadingStatus.CRITICAL)
    health = check_device_health("DEV-1", latest, BASE_TIME + timedelta(minutes=2))
    assert health.status == "critical"

    ok = make_reading()
    assert check_device_health("DEV-1", ok, BASE_TIME).status == "healthy"


def test_system_offline_alert_escalates():
    latest = make_reading()
    assert check_system_offline("DEV-1", latest, BASE_TIME + timedelta(minutes=5)) is None

    quiet = check_system_offline("DEV-1", latest, BASE_TIME + timedelta(minutes=12))
    assert quiet.type is AlertType.SYSTEM_OFFLINE
    assert quiet.severity is Severity.HIGH

    gone = check_system_offline("DEV-1", latest, BASE_TIME + timedelta(minutes=45))
    assert gone.severity is Severity.CRITICAL
    assert gone.message == "System offline for 45 minutes"

    never = check_system_offline("DEV-9", None, BASE_TIME)
    assert never.severity is Severity.CRITICAL
    assert never.device_id == "DEV-9"
    assert gone.device_id == "DEV-1"


def test_offline_alert_for_silent_device_does_not_suppress_others():
    store = ReadingStore(persist=False)
    mgr = AlertStateManager(log=SimpleNamespace(debug=lambda *args, **kwargs: None), recent_alerts=store)

    first = mgr.process([check_system_offline("DEV-1", None, BASE_TIME)], BASE_TIME)
    store.record_alerts(first.alerts, BASE_TIME)

    later = BASE_TIME + timedelta(minutes=5)
    other = mgr.process([check_system_offline("DEV-2", None, later)], later)
    assert [a.device_id for a in other.alerts] == ["DEV-2"]

    repeat = mgr.process([check_system_offline("DEV-1", None, later)], later)
    assert repeat.alerts == []
