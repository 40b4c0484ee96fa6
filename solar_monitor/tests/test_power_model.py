import pytest

from solar_monitor.models.alert import AlertType
from solar_monitor.models.reading import Reading
from solar_monitor.services.power_model import (
    ALERT_UNITS,
    compute_power,
    format_value,
    health_label,
    health_score,
)


def test_power_is_product_of_voltage_and_current():
    assert compute_power(12.5, 2.0) == pytest.approx(25.0)


@pytest.mark.parametrize("voltage,current", [(None, 2.0), (12.0, None), (None, None)])
def test_power_unknown_when_input_missing(voltage, current):
    assert compute_power(voltage, current) is None


def test_every_alert_type_has_a_unit():
    assert set(ALERT_UNITS) == set(AlertType)
    assert ALERT_UNITS[AlertType.VOLTAGE_DROP] == "V"
    assert ALERT_UNITS[AlertType.CURRENT_ANOMALY] == "A"
    assert ALERT_UNITS[AlertType.TEMPERATURE_HIGH] == "°C"


def test_format_value_uses_unit_precision():
    assert format_value(12.3456, "V") == "12.35 V"
    assert format_value(0.12345, "A") == "0.123 A"
    assert format_value(None, "V") == "N/A"


def test_health_score_deductions_and_labels():
    assert health_score(13.5, 2.0, 30.0) == 100
    assert health_score(11.0, 0.05, 55.0) == 25
    assert health_score(12.5, 0.3, None) == 75
    assert health_label(100) == "Excellent"
    assert health_label(75) == "Good"
    assert health_label(45) == "Fair"
    assert health_label(25) == "Poor"


def test_payload_derives_power_over_supplied_value():
    reading = Reading.from_payload({"voltage": "12.0", "current": 3, "power": 999, "deviceId": "D"})
    assert reading.power == pytest.approx(36.0)


def test_payload_keeps_supplied_power_when_not_derivable():
    reading = Reading.from_payload({"voltage": 12.0, "power": 40})
    assert reading.current is None
    assert reading.power == 40


def test_payload_non_numeric_values_become_unknown():
    reading = Reading.from_payload({"voltage": "abc", "current": None, "temperature": "nan"})
    assert reading.voltage is None
    assert reading.current is None
    assert reading.temperature is None
    assert reading.power is None
    assert reading.device_id == "ESP32_SOLAR_01"
