# solar_monitor/tests/test_monte_carlo.py
import random
from datetime import timedelta

import pytest

from solar_monitor.logging import ConsoleLog, get_logger
from solar_monitor.models.reading import Reading, validate_reading
from solar_monitor.services.aggregation import compute_daily_statistics, compute_daily_statistics_batched
from solar_monitor.services.alert_logic import ThresholdConfig, evaluate_alerts
from solar_monitor.services.alert_state import AlertStateManager
from solar_monitor.services.energy import integrate_energy
from solar_monitor.tests.fake_readings import BASE_TIME
from solar_monitor.util.numbers import iter_batches

ConsoleLog(level="INFO", quiet=True).setup()
LOG = get_logger("monte")


def _random_payload(rng, idx):
    def maybe(value):
        return None if rng.random() < 0.05 else value

    return {
        "deviceId": "MC-1",
        "timestamp": (BASE_TIME + timedelta(minutes=10 * idx)).isoformat(),
        "voltage": maybe(round(rng.uniform(0, 20), 2)),
        "current": maybe(round(rng.uniform(0, 8), 3)),
        "temperature": maybe(round(rng.uniform(-10, 90), 1)),
        "power": maybe(round(rng.uniform(0, 200), 1)),
    }


def test_monte_carlo_randomized():
    """
    Randomized stress test: checks no crashes and basic invariants.
    """
    rng = random.Random(0xC0FFEE)
    thresholds = ThresholdConfig.defaults()
    manager = AlertStateManager(LOG)

    readings = []
    previous = None
    for idx in range(500):
        reading = Reading.from_payload(_random_payload(rng, idx))
        assert validate_reading(reading) == []

        # Invariant 1: power is derived whenever both inputs are known
        if reading.voltage is not None and reading.current is not None:
            assert reading.power == pytest.approx(reading.voltage * reading.current)

        # Invariant 2: every candidate carries the device and only notifiable severities go out
        alerts = evaluate_alerts(reading, previous, thresholds)
        assert all(a.device_id == "MC-1" for a in alerts)
        dispatch = manager.process(alerts, reading.timestamp)
        assert all(a.should_notify for a in dispatch.notify)
        assert len(dispatch.alerts) <= len(alerts)

        readings.append(reading)
        previous = reading

    # Invariant 3: energy is non-negative and never shrinks as the span grows
    last = 0.0
    for end in range(2, len(readings) + 1, 25):
        energy = integrate_energy(readings[:end])
        assert energy >= 0.0
        assert energy >= last
        last = energy

    # Invariant 4: batch size never changes the statistics
    whole = compute_daily_statistics(readings)
    for size in (1, 3, 64, 499):
        assert compute_daily_statistics_batched(iter_batches(readings, size)) == whole
