# solar_monitor/tests/fake_readings.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from solar_monitor.models.reading import Reading, ReadingStatus
from solar_monitor.services.power_model import compute_power


BASE_TIME = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)


def make_reading(
    voltage: Optional[float] = 12.6,
    current: Optional[float] = 2.0,
    temperature: Optional[float] = 30.0,
    *,
    minutes: float = 0,
    at: Optional[datetime] = None,
    device_id: str = "DEV-1",
    power: Optional[float] = None,
    status: ReadingStatus = ReadingStatus.NORMAL,
    is_anomaly: bool = False,
) -> Reading:
    derived = compute_power(voltage, current)
    return Reading(
        device_id=device_id,
        timestamp=at or BASE_TIME + timedelta(minutes=minutes),
        voltage=voltage,
        current=current,
        temperature=temperature,
        power=derived if derived is not None else power,
        status=status,
        is_anomaly=is_anomaly,
    )


def series(
    values: Iterable[tuple],
    *,
    step_minutes: float = 10,
    start: datetime = BASE_TIME,
    device_id: str = "DEV-1",
) -> list[Reading]:
    """Build evenly spaced readings from (voltage, current, temperature) tuples."""
    out = []
    for idx, (v, i, t) in enumerate(values):
        out.append(
            make_reading(
                v,
                i,
                t,
                at=start + timedelta(minutes=idx * step_minutes),
                device_id=device_id,
            )
        )
    return out


def constant_power(watts: float, count: int, *, step_minutes: float = 60, start: datetime = BASE_TIME) -> list[Reading]:
    """Readings carrying only a supplied power value (no voltage/current)."""
    return [
        make_reading(
            None,
            None,
            25.0,
            at=start + timedelta(minutes=idx * step_minutes),
            power=watts,
        )
        for idx in range(count)
    ]


class FakeRepository:
    """In-memory stand-in for the reading store."""

    def __init__(self):
        self.readings: list[Reading] = []
        self.alerts: list = []

    def get_latest(self, device_id):
        matches = [r for r in self.readings if r.device_id == device_id]
        if not matches:
            return None
        return max(matches, key=lambda r: r.timestamp)

    def get_range(self, device_id, start, end):
        return sorted(
            (
                r
                for r in self.readings
                if (device_id is None or r.device_id == device_id) and start <= r.timestamp <= end
            ),
            key=lambda r: r.timestamp,
        )

    def insert(self, reading):
        self.readings.append(reading)
        return len(self.readings)

    def record_alerts(self, alerts, now):
        self.alerts.extend((now, a) for a in alerts)
        return list(range(len(self.alerts) - len(alerts) + 1, len(self.alerts) + 1))

    def has_recent_alert(self, device_id, alert_type, since):
        return any(
            a.type == alert_type and ts >= since and (device_id is None or a.device_id == device_id)
            for ts, a in self.alerts
        )


class FakeNotifier:
    def __init__(self, succeed: bool = True):
        self.sent = []
        self.succeed = succeed

    def notify(self, alert):
        self.sent.append(alert)
        return self.succeed
