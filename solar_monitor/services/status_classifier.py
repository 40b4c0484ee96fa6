# solar_monitor/services/status_classifier.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from solar_monitor.models.alert import AlertType, CandidateAlert, Severity
from solar_monitor.models.health import DeviceHealth
from solar_monitor.models.reading import Reading, ReadingStatus


CRITICAL_VOLTAGE = 10.0
MIN_CURRENT = 0.1
MAX_TEMPERATURE = 60.0

OFFLINE_WARN_MINUTES = 5
OFFLINE_CRITICAL_MINUTES = 30


def classify_status(
    voltage: float | None,
    current: float | None,
    temperature: float | None,
) -> ReadingStatus:
    """First matching rule wins: missing/low voltage, missing/low current, heat."""
    if voltage is None or voltage < CRITICAL_VOLTAGE:
        return ReadingStatus.CRITICAL
    if current is None or current < MIN_CURRENT:
        return ReadingStatus.WARNING
    if temperature is not None and temperature > MAX_TEMPERATURE:
        return ReadingStatus.WARNING
    return ReadingStatus.NORMAL


def classify_reading(reading: Reading) -> ReadingStatus:
    return classify_status(reading.voltage, reading.current, reading.temperature)


def reading_recommendations(reading: Reading) -> List[str]:
    tips: list[str] = []
    if reading.voltage is not None and reading.voltage < 11.5:
        tips.append("Low voltage detected. Check battery and connections.")
    if reading.temperature is not None and reading.temperature > 60:
        tips.append("High temperature detected. Ensure proper ventilation.")
    if (
        reading.current is not None
        and reading.voltage is not None
        and reading.current < 0.1
        and reading.voltage > 12
    ):
        tips.append("Voltage present but low current. Check solar panel output.")
    return tips


def _minutes_since(then: datetime, now: datetime) -> int:
    return int((now - then).total_seconds() // 60)


def check_device_health(
    device_id: str,
    latest: Optional[Reading],
    now: datetime,
    *,
    offline_after_minutes: int = 10,
) -> DeviceHealth:
    if latest is None:
        return DeviceHealth(
            device_id=device_id,
            status="offline",
            message="No data received from device",
            last_update=None,
            minutes_since_update=None,
            recommendations=[
                "Check ESP32 power supply",
                "Verify WiFi connection",
                "Check device configuration",
            ],
        )

    minutes = _minutes_since(latest.timestamp, now)
    if minutes > offline_after_minutes:
        return DeviceHealth(
            device_id=device_id,
            status="offline",
            message=f"No data for {minutes} minutes",
            last_update=latest.timestamp,
            minutes_since_update=minutes,
            latest=latest,
            recommendations=[
                "Check ESP32 power supply",
                "Verify WiFi connection",
                "Check device configuration",
            ],
        )

    status = latest.status
    if status == ReadingStatus.CRITICAL:
        health, message = "critical", "Critical readings detected"
    elif status == ReadingStatus.WARNING:
        health, message = "warning", "Warning conditions detected"
    else:
        health, message = "healthy", "System operating normally"

    return DeviceHealth(
        device_id=device_id,
        status=health,
        message=message,
        last_update=latest.timestamp,
        minutes_since_update=minutes,
        latest=latest,
        recommendations=reading_recommendations(latest),
    )


def check_system_offline(device_id: str, latest: Optional[Reading], now: datetime) -> Optional[CandidateAlert]:
    """Alert when a device has gone quiet; None while data is fresh."""
    if latest is None:
        return CandidateAlert(
            type=AlertType.SYSTEM_OFFLINE,
            severity=Severity.CRITICAL,
            message="No data received from system",
            value=0,
            threshold="Data expected",
            action_required=True,
            device_id=device_id,
        )

    minutes = _minutes_since(latest.timestamp, now)
    if minutes <= OFFLINE_WARN_MINUTES:
        return None
    severity = Severity.CRITICAL if minutes > OFFLINE_CRITICAL_MINUTES else Severity.HIGH
    return CandidateAlert(
        type=AlertType.SYSTEM_OFFLINE,
        severity=severity,
        message=f"System offline for {minutes} minutes",
        value=minutes,
        threshold=f"{OFFLINE_WARN_MINUTES} minutes",
        action_required=True,
        device_id=device_id,
    )
