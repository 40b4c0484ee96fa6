# solar_monitor/models/reading.py
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Mapping, Optional


DEFAULT_DEVICE_ID = "ESP32_SOLAR_01"

# Physical ranges accepted at the ingestion boundary (inclusive).
FIELD_RANGES = {
    "voltage": (0.0, 50.0),
    "current": (0.0, 30.0),
    "temperature": (-20.0, 100.0),
    "power": (0.0, 1500.0),
    "battery_level": (0.0, 100.0),
}


class ReadingStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    OFFLINE = "offline"


class ReadingValidationError(ValueError):
    """Raised when a payload is rejected at the ingestion boundary."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid reading")


def parse_number(raw: Any) -> Optional[float]:
    """Lenient numeric parsing: anything that is not a finite number becomes None."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _parse_timestamp(raw: Any, fallback: datetime) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        # Epoch milliseconds, as sent by the device firmware.
        return datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc)
    if isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return fallback
    return fallback


@dataclass(frozen=True)
class Reading:
    device_id: str
    timestamp: datetime
    voltage: float | None
    current: float | None
    temperature: float | None
    power: float | None = None
    battery_level: float | None = None
    status: ReadingStatus = ReadingStatus.NORMAL
    is_anomaly: bool = False
    anomaly_reason: str | None = None
    location: str | None = None
    panel_id: str | None = None

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        received_at: datetime | None = None,
        default_device_id: str = DEFAULT_DEVICE_ID,
        tz: tzinfo | None = None,
    ) -> "Reading":
        """
        Build a reading from a device payload (camelCase or snake_case keys).

        Never raises for bad values: non-numeric fields become None. Power is
        derived from voltage and current whenever both are present; a supplied
        power value is only kept when it cannot be derived.
        A timestamp without an offset is taken as wall-clock time in `tz`
        (UTC when no zone is given), so stored and evaluated readings agree.
        """
        received = received_at or datetime.now(timezone.utc)
        voltage = parse_number(payload.get("voltage"))
        current = parse_number(payload.get("current"))
        temperature = parse_number(payload.get("temperature"))
        supplied_power = parse_number(payload.get("power"))
        battery = parse_number(payload.get("batteryLevel", payload.get("battery_level")))

        if voltage is not None and current is not None:
            power = voltage * current
        else:
            power = supplied_power

        timestamp = _parse_timestamp(payload.get("timestamp"), received)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=tz or timezone.utc)

        device_id = payload.get("deviceId") or payload.get("device_id") or default_device_id
        return cls(
            device_id=str(device_id),
            timestamp=timestamp,
            voltage=voltage,
            current=current,
            temperature=temperature,
            power=power,
            battery_level=battery,
            location=payload.get("location"),
            panel_id=payload.get("panelId") or payload.get("panel_id"),
        )

    def with_classification(
        self,
        status: ReadingStatus,
        is_anomaly: bool,
        anomaly_reason: str | None = None,
    ) -> "Reading":
        return replace(self, status=status, is_anomaly=is_anomaly, anomaly_reason=anomaly_reason)

    def as_dict(self) -> dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "timestamp": self.timestamp.isoformat(),
            "voltage": self.voltage,
            "current": self.current,
            "temperature": self.temperature,
            "power": self.power,
            "batteryLevel": self.battery_level,
            "status": self.status.value,
            "isAnomaly": self.is_anomaly,
            "anomalyReason": self.anomaly_reason,
            "location": self.location,
            "panelId": self.panel_id,
        }


def validate_reading(reading: Reading) -> list[str]:
    """Return a list of range/shape problems; empty means acceptable."""
    problems: list[str] = []
    if not reading.device_id or not reading.device_id.strip():
        problems.append("deviceId must not be empty")
    for name, (low, high) in FIELD_RANGES.items():
        value = getattr(reading, name)
        if value is None:
            continue
        if value < low or value > high:
            problems.append(f"{name}={value} outside [{low:g}, {high:g}]")
    return problems
