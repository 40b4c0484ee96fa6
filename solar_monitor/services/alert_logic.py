# solar_monitor/services/alert_logic.py

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import datetime, tzinfo
from typing import Any, List, Mapping, Optional

from solar_monitor.models.alert import AlertType, CandidateAlert, Severity
from solar_monitor.models.reading import Reading, parse_number


# Keys used by the key-value threshold store, mapped to ThresholdConfig fields.
SOURCE_KEYS = {
    "VOLTAGE_THRESHOLD_LOW": "voltage_low_pct",
    "VOLTAGE_THRESHOLD_CRITICAL": "voltage_critical_pct",
    "CURRENT_THRESHOLD_LOW": "current_low_pct",
    "TEMPERATURE_THRESHOLD_HIGH": "temperature_high_c",
    "NORMAL_VOLTAGE": "nominal_voltage",
    "NORMAL_CURRENT": "nominal_current",
}

VOLTAGE_SOFT_FLOOR = 0.8
TEMPERATURE_CRITICAL_C = 70.0
SUDDEN_DROP_V = 3.0
RAPID_RISE_C = 10.0
DAYLIGHT_START_HOUR = 8
DAYLIGHT_END_HOUR = 16


@dataclass(frozen=True)
class ThresholdConfig:
    voltage_low_pct: float = 20.0
    voltage_critical_pct: float = 10.0
    current_low_pct: float = 15.0
    temperature_high_c: float = 60.0
    nominal_voltage: float = 12.0
    nominal_current: float = 5.0

    @classmethod
    def defaults(cls) -> "ThresholdConfig":
        return cls()

    @classmethod
    def from_mapping(cls, source: Optional[Mapping[str, Any]], log=None) -> "ThresholdConfig":
        """
        Build thresholds from a key-value source.

        A missing source, missing key, or non-numeric value falls back to the
        default for that key; evaluation is never blocked by configuration.
        """
        log = log or logging.getLogger("solar.thresholds")
        if not source:
            return cls.defaults()

        kwargs: dict[str, float] = {}
        for key, attr in SOURCE_KEYS.items():
            raw = source.get(key)
            if raw is None:
                raw = source.get(attr)
            if raw is None:
                continue
            value = parse_number(raw)
            if value is None:
                log.warning("Ignoring non-numeric threshold %s=%r; using default", key, raw)
                continue
            kwargs[attr] = value
        return cls(**kwargs)

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _local_hour(ts: datetime, tz: Optional[tzinfo]) -> int:
    if tz is not None and ts.tzinfo is not None:
        return ts.astimezone(tz).hour
    return ts.hour


def _fmt_pct(value: float) -> str:
    return f"{value:g}"


def check_voltage(voltage: float, cfg: ThresholdConfig) -> List[CandidateAlert]:
    nominal = cfg.nominal_voltage
    if voltage < nominal * (cfg.voltage_critical_pct / 100):
        return [
            CandidateAlert(
                type=AlertType.VOLTAGE_DROP,
                severity=Severity.CRITICAL,
                message=f"Critical voltage drop detected: {voltage:.2f}V",
                value=voltage,
                threshold=f"{_fmt_pct(cfg.voltage_critical_pct)}% of normal",
                action_required=True,
            )
        ]
    if voltage < nominal * (cfg.voltage_low_pct / 100):
        return [
            CandidateAlert(
                type=AlertType.VOLTAGE_DROP,
                severity=Severity.HIGH,
                message=f"Low voltage detected: {voltage:.2f}V",
                value=voltage,
                threshold=f"{_fmt_pct(cfg.voltage_low_pct)}% of normal",
                action_required=True,
            )
        ]
    if voltage < nominal * VOLTAGE_SOFT_FLOOR:
        return [
            CandidateAlert(
                type=AlertType.VOLTAGE_DROP,
                severity=Severity.MEDIUM,
                message=f"Voltage below optimal level: {voltage:.2f}V",
                value=voltage,
                threshold="80% of normal",
                action_required=False,
            )
        ]
    return []


def check_current(current: float, cfg: ThresholdConfig, local_hour: int) -> List[CandidateAlert]:
    alerts: list[CandidateAlert] = []
    if current < cfg.nominal_current * (cfg.current_low_pct / 100):
        alerts.append(
            CandidateAlert(
                type=AlertType.CURRENT_ANOMALY,
                severity=Severity.HIGH,
                message=f"Low current detected: {current:.3f}A",
                value=current,
                threshold=f"{_fmt_pct(cfg.current_low_pct)}% of normal",
                action_required=True,
            )
        )

    if current == 0 and DAYLIGHT_START_HOUR <= local_hour <= DAYLIGHT_END_HOUR:
        alerts.append(
            CandidateAlert(
                type=AlertType.CURRENT_ANOMALY,
                severity=Severity.MEDIUM,
                message="No current detected during daylight hours",
                value=current,
                threshold="Minimum current during daylight",
                action_required=True,
            )
        )
    return alerts


def check_temperature(temperature: float, cfg: ThresholdConfig) -> List[CandidateAlert]:
    if temperature <= cfg.temperature_high_c:
        return []
    return [
        CandidateAlert(
            type=AlertType.TEMPERATURE_HIGH,
            severity=Severity.CRITICAL if temperature > TEMPERATURE_CRITICAL_C else Severity.HIGH,
            message=f"High temperature detected: {temperature:.1f}°C",
            value=temperature,
            threshold=f"{_fmt_pct(cfg.temperature_high_c)}°C",
            action_required=True,
        )
    ]


def check_changes(reading: Reading, previous: Reading) -> List[CandidateAlert]:
    alerts: list[CandidateAlert] = []

    if reading.voltage is not None and previous.voltage is not None:
        drop = previous.voltage - reading.voltage
        if drop > SUDDEN_DROP_V:
            alerts.append(
                CandidateAlert(
                    type=AlertType.VOLTAGE_DROP,
                    severity=Severity.CRITICAL,
                    message=f"Sudden voltage drop: {drop:.2f}V decrease",
                    value=reading.voltage,
                    previous_value=previous.voltage,
                    action_required=True,
                )
            )

    if reading.temperature is not None and previous.temperature is not None:
        rise = reading.temperature - previous.temperature
        if rise > RAPID_RISE_C:
            alerts.append(
                CandidateAlert(
                    type=AlertType.TEMPERATURE_HIGH,
                    severity=Severity.HIGH,
                    message=f"Rapid temperature rise: +{rise:.1f}°C",
                    value=reading.temperature,
                    previous_value=previous.temperature,
                    action_required=True,
                )
            )

    return alerts


def evaluate_alerts(
    reading: Reading,
    previous: Optional[Reading],
    thresholds: ThresholdConfig,
    *,
    tz: Optional[tzinfo] = None,
) -> List[CandidateAlert]:
    """
    Evaluate one reading against thresholds.

    Categories are checked in a fixed order (voltage, current, temperature,
    then reading-to-reading changes) and every matching rule is reported.
    The daylight window for the zero-current rule uses the reading's own
    timestamp converted to `tz`.
    """
    alerts: list[CandidateAlert] = []

    if reading.voltage is not None:
        alerts.extend(check_voltage(reading.voltage, thresholds))

    if reading.current is not None:
        alerts.extend(check_current(reading.current, thresholds, _local_hour(reading.timestamp, tz)))

    if reading.temperature is not None:
        alerts.extend(check_temperature(reading.temperature, thresholds))

    if previous is not None:
        alerts.extend(check_changes(reading, previous))

    if reading.device_id:
        alerts = [replace(a, device_id=reading.device_id) for a in alerts]
    return alerts

