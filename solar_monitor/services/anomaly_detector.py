# solar_monitor/services/anomaly_detector.py

from __future__ import annotations

from typing import Iterator, Optional

from solar_monitor.models.alert import Anomaly, AnomalyKind, AnomalySeverity
from solar_monitor.models.reading import Reading


VOLTAGE_DROP_V = 2.0
VOLTAGE_DROP_CRITICAL_V = 5.0
ZERO_CURRENT_MIN_VOLTAGE = 12.0
ZERO_CURRENT_A = 0.1
HIGH_TEMP_C = 50.0
HIGH_TEMP_CRITICAL_C = 60.0


def detect_anomalies(reading: Reading, previous: Optional[Reading]) -> Iterator[Anomaly]:
    """
    Yield anomalies for `reading`, comparing against `previous` where needed.

    Rules are independent; order is voltage drop, zero current, temperature.
    Unknown values never trigger a rule.
    """
    voltage = reading.voltage
    current = reading.current
    temperature = reading.temperature

    prev_voltage = previous.voltage if previous is not None else None
    if prev_voltage is not None and voltage is not None:
        drop = prev_voltage - voltage
        if drop > VOLTAGE_DROP_V:
            yield Anomaly(
                kind=AnomalyKind.VOLTAGE_DROP,
                severity=AnomalySeverity.CRITICAL if drop > VOLTAGE_DROP_CRITICAL_V else AnomalySeverity.WARNING,
                message=f"Voltage dropped by {drop:.2f}V",
                value=voltage,
                previous_value=prev_voltage,
            )

    if voltage is not None and current is not None:
        if voltage > ZERO_CURRENT_MIN_VOLTAGE and current < ZERO_CURRENT_A:
            yield Anomaly(
                kind=AnomalyKind.ZERO_CURRENT,
                severity=AnomalySeverity.WARNING,
                message="Voltage present but no current - possible panel or wiring fault",
                value=current,
            )

    if temperature is not None and temperature > HIGH_TEMP_C:
        yield Anomaly(
            kind=AnomalyKind.HIGH_TEMPERATURE,
            severity=AnomalySeverity.CRITICAL if temperature > HIGH_TEMP_CRITICAL_C else AnomalySeverity.WARNING,
            message=f"High temperature: {temperature:.1f}°C",
            value=temperature,
        )


def anomaly_reason(anomalies) -> Optional[str]:
    kinds = [a.kind.value for a in anomalies]
    return ", ".join(kinds) if kinds else None
