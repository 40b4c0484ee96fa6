# solar_monitor/services/power_model.py

from __future__ import annotations

from solar_monitor.models.alert import AlertType


# Display unit per alert type; every AlertType must have an entry.
ALERT_UNITS: dict[AlertType, str] = {
    AlertType.VOLTAGE_DROP: "V",
    AlertType.BATTERY_LOW: "V",
    AlertType.CURRENT_ANOMALY: "A",
    AlertType.TEMPERATURE_HIGH: "°C",
    AlertType.SYSTEM_OFFLINE: "",
    AlertType.PANEL_FAULT: "",
}

_DECIMALS = {"V": 2, "A": 3, "W": 1, "kWh": 3, "°C": 1}


def compute_power(voltage: float | None, current: float | None) -> float | None:
    """Power in watts, or None when either input is unknown."""
    if voltage is None or current is None:
        return None
    return voltage * current


def unit_for(alert_type: AlertType) -> str:
    return ALERT_UNITS[alert_type]


def format_value(value: float | None, unit: str) -> str:
    if value is None:
        return "N/A"
    decimals = _DECIMALS.get(unit)
    if decimals is None:
        return f"{value} {unit}".strip()
    return f"{value:.{decimals}f} {unit}"


def health_score(voltage: float | None, current: float | None, temperature: float | None) -> int:
    """
    0-100 score for a single reading.

    Deductions:
      - voltage < 12 V: -30, < 13 V: -15
      - current < 0.1 A: -20, < 0.5 A: -10
      - temperature > 50 °C: -25
    Unknown inputs deduct nothing.
    """
    score = 100
    if voltage is not None:
        if voltage < 12:
            score -= 30
        elif voltage < 13:
            score -= 15
    if current is not None:
        if current < 0.1:
            score -= 20
        elif current < 0.5:
            score -= 10
    if temperature is not None and temperature > 50:
        score -= 25
    return max(0, min(100, score))


def health_label(score: int | None) -> str:
    if score is None:
        return "Unknown"
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"
