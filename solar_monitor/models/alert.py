# solar_monitor/models/alert.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class AlertType(str, Enum):
    VOLTAGE_DROP = "voltage_drop"
    CURRENT_ANOMALY = "current_anomaly"
    TEMPERATURE_HIGH = "temperature_high"
    SYSTEM_OFFLINE = "system_offline"
    BATTERY_LOW = "battery_low"
    PANEL_FAULT = "panel_fault"


_SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


# Severities that are handed to the notification sink.
NOTIFY_SEVERITIES = frozenset({Severity.HIGH, Severity.CRITICAL})


@dataclass(frozen=True)
class CandidateAlert:
    type: AlertType
    severity: Severity
    message: str
    value: float
    previous_value: float | None = None
    threshold: str | None = None
    action_required: bool = True
    device_id: str | None = None

    @property
    def should_notify(self) -> bool:
        return self.severity in NOTIFY_SEVERITIES

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "value": self.value,
            "previousValue": self.previous_value,
            "threshold": self.threshold,
            "actionRequired": self.action_required,
            "deviceId": self.device_id,
        }


class AnomalyKind(str, Enum):
    VOLTAGE_DROP = "voltage_drop"
    ZERO_CURRENT = "zero_current"
    HIGH_TEMPERATURE = "high_temperature"


class AnomalySeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Anomaly:
    kind: AnomalyKind
    severity: AnomalySeverity
    message: str
    value: float
    previous_value: Optional[float] = None


@dataclass
class AlertDispatch:
    """Outcome of alert processing for one evaluation call."""

    alerts: List[CandidateAlert] = field(default_factory=list)
    notify: List[CandidateAlert] = field(default_factory=list)
    suppressed: List[CandidateAlert] = field(default_factory=list)
