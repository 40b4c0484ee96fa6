# solar_monitor/models/statistics.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from solar_monitor.util.numbers import round_half_up


@dataclass(frozen=True)
class DailyStatistics:
    total_energy: float
    avg_voltage: float | None
    avg_current: float | None
    max_temperature: float | None
    min_voltage: float | None
    peak_power: float | None
    efficiency: float
    data_points: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalEnergy": self.total_energy,
            "avgVoltage": self.avg_voltage,
            "avgCurrent": self.avg_current,
            "maxTemperature": self.max_temperature,
            "minVoltage": self.min_voltage,
            "peakPower": self.peak_power,
            "efficiency": self.efficiency,
            "dataPoints": self.data_points,
        }


@dataclass(frozen=True)
class TimeBucket:
    timestamp: str
    voltage: float | None
    current: float | None
    temperature: float | None
    power: float | None
    readings: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "voltage": self.voltage,
            "current": self.current,
            "temperature": self.temperature,
            "power": self.power,
            "readings": self.readings,
        }


@dataclass(frozen=True)
class TrendResult:
    slope: float
    intercept: float
    r2: float

    @property
    def direction(self) -> str:
        if self.slope > 0:
            return "up"
        if self.slope < 0:
            return "down"
        return "flat"

    def as_dict(self) -> dict[str, Any]:
        return {"slope": self.slope, "intercept": self.intercept, "r2": self.r2}


@dataclass(frozen=True)
class FieldSummary:
    min: float | None
    max: float | None
    avg: float | None
    std_dev: float | None

    def as_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "avg": self.avg, "stdDev": self.std_dev}


@dataclass(frozen=True)
class DetailedStatistics:
    total_readings: int
    voltage: FieldSummary
    current: FieldSummary
    temperature: FieldSummary
    anomaly_count: int
    device_count: int

    @property
    def anomaly_rate(self) -> float:
        if not self.total_readings:
            return 0.0
        return round_half_up(self.anomaly_count / self.total_readings * 100, 1)

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalReadings": self.total_readings,
            "voltage": self.voltage.as_dict(),
            "current": self.current.as_dict(),
            "temperature": self.temperature.as_dict(),
            "anomalyCount": self.anomaly_count,
            "anomalyRate": self.anomaly_rate,
            "deviceCount": self.device_count,
        }


@dataclass(frozen=True)
class DayStatistics:
    day: date
    stats: DailyStatistics

    def as_dict(self) -> dict[str, Any]:
        payload = {"date": self.day.isoformat()}
        payload.update(self.stats.as_dict())
        return payload


@dataclass(frozen=True)
class PeriodStatistics:
    total_energy: float
    avg_daily_energy: float
    peak_daily_energy: float
    best_day: Optional[date]
    worst_day: Optional[date]
    consistency: float
    days_with_data: int
    total_days: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalEnergy": self.total_energy,
            "avgDailyEnergy": self.avg_daily_energy,
            "peakDailyEnergy": self.peak_daily_energy,
            "bestDay": self.best_day.isoformat() if self.best_day else None,
            "worstDay": self.worst_day.isoformat() if self.worst_day else None,
            "consistency": self.consistency,
            "daysWithData": self.days_with_data,
            "totalDays": self.total_days,
        }
