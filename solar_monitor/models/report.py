# solar_monitor/models/report.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from solar_monitor.models.statistics import DailyStatistics, PeriodStatistics, TimeBucket


class ReportType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PeriodBounds:
    start: datetime
    end: datetime
    days: int

    def as_dict(self) -> dict[str, Any]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat(), "days": self.days}


@dataclass(frozen=True)
class PeakDay:
    day: date
    energy: float
    data_points: int

    def as_dict(self) -> dict[str, Any]:
        return {"date": self.day.isoformat(), "energy": self.energy, "dataPoints": self.data_points}


@dataclass(frozen=True)
class PeakPerformance:
    hour: Optional[TimeBucket]
    day: Optional[PeakDay]

    def as_dict(self) -> dict[str, Any]:
        return {
            "hour": self.hour.as_dict() if self.hour else None,
            "day": self.day.as_dict() if self.day else None,
        }


@dataclass(frozen=True)
class Recommendation:
    type: str
    priority: str
    message: str
    action: str

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.type, "priority": self.priority, "message": self.message, "action": self.action}


@dataclass(frozen=True)
class PredictiveInsight:
    type: str
    severity: str
    message: str
    confidence: float
    recommendation: str
    expected_impact: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
            "confidence": self.confidence,
            "recommendation": self.recommendation,
            "expectedImpact": self.expected_impact,
        }


@dataclass(frozen=True)
class PeriodSummaryReport:
    """Value object handed to report rendering and delivery."""

    title: str
    report_type: ReportType
    device_id: Optional[str]
    period: PeriodBounds
    summary: DailyStatistics
    time_series: List[TimeBucket]
    peak_performance: PeakPerformance
    recommendations: List[Recommendation]
    insights: List[PredictiveInsight] = field(default_factory=list)
    health_score: Optional[int] = None
    health_label: Optional[str] = None
    uptime: float = 0.0
    period_stats: Optional[PeriodStatistics] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "reportType": self.report_type.value,
            "deviceId": self.device_id,
            "period": self.period.as_dict(),
            "summary": self.summary.as_dict(),
            "timeSeries": [bucket.as_dict() for bucket in self.time_series],
            "peakPerformance": self.peak_performance.as_dict(),
            "recommendations": [rec.as_dict() for rec in self.recommendations],
            "insights": [insight.as_dict() for insight in self.insights],
            "healthScore": self.health_score,
            "healthLabel": self.health_label,
            "uptime": self.uptime,
            "periodStats": self.period_stats.as_dict() if self.period_stats else None,
        }
