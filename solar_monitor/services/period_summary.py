# solar_monitor/services/period_summary.py

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Iterable, List, Mapping, Optional, Sequence

from solar_monitor.models.reading import Reading
from solar_monitor.models.report import (
    PeakDay,
    PeakPerformance,
    PeriodBounds,
    PeriodSummaryReport,
    Recommendation,
    ReportType,
)
from solar_monitor.models.statistics import DailyStatistics, TimeBucket
from solar_monitor.services import aggregation
from solar_monitor.services.aggregation import EMPTY_SUMMARY, Interval, ReadingSummary
from solar_monitor.services.energy import chronological
from solar_monitor.services.alert_logic import ThresholdConfig
from solar_monitor.services.power_model import health_label, health_score
from solar_monitor.services.trend_analyzer import InsightInputs, insights_from_inputs
from solar_monitor.util.numbers import round_half_up


LOW_EFFICIENCY_PCT = 70.0
LOW_MIN_VOLTAGE = 11.5
HIGH_MAX_TEMPERATURE = 55.0
MIN_DATA_POINTS = 100


@dataclass
class SummarySettings:
    rated_power_w: float = 100.0
    peak_sun_hours: float = 5.0
    log_interval_seconds: int = 600


def generate_recommendations(stats: DailyStatistics) -> List[Recommendation]:
    """Fixed maintenance rules; statistics that are unknown never fire a rule."""
    recs: list[Recommendation] = []
    if stats.efficiency is not None and stats.efficiency < LOW_EFFICIENCY_PCT:
        recs.append(
            Recommendation(
                type="efficiency",
                priority="high",
                message="System efficiency is low. Consider cleaning solar panels or checking connections.",
                action="Clean panels and inspect wiring",
            )
        )
    if stats.min_voltage is not None and stats.min_voltage < LOW_MIN_VOLTAGE:
        recs.append(
            Recommendation(
                type="voltage",
                priority="critical",
                message="Low voltage detected. Battery may need replacement or charging system check.",
                action="Check battery health and charge controller",
            )
        )
    if stats.max_temperature is not None and stats.max_temperature > HIGH_MAX_TEMPERATURE:
        recs.append(
            Recommendation(
                type="temperature",
                priority="medium",
                message="High operating temperature detected. Ensure proper ventilation.",
                action="Improve ventilation around equipment",
            )
        )
    if stats.data_points < MIN_DATA_POINTS:
        recs.append(
            Recommendation(
                type="data",
                priority="low",
                message="Limited data points collected. Consider increasing data collection frequency.",
                action="Adjust ESP32 data transmission interval",
            )
        )
    return recs


def find_peak_hour(time_series: Sequence[TimeBucket]) -> Optional[TimeBucket]:
    """Bucket with the highest average power; the earliest wins a tie."""
    peak: Optional[TimeBucket] = None
    for bucket in time_series:
        if bucket.power is None:
            continue
        if peak is None or bucket.power > peak.power:
            peak = bucket
    return peak


def find_peak_day(days: Mapping[date, ReadingSummary]) -> Optional[PeakDay]:
    """Calendar day with the most integrated energy; days with none are skipped."""
    peak: Optional[PeakDay] = None
    peak_wh = 0.0
    for day in sorted(days):
        summary = days[day]
        if summary.energy_wh > peak_wh:
            peak_wh = summary.energy_wh
            peak = PeakDay(day=day, energy=round_half_up(peak_wh / 1000.0, 3), data_points=summary.data_points)
    return peak


def period_days(start: datetime, end: datetime) -> int:
    seconds = (end - start).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def report_title(report_type: ReportType, start: datetime, end: datetime) -> str:
    if report_type is ReportType.DAILY:
        return f"Daily Solar Report - {start:%Y-%m-%d}"
    if report_type is ReportType.WEEKLY:
        return f"Weekly Solar Report - {start:%Y-%m-%d} to {end:%Y-%m-%d}"
    if report_type is ReportType.MONTHLY:
        return f"Monthly Solar Report - {start:%B %Y}"
    return f"Solar Report - {start:%Y-%m-%d} to {end:%Y-%m-%d}"


class PeriodSummaryBuilder:
    """
    Builds the period report consumed by dashboards and report delivery.

    Readings can be supplied whole (`build`) or as ascending batches
    (`build_batched`); both run the same fold and give identical reports.
    """

    def __init__(
        self,
        settings: SummarySettings | None = None,
        thresholds: ThresholdConfig | None = None,
        log=None,
        *,
        tz: Optional[tzinfo] = None,
    ):
        self.settings = settings or SummarySettings()
        self.thresholds = thresholds or ThresholdConfig.defaults()
        self.log = log
        self.tz = tz

    # ------------------------------------------------------------------
    def build(
        self,
        readings: Iterable[Reading],
        start: datetime,
        end: datetime,
        *,
        report_type: ReportType = ReportType.CUSTOM,
        device_id: Optional[str] = None,
    ) -> PeriodSummaryReport:
        return self.build_batched([list(readings)], start, end, report_type=report_type, device_id=device_id)

    def build_batched(
        self,
        batches: Iterable[Sequence[Reading]],
        start: datetime,
        end: datetime,
        *,
        report_type: ReportType = ReportType.CUSTOM,
        device_id: Optional[str] = None,
    ) -> PeriodSummaryReport:
        summary = EMPTY_SUMMARY
        days: dict = {}
        hourly: dict = {}
        inputs = InsightInputs()
        batch_count = 0

        for batch in batches:
            ordered = chronological(batch)
            if not ordered:
                continue
            batch_count += 1
            summary = aggregation.summarize(ordered, summary)
            days = aggregation.summarize_by_day(ordered, days, tz=self.tz)
            hourly = aggregation.accumulate_buckets(ordered, Interval.HOUR, hourly, tz=self.tz)
            inputs = inputs.extend(ordered, self.thresholds)

        cfg = self.settings
        stats = aggregation.finalize_statistics(
            summary,
            rated_power_w=cfg.rated_power_w,
            peak_sun_hours=cfg.peak_sun_hours,
        )
        time_series = aggregation.buckets_from_partials(hourly)

        period_stats = None
        if report_type is not ReportType.DAILY:
            breakdown = aggregation.breakdown_from_days(
                days,
                rated_power_w=cfg.rated_power_w,
                peak_sun_hours=cfg.peak_sun_hours,
            )
            period_stats = aggregation.compute_period_statistics(breakdown)

        score = None
        if summary.data_points:
            score = health_score(stats.avg_voltage, stats.avg_current, stats.max_temperature)

        report = PeriodSummaryReport(
            title=report_title(report_type, start, end),
            report_type=report_type,
            device_id=device_id,
            period=PeriodBounds(start=start, end=end, days=period_days(start, end)),
            summary=stats,
            time_series=time_series,
            peak_performance=PeakPerformance(hour=find_peak_hour(time_series), day=find_peak_day(days)),
            recommendations=generate_recommendations(stats),
            insights=insights_from_inputs(inputs),
            health_score=score,
            health_label=health_label(score) if score is not None else None,
            uptime=aggregation.data_completeness(summary.data_points, start, end, cfg.log_interval_seconds),
            period_stats=period_stats,
        )
        if self.log is not None:
            self.log.debug(
                "Built %s report for %s: %d readings in %d batch(es), %.3f kWh",
                report_type.value,
                device_id or "all devices",
                stats.data_points,
                batch_count,
                stats.total_energy,
            )
        return report


def format_summary(report: PeriodSummaryReport) -> str:
    """Plain-text rendering for push notifications."""
    stats = report.summary

    def _val(value, fmt: str, unit: str) -> str:
        return "n/a" if value is None else f"{value:{fmt}}{unit}"

    lines = [
        report.title,
        f"Energy: {stats.total_energy:.3f} kWh (efficiency {stats.efficiency:.1f}%)",
        f"Voltage: avg {_val(stats.avg_voltage, '.2f', 'V')}, min {_val(stats.min_voltage, '.2f', 'V')}",
        f"Current: avg {_val(stats.avg_current, '.3f', 'A')}",
        f"Peak power: {_val(stats.peak_power, '.1f', 'W')}",
        f"Max temperature: {_val(stats.max_temperature, '.1f', '°C')}",
        f"Readings: {stats.data_points} (uptime {report.uptime:.1f}%)",
    ]
    if report.health_score is not None:
        lines.append(f"Health: {report.health_score}/100 ({report.health_label})")

    peak_day = report.peak_performance.day
    if peak_day is not None:
        lines.append(f"Best day: {peak_day.day.isoformat()} ({peak_day.energy:.3f} kWh)")

    if report.recommendations:
        lines.append("Recommendations:")
        for rec in report.recommendations:
            lines.append(f"- [{rec.priority}] {rec.message}")

    if report.insights:
        lines.append("Insights:")
        for insight in report.insights:
            lines.append(f"- [{insight.severity}] {insight.message} ({insight.confidence:.0f}% confidence)")

    return "\n".join(lines)
