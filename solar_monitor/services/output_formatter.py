# solar_monitor/services/output_formatter.py

from __future__ import annotations

import json
from typing import Any, Iterable, Sequence

from solar_monitor.models.health import DeviceHealth
from solar_monitor.models.report import PeriodSummaryReport, PredictiveInsight
from solar_monitor.models.statistics import DailyStatistics, DetailedStatistics
from solar_monitor.services.ingestion import IngestResult
from solar_monitor.services.period_summary import format_summary


def emit_json(payload: Any) -> None:
    if hasattr(payload, "as_dict"):
        payload = payload.as_dict()
    elif isinstance(payload, (list, tuple)):
        payload = [item.as_dict() if hasattr(item, "as_dict") else item for item in payload]
    print(json.dumps(payload, indent=2, default=str))


def _num(value, fmt: str, unit: str = "") -> str:
    return "n/a" if value is None else f"{value:{fmt}}{unit}"


def emit_human_summary(report: PeriodSummaryReport) -> None:
    print(format_summary(report))
    if report.time_series:
        print("Hourly:")
        for bucket in report.time_series:
            print(
                f"  {bucket.timestamp}  V={_num(bucket.voltage, '.2f')}  "
                f"I={_num(bucket.current, '.3f')}  P={_num(bucket.power, '.1f', 'W')}  "
                f"T={_num(bucket.temperature, '.1f', 'C')}  n={bucket.readings}"
            )


def emit_human_health(health: DeviceHealth) -> None:
    since = "never" if health.minutes_since_update is None else f"{health.minutes_since_update} min ago"
    print(f"[{health.device_id}] {health.status.upper()}: {health.message} (last update {since})")
    latest = health.latest
    if latest is not None:
        print(
            f"  V={_num(latest.voltage, '.2f')}  I={_num(latest.current, '.3f')}  "
            f"P={_num(latest.power, '.1f', 'W')}  T={_num(latest.temperature, '.1f', 'C')}"
        )
    for tip in health.recommendations:
        print(f"  - {tip}")


def emit_human_stats(detailed: DetailedStatistics, stats: DailyStatistics) -> None:
    print(f"Readings: {detailed.total_readings} from {detailed.device_count} device(s)")
    print(f"Anomalies: {detailed.anomaly_count} ({detailed.anomaly_rate:.1f}%)")
    for name in ("voltage", "current", "temperature"):
        summary = getattr(detailed, name)
        print(
            f"{name.capitalize():<12} min={_num(summary.min, 'g')}  max={_num(summary.max, 'g')}  "
            f"avg={_num(summary.avg, 'g')}  sd={_num(summary.std_dev, 'g')}"
        )
    print(f"Energy: {stats.total_energy:.3f} kWh  efficiency={stats.efficiency:.1f}%  peak={_num(stats.peak_power, '.1f', 'W')}")


def emit_human_insights(insights: Sequence[PredictiveInsight]) -> None:
    if not insights:
        print("No predictive insights (insufficient data or no concerning trends).")
        return
    for insight in insights:
        print(f"[{insight.severity}] {insight.type}: {insight.message} ({insight.confidence:.0f}% confidence)")
        print(f"  Recommendation: {insight.recommendation}")
        print(f"  Expected impact: {insight.expected_impact}")


def emit_human_ingest(results: Iterable[IngestResult]) -> None:
    for result in results:
        reading = result.reading
        alert_txt = ", ".join(f"{a.severity.value}:{a.type.value}" for a in result.alerts) or "none"
        print(
            f"#{result.reading_id} {reading.device_id} {reading.timestamp.isoformat()} "
            f"status={reading.status.value} alerts={alert_txt}"
        )
