# solar_monitor/services/aggregation.py

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from enum import Enum
from itertools import groupby
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from solar_monitor.models.reading import Reading
from solar_monitor.models.statistics import (
    DailyStatistics,
    DayStatistics,
    DetailedStatistics,
    FieldSummary,
    PeriodStatistics,
    TimeBucket,
)
from solar_monitor.services.energy import chronological, segment_energy_wh
from solar_monitor.util.numbers import round_half_up


DEFAULT_RATED_POWER_W = 100.0
DEFAULT_PEAK_SUN_HOURS = 5.0


class Interval(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


def _local(ts: datetime, tz: Optional[tzinfo]) -> datetime:
    if tz is not None and ts.tzinfo is not None:
        return ts.astimezone(tz)
    return ts


def local_day(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    return _local(ts, tz).date()


def bucket_key(ts: datetime, interval: Interval | str = Interval.HOUR, tz: Optional[tzinfo] = None) -> str:
    """
    Zero-padded bucket key so that string order is chronological:
    'YYYY-MM-DD HH:00', 'YYYY-MM-DD' or ISO week 'YYYY-Www'.
    """
    interval = Interval(interval)
    local = _local(ts, tz)
    if interval is Interval.HOUR:
        return local.strftime("%Y-%m-%d %H:00")
    if interval is Interval.DAY:
        return local.strftime("%Y-%m-%d")
    iso_year, iso_week, _ = local.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


# ------------------------------------------------------------------
# Whole-period partial aggregate
# ------------------------------------------------------------------
@dataclass(frozen=True)
class ReadingSummary:
    """
    Immutable partial aggregate over a chronologically ordered run of readings.

    Holds only sums, extremes and the boundary readings, so a period of any
    length can be folded batch by batch in O(batch) memory.
    """

    data_points: int = 0
    voltage_sum: float = 0.0
    voltage_count: int = 0
    min_voltage: float | None = None
    current_sum: float = 0.0
    current_count: int = 0
    max_temperature: float | None = None
    peak_power: float | None = None
    energy_wh: float = 0.0
    first: Reading | None = None
    last: Reading | None = None


EMPTY_SUMMARY = ReadingSummary()


def _check_order(prior_last: Reading | None, first: Reading) -> None:
    if prior_last is not None and first.timestamp < prior_last.timestamp:
        raise ValueError(
            "batches must arrive in ascending time order "
            f"({first.timestamp.isoformat()} precedes {prior_last.timestamp.isoformat()})"
        )


def summarize(readings: Iterable[Reading], prior: ReadingSummary = EMPTY_SUMMARY) -> ReadingSummary:
    """Fold a batch into `prior`, returning a new summary."""
    ordered = chronological(readings)
    if not ordered:
        return prior
    _check_order(prior.last, ordered[0])

    data_points = prior.data_points
    v_sum, v_count, v_min = prior.voltage_sum, prior.voltage_count, prior.min_voltage
    c_sum, c_count = prior.current_sum, prior.current_count
    t_max = prior.max_temperature
    p_max = prior.peak_power
    energy_wh = prior.energy_wh
    last = prior.last

    for reading in ordered:
        data_points += 1
        if reading.voltage is not None:
            v_sum += reading.voltage
            v_count += 1
            v_min = reading.voltage if v_min is None else min(v_min, reading.voltage)
        if reading.current is not None:
            c_sum += reading.current
            c_count += 1
        if reading.temperature is not None:
            t_max = reading.temperature if t_max is None else max(t_max, reading.temperature)
        if reading.power is not None:
            p_max = reading.power if p_max is None else max(p_max, reading.power)
        if last is not None:
            energy_wh += segment_energy_wh(last, reading)
        last = reading

    return ReadingSummary(
        data_points=data_points,
        voltage_sum=v_sum,
        voltage_count=v_count,
        min_voltage=v_min,
        current_sum=c_sum,
        current_count=c_count,
        max_temperature=t_max,
        peak_power=p_max,
        energy_wh=energy_wh,
        first=prior.first or ordered[0],
        last=last,
    )


def _min(a: float | None, b: float | None) -> float | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _max(a: float | None, b: float | None) -> float | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_summaries(a: ReadingSummary, b: ReadingSummary) -> ReadingSummary:
    """
    Combine two summaries of adjacent, non-overlapping runs (`a` earlier).

    The energy of the gap between a.last and b.first is added, so merging
    never drops the segment that spans the batch boundary.
    """
    if a.last is None:
        return b
    if b.first is None:
        return a
    _check_order(a.last, b.first)
    return ReadingSummary(
        data_points=a.data_points + b.data_points,
        voltage_sum=a.voltage_sum + b.voltage_sum,
        voltage_count=a.voltage_count + b.voltage_count,
        min_voltage=_min(a.min_voltage, b.min_voltage),
        current_sum=a.current_sum + b.current_sum,
        current_count=a.current_count + b.current_count,
        max_temperature=_max(a.max_temperature, b.max_temperature),
        peak_power=_max(a.peak_power, b.peak_power),
        energy_wh=a.energy_wh + segment_energy_wh(a.last, b.first) + b.energy_wh,
        first=a.first,
        last=b.last,
    )


def expected_energy_kwh(rated_power_w: float, peak_sun_hours: float) -> float:
    return rated_power_w * peak_sun_hours / 1000.0


def efficiency_pct(total_energy_kwh: float, rated_power_w: float, peak_sun_hours: float) -> float:
    expected = expected_energy_kwh(rated_power_w, peak_sun_hours)
    if expected <= 0:
        return 0.0
    return total_energy_kwh / expected * 100


def finalize_statistics(
    summary: ReadingSummary,
    *,
    rated_power_w: float = DEFAULT_RATED_POWER_W,
    peak_sun_hours: float = DEFAULT_PEAK_SUN_HOURS,
) -> DailyStatistics:
    total_kwh = summary.energy_wh / 1000.0
    avg_voltage = summary.voltage_sum / summary.voltage_count if summary.voltage_count else None
    avg_current = summary.current_sum / summary.current_count if summary.current_count else None
    return DailyStatistics(
        total_energy=round_half_up(total_kwh, 3),
        avg_voltage=round_half_up(avg_voltage, 2),
        avg_current=round_half_up(avg_current, 3),
        max_temperature=round_half_up(summary.max_temperature, 1),
        min_voltage=round_half_up(summary.min_voltage, 2),
        peak_power=round_half_up(summary.peak_power, 1),
        efficiency=round_half_up(efficiency_pct(total_kwh, rated_power_w, peak_sun_hours), 1),
        data_points=summary.data_points,
    )


def compute_daily_statistics(
    readings: Iterable[Reading],
    *,
    rated_power_w: float = DEFAULT_RATED_POWER_W,
    peak_sun_hours: float = DEFAULT_PEAK_SUN_HOURS,
) -> DailyStatistics:
    return finalize_statistics(
        summarize(readings),
        rated_power_w=rated_power_w,
        peak_sun_hours=peak_sun_hours,
    )


def compute_daily_statistics_batched(
    batches: Iterable[Iterable[Reading]],
    *,
    rated_power_w: float = DEFAULT_RATED_POWER_W,
    peak_sun_hours: float = DEFAULT_PEAK_SUN_HOURS,
) -> DailyStatistics:
    summary = EMPTY_SUMMARY
    for batch in batches:
        summary = summarize(batch, summary)
    return finalize_statistics(summary, rated_power_w=rated_power_w, peak_sun_hours=peak_sun_hours)


# ------------------------------------------------------------------
# Per-day partials
# ------------------------------------------------------------------
def summarize_by_day(
    readings: Iterable[Reading],
    prior: Mapping[date, ReadingSummary] | None = None,
    *,
    tz: Optional[tzinfo] = None,
) -> Dict[date, ReadingSummary]:
    """
    Fold readings into one summary per local calendar day.

    Energy is integrated inside each day only; the segment that crosses
    midnight belongs to neither day.
    """
    days: dict[date, ReadingSummary] = dict(prior or {})
    for day, run in groupby(chronological(readings), key=lambda r: local_day(r.timestamp, tz)):
        days[day] = summarize(run, days.get(day, EMPTY_SUMMARY))
    return days


def daily_breakdown(
    readings: Iterable[Reading],
    *,
    tz: Optional[tzinfo] = None,
    rated_power_w: float = DEFAULT_RATED_POWER_W,
    peak_sun_hours: float = DEFAULT_PEAK_SUN_HOURS,
) -> List[DayStatistics]:
    return breakdown_from_days(
        summarize_by_day(readings, tz=tz),
        rated_power_w=rated_power_w,
        peak_sun_hours=peak_sun_hours,
    )


def breakdown_from_days(
    days: Mapping[date, ReadingSummary],
    *,
    rated_power_w: float = DEFAULT_RATED_POWER_W,
    peak_sun_hours: float = DEFAULT_PEAK_SUN_HOURS,
) -> List[DayStatistics]:
    return [
        DayStatistics(
            day=day,
            stats=finalize_statistics(days[day], rated_power_w=rated_power_w, peak_sun_hours=peak_sun_hours),
        )
        for day in sorted(days)
    ]


def compute_period_statistics(days: Sequence[DayStatistics], total_days: int | None = None) -> PeriodStatistics:
    """
    Roll daily figures up into weekly/monthly figures.

    `total_days` defaults to the number of days supplied; pass the calendar
    length of the period to count days without any readings as idle.
    """
    count = total_days if total_days is not None else len(days)
    if not days or count <= 0:
        return PeriodStatistics(
            total_energy=0.0,
            avg_daily_energy=0.0,
            peak_daily_energy=0.0,
            best_day=None,
            worst_day=None,
            consistency=0.0,
            days_with_data=0,
            total_days=max(count, 0),
        )

    total = 0.0
    peak = 0.0
    best: Optional[DayStatistics] = None
    worst: Optional[DayStatistics] = None
    producing = 0
    for entry in days:
        energy = entry.stats.total_energy
        total += energy
        if energy > peak:
            peak = energy
            best = entry
        if worst is None or energy < worst.stats.total_energy:
            worst = entry
        if energy > 0:
            producing += 1

    return PeriodStatistics(
        total_energy=round_half_up(total, 3),
        avg_daily_energy=round_half_up(total / count, 3),
        peak_daily_energy=round_half_up(peak, 3),
        best_day=best.day if best else None,
        worst_day=worst.day if worst else None,
        consistency=round_half_up(producing / count * 100, 1),
        days_with_data=producing,
        total_days=count,
    )


# ------------------------------------------------------------------
# Time buckets
# ------------------------------------------------------------------
@dataclass(frozen=True)
class BucketPartial:
    voltage_sum: float = 0.0
    voltage_count: int = 0
    current_sum: float = 0.0
    current_count: int = 0
    temperature_sum: float = 0.0
    temperature_count: int = 0
    power_sum: float = 0.0
    power_count: int = 0

    def add(self, reading: Reading) -> "BucketPartial":
        changes = {}
        for name in ("voltage", "current", "temperature", "power"):
            value = getattr(reading, name)
            if value is None:
                continue
            changes[f"{name}_sum"] = getattr(self, f"{name}_sum") + value
            changes[f"{name}_count"] = getattr(self, f"{name}_count") + 1
        return replace(self, **changes) if changes else self

    def merge(self, other: "BucketPartial") -> "BucketPartial":
        return BucketPartial(
            voltage_sum=self.voltage_sum + other.voltage_sum,
            voltage_count=self.voltage_count + other.voltage_count,
            current_sum=self.current_sum + other.current_sum,
            current_count=self.current_count + other.current_count,
            temperature_sum=self.temperature_sum + other.temperature_sum,
            temperature_count=self.temperature_count + other.temperature_count,
            power_sum=self.power_sum + other.power_sum,
            power_count=self.power_count + other.power_count,
        )

    def to_bucket(self, key: str) -> TimeBucket:
        def _avg(total: float, count: int, places: int) -> float | None:
            return round_half_up(total / count, places) if count else None

        return TimeBucket(
            timestamp=key,
            voltage=_avg(self.voltage_sum, self.voltage_count, 2),
            current=_avg(self.current_sum, self.current_count, 3),
            temperature=_avg(self.temperature_sum, self.temperature_count, 1),
            power=_avg(self.power_sum, self.power_count, 1),
            readings=self.voltage_count,
        )


def accumulate_buckets(
    readings: Iterable[Reading],
    interval: Interval | str = Interval.HOUR,
    prior: Mapping[str, BucketPartial] | None = None,
    *,
    tz: Optional[tzinfo] = None,
) -> Dict[str, BucketPartial]:
    interval = Interval(interval)
    partials: dict[str, BucketPartial] = dict(prior or {})
    for reading in chronological(readings):
        key = bucket_key(reading.timestamp, interval, tz)
        partials[key] = partials.get(key, BucketPartial()).add(reading)
    return partials


def buckets_from_partials(partials: Mapping[str, BucketPartial]) -> List[TimeBucket]:
    return [partials[key].to_bucket(key) for key in sorted(partials)]


def aggregate_buckets(
    readings: Iterable[Reading],
    interval: Interval | str = Interval.HOUR,
    *,
    tz: Optional[tzinfo] = None,
) -> List[TimeBucket]:
    """
    Group readings into hour/day/week buckets and average each field.

    A reading missing a field is left out of that field's mean only. A
    bucket with no samples of a field reports None for it. `readings` on
    each bucket is the number of voltage samples.
    """
    return buckets_from_partials(accumulate_buckets(readings, interval, tz=tz))


def aggregate_buckets_batched(
    batches: Iterable[Iterable[Reading]],
    interval: Interval | str = Interval.HOUR,
    *,
    tz: Optional[tzinfo] = None,
) -> List[TimeBucket]:
    partials: dict[str, BucketPartial] = {}
    for batch in batches:
        partials = accumulate_buckets(batch, interval, partials, tz=tz)
    return buckets_from_partials(partials)


# ------------------------------------------------------------------
# Descriptive statistics
# ------------------------------------------------------------------
@dataclass(frozen=True)
class FieldPartial:
    """Count, extremes and sums shifted by the first sample for one field."""

    count: int = 0
    shift: float = 0.0
    total: float = 0.0
    total_sq: float = 0.0
    min: float | None = None
    max: float | None = None

    def add(self, value: float) -> "FieldPartial":
        shift = self.shift if self.count else value
        delta = value - shift
        return FieldPartial(
            count=self.count + 1,
            shift=shift,
            total=self.total + delta,
            total_sq=self.total_sq + delta * delta,
            min=_min(self.min, value),
            max=_max(self.max, value),
        )

    def summary(self, places: int) -> FieldSummary:
        if not self.count:
            return FieldSummary(min=None, max=None, avg=None, std_dev=None)
        mean_delta = self.total / self.count
        # population variance; clamp float noise below zero
        variance = max(0.0, self.total_sq / self.count - mean_delta * mean_delta)
        return FieldSummary(
            min=round_half_up(self.min, places),
            max=round_half_up(self.max, places),
            avg=round_half_up(self.shift + mean_delta, places),
            std_dev=round_half_up(math.sqrt(variance), places),
        )


DETAIL_FIELDS = ("voltage", "current", "temperature")


@dataclass(frozen=True)
class DetailedAccumulator:
    total_readings: int = 0
    anomaly_count: int = 0
    devices: frozenset = frozenset()
    voltage: FieldPartial = FieldPartial()
    current: FieldPartial = FieldPartial()
    temperature: FieldPartial = FieldPartial()

    def extend(self, readings: Iterable[Reading]) -> "DetailedAccumulator":
        total = self.total_readings
        anomalies = self.anomaly_count
        devices = set(self.devices)
        partials = {name: getattr(self, name) for name in DETAIL_FIELDS}
        for reading in readings:
            total += 1
            if reading.is_anomaly:
                anomalies += 1
            devices.add(reading.device_id)
            for name in DETAIL_FIELDS:
                value = getattr(reading, name)
                if value is not None:
                    partials[name] = partials[name].add(value)
        return DetailedAccumulator(
            total_readings=total,
            anomaly_count=anomalies,
            devices=frozenset(devices),
            **partials,
        )

    def result(self) -> DetailedStatistics:
        return DetailedStatistics(
            total_readings=self.total_readings,
            voltage=self.voltage.summary(2),
            current=self.current.summary(3),
            temperature=self.temperature.summary(1),
            anomaly_count=self.anomaly_count,
            device_count=len(self.devices),
        )


def compute_detailed_statistics(readings: Iterable[Reading]) -> DetailedStatistics:
    """Min/max/mean/population std dev per field, plus anomaly and device counts."""
    return DetailedAccumulator().extend(readings).result()


def compute_detailed_statistics_batched(batches: Iterable[Iterable[Reading]]) -> DetailedStatistics:
    acc = DetailedAccumulator()
    for batch in batches:
        acc = acc.extend(batch)
    return acc.result()


def data_completeness(
    count: int,
    start: datetime,
    end: datetime,
    log_interval_seconds: int = 600,
) -> float:
    """Share of expected samples actually received, as a percentage capped at 100."""
    span = (end - start).total_seconds()
    if span <= 0 or log_interval_seconds <= 0:
        return 0.0
    expected = span / log_interval_seconds
    return round_half_up(min(100.0, count / expected * 100), 1)
