# solar_monitor/services/trend_analyzer.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from solar_monitor.models.reading import Reading
from solar_monitor.models.report import PredictiveInsight
from solar_monitor.models.statistics import TrendResult
from solar_monitor.services.alert_logic import ThresholdConfig
from solar_monitor.util.numbers import round_half_up


MIN_INSIGHT_POINTS = 10
VOLTAGE_SLOPE_LIMIT = -0.05
TEMPERATURE_SLOPE_LIMIT = 0.1
EFFICIENCY_SLOPE_LIMIT = -0.5

_FLAT = TrendResult(slope=0.0, intercept=0.0, r2=0.0)


@dataclass(frozen=True)
class TrendAccumulator:
    """
    Running least-squares sums with x = 0-based position in the series.

    Values are shifted by the first sample before summing to keep the
    sums small; slope and R² are unaffected and the intercept is shifted
    back on finish.
    """

    n: int = 0
    shift: float = 0.0
    sum_y: float = 0.0
    sum_xy: float = 0.0
    sum_yy: float = 0.0

    def extend(self, values: Iterable[Optional[float]]) -> "TrendAccumulator":
        n, shift = self.n, self.shift
        sum_y, sum_xy, sum_yy = self.sum_y, self.sum_xy, self.sum_yy
        for raw in values:
            if raw is None:
                continue
            value = float(raw)
            if n == 0:
                shift = value
            y = value - shift
            sum_y += y
            sum_xy += n * y
            sum_yy += y * y
            n += 1
        return TrendAccumulator(n=n, shift=shift, sum_y=sum_y, sum_xy=sum_xy, sum_yy=sum_yy)

    def result(self) -> TrendResult:
        n = self.n
        if n < 2:
            return _FLAT
        sum_x = n * (n - 1) / 2.0
        sum_xx = (n - 1) * n * (2 * n - 1) / 6.0

        sxx = n * sum_xx - sum_x * sum_x
        sxy = n * self.sum_xy - sum_x * self.sum_y
        syy = n * self.sum_yy - self.sum_y * self.sum_y

        slope = sxy / sxx
        intercept = (self.sum_y - slope * sum_x) / n + self.shift
        if syy <= 1e-12 * max(1.0, n * self.sum_yy):
            r2 = 0.0
        else:
            r2 = (sxy * sxy) / (sxx * syy)

        return TrendResult(
            slope=round_half_up(slope, 4) + 0.0,
            intercept=round_half_up(intercept, 4) + 0.0,
            r2=round_half_up(r2, 4) + 0.0,
        )


def analyze_trend(values: Iterable[Optional[float]]) -> TrendResult:
    """
    Least-squares line through the series, x being the 0-based position.

    Sampling is assumed uniform; elapsed time between samples is ignored.
    None entries are dropped before fitting. Fewer than two values give a
    flat zero result.
    """
    return TrendAccumulator().extend(values).result()


@dataclass(frozen=True)
class InsightInputs:
    """Trend sums needed for predictive insights, foldable batch by batch."""

    readings: int = 0
    voltage: TrendAccumulator = TrendAccumulator()
    temperature: TrendAccumulator = TrendAccumulator()
    efficiency: TrendAccumulator = TrendAccumulator()

    def extend(self, readings: Sequence[Reading], thresholds: ThresholdConfig) -> "InsightInputs":
        return InsightInputs(
            readings=self.readings + len(readings),
            voltage=self.voltage.extend(r.voltage for r in readings),
            temperature=self.temperature.extend(r.temperature for r in readings),
            efficiency=self.efficiency.extend(efficiency_series(readings, thresholds)),
        )


def efficiency_series(readings: Iterable[Reading], thresholds: ThresholdConfig) -> List[float]:
    """Instantaneous output as a percentage of nominal voltage x nominal current."""
    nominal_w = thresholds.nominal_voltage * thresholds.nominal_current
    if not nominal_w:
        return []
    return [
        r.voltage * r.current / nominal_w * 100
        for r in readings
        if r.voltage is not None and r.current is not None
    ]


def _confidence(raw: float) -> float:
    return min(100.0, round_half_up(abs(raw), 1))


def insights_from_inputs(inputs: InsightInputs, *, min_points: int = MIN_INSIGHT_POINTS) -> List[PredictiveInsight]:
    if inputs.readings < min_points:
        return []

    insights: list[PredictiveInsight] = []

    voltage_trend = inputs.voltage.result()
    if voltage_trend.slope < VOLTAGE_SLOPE_LIMIT:
        insights.append(
            PredictiveInsight(
                type="battery_degradation",
                severity="medium",
                message="Battery voltage showing declining trend",
                confidence=_confidence(voltage_trend.slope * 1000),
                recommendation="Schedule battery maintenance check",
                expected_impact="Reduced backup capacity",
            )
        )

    temperature_trend = inputs.temperature.result()
    if temperature_trend.slope > TEMPERATURE_SLOPE_LIMIT:
        insights.append(
            PredictiveInsight(
                type="overheating_risk",
                severity="high",
                message="Operating temperature trending upward",
                confidence=_confidence(temperature_trend.slope * 100),
                recommendation="Improve ventilation or add cooling",
                expected_impact="Reduced component lifespan",
            )
        )

    if inputs.efficiency.n > MIN_INSIGHT_POINTS:
        efficiency_trend = inputs.efficiency.result()
        if efficiency_trend.slope < EFFICIENCY_SLOPE_LIMIT:
            insights.append(
                PredictiveInsight(
                    type="performance_degradation",
                    severity="high",
                    message="System efficiency declining",
                    confidence=_confidence(efficiency_trend.slope * 20),
                    recommendation="Clean solar panels and check connections",
                    expected_impact="Reduced energy production",
                )
            )

    return insights


def predict_insights(
    readings: Sequence[Reading],
    thresholds: ThresholdConfig | None = None,
    *,
    min_points: int = MIN_INSIGHT_POINTS,
) -> List[PredictiveInsight]:
    """Maintenance hints from voltage, temperature and efficiency trends."""
    thresholds = thresholds or ThresholdConfig.defaults()
    inputs = InsightInputs().extend(list(readings), thresholds)
    return insights_from_inputs(inputs, min_points=min_points)
