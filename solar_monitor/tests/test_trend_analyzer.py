import pytest

from solar_monitor.services.alert_logic import ThresholdConfig
from solar_monitor.services.trend_analyzer import (
    InsightInputs,
    TrendAccumulator,
    analyze_trend,
    efficiency_series,
    insights_from_inputs,
    predict_insights,
)
from solar_monitor.tests.fake_readings import make_reading
from solar_monitor.util.numbers import iter_batches


@pytest.mark.parametrize(
    "values",
    [
        pytest.param([], id="empty"),
        pytest.param([4.2], id="single"),
        pytest.param([None, 3.0, None], id="single-after-dropping-missing"),
    ],
)
def test_short_series_is_flat(values):
    result = analyze_trend(values)
    assert (result.slope, result.intercept, result.r2) == (0.0, 0.0, 0.0)
    assert result.direction == "flat"


def test_perfect_line():
    result = analyze_trend([0, 1, 2, 3, 4])
    assert result.slope == 1.0
    assert result.intercept == 0.0
    assert result.r2 == 1.0
    assert result.direction == "up"


def test_descending_line_keeps_offset():
    result = analyze_trend([10.0, 8.0, 6.0])
    assert result.slope == -2.0
    assert result.intercept == 10.0
    assert result.r2 == 1.0


def test_constant_series_has_zero_r2():
    result = analyze_trend([5.0, 5.0, 5.0, 5.0])
    assert result.slope == 0.0
    assert result.intercept == 5.0
    assert result.r2 == 0.0


def test_large_offsets_do_not_lose_precision():
    base = 1e9
    result = analyze_trend([base + 0.5 * i for i in range(50)])
    assert result.slope == 0.5
    assert result.r2 == 1.0


def test_accumulator_extends_across_batches():
    values = [3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0]
    acc = TrendAccumulator()
    for chunk in iter_batches(values, 3):
        acc = acc.extend(chunk)
    assert acc.result() == analyze_trend(values)


def _declining_voltage(count=12):
    return [
        make_reading(13.0 - 0.1 * idx, 2.0, 30.0 + 0.5 * idx, minutes=10 * idx)
        for idx in range(count)
    ]


def test_predict_insights_flags_voltage_and_temperature():
    insights = predict_insights(_declining_voltage())
    kinds = {i.type: i for i in insights}

    assert set(kinds) == {"battery_degradation", "overheating_risk"}
    assert kinds["battery_degradation"].confidence == 100.0
    assert kinds["overheating_risk"].confidence == 50.0
    assert kinds["overheating_risk"].severity == "high"


def test_predict_insights_flags_efficiency_decline():
    readings = [make_reading(12.0, 3.0 - 0.2 * idx, 30.0, minutes=10 * idx) for idx in range(12)]
    insights = predict_insights(readings)

    assert [i.type for i in insights] == ["performance_degradation"]
    assert insights[0].confidence == 80.0


def test_predict_insights_needs_enough_readings():
    assert predict_insights(_declining_voltage(count=9)) == []


def test_efficiency_series_skips_incomplete_readings():
    readings = [make_reading(12.0, 2.5), make_reading(None, 2.5), make_reading(6.0, 5.0)]
    assert efficiency_series(readings, ThresholdConfig.defaults()) == [50.0, 50.0]


def test_insight_inputs_batched_matches_whole():
    readings = _declining_voltage(count=20)
    thresholds = ThresholdConfig.defaults()

    inputs = InsightInputs()
    for chunk in iter_batches(readings, 6):
        inputs = inputs.extend(chunk, thresholds)

    assert insights_from_inputs(inputs) == predict_insights(readings, thresholds)


@pytest.mark.parametrize(
    "readings, kind, message, recommendation, impact",
    [
        pytest.param(
            _declining_voltage(),
            "battery_degradation",
            "Battery voltage showing declining trend",
            "Schedule battery maintenance check",
            "Reduced backup capacity",
            id="battery",
        ),
        pytest.param(
            _declining_voltage(),
            "overheating_risk",
            "Operating temperature trending upward",
            "Improve ventilation or add cooling",
            "Reduced component lifespan",
            id="overheating",
        ),
        pytest.param(
            [make_reading(12.0, 3.0 - 0.2 * idx, 30.0, minutes=10 * idx) for idx in range(12)],
            "performance_degradation",
            "System efficiency declining",
            "Clean solar panels and check connections",
            "Reduced energy production",
            id="efficiency",
        ),
    ],
)
def test_insight_wording(readings, kind, message, recommendation, impact):
    insight = {i.type: i for i in predict_insights(readings)}[kind]
    assert insight.message == message
    assert insight.recommendation == recommendation
    assert insight.expected_impact == impact
