from datetime import timedelta

import pytest

from solar_monitor.services.energy import chronological, integrate_energy
from solar_monitor.tests.fake_readings import BASE_TIME, constant_power, make_reading


def test_constant_power_over_two_hours():
    assert integrate_energy(constant_power(100.0, 3)) == pytest.approx(0.2)


@pytest.mark.parametrize(
    "readings",
    [
        pytest.param([], id="empty"),
        pytest.param([make_reading()], id="single"),
    ],
)
def test_fewer_than_two_readings_is_zero(readings):
    assert integrate_energy(readings) == 0.0


def test_missing_power_counts_as_zero_at_that_end():
    readings = [
        make_reading(None, None, power=100.0, minutes=0),
        make_reading(None, None, minutes=60),
    ]
    assert integrate_energy(readings) == pytest.approx(0.05)


def test_unordered_input_is_sorted_first():
    ordered = constant_power(50.0, 4, step_minutes=30)
    shuffled = [ordered[2], ordered[0], ordered[3], ordered[1]]
    assert integrate_energy(shuffled) == pytest.approx(integrate_energy(ordered))
    assert integrate_energy(shuffled) == pytest.approx(0.075)


def test_trapezoid_between_unequal_powers():
    # 12V x 2A = 24W then 12V x 4A = 48W over 30 minutes.
    readings = [make_reading(12.0, 2.0, minutes=0), make_reading(12.0, 4.0, minutes=30)]
    assert integrate_energy(readings) == pytest.approx(0.018)


def test_chronological_is_stable_for_equal_timestamps():
    a = make_reading(11.0, at=BASE_TIME)
    b = make_reading(12.0, at=BASE_TIME)
    c = make_reading(13.0, at=BASE_TIME - timedelta(minutes=5))
    assert chronological([a, b, c]) == [c, a, b]
