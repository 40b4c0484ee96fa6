# solar_monitor/services/energy.py

from __future__ import annotations

from typing import Iterable, List

from solar_monitor.models.reading import Reading


def chronological(readings: Iterable[Reading]) -> List[Reading]:
    # sorted() is stable: equal timestamps keep their input order.
    return sorted(readings, key=lambda r: r.timestamp)


def segment_energy_wh(a: Reading, b: Reading) -> float:
    """Trapezoid between two consecutive readings, in watt-hours."""
    hours = (b.timestamp - a.timestamp).total_seconds() / 3600.0
    return ((a.power or 0.0) + (b.power or 0.0)) / 2.0 * hours


def integrate_energy_wh(ordered: List[Reading]) -> float:
    total = 0.0
    for prev, cur in zip(ordered, ordered[1:]):
        total += segment_energy_wh(prev, cur)
    return total


def integrate_energy(readings: Iterable[Reading]) -> float:
    """
    Energy in kWh over the readings, unrounded.

    Missing power counts as 0 W at that endpoint. Fewer than two readings
    give 0.0.
    """
    ordered = chronological(readings)
    if len(ordered) < 2:
        return 0.0
    return integrate_energy_wh(ordered) / 1000.0
