from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator, List, TypeVar

T = TypeVar("T")


def round_half_up(value: float | None, places: int = 0) -> float | None:
    """
    Round on the decimal representation, halves away from zero.

    Python's round() is banker's rounding on the binary value, so
    round(116.5) == 116 and round(2.675, 2) == 2.67. Report fields and alert
    keys are compared against the shortest decimal repr instead.
    """
    if value is None:
        return None
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded)


def iter_batches(items: Iterable[T], size: int) -> Iterator[List[T]]:
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch

