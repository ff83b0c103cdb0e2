"""Small numeric helpers shared by the analytics services.

All functions accept any sequence of floats and return neutral zeros on empty
input instead of raising, so callers never need to guard against short
histories.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

__all__ = [
    "total",
    "mean",
    "median",
    "standard_deviation",
    "mean_absolute_deviation",
    "iqr",
    "coefficient_of_variation",
    "clamp",
    "round_whole",
    "round_to",
]


def total(values: Sequence[float]) -> float:
    return float(sum(values))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return total(values) / len(values)


def median(values: Sequence[float]) -> float:
    n = len(values)
    if n == 0:
        return 0.0
    xs = sorted(values)
    mid = n // 2
    if n % 2 == 1:
        return float(xs[mid])
    return float((xs[mid - 1] + xs[mid]) / 2.0)


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation."""
    if not values:
        return 0.0
    mu = mean(values)
    var = sum((v - mu) ** 2 for v in values) / len(values)
    return math.sqrt(var)


def mean_absolute_deviation(values: Sequence[float]) -> float:
    """Mean absolute deviation measured from the median, not the mean."""
    if not values:
        return 0.0
    med = median(values)
    return sum(abs(v - med) for v in values) / len(values)


def iqr(values: Sequence[float]) -> Tuple[float, float, float]:
    """Return (q1, q3, q3 - q1) using floor-index quartiles, no interpolation."""
    if not values:
        return 0.0, 0.0, 0.0
    xs = sorted(values)
    q1 = float(xs[int(math.floor(len(xs) * 0.25))])
    q3 = float(xs[int(math.floor(len(xs) * 0.75))])
    return q1, q3, q3 - q1


def coefficient_of_variation(values: Sequence[float]) -> float:
    mu = mean(values)
    if mu == 0:
        return 0.0
    return standard_deviation(values) / mu


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def round_whole(value: float) -> int:
    # half-up, so 2.5 -> 3 and -2.5 -> -2
    return int(math.floor(value + 0.5))


def round_to(value: float, places: int = 2) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor
