"""Small numeric helpers shared by the analytics modules"""

import statistics
from typing import Sequence


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return min(hi, max(lo, value))


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence"""
    if not values:
        return 0.0
    return statistics.fmean(values)


def pstdev(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 for fewer than 2 values"""
    if len(values) < 2:
        return 0.0
    return statistics.pstdev(values)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Std-dev over mean; 1.0 when the mean is zero"""
    avg = mean(values)
    if avg == 0:
        return 1.0
    return pstdev(values) / abs(avg)


def slope(values: Sequence[float]) -> float:
    """
    Ordinary-least-squares slope of values against their index 0..n-1.

    Returns 0.0 for fewer than 2 values.
    """
    n = len(values)
    if n < 2:
        return 0.0
    x_mean = (n - 1) / 2
    y_mean = mean(values)
    numerator = sum((i - x_mean) * (y - y_mean) for i, y in enumerate(values))
    denominator = sum((i - x_mean) ** 2 for i in range(n))
    return numerator / denominator
