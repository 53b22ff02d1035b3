"""
Modulo-24 helpers for clock-hour arithmetic.

Sleep midpoints are observed only modulo 24 hours. These helpers normalize,
compare and unwrap clock hours so that phase can drift across midnight
indefinitely.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from circadian_tracker.core.constants import HALF_DAY_HOURS, HOURS_PER_DAY

if TYPE_CHECKING:
    from collections.abc import Sequence


def normalize_hour(hour: float) -> float:
    """Map an unwrapped hour into [0, 24)."""
    return hour % HOURS_PER_DAY


def circular_diff(a: float, b: float) -> float:
    """
    Signed shortest distance from b to a on the 24h clock.

    Returns:
        Difference in [-12, 12]

    """
    diff = normalize_hour(a) - normalize_hour(b)
    if diff > HALF_DAY_HOURS:
        return diff - HOURS_PER_DAY
    if diff < -HALF_DAY_HOURS:
        return diff + HOURS_PER_DAY
    return diff


def circular_distance(a: float, b: float) -> float:
    """Unsigned shortest distance between two clock hours."""
    return abs(circular_diff(a, b))


def snap_near(value: float, reference: float) -> float:
    """Shift value by whole days until it lies within 12h of reference."""
    while value - reference > HALF_DAY_HOURS:
        value -= HOURS_PER_DAY
    while reference - value > HALF_DAY_HOURS:
        value += HOURS_PER_DAY
    return value


def resolve_branch(measurement: float, predicted: float) -> float:
    """Move a modulo-24 measurement onto the 24h branch nearest the prediction."""
    return measurement + round((predicted - measurement) / HOURS_PER_DAY) * HOURS_PER_DAY


def pairwise_unwrap(values: Sequence[float]) -> list[float]:
    """
    Chain each value to the branch nearest its predecessor.

    Works on a copy; the input is left untouched.
    """
    out = list(values)
    for i in range(1, len(out)):
        out[i] = snap_near(out[i], out[i - 1])
    return out


def gaussian(distance: float, sigma: float) -> float:
    """Unnormalized Gaussian kernel weight."""
    return math.exp(-0.5 * (distance / sigma) ** 2)


def upper_median(values: Sequence[float], default: float = 0.0) -> float:
    """Element at index n // 2 of the sorted values, or default when empty."""
    if not values:
        return default
    ordered = sorted(values)
    return ordered[len(ordered) // 2]
