"""
Phase coherence periodogram (diagnostic only).

For each trial period P, anchor times are folded modulo P onto the unit
circle and the squared weighted mean resultant length R^2 is computed
(a weighted Rayleigh statistic):
    R^2 ~ 1: folded phases coincide, strong periodicity at P
    R^2 ~ 0: folded phases are spread uniformly

Because tau drifts over months, long recordings are split into overlapping
120-day windows where tau is roughly stable and the per-window R^2 is
averaged. The result never feeds the primary day sequence; it is an
independent cross-check of the estimated period.

References:
    - Batschelet (1981). Circular Statistics in Biology.
    - Refinetti (2016). Circadian Physiology.

Example Usage:
    >>> anchors = build_periodogram_anchors(records)
    >>> result = compute_periodogram(anchors)
    >>> print(f"peak at {result.peak_period:.2f}h, 24h power {result.power_24h:.3f}")

"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from circadian_tracker.core.algorithms.segments import analysis_epoch
from circadian_tracker.core.constants import EPSILON, HOURS_PER_DAY

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import SleepInterval

logger = logging.getLogger(__name__)

MIN_ANCHOR_DURATION_HOURS: float = 4.0
FULL_WEIGHT_DURATION_HOURS: float = 7.0
MIN_PERIODOGRAM_ANCHORS: int = 3

WINDOW_DAYS: int = 120
WINDOW_STEP_DAYS: int = 30
MIN_WINDOW_ANCHORS: int = 8
SMOOTHING_SIGMA: float = 3.0
SIGNIFICANCE_P_VALUE: float = 0.01

TRIM_PADDING_HOURS: float = 0.25
MIN_TRIM_WIDTH_HOURS: float = 2.0


@dataclass(frozen=True)
class PeriodogramAnchor:
    """Main-sleep midpoint used by the periodogram."""

    day_number: int
    midpoint_hour: float
    weight: float


@dataclass(frozen=True, eq=False)
class PeriodogramResult:
    """
    Periodogram sweep output.

    Attributes:
        periods: Trial periods (hours)
        power: Smoothed mean R^2 per trial period
        trimmed_periods: Periods of the region of interest
        trimmed_power: Power over the region of interest
        peak_period: Period of maximum power (24 when empty)
        peak_power: Maximum power
        significance_threshold: R^2 above which a peak is significant at p < 0.01
        power_24h: Power at exactly 24h

    """

    periods: np.ndarray = field(default_factory=lambda: np.empty(0))
    power: np.ndarray = field(default_factory=lambda: np.empty(0))
    trimmed_periods: np.ndarray = field(default_factory=lambda: np.empty(0))
    trimmed_power: np.ndarray = field(default_factory=lambda: np.empty(0))
    peak_period: float = HOURS_PER_DAY
    peak_power: float = 0.0
    significance_threshold: float = 0.0
    power_24h: float = 0.0

    @property
    def is_empty(self) -> bool:
        return len(self.periods) == 0

    def to_dataframe(self) -> pd.DataFrame:
        """Full sweep as a two-column DataFrame (period, power)."""
        return pd.DataFrame({"period": self.periods, "power": self.power})


def build_periodogram_anchors(records: Sequence[SleepInterval]) -> list[PeriodogramAnchor]:
    """
    Convert main sleeps of at least 4h into periodogram anchors.

    Day numbers count from the earliest record's sleep date; midpoints are
    hours after the record's own sleep-date midnight. Weight is quality
    scaled by duration (full weight at 7h).
    """
    epoch = analysis_epoch(records)
    if epoch is None:
        return []

    anchors = []
    for record in sorted(records, key=lambda r: r.start):
        if not record.is_main_sleep or record.duration < MIN_ANCHOR_DURATION_HOURS:
            continue
        midnight = datetime.combine(record.sleep_date, time.min)
        anchors.append(
            PeriodogramAnchor(
                day_number=(record.sleep_date - epoch).days,
                midpoint_hour=(record.midpoint - midnight).total_seconds() / 3600.0,
                weight=record.quality * min(1.0, record.duration / FULL_WEIGHT_DURATION_HOURS),
            )
        )
    return anchors


def gaussian_smooth(values: np.ndarray, sigma: float) -> np.ndarray:
    """Gaussian convolution renormalized at the edges."""
    radius = math.ceil(sigma * 3)
    offsets = np.arange(-radius, radius + 1)
    kernel = np.exp(-0.5 * (offsets / sigma) ** 2)
    out = np.empty(len(values))
    for i in range(len(values)):
        lo = max(0, i - radius)
        hi = min(len(values), i + radius + 1)
        w = kernel[lo - i + radius : hi - i + radius]
        out[i] = float((w * values[lo:hi]).sum() / w.sum())
    return out


def _windows(day_numbers: np.ndarray, weights: np.ndarray) -> list[np.ndarray]:
    """Index arrays of the analysis windows, skipping windows without weight."""
    first_day = int(day_numbers.min())
    last_day = int(day_numbers.max())

    if last_day - first_day <= WINDOW_DAYS * 1.5:
        candidates = [np.arange(len(day_numbers))]
    else:
        half = WINDOW_DAYS / 2
        candidates = []
        center = first_day + half
        while center <= last_day - half + WINDOW_STEP_DAYS:
            indices = np.flatnonzero(np.abs(day_numbers - center) <= half)
            if len(indices) >= MIN_WINDOW_ANCHORS:
                candidates.append(indices)
            center += WINDOW_STEP_DAYS

    return [idx for idx in candidates if weights[idx].sum() > EPSILON]


def _trim_bounds(
    periods: np.ndarray,
    power: np.ndarray,
    threshold: float,
    peak_period: float,
) -> tuple[float, float]:
    significant = periods[power > threshold]
    if len(significant) > 0:
        low = float(significant.min()) - TRIM_PADDING_HOURS
        high = float(significant.max()) + TRIM_PADDING_HOURS
    else:
        low = peak_period - 1
        high = peak_period + 1

    low = min(low, HOURS_PER_DAY - TRIM_PADDING_HOURS)
    high = max(high, HOURS_PER_DAY + TRIM_PADDING_HOURS)

    if high - low < MIN_TRIM_WIDTH_HOURS:
        center = (low + high) / 2
        low = center - MIN_TRIM_WIDTH_HOURS / 2
        high = center + MIN_TRIM_WIDTH_HOURS / 2

    return max(float(periods[0]), low), min(float(periods[-1]), high)


def compute_periodogram(
    anchors: Sequence[PeriodogramAnchor],
    min_period: float = 23.0,
    max_period: float = 26.0,
    step: float = 0.01,
) -> PeriodogramResult:
    """
    Sweep trial periods and compute windowed phase coherence.

    Args:
        anchors: Periodogram anchors, ordered by day number
        min_period: Shortest trial period (hours)
        max_period: Longest trial period (hours)
        step: Trial period increment (hours)

    Returns:
        PeriodogramResult; the empty result for fewer than three anchors or no usable window

    """
    if len(anchors) < MIN_PERIODOGRAM_ANCHORS:
        return PeriodogramResult()

    day_numbers = np.array([a.day_number for a in anchors], dtype=float)
    times = day_numbers * HOURS_PER_DAY + np.array([a.midpoint_hour for a in anchors])
    weights = np.array([a.weight for a in anchors])

    windows = _windows(day_numbers, weights)
    if not windows:
        return PeriodogramResult()

    n_trials = round((max_period - min_period) / step) + 1
    periods = min_period + np.arange(n_trials) * step

    # theta[k, i]: anchor i folded onto trial period k
    theta = 2 * np.pi * np.mod(times[np.newaxis, :], periods[:, np.newaxis]) / periods[:, np.newaxis]
    weighted_cos = weights * np.cos(theta)
    weighted_sin = weights * np.sin(theta)

    power = np.zeros(n_trials)
    effective_sizes = []
    for idx in windows:
        total_w = weights[idx].sum()
        c = weighted_cos[:, idx].sum(axis=1) / total_w
        s = weighted_sin[:, idx].sum(axis=1) / total_w
        power += c * c + s * s
        effective_sizes.append(total_w**2 / (weights[idx] ** 2).sum())
    power = gaussian_smooth(power / len(windows), SMOOTHING_SIGMA)

    median_n_eff = sorted(effective_sizes)[len(effective_sizes) // 2]
    threshold = -math.log(SIGNIFICANCE_P_VALUE) / median_n_eff

    peak = int(np.argmax(power))
    peak_period = float(periods[peak]) if power[peak] > 0 else HOURS_PER_DAY
    at_24 = np.flatnonzero(np.abs(periods - HOURS_PER_DAY) < step / 2)

    low, high = _trim_bounds(periods, power, threshold, peak_period)
    trimmed = (periods >= low) & (periods <= high)

    logger.debug(
        "Periodogram: %d anchors in %d windows, peak %.2fh (R^2 %.3f, threshold %.3f)",
        len(anchors),
        len(windows),
        peak_period,
        float(power[peak]),
        threshold,
    )

    return PeriodogramResult(
        periods=periods,
        power=power,
        trimmed_periods=periods[trimmed],
        trimmed_power=power[trimmed],
        peak_period=peak_period,
        peak_power=float(power[peak]),
        significance_threshold=threshold,
        power_24h=float(power[at_24[0]]) if len(at_24) > 0 else 0.0,
    )
