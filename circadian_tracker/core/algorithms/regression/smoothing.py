"""
Post-hoc overlay smoothing for the regression-v1 algorithm.

Runs once all raw per-day values of a segment exist. Operates on parallel
per-day arrays indexed by local day (0 = segment first day).

Passes:
    1. Re-chain raw predictions so adjacent data days never differ by a 24h step.
    2. Anchor realignment: low slope-confidence days (and a fading margin
       around them) are replaced by a kernel-weighted anchor residual against
       the whole-segment trend.
    3. Jump pass (iterative): days next to a jump above threshold, plus a
       margin, are re-smoothed from nearby days' predictions.
    4. Forward bridge: runs of days moving backward against the expected
       drift are replaced by forward-only circular interpolation.
    5. Forecast days are re-extrapolated from the smoothed last data day.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from circadian_tracker.core.algorithms.circular import circular_distance, gaussian, normalize_hour, snap_near
from circadian_tracker.core.constants import HALF_DAY_HOURS, HOURS_PER_DAY

from .window import WindowResult, evaluate_window, segment_trend

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import Anchor

    from .config import RegressionConfig

logger = logging.getLogger(__name__)


@dataclass
class DaySeries:
    """
    Mutable per-day working arrays for one segment.

    Attributes:
        predicted_mid: Unwrapped raw predictions, rewritten by smoothing
        night_mid: Output night midpoints in [0, 24)
        half_duration: Half of the night window length
        confidence: Day confidence scores
        slope_conf: Confidence in the local slope
        local_drift: Regularized slope (hours per day)
        is_forecast: True for days after the last data day

    """

    predicted_mid: np.ndarray
    night_mid: np.ndarray
    half_duration: np.ndarray
    confidence: np.ndarray
    slope_conf: np.ndarray
    local_drift: np.ndarray
    is_forecast: np.ndarray

    def __len__(self) -> int:
        return len(self.predicted_mid)

    def set_mid(self, i: int, mid: float) -> None:
        """Write an unwrapped midpoint to both the prediction and the output."""
        self.predicted_mid[i] = mid
        self.night_mid[i] = normalize_hour(mid)


@dataclass(frozen=True)
class SmoothingContext:
    """Read-only segment facts the smoother needs."""

    anchors: Sequence[Anchor]
    first_day: int
    last_data_index: int
    edge: WindowResult
    spacing: int
    global_fit: WindowResult


def rechain_predictions(series: DaySeries) -> None:
    """Remove 24h steps between adjacent non-forecast days."""
    for i in range(1, len(series)):
        if series.is_forecast[i] or series.is_forecast[i - 1]:
            continue
        series.predicted_mid[i] = snap_near(series.predicted_mid[i], series.predicted_mid[i - 1])


def _distance_to_core(core: list[bool]) -> list[float]:
    """Days to the nearest core day, via a forward and a backward sweep."""
    dist = [0.0 if flag else math.inf for flag in core]
    for i in range(1, len(dist)):
        dist[i] = min(dist[i], dist[i - 1] + 1)
    for i in range(len(dist) - 2, -1, -1):
        dist[i] = min(dist[i], dist[i + 1] + 1)
    return dist


def realign_to_anchors(series: DaySeries, ctx: SmoothingContext, trend: WindowResult, config: RegressionConfig) -> int:
    """
    Replace low slope-confidence days with anchor residuals against the trend.

    Returns:
        Number of days changed

    """
    n = len(series)
    core = [not series.is_forecast[i] and series.slope_conf[i] < config.slope_conf_threshold for i in range(n)]
    dist_to_core = _distance_to_core(core)
    flagged = [not series.is_forecast[i] and dist_to_core[i] <= config.smooth_margin for i in range(n)]

    changed = 0
    for i in range(n):
        if not flagged[i]:
            continue

        day = ctx.first_day + i
        w_sum = 0.0
        w_residual = 0.0
        for anchor in ctx.anchors:
            dist = abs(anchor.day_number - day)
            if dist > config.smooth_half:
                continue
            w = gaussian(dist, config.smooth_sigma) * anchor.weight
            w_residual += w * (anchor.midpoint_hour - trend.predict(anchor.day_number))
            w_sum += w

        # A single distant anchor is not enough coverage
        if w_sum <= config.min_anchor_coverage:
            continue

        anchor_mid = snap_near(trend.predict(day) + w_residual / w_sum, series.predicted_mid[i])
        anchor_weight = max(0.0, 1 - dist_to_core[i] / config.smooth_margin)
        series.set_mid(i, anchor_weight * anchor_mid + (1 - anchor_weight) * series.predicted_mid[i])
        changed += 1

    return changed


def _max_neighbor_jump(series: DaySeries, i: int) -> float:
    jump = 0.0
    if i > 0 and not series.is_forecast[i - 1]:
        jump = max(jump, circular_distance(series.predicted_mid[i], series.predicted_mid[i - 1]))
    if i < len(series) - 1 and not series.is_forecast[i + 1]:
        jump = max(jump, circular_distance(series.predicted_mid[i], series.predicted_mid[i + 1]))
    return jump


def smooth_jumps(series: DaySeries, ctx: SmoothingContext, trend: WindowResult, config: RegressionConfig) -> int:
    """
    Iteratively smooth days adjacent to jumps above the threshold.

    Returns:
        Number of iterations that found jumps

    """
    n = len(series)
    iterations = 0
    for _ in range(config.smooth_iterations):
        rechain_predictions(series)

        jumps = [not series.is_forecast[i] and _max_neighbor_jump(series, i) > config.smooth_jump_threshold for i in range(n)]
        if not any(jumps):
            break
        iterations += 1

        flagged = list(jumps)
        for i in (i for i, jump in enumerate(jumps) if jump):
            for j in range(max(0, i - config.smooth_margin), min(n - 1, i + config.smooth_margin) + 1):
                if not series.is_forecast[j]:
                    flagged[j] = True

        for i in range(n):
            if not flagged[i]:
                continue

            w_sum = 0.0
            w_residual = 0.0
            for j in range(max(0, i - config.smooth_half), min(n - 1, i + config.smooth_half) + 1):
                if series.is_forecast[j]:
                    continue
                w = gaussian(abs(i - j), config.smooth_sigma) * series.confidence[j]
                trend_j = trend.predict(ctx.first_day + j)
                w_residual += w * (series.predicted_mid[j] - trend_j)
                w_sum += w

            if w_sum > 0:
                series.set_mid(i, trend.predict(ctx.first_day + i) + w_residual / w_sum)

    return iterations


def bridge_backward_runs(series: DaySeries, config: RegressionConfig) -> int:
    """
    Forward-interpolate runs where the overlay moves backward against expected drift.

    The expected daily shift is the mean local drift of the two days, floored
    at zero. Bridging is skipped when the required rate is implausible.

    Returns:
        Number of runs bridged

    """
    n = len(series)
    mids = [float(m) for m in series.night_mid]

    backward = [False] * n
    for i in range(1, n):
        if series.is_forecast[i] or series.is_forecast[i - 1]:
            continue
        if min(series.confidence[i - 1], series.confidence[i]) < config.bridge_min_confidence:
            continue

        delta = mids[i] - mids[i - 1]
        if delta > HALF_DAY_HOURS:
            delta -= HOURS_PER_DAY
        if delta < -HALF_DAY_HOURS:
            delta += HOURS_PER_DAY

        expected = max(0.0, (series.local_drift[i - 1] + series.local_drift[i]) / 2)
        backward[i] = delta < expected - config.backward_deviation

    bridged = 0
    run_start = -1
    for i in range(n + 1):
        is_back = i < n and backward[i]
        if is_back and run_start < 0:
            run_start = i
            continue
        if is_back or run_start < 0:
            continue

        entry, exit_ = run_start - 1, i
        if i - run_start >= config.backward_min_run and entry >= 0 and exit_ < n and not series.is_forecast[exit_]:
            span = exit_ - entry
            forward_dist = (mids[exit_] - mids[entry]) % HOURS_PER_DAY
            if forward_dist != 0 and forward_dist / span <= config.max_bridge_rate:
                for j in range(run_start, exit_):
                    if not series.is_forecast[j]:
                        t = (j - entry) / span
                        series.night_mid[j] = normalize_hour(mids[entry] + t * forward_dist)
                bridged += 1
        run_start = -1

    return bridged


def recompute_forecast(series: DaySeries, ctx: SmoothingContext, config: RegressionConfig) -> None:
    """Extrapolate forecast days linearly from the smoothed last data day."""
    last = ctx.last_data_index
    if last >= len(series) - 1:
        return

    last_mid = float(series.night_mid[last])
    edge_slope = forecast_slope(ctx, config)
    for i in range(last + 1, len(series)):
        series.night_mid[i] = normalize_hour(last_mid + edge_slope * (i - last))


def forecast_slope(ctx: SmoothingContext, config: RegressionConfig) -> float:
    """Edge-window slope blended toward the regional (or whole-segment) fallback by its confidence."""
    edge = ctx.edge
    edge_slope_conf = min(1.0, edge.points_used / config.expected_points(ctx.spacing)) * (
        1 - min(1.0, edge.residual_mad / config.slope_conf_mad_scale)
    )
    regional = evaluate_window(ctx.anchors, ctx.first_day + ctx.last_data_index, config.regularization_half, config)
    fallback = regional.slope if is_plausible_regional(regional, config) else ctx.global_fit.slope
    return edge_slope_conf * edge.slope + (1 - edge_slope_conf) * fallback


def is_plausible_regional(fit: WindowResult, config: RegressionConfig) -> bool:
    return (
        fit.points_used >= config.min_anchors_per_window
        and config.plausible_slope_min <= fit.slope <= config.plausible_slope_max
    )


def smooth_overlay(series: DaySeries, ctx: SmoothingContext, config: RegressionConfig) -> None:
    """
    Apply every smoothing pass to a segment's day series in place.

    Args:
        series: Raw per-day arrays produced by the per-day estimator
        ctx: Segment anchors, edge fit and fallback fits
        config: Regression configuration

    """
    rechain_predictions(series)
    trend = segment_trend(ctx.anchors, config)

    realigned = realign_to_anchors(series, ctx, trend, config)
    jump_iterations = smooth_jumps(series, ctx, trend, config)
    bridged = bridge_backward_runs(series, config)
    recompute_forecast(series, ctx, config)

    logger.debug(
        "Smoothing: %d days realigned to anchors, %d jump iterations, %d backward runs bridged",
        realigned,
        jump_iterations,
        bridged,
    )
