"""
Sliding-window evaluator for the regression-v1 algorithm.

For a center day and half-width, anchors within the window are weighted by
their own weight times a Gaussian of their distance, and a robust line is
fitted. The weighted-mean day of the window is reported so callers can
predict at the window centroid instead of extrapolating to an edge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from circadian_tracker.core.algorithms.circular import gaussian, upper_median
from circadian_tracker.core.algorithms.fitting import robust_weighted_regression
from circadian_tracker.core.constants import EPSILON, AnchorTier

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import Anchor

    from .config import RegressionConfig

# Residual spread reported by windows too sparse to fit
UNFIT_RESIDUAL_MAD: float = 999.0


@dataclass(frozen=True)
class WindowResult:
    """
    Outcome of one window fit.

    Attributes:
        slope: Local drift in hours per day
        intercept: Fitted midpoint at day 0
        points_used: Anchors that contributed to the fit
        avg_quality: Mean anchor weight inside the window
        residual_mad: Upper median absolute residual
        avg_duration: Weighted mean duration of tier-A anchors (hours)
        weighted_mean_x: Weight centroid of the window (day number)

    """

    slope: float
    intercept: float
    points_used: int
    avg_quality: float
    residual_mad: float
    avg_duration: float
    weighted_mean_x: float

    def predict(self, day: float) -> float:
        return self.slope * day + self.intercept


def evaluate_window(
    anchors: Sequence[Anchor],
    center_day: float,
    half_window: float,
    config: RegressionConfig,
) -> WindowResult:
    """
    Fit a robust line to the anchors within half_window days of center_day.

    Args:
        anchors: Unwrapped anchors of one segment
        center_day: Window center (day number)
        half_window: Maximum distance from center in days
        config: Regression configuration (sigma, default night length)

    Returns:
        WindowResult; fewer than two points yields a flat fit with residual_mad 999

    """
    xs: list[float] = []
    ys: list[float] = []
    ws: list[float] = []
    quality_sum = 0.0
    duration_sum = 0.0
    duration_weight = 0.0

    for anchor in anchors:
        dist = abs(anchor.day_number - center_day)
        if dist > half_window:
            continue
        w = anchor.weight * gaussian(dist, config.gaussian_sigma)
        if w < EPSILON:
            continue

        xs.append(anchor.day_number)
        ys.append(anchor.midpoint_hour)
        ws.append(w)
        quality_sum += anchor.weight
        if anchor.tier == AnchorTier.A:
            duration_sum += anchor.duration_hours * anchor.weight
            duration_weight += anchor.weight

    total_w = sum(ws)
    weighted_mean_x = sum(w * x for w, x in zip(ws, xs, strict=True)) / total_w if total_w > 0 else float(center_day)
    avg_duration = duration_sum / duration_weight if duration_weight > 0 else config.default_night_hours

    if len(xs) < 2:
        return WindowResult(
            slope=0.0,
            intercept=0.0,
            points_used=len(xs),
            avg_quality=0.0,
            residual_mad=UNFIT_RESIDUAL_MAD,
            avg_duration=config.default_night_hours,
            weighted_mean_x=weighted_mean_x,
        )

    fit = robust_weighted_regression(xs, ys, ws)
    residual_mad = upper_median([abs(y - fit.predict(x)) for x, y in zip(xs, ys, strict=True)])

    return WindowResult(
        slope=fit.slope,
        intercept=fit.intercept,
        points_used=len(xs),
        avg_quality=quality_sum / len(xs),
        residual_mad=residual_mad,
        avg_duration=avg_duration,
        weighted_mean_x=weighted_mean_x,
    )


def evaluate_window_expanding(anchors: Sequence[Anchor], center_day: float, config: RegressionConfig) -> WindowResult:
    """
    Evaluate at the default half-width, widening to 1.5x and then the maximum while sparse.

    Returns:
        The first WindowResult with at least min_anchors_per_window points, or the widest one

    """
    result = evaluate_window(anchors, center_day, config.window_half, config)
    if result.points_used < config.min_anchors_per_window:
        result = evaluate_window(anchors, center_day, round(config.window_half * 1.5), config)
        if result.points_used < config.min_anchors_per_window:
            result = evaluate_window(anchors, center_day, config.max_window_half, config)
    return result


def segment_trend(anchors: Sequence[Anchor], config: RegressionConfig) -> WindowResult:
    """Whole-segment fit centered on the middle anchor and spanning the last anchor's day number."""
    center = anchors[len(anchors) // 2].day_number
    return evaluate_window(anchors, center, anchors[-1].day_number, config)
