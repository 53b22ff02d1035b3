"""
Segment Merger: stitch per-segment results into one timeline.

Segments are ordered by first day and the interior of every inter-segment
gap is filled with neutral, zero-confidence gap days. The global period is
recomputed from the final overlay (not from averaged local tau): data-day
midpoints are chained to the nearest 24h branch across the whole timeline,
bridging gaps from the previous segment's last day, and a confidence-weighted
line is fitted.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from circadian_tracker.core.constants import HOURS_PER_DAY, TAU_MAX, TAU_MIN
from circadian_tracker.core.dataclasses import CircadianAnalysis, CircadianDay, TierCounts

from .circular import snap_near, upper_median
from .fitting import LinearFit, weighted_linear_regression

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from circadian_tracker.core.dataclasses import SegmentResult

logger = logging.getLogger(__name__)

# Median residual (hours) at which the residual-based fit quality reaches zero
RESIDUAL_QUALITY_SCALE: float = 3.0


def overlay_points(days: Sequence[CircadianDay], epoch: date) -> tuple[list[float], list[float], list[float]]:
    """
    Unwrapped overlay midpoints of every data day.

    Returns:
        (day numbers, unwrapped midpoints, confidence weights)

    """
    xs: list[float] = []
    ys: list[float] = []
    ws: list[float] = []
    prev_mid: float | None = None

    for day in days:
        if day.is_forecast or day.is_gap:
            continue
        mid = day.midpoint_hour
        if prev_mid is not None:
            mid = snap_near(mid, prev_mid)
        xs.append((day.date - epoch).days)
        ys.append(mid)
        ws.append(day.confidence_score)
        prev_mid = mid

    return xs, ys, ws


def weighted_r_squared(xs: list[float], ys: list[float], ws: list[float], fit: LinearFit) -> float:
    """Weighted coefficient of determination, floored at 0."""
    total_w = sum(ws)
    if total_w <= 0:
        return 0.0
    y_mean = sum(w * y for w, y in zip(ws, ys, strict=True)) / total_w
    ss_res = sum(w * (y - fit.predict(x)) ** 2 for x, y, w in zip(xs, ys, ws, strict=True))
    ss_tot = sum(w * (y - y_mean) ** 2 for y, w in zip(ys, ws, strict=True))
    return max(0.0, 1 - ss_res / ss_tot) if ss_tot > 0 else 0.0


def merge_segment_results(
    segments: Sequence[SegmentResult],
    epoch: date | None,
    algorithm_id: str,
    overlay_r_squared: bool = False,
) -> CircadianAnalysis:
    """
    Merge independently analyzed segments into one analysis.

    Args:
        segments: Segment results in any order
        epoch: Analysis epoch the segment day numbers are relative to
        algorithm_id: Identifier recorded on the analysis
        overlay_r_squared: Report the weighted R^2 of the overlay fit instead
            of the residual-based fit quality

    Returns:
        Merged CircadianAnalysis, or the neutral analysis when there is nothing to merge

    """
    if not segments or epoch is None:
        logger.warning("No analyzable segments; returning neutral %s analysis", algorithm_id)
        return CircadianAnalysis.neutral(algorithm_id)

    ordered = sorted(segments, key=lambda s: s.first_day)

    days: list[CircadianDay] = []
    tier_counts = TierCounts()
    residuals: list[float] = []
    for i, seg in enumerate(ordered):
        if i > 0:
            prev_end = ordered[i - 1].last_day
            days.extend(CircadianDay.gap(epoch + timedelta(days=d)) for d in range(prev_end + 1, seg.first_day))
        days.extend(seg.days)
        tier_counts = tier_counts + seg.tier_counts
        residuals.extend(seg.residuals)

    xs, ys, ws = overlay_points(days, epoch)
    global_tau = HOURS_PER_DAY
    r_squared = 0.0
    if len(xs) >= 2:
        fit = weighted_linear_regression(xs, ys, ws)
        global_tau = min(max(HOURS_PER_DAY + fit.slope, TAU_MIN), TAU_MAX)
        if overlay_r_squared:
            r_squared = weighted_r_squared(xs, ys, ws, fit)

    median_residual = upper_median(residuals)
    if not overlay_r_squared:
        r_squared = 1 - min(1.0, median_residual / RESIDUAL_QUALITY_SCALE)

    anchors = tuple(a for seg in ordered for a in seg.anchors)
    observation_count = sum(seg.observation_count for seg in ordered)
    innovation_total = sum(seg.mean_innovation * seg.observation_count for seg in ordered)

    return CircadianAnalysis(
        algorithm_id=algorithm_id,
        global_tau=global_tau,
        global_daily_drift=global_tau - HOURS_PER_DAY,
        days=tuple(days),
        anchors=anchors,
        median_residual_hours=median_residual,
        anchor_count=len(anchors) or observation_count,
        tier_counts=tier_counts,
        r_squared=r_squared,
        segment_count=len(ordered),
        gated_outlier_count=sum(seg.gated_count for seg in ordered),
        observation_count=observation_count,
        mean_innovation=innovation_total / observation_count if observation_count > 0 else 0.0,
    )
