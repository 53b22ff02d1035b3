"""
Per-segment pipeline for the regression-v1 algorithm.

Steps: classify anchors, unwrap, reject gross outliers against a
whole-segment fit (re-unwrapping if any were dropped), evaluate a sliding
window for every day through the forecast horizon, then smooth the overlay.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import TYPE_CHECKING

import numpy as np

from circadian_tracker.core.algorithms.anchors import (
    best_anchor_per_date,
    build_anchors,
    classify_records,
    day_number,
    median_spacing,
)
from circadian_tracker.core.constants import HOURS_PER_DAY, ConfidenceLevel
from circadian_tracker.core.dataclasses import AnchorPoint, CircadianDay, SegmentResult, TierCounts

from .smoothing import DaySeries, SmoothingContext, is_plausible_regional, smooth_overlay
from .unwrap import unwrap_anchors_from_seed
from .window import WindowResult, evaluate_window, evaluate_window_expanding, segment_trend

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from circadian_tracker.core.algorithms.segments import IndexedInterval
    from circadian_tracker.core.dataclasses import Anchor

    from .config import RegressionConfig

logger = logging.getLogger(__name__)

MIN_SEGMENT_ANCHORS: int = 2


def reject_outliers(anchors: list[Anchor], config: RegressionConfig) -> list[Anchor]:
    """
    Drop anchors far from the whole-segment fit and unwrap the remainder again.

    Outliers are only dropped when they are a small minority; otherwise the
    anchors are returned unchanged.
    """
    global_fit = segment_trend(anchors, config)
    outliers = {
        i
        for i, a in enumerate(anchors)
        if abs(a.midpoint_hour - global_fit.predict(a.day_number)) > config.outlier_threshold_hours
    }
    if not outliers or len(outliers) >= len(anchors) * config.max_outlier_fraction:
        return anchors

    logger.debug("Dropping %d of %d anchors as outliers", len(outliers), len(anchors))
    kept = [a for i, a in enumerate(anchors) if i not in outliers]
    unwrap_anchors_from_seed(kept, config)
    return kept


def _slope_confidence(result: WindowResult, expected_points: float, config: RegressionConfig) -> float:
    return min(1.0, result.points_used / expected_points) * (1 - min(1.0, result.residual_mad / config.slope_conf_mad_scale))


def _window_confidence(result: WindowResult, expected_points: float, config: RegressionConfig) -> float:
    density = min(1.0, result.points_used / expected_points)
    spread = 1 - min(1.0, result.residual_mad / config.confidence_mad_scale)
    return 0.4 * density + 0.3 * result.avg_quality + 0.3 * spread


def regularize_slope(
    result: WindowResult,
    slope_conf: float,
    fallback_slope: float,
    config: RegressionConfig,
) -> tuple[float, float]:
    """
    Blend the local slope toward the fallback by slope confidence.

    A strong, clean disagreement between local and fallback slopes boosts
    trust in the local window (regime change). Implausible blends revert to
    the fallback, and the result is floored at zero because the clock does
    not run backward.

    Returns:
        (regularized slope, possibly boosted slope confidence)

    """
    slope_diff = abs(result.slope - fallback_slope)
    if (
        slope_diff > config.regime_change_threshold
        and result.points_used >= config.min_anchors_per_window
        and result.residual_mad < config.regime_change_max_mad
    ):
        boost = min(0.4, (slope_diff - config.regime_change_threshold) * 0.5)
        slope_conf = min(1.0, slope_conf + boost)

    slope = slope_conf * result.slope + (1 - slope_conf) * fallback_slope
    if not config.plausible_slope_min <= slope <= config.plausible_slope_max:
        slope = fallback_slope

    return max(0.0, slope), slope_conf


def analyze_segment(
    items: Sequence[IndexedInterval],
    epoch: date,
    forecast_days: int,
    config: RegressionConfig,
) -> SegmentResult | None:
    """
    Analyze one contiguous segment of sleep records.

    Args:
        items: Records of the segment, sorted by onset
        epoch: Analysis epoch shared by every segment (day 0)
        forecast_days: Days to extrapolate past the last data day
        config: Regression configuration

    Returns:
        SegmentResult, or None when fewer than two anchors survive classification

    """
    if not items:
        return None

    tier_counts = TierCounts.from_tiers([c.tier for c in classify_records(items, config.anchor_tiers)])
    anchors = build_anchors(items, epoch, config.anchor_tiers)
    if len(anchors) < MIN_SEGMENT_ANCHORS:
        logger.debug("Segment starting %s has %d anchors; skipping", items[0].record.sleep_date, len(anchors))
        return None

    unwrap_anchors_from_seed(anchors, config)
    anchors = reject_outliers(anchors, config)
    global_fit = segment_trend(anchors, config)

    first_day = day_number(items[0].record.sleep_date, epoch)
    last_day = max(anchors[-1].day_number, max(day_number(item.record.sleep_date, epoch) for item in items))
    last_data_index = last_day - first_day
    total = last_data_index + forecast_days + 1

    spacing = median_spacing(anchors)
    expected_points = config.expected_points(spacing)
    best_by_date = best_anchor_per_date(anchors)

    # Forecast days extrapolate one frozen fit from the last data day
    edge = evaluate_window_expanding(anchors, last_day, config)
    edge_confidence = _window_confidence(edge, expected_points, config)

    series = DaySeries(
        predicted_mid=np.zeros(total),
        night_mid=np.zeros(total),
        half_duration=np.zeros(total),
        confidence=np.zeros(total),
        slope_conf=np.zeros(total),
        local_drift=np.zeros(total),
        is_forecast=np.zeros(total, dtype=bool),
    )
    residuals: list[float] = []

    for i in range(total):
        day = first_day + i
        is_forecast = i > last_data_index
        result = edge if is_forecast else evaluate_window_expanding(anchors, day, config)

        slope_conf = _slope_confidence(result, expected_points, config)
        regional = evaluate_window(anchors, day, config.regularization_half, config)
        fallback = regional.slope if is_plausible_regional(regional, config) else global_fit.slope
        slope, slope_conf = regularize_slope(result, slope_conf, fallback, config)

        # Predict at the window centroid, then extrapolate at the regularized slope
        predicted = result.predict(result.weighted_mean_x) + slope * (day - result.weighted_mean_x)

        if is_forecast:
            confidence = edge_confidence * math.exp(-config.forecast_decay * (i - last_data_index))
        else:
            confidence = _window_confidence(result, expected_points, config)
            residuals.extend(abs(a.midpoint_hour - predicted) for a in anchors if a.day_number == day)

        series.predicted_mid[i] = predicted
        series.night_mid[i] = predicted % HOURS_PER_DAY
        series.half_duration[i] = result.avg_duration / 2
        series.confidence[i] = confidence
        series.slope_conf[i] = slope_conf
        series.local_drift[i] = slope
        series.is_forecast[i] = is_forecast

    ctx = SmoothingContext(
        anchors=anchors,
        first_day=first_day,
        last_data_index=last_data_index,
        edge=edge,
        spacing=spacing,
        global_fit=global_fit,
    )
    smooth_overlay(series, ctx, config)

    days = []
    for i in range(total):
        day_date = epoch + timedelta(days=first_day + i)
        drift = min(max(float(series.local_drift[i]), config.tau_min - HOURS_PER_DAY), config.tau_max - HOURS_PER_DAY)
        best = best_by_date.get(day_date)
        confidence = float(series.confidence[i])
        mid = float(series.night_mid[i])
        half = float(series.half_duration[i])
        days.append(
            CircadianDay(
                date=day_date,
                night_start_hour=mid - half,
                night_end_hour=mid + half,
                confidence_score=confidence,
                confidence=ConfidenceLevel.from_score(confidence),
                local_tau=HOURS_PER_DAY + drift,
                local_drift=drift,
                is_forecast=bool(series.is_forecast[i]),
                anchor_index=best.record_index if best is not None and not series.is_forecast[i] else None,
            )
        )

    logger.debug(
        "Regression segment days %d..%d: %d anchors, %d forecast days",
        first_day,
        last_day,
        len(anchors),
        forecast_days,
    )

    return SegmentResult(
        first_day=first_day,
        last_day=last_day,
        days=tuple(days),
        anchors=tuple(AnchorPoint.from_anchor(a) for a in anchors),
        tier_counts=tier_counts,
        residuals=tuple(residuals),
    )
