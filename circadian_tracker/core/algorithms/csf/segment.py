"""
Per-segment pipeline for the csf-v1 algorithm.

Keeps one anchor per sleep date, runs the forward filter and backward
smoother from the first anchor day through the forecast horizon, smooths the
output phase, corrects the trailing edge and turns each state into a
CircadianDay.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import TYPE_CHECKING

from circadian_tracker.core.algorithms.anchors import best_anchor_per_date, build_anchors
from circadian_tracker.core.algorithms.circular import circular_diff, normalize_hour
from circadian_tracker.core.constants import HOURS_PER_DAY, ConfidenceLevel
from circadian_tracker.core.dataclasses import AnchorPoint, CircadianDay, SegmentResult, TierCounts

from .filter import forward_pass, rts_smoother
from .smoothing import correct_edge, smooth_output_phase

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from circadian_tracker.core.algorithms.segments import IndexedInterval
    from circadian_tracker.core.dataclasses import Anchor

    from .config import CSFConfig
    from .filter import SmoothedState

logger = logging.getLogger(__name__)

MIN_SEGMENT_ANCHORS: int = 2
# Smoothed phase variance (h^2) at which data-day confidence reaches zero
CONFIDENCE_VARIANCE_SCALE: float = 2.0
CONFIDENCE_VARIANCE_FLOOR: float = 0.1


def prepare_anchors(items: Sequence[IndexedInterval], epoch: date, config: CSFConfig) -> list[Anchor]:
    """Best anchor per sleep date, sorted by day number."""
    best = best_anchor_per_date(build_anchors(items, epoch, config.anchor_tiers))
    return sorted(best.values(), key=lambda a: a.day_number)


def state_confidence(state: SmoothedState) -> float:
    """Data-day confidence from the smoothed phase variance."""
    variance = state.phase_var
    density = min(1.0, 1 / max(variance, CONFIDENCE_VARIANCE_FLOOR))
    return min(1.0, density * (1 - min(1.0, variance / CONFIDENCE_VARIANCE_SCALE)))


def forecast_confidence(days_past_edge: int, config: CSFConfig) -> float:
    return max(
        config.forecast_min_confidence,
        config.forecast_base_confidence * math.exp(-config.forecast_decay * days_past_edge),
    )


def analyze_segment(
    items: Sequence[IndexedInterval],
    epoch: date,
    forecast_days: int,
    config: CSFConfig,
) -> SegmentResult | None:
    """
    Analyze one contiguous segment with the circular state-space filter.

    Args:
        items: Records of the segment, sorted by onset
        epoch: Analysis epoch shared by every segment (day 0)
        forecast_days: Days to extrapolate past the last anchor day
        config: Filter configuration

    Returns:
        SegmentResult, or None when fewer than two anchor dates survive classification

    """
    if not items:
        return None

    anchors = prepare_anchors(items, epoch, config)
    if len(anchors) < MIN_SEGMENT_ANCHORS:
        logger.debug("Segment starting %s has %d anchor dates; skipping", items[0].record.sleep_date, len(anchors))
        return None

    first_day = anchors[0].day_number
    last_day = anchors[-1].day_number
    last_data_index = last_day - first_day

    forward, gated = forward_pass(anchors, first_day, last_day + forecast_days, config)
    states = rts_smoother(forward, config)
    states = smooth_output_phase(states, config)
    states = correct_edge(states, anchors, first_day, last_data_index, config)

    by_day = {a.day_number: a for a in anchors}
    days = []
    residuals: list[float] = []

    for i, state in enumerate(states):
        day = first_day + i
        anchor = by_day.get(day)
        is_forecast = i > last_data_index

        if is_forecast:
            confidence = forecast_confidence(i - last_data_index, config)
        else:
            confidence = state_confidence(state)
            if anchor is not None:
                residuals.append(abs(circular_diff(anchor.midpoint_hour, state.phase)))

        half = anchor.duration_hours / 2 if anchor is not None else config.default_night_hours / 2
        mid = normalize_hour(state.phase)
        drift = config.clamp_drift(config.clamp_tau(state.tau) - HOURS_PER_DAY)

        days.append(
            CircadianDay(
                date=epoch + timedelta(days=day),
                night_start_hour=mid - half,
                night_end_hour=mid + half,
                confidence_score=confidence,
                confidence=ConfidenceLevel.from_score(confidence),
                local_tau=HOURS_PER_DAY + drift,
                local_drift=drift,
                is_forecast=is_forecast,
                anchor_index=anchor.record_index if anchor is not None and not is_forecast else None,
            )
        )

    logger.debug(
        "CSF segment days %d..%d: %d anchors, %d gated, final phase variance %.3f",
        first_day,
        last_day,
        len(anchors),
        gated,
        states[-1].phase_var,
    )

    return SegmentResult(
        first_day=first_day,
        last_day=last_day,
        days=tuple(days),
        anchors=tuple(AnchorPoint.from_anchor(a) for a in anchors),
        tier_counts=TierCounts.from_tiers([a.tier for a in anchors]),
        residuals=tuple(residuals),
        gated_count=gated,
    )
