"""
Per-segment pipeline for the kalman-v1 algorithm.

init -> forward filter -> RTS smoother -> per-day output. Segment bounds come
from the records' sleep dates, so a segment whose only usable record falls
mid-segment still produces a full day range.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import TYPE_CHECKING

from circadian_tracker.core.algorithms.anchors import day_number
from circadian_tracker.core.algorithms.circular import circular_diff, gaussian, normalize_hour
from circadian_tracker.core.constants import HOURS_PER_DAY, ConfidenceLevel
from circadian_tracker.core.dataclasses import CircadianDay, SegmentResult

from .filter import run_forward
from .observations import extract_observations
from .smoother import rts_smoother

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from circadian_tracker.core.algorithms.segments import IndexedInterval

    from .config import KalmanConfig
    from .observations import Observation

logger = logging.getLogger(__name__)


def covariance_confidence(phase_var: float) -> float:
    """Map phase variance to [0, 1]: std 0 -> 1.0, std 1 -> 0.5."""
    return 1 / (1 + math.sqrt(max(0.0, phase_var)))


def local_duration(observations: dict[int, Observation], day: int, fallback: float, config: KalmanConfig) -> float:
    """Gaussian-weighted mean duration of observations near ``day``."""
    w_sum = 0.0
    dur_sum = 0.0
    for offset in range(-config.duration_half_window, config.duration_half_window + 1):
        obs = observations.get(day + offset)
        if obs is not None:
            w = gaussian(offset, config.duration_sigma)
            w_sum += w
            dur_sum += w * obs.duration_hours
    return dur_sum / w_sum if w_sum > 0 else fallback


def analyze_segment(
    items: Sequence[IndexedInterval],
    epoch: date,
    forecast_days: int,
    config: KalmanConfig,
) -> SegmentResult | None:
    """
    Analyze one contiguous segment with the linear Kalman filter.

    Args:
        items: Records of the segment, sorted by onset
        epoch: Analysis epoch shared by every segment (day 0)
        forecast_days: Days to extrapolate past the last record day
        config: Filter configuration

    Returns:
        SegmentResult, or None when no record qualifies as an observation

    """
    if not items:
        return None

    observations = extract_observations(items, epoch, config)
    if not observations:
        logger.debug("Segment starting %s has no usable observations; skipping", items[0].record.sleep_date)
        return None

    record_days = [day_number(item.record.sleep_date, epoch) for item in items]
    first_day = min(record_days)
    last_day = max(record_days)
    last_data_index = last_day - first_day

    forward = run_forward(observations, first_day, last_day, last_day + forecast_days, config)
    states, covs = rts_smoother(forward)

    fallback_duration = sum(obs.duration_hours for obs in observations.values()) / len(observations)

    days = []
    residuals: list[float] = []
    for i, (state, cov) in enumerate(zip(states, covs, strict=True)):
        day = first_day + i
        is_forecast = i > last_data_index
        phase = float(state[0])
        drift = config.clamp_drift(float(state[1]))

        confidence = covariance_confidence(float(cov[0, 0]))
        if is_forecast:
            confidence *= math.exp(-config.forecast_decay * (i - last_data_index))

        obs = None if is_forecast else observations.get(day)
        if obs is not None:
            residuals.append(abs(circular_diff(obs.midpoint_hour, phase)))

        mid = normalize_hour(phase)
        half = local_duration(observations, day, fallback_duration, config) / 2
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
                anchor_index=obs.record_index if obs is not None else None,
            )
        )

    logger.debug(
        "Kalman segment days %d..%d: %d observations, %d gated, mean innovation %.3fh",
        first_day,
        last_day,
        forward.observation_count,
        forward.gated_count,
        forward.mean_innovation,
    )

    return SegmentResult(
        first_day=first_day,
        last_day=last_day,
        days=tuple(days),
        residuals=tuple(residuals),
        gated_count=forward.gated_count,
        observation_count=forward.observation_count,
        mean_innovation=forward.mean_innovation,
    )
