"""
Observation extraction for the kalman-v1 filter.

Every usable record becomes a candidate observation whose measurement noise
shrinks with quality, duration and main-sleep status. One observation is
kept per sleep date.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from circadian_tracker.core.algorithms.anchors import clock_midpoint_hour, day_number

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from circadian_tracker.core.algorithms.segments import IndexedInterval
    from circadian_tracker.core.dataclasses import SleepInterval

    from .config import KalmanConfig


@dataclass(frozen=True)
class Observation:
    """
    One per-day phase measurement.

    Attributes:
        day_number: Days since the analysis epoch
        midpoint_hour: Clock hour of the sleep midpoint, in [0, 24)
        noise: Measurement variance R (h^2)
        record_index: Index of the originating record in the caller's sequence
        duration_hours: Asleep duration of the originating record
        is_main_sleep: Main-sleep flag of the originating record

    """

    day_number: int
    midpoint_hour: float
    noise: float
    record_index: int
    duration_hours: float
    is_main_sleep: bool


def measurement_noise(record: SleepInterval, config: KalmanConfig) -> float:
    """Adaptive R: higher quality, longer and main sleep give lower noise."""
    quality = max(config.quality_floor, record.quality)
    duration_factor = min(
        1.0,
        max(config.min_duration_factor, (record.duration - config.duration_floor_hours) / config.duration_ramp_hours),
    )
    main_factor = 1.0 if record.is_main_sleep else config.nap_factor
    return config.r_base / (quality * duration_factor * main_factor)


def _is_better(candidate: Observation, existing: Observation) -> bool:
    if candidate.is_main_sleep != existing.is_main_sleep:
        return candidate.is_main_sleep
    return candidate.noise < existing.noise


def extract_observations(
    items: Sequence[IndexedInterval],
    epoch: date,
    config: KalmanConfig,
) -> dict[int, Observation]:
    """
    Build at most one observation per sleep date.

    Records shorter than ``min_duration_hours`` or below ``min_quality`` are
    skipped. Where a date has several records, main sleep wins, then lower
    noise.

    Returns:
        Observations keyed by day number

    """
    by_day: dict[int, Observation] = {}
    for item in items:
        record = item.record
        if record.duration < config.min_duration_hours or record.quality < config.min_quality:
            continue

        obs = Observation(
            day_number=day_number(record.sleep_date, epoch),
            midpoint_hour=clock_midpoint_hour(record),
            noise=measurement_noise(record, config),
            record_index=item.index,
            duration_hours=record.duration,
            is_main_sleep=record.is_main_sleep,
        )
        existing = by_day.get(obs.day_number)
        if existing is None or _is_better(obs, existing):
            by_day[obs.day_number] = obs

    return by_day
