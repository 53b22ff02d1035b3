"""
Core data structures for the Circadian Tracker.

Defines the input entity (SleepInterval), the per-analysis working entity
(Anchor), and the immutable output values (CircadianDay, SegmentResult,
CircadianAnalysis). Output values carry no identity: two analyses built from
identical input compare equal.

Back-references from output days to their originating sleep intervals are
stored as indices into the caller-owned record sequence, never as copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, cast

import pandas as pd

from circadian_tracker.core.constants import NEUTRAL_TAU, AnchorTier, ConfidenceLevel
from circadian_tracker.core.exceptions import ErrorCodes, ValidationError


@dataclass(frozen=True)
class SleepInterval:
    """
    One normalized sleep record supplied by the caller.

    Ingestion and quality scoring happen upstream; the engine trusts these
    values but rejects structurally impossible ones at construction.

    Attributes:
        start: Sleep onset (naive local time)
        end: Final wake time (naive local time)
        quality: Precomputed quality score in [0, 1]
        is_main_sleep: False for naps and secondary episodes
        date_of_sleep: Calendar day the record is attributed to (defaults to end.date())
        duration_hours: Asleep duration; defaults to end - start when not supplied

    """

    start: datetime
    end: datetime
    quality: float
    is_main_sleep: bool = True
    date_of_sleep: date | None = None
    duration_hours: float | None = None

    def __post_init__(self) -> None:
        """Validate interval ordering and quality range, then fill derived defaults."""
        if self.end < self.start:
            msg = f"Sleep interval ends before it starts ({self.start.isoformat()} > {self.end.isoformat()})"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT, {"start": self.start, "end": self.end})
        if not 0.0 <= self.quality <= 1.0:
            msg = f"Sleep quality must be within [0, 1], got {self.quality}"
            raise ValidationError(msg, ErrorCodes.OUT_OF_RANGE, {"quality": self.quality})

        # Frozen dataclass: derived defaults are written through object.__setattr__
        if self.date_of_sleep is None:
            object.__setattr__(self, "date_of_sleep", self.end.date())
        if self.duration_hours is None:
            object.__setattr__(self, "duration_hours", (self.end - self.start).total_seconds() / 3600.0)
        elif self.duration_hours < 0:
            msg = f"Sleep duration cannot be negative, got {self.duration_hours}"
            raise ValidationError(msg, ErrorCodes.OUT_OF_RANGE, {"duration_hours": self.duration_hours})

    @property
    def sleep_date(self) -> date:
        """Calendar day this record belongs to."""
        return cast(date, self.date_of_sleep)

    @property
    def duration(self) -> float:
        """Asleep duration in hours."""
        return cast(float, self.duration_hours)

    @property
    def midpoint(self) -> datetime:
        """Instant halfway between onset and wake."""
        return self.start + (self.end - self.start) / 2


@dataclass
class Anchor:
    """
    A sleep interval accepted as a phase observation.

    Anchors are created once per analysis call and owned by a single
    segment. Only ``midpoint_hour`` is rewritten, by the phase unwrapper.

    Attributes:
        day_number: Days since the analysis epoch (first record's sleep date)
        midpoint_hour: Midpoint clock hour; unwrapped values may leave [0, 24)
        weight: Reliability weight in [0, 1]
        tier: Reliability tier
        record_index: Index of the originating record in the caller's sequence
        duration_hours: Asleep duration of the originating record
        sleep_date: Calendar day of the originating record

    """

    day_number: int
    midpoint_hour: float
    weight: float
    tier: AnchorTier
    record_index: int
    duration_hours: float
    sleep_date: date


@dataclass(frozen=True)
class AnchorPoint:
    """Immutable snapshot of an unwrapped anchor, reported in the analysis."""

    day_number: int
    midpoint_hour: float
    weight: float
    tier: AnchorTier
    sleep_date: date
    record_index: int

    @classmethod
    def from_anchor(cls, anchor: Anchor) -> AnchorPoint:
        return cls(
            day_number=anchor.day_number,
            midpoint_hour=anchor.midpoint_hour,
            weight=anchor.weight,
            tier=anchor.tier,
            sleep_date=anchor.sleep_date,
            record_index=anchor.record_index,
        )


@dataclass(frozen=True)
class TierCounts:
    """Number of anchors per reliability tier."""

    a: int = 0
    b: int = 0
    c: int = 0

    def __add__(self, other: TierCounts) -> TierCounts:
        return TierCounts(a=self.a + other.a, b=self.b + other.b, c=self.c + other.c)

    @property
    def total(self) -> int:
        return self.a + self.b + self.c

    @classmethod
    def from_tiers(cls, tiers: list[AnchorTier]) -> TierCounts:
        return cls(
            a=sum(1 for t in tiers if t == AnchorTier.A),
            b=sum(1 for t in tiers if t == AnchorTier.B),
            c=sum(1 for t in tiers if t == AnchorTier.C),
        )

    def to_dict(self) -> dict[str, int]:
        return {"A": self.a, "B": self.b, "C": self.c}


@dataclass(frozen=True)
class CircadianDay:
    """
    Predicted biological night for one calendar day.

    Night hours are expressed relative to midnight of ``date`` and may fall
    outside [0, 24) when the window crosses midnight. Gap days carry a
    zero-length window and zero confidence; forecast days extrapolate past
    the last observed record. A day is never both a gap and a forecast.

    Attributes:
        date: Calendar day
        night_start_hour: Start of the predicted night window
        night_end_hour: End of the predicted night window
        confidence_score: Confidence in [0, 1]
        confidence: Label derived from confidence_score
        local_tau: Local period estimate in hours
        local_drift: Daily phase drift in hours (local_tau - 24)
        is_forecast: Day lies after the last data day
        is_gap: Day lies inside an unobserved gap between segments
        anchor_index: Index of the day's best record in the caller's sequence

    """

    date: date
    night_start_hour: float
    night_end_hour: float
    confidence_score: float
    confidence: ConfidenceLevel
    local_tau: float
    local_drift: float
    is_forecast: bool = False
    is_gap: bool = False
    anchor_index: int | None = None

    def __post_init__(self) -> None:
        if self.is_forecast and self.is_gap:
            msg = f"Day {self.date.isoformat()} cannot be both a forecast and a gap day"
            raise ValidationError(msg, ErrorCodes.INVALID_INPUT)

    @property
    def midpoint_hour(self) -> float:
        """Center of the predicted night window."""
        return (self.night_start_hour + self.night_end_hour) / 2

    @classmethod
    def gap(cls, day: date) -> CircadianDay:
        """Neutral placeholder for a day inside an inter-segment gap."""
        return cls(
            date=day,
            night_start_hour=0.0,
            night_end_hour=0.0,
            confidence_score=0.0,
            confidence=ConfidenceLevel.LOW,
            local_tau=NEUTRAL_TAU,
            local_drift=0.0,
            is_forecast=False,
            is_gap=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "night_start_hour": self.night_start_hour,
            "night_end_hour": self.night_end_hour,
            "midpoint_hour": self.midpoint_hour,
            "confidence_score": self.confidence_score,
            "confidence": str(self.confidence),
            "local_tau": self.local_tau,
            "local_drift": self.local_drift,
            "is_forecast": self.is_forecast,
            "is_gap": self.is_gap,
            "anchor_index": self.anchor_index,
        }


@dataclass(frozen=True)
class SegmentResult:
    """
    Output of analyzing one contiguous segment.

    ``first_day`` and ``last_day`` are day numbers relative to the analysis
    epoch and bound the data-bearing days; forecast days follow ``last_day``.
    The kalman-specific counters stay zero for other algorithms.
    """

    first_day: int
    last_day: int
    days: tuple[CircadianDay, ...]
    anchors: tuple[AnchorPoint, ...] = ()
    tier_counts: TierCounts = field(default_factory=TierCounts)
    residuals: tuple[float, ...] = ()
    gated_count: int = 0
    observation_count: int = 0
    mean_innovation: float = 0.0


@dataclass(frozen=True)
class CircadianAnalysis:
    """
    Complete result of one analysis call.

    Attributes:
        algorithm_id: Identifier of the algorithm that produced this result
        global_tau: Period fitted to the final overlay midpoints
        global_daily_drift: global_tau - 24
        days: Ordered day sequence including gap and forecast days
        anchors: Unwrapped anchors used by anchor-based algorithms
        median_residual_hours: Median distance between anchors and predicted midpoints
        anchor_count: Number of anchors (observations for kalman-v1)
        tier_counts: Anchors per tier
        r_squared: Goodness-of-fit summary in [0, 1]
        segment_count: Number of segments that produced output
        gated_outlier_count: Observations rejected by the kalman-v1 gate
        observation_count: Observations offered to the kalman-v1 filter
        mean_innovation: Mean absolute accepted innovation (kalman-v1)

    """

    algorithm_id: str
    global_tau: float = NEUTRAL_TAU
    global_daily_drift: float = 0.0
    days: tuple[CircadianDay, ...] = ()
    anchors: tuple[AnchorPoint, ...] = ()
    median_residual_hours: float = 0.0
    anchor_count: int = 0
    tier_counts: TierCounts = field(default_factory=TierCounts)
    r_squared: float = 0.0
    segment_count: int = 0
    gated_outlier_count: int = 0
    observation_count: int = 0
    mean_innovation: float = 0.0

    @classmethod
    def neutral(cls, algorithm_id: str) -> CircadianAnalysis:
        """Documented default for empty or unanalyzable input."""
        return cls(algorithm_id=algorithm_id)

    @property
    def is_empty(self) -> bool:
        return not self.days

    @property
    def data_days(self) -> list[CircadianDay]:
        """Days backed by observed data (neither gap nor forecast)."""
        return [d for d in self.days if not d.is_gap and not d.is_forecast]

    @property
    def forecast_days(self) -> list[CircadianDay]:
        return [d for d in self.days if d.is_forecast]

    @property
    def gap_days(self) -> list[CircadianDay]:
        return [d for d in self.days if d.is_gap]

    def to_dataframe(self) -> pd.DataFrame:
        """
        Tabulate the day sequence.

        Returns:
            DataFrame with one row per day and the CircadianDay fields as columns

        """
        columns = [
            "date",
            "night_start_hour",
            "night_end_hour",
            "midpoint_hour",
            "confidence_score",
            "confidence",
            "local_tau",
            "local_drift",
            "is_forecast",
            "is_gap",
            "anchor_index",
        ]
        return pd.DataFrame([day.to_dict() for day in self.days], columns=columns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm_id": self.algorithm_id,
            "global_tau": self.global_tau,
            "global_daily_drift": self.global_daily_drift,
            "median_residual_hours": self.median_residual_hours,
            "anchor_count": self.anchor_count,
            "tier_counts": self.tier_counts.to_dict(),
            "r_squared": self.r_squared,
            "segment_count": self.segment_count,
            "day_count": len(self.days),
            "gated_outlier_count": self.gated_outlier_count,
            "observation_count": self.observation_count,
            "mean_innovation": self.mean_innovation,
        }
