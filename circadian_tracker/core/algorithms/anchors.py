"""
Anchor Classifier: score sleep intervals as phase anchors.

Tier and weight rule for duration d (hours) and quality q:
    - d >= 7 and q >= 0.75 -> tier A, base weight 1.0
    - d >= 5 and q >= 0.6  -> tier B, base weight 0.4
    - d >= 4 and q >= 0.4  -> tier C, base weight 0.1
    - otherwise rejected

weight = base * q * clamp((d - 4) / 5, 0, 1), times 0.15 for naps. Tier C
anchors are only used when tier A/B coverage has a hole longer than 14 days.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time
from typing import TYPE_CHECKING

from circadian_tracker.core.constants import AnchorTier
from circadian_tracker.core.dataclasses import Anchor, SleepInterval

from .circular import normalize_hour
from .config import AnchorTierConfig

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from .segments import IndexedInterval

logger = logging.getLogger(__name__)

DEFAULT_MEDIAN_SPACING: int = 7


@dataclass(frozen=True)
class AnchorCandidate:
    """Classification outcome for one accepted record."""

    item: IndexedInterval
    tier: AnchorTier
    weight: float


def classify_anchor(record: SleepInterval, config: AnchorTierConfig | None = None) -> tuple[AnchorTier, float] | None:
    """
    Assign a reliability tier and weight to one sleep interval.

    Args:
        record: Sleep interval to classify
        config: Tier thresholds (defaults to AnchorTierConfig())

    Returns:
        (tier, weight) or None if the record is rejected

    """
    config = config or AnchorTierConfig()
    duration = record.duration
    quality = record.quality

    for tier, threshold in ((AnchorTier.A, config.tier_a), (AnchorTier.B, config.tier_b), (AnchorTier.C, config.tier_c)):
        if duration >= threshold.min_duration_hours and quality >= threshold.min_quality:
            break
    else:
        return None

    duration_factor = min(1.0, max(0.0, (duration - config.duration_floor_hours) / config.duration_ramp_hours))
    weight = threshold.base_weight * quality * duration_factor

    # Naps still contribute data but can't dominate regression or unwrapping
    if not record.is_main_sleep:
        weight *= config.nap_factor

    return tier, weight


def clock_midpoint_hour(record: SleepInterval) -> float:
    """Midpoint of a record as a clock hour in [0, 24), measured from its sleep date's midnight."""
    midnight = datetime.combine(record.sleep_date, time.min)
    return normalize_hour((record.midpoint - midnight).total_seconds() / 3600.0)


def day_number(day: date, epoch: date) -> int:
    """Whole days from epoch to day."""
    return (day - epoch).days


def classify_records(items: Sequence[IndexedInterval], config: AnchorTierConfig) -> list[AnchorCandidate]:
    """Classify every record, dropping rejected ones."""
    candidates = []
    for item in items:
        result = classify_anchor(item.record, config)
        if result is not None:
            candidates.append(AnchorCandidate(item=item, tier=result[0], weight=result[1]))
    return candidates


def select_active_candidates(candidates: list[AnchorCandidate], config: AnchorTierConfig) -> list[AnchorCandidate]:
    """
    Drop tier C candidates unless tier A/B coverage has a long hole.

    Returns:
        All candidates when the largest gap between distinct A/B sleep dates
        exceeds config.tier_c_fallback_gap_days, otherwise only tiers A and B

    """
    ab_dates = sorted({c.item.record.sleep_date for c in candidates if c.tier != AnchorTier.C})
    max_gap = max(((b - a).days for a, b in zip(ab_dates, ab_dates[1:], strict=False)), default=0)

    if max_gap > config.tier_c_fallback_gap_days:
        logger.debug("Tier A/B gap of %d days; including tier C anchors", max_gap)
        return candidates
    return [c for c in candidates if c.tier != AnchorTier.C]


def to_anchor(candidate: AnchorCandidate, epoch: date) -> Anchor:
    record = candidate.item.record
    return Anchor(
        day_number=day_number(record.sleep_date, epoch),
        midpoint_hour=clock_midpoint_hour(record),
        weight=candidate.weight,
        tier=candidate.tier,
        record_index=candidate.item.index,
        duration_hours=record.duration,
        sleep_date=record.sleep_date,
    )


def build_anchors(items: Sequence[IndexedInterval], epoch: date, config: AnchorTierConfig) -> list[Anchor]:
    """
    Classify a segment's records into anchors ordered by sleep date, then onset.

    Every accepted record becomes an anchor, so a day may hold several.
    """
    active = select_active_candidates(classify_records(items, config), config)
    ordered = sorted(active, key=lambda c: (c.item.record.sleep_date, c.item.record.start, c.item.index))
    return [to_anchor(c, epoch) for c in ordered]


def best_anchor_per_date(anchors: Sequence[Anchor]) -> dict[date, Anchor]:
    """Highest-weight anchor for each sleep date (first wins on ties)."""
    best: dict[date, Anchor] = {}
    for anchor in anchors:
        existing = best.get(anchor.sleep_date)
        if existing is None or anchor.weight > existing.weight:
            best[anchor.sleep_date] = anchor
    return best


def median_spacing(anchors: Sequence[Anchor]) -> int:
    """
    Upper median of day-number differences between consecutive anchors.

    Returns:
        Median spacing in days, or 7 when fewer than two anchors exist

    """
    if len(anchors) < 2:
        return DEFAULT_MEDIAN_SPACING
    spacings = sorted(b.day_number - a.day_number for a, b in zip(anchors, anchors[1:], strict=False))
    return spacings[len(spacings) // 2]

