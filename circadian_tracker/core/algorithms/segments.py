"""
Segmenter: split a sleep record stream at long data gaps.

Records are sorted by onset and split wherever consecutive calendar dates
(compared against the latest date seen so far) are more than the gap
threshold apart. Each segment is analyzed independently so that unrelated
regimes months apart cannot contaminate each other.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from circadian_tracker.core.constants import GAP_THRESHOLD_DAYS
from circadian_tracker.core.exceptions import ErrorCodes, ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import date

    from circadian_tracker.core.dataclasses import SegmentResult, SleepInterval

logger = logging.getLogger(__name__)


class IndexedInterval(NamedTuple):
    """A sleep interval paired with its position in the caller's sequence."""

    index: int
    record: SleepInterval


def sort_records(records: Sequence[SleepInterval]) -> list[IndexedInterval]:
    """Pair records with their input index and sort by onset (stable for ties)."""
    indexed = [IndexedInterval(i, r) for i, r in enumerate(records)]
    return sorted(indexed, key=lambda item: item.record.start)


def analysis_epoch(records: Sequence[SleepInterval]) -> date | None:
    """Sleep date of the earliest-starting record, or None for no records."""
    if not records:
        return None
    return min(records, key=lambda r: r.start).sleep_date


def split_into_segments(
    records: Sequence[SleepInterval],
    gap_threshold_days: int = GAP_THRESHOLD_DAYS,
) -> list[list[IndexedInterval]]:
    """
    Split records into maximal runs without a gap longer than the threshold.

    Args:
        records: Sleep intervals in any order
        gap_threshold_days: A date gap strictly greater than this starts a new segment

    Returns:
        Segments in chronological order, each sorted by onset

    """
    ordered = sort_records(records)
    if not ordered:
        return []

    segments: list[list[IndexedInterval]] = [[ordered[0]]]
    latest_date = ordered[0].record.sleep_date

    for item in ordered[1:]:
        current_date = item.record.sleep_date
        gap_days = (current_date - latest_date).days
        if gap_days > gap_threshold_days:
            segments.append([item])
        else:
            segments[-1].append(item)
        latest_date = max(latest_date, current_date)

    if len(segments) > 1:
        logger.debug("Split %d records into %d segments", len(ordered), len(segments))
    return segments


def analyze_segments(
    records: Sequence[SleepInterval],
    forecast_days: int,
    gap_threshold_days: int,
    analyze_segment: Callable[[Sequence[IndexedInterval], date, int], SegmentResult | None],
) -> tuple[date | None, list[SegmentResult]]:
    """
    Split records into segments and analyze each one independently.

    Only the chronologically last segment receives forecast days. Segments
    that cannot be analyzed (too few anchors) are dropped.

    Args:
        records: Sleep intervals in any order
        forecast_days: Days to extrapolate past the last data day
        gap_threshold_days: Date gap that starts a new segment
        analyze_segment: Callable(items, epoch, forecast_days) for one segment

    Returns:
        (analysis epoch, per-segment results in chronological order)

    Raises:
        ValidationError: If forecast_days is negative

    """
    if forecast_days < 0:
        msg = f"forecast_days must be non-negative, got {forecast_days}"
        raise ValidationError(msg, ErrorCodes.INVALID_INPUT, {"forecast_days": forecast_days})

    epoch = analysis_epoch(records)
    if epoch is None:
        return None, []

    segments = split_into_segments(records, gap_threshold_days)
    results = []
    for i, items in enumerate(segments):
        extra = forecast_days if i == len(segments) - 1 else 0
        result = analyze_segment(items, epoch, extra)
        if result is not None:
            results.append(result)
    return epoch, results
