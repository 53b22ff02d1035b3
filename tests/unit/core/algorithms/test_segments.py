"""
Tests for gap-based segmentation and per-segment dispatch.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from circadian_tracker.core.algorithms.segments import (
    analysis_epoch,
    analyze_segments,
    sort_records,
    split_into_segments,
)
from circadian_tracker.core.dataclasses import SegmentResult
from circadian_tracker.core.exceptions import ValidationError
from tests.fixtures import make_interval

START = datetime(2024, 1, 1, 23, 0)


def _nights(*day_offsets: int) -> list:
    return [make_interval(START + timedelta(days=d)) for d in day_offsets]


class TestSplitIntoSegments:
    """Tests for split_into_segments."""

    def test_empty(self) -> None:
        """No records give no segments."""
        assert split_into_segments([]) == []

    def test_gap_above_threshold_splits(self) -> None:
        """A 15-day date gap starts a new segment."""
        segments = split_into_segments(_nights(0, 1, 2, 17, 18))

        assert [len(s) for s in segments] == [3, 2]

    def test_gap_at_threshold_does_not_split(self) -> None:
        """A gap of exactly 14 days stays in one segment."""
        segments = split_into_segments(_nights(0, 1, 2, 16, 17))

        assert len(segments) == 1

    def test_custom_threshold(self) -> None:
        """The threshold is configurable."""
        assert len(split_into_segments(_nights(0, 1, 5, 6), gap_threshold_days=3)) == 2

    def test_unsorted_input_keeps_indices(self) -> None:
        """Records are sorted by onset while remembering their input position."""
        records = _nights(2, 0, 1)
        segments = split_into_segments(records)

        assert [item.index for item in segments[0]] == [1, 2, 0]
        assert [item.record for item in segments[0]] == sorted(records, key=lambda r: r.start)


class TestAnalysisEpoch:
    """Tests for analysis_epoch and sort_records."""

    def test_epoch_is_earliest_sleep_date(self) -> None:
        """The epoch is the sleep date of the earliest onset, regardless of order."""
        assert analysis_epoch(_nights(5, 0, 3)) == date(2024, 1, 2)

    def test_epoch_empty(self) -> None:
        """No records have no epoch."""
        assert analysis_epoch([]) is None

    def test_sort_is_stable_for_equal_onsets(self) -> None:
        """Records with the same onset keep input order."""
        records = [make_interval(START, hours=7.0), make_interval(START, hours=8.0)]

        assert [item.index for item in sort_records(records)] == [0, 1]


class TestAnalyzeSegments:
    """Tests for analyze_segments."""

    def test_forecast_only_for_last_segment(self) -> None:
        """Earlier segments never receive forecast days."""
        calls = []

        def fake(items, epoch, extra):
            calls.append((len(items), epoch, extra))
            return SegmentResult(first_day=0, last_day=0, days=())

        epoch, results = analyze_segments(_nights(0, 1, 40, 41, 42), 7, 14, fake)

        assert epoch == date(2024, 1, 2)
        assert calls == [(2, epoch, 0), (3, epoch, 7)]
        assert len(results) == 2

    def test_unanalyzable_segments_dropped(self) -> None:
        """Segments analyzed to None are left out."""
        epoch, results = analyze_segments(_nights(0, 1), 0, 14, lambda items, e, extra: None)

        assert epoch is not None
        assert results == []

    def test_empty_input(self) -> None:
        """No records give no epoch and no results."""
        assert analyze_segments([], 0, 14, lambda items, e, extra: None) == (None, [])

    def test_negative_forecast_rejected(self) -> None:
        """Negative forecast horizons are invalid input."""
        with pytest.raises(ValidationError, match="forecast_days"):
            analyze_segments(_nights(0), -1, 14, lambda items, e, extra: None)
