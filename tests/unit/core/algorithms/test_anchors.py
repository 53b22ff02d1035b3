"""
Tests for anchor classification and anchor construction.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from circadian_tracker.core.algorithms.anchors import (
    DEFAULT_MEDIAN_SPACING,
    best_anchor_per_date,
    build_anchors,
    classify_anchor,
    classify_records,
    clock_midpoint_hour,
    median_spacing,
    select_active_candidates,
)
from circadian_tracker.core.algorithms.config import AnchorTierConfig, TierThreshold
from circadian_tracker.core.algorithms.segments import sort_records
from circadian_tracker.core.constants import AnchorTier
from circadian_tracker.core.dataclasses import Anchor
from tests.fixtures import make_interval

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def night() -> datetime:
    """Onset at 23:00 on 2024-03-01."""
    return datetime(2024, 3, 1, 23, 0)


def _anchor(day: int, weight: float = 1.0, sleep_date: date | None = None) -> Anchor:
    return Anchor(
        day_number=day,
        midpoint_hour=3.0,
        weight=weight,
        tier=AnchorTier.A,
        record_index=day,
        duration_hours=8.0,
        sleep_date=sleep_date or date(2024, 1, 1) + timedelta(days=day),
    )


# ============================================================================
# Classification
# ============================================================================


class TestClassifyAnchor:
    """Tests for tier and weight assignment."""

    def test_tier_a(self, night: datetime) -> None:
        """Long high-quality sleep is tier A with a ramped duration factor."""
        tier, weight = classify_anchor(make_interval(night, hours=8.0, quality=0.9))

        assert tier == AnchorTier.A
        assert weight == pytest.approx(1.0 * 0.9 * 0.8)

    def test_tier_b(self, night: datetime) -> None:
        """Medium sleep is tier B."""
        tier, weight = classify_anchor(make_interval(night, hours=6.0, quality=0.7))

        assert tier == AnchorTier.B
        assert weight == pytest.approx(0.4 * 0.7 * 0.4)

    def test_tier_c(self, night: datetime) -> None:
        """Short low-quality sleep is tier C."""
        tier, weight = classify_anchor(make_interval(night, hours=4.5, quality=0.5))

        assert tier == AnchorTier.C
        assert weight == pytest.approx(0.1 * 0.5 * 0.1)

    def test_long_sleep_caps_duration_factor(self, night: datetime) -> None:
        """The duration factor saturates at one."""
        _, weight = classify_anchor(make_interval(night, hours=10.0, quality=1.0))

        assert weight == pytest.approx(1.0)

    @pytest.mark.parametrize(("hours", "quality"), [(3.0, 0.9), (8.0, 0.3)])
    def test_rejected(self, night: datetime, hours: float, quality: float) -> None:
        """Too short or too poor sleeps are not anchors."""
        assert classify_anchor(make_interval(night, hours=hours, quality=quality)) is None

    def test_nap_is_down_weighted(self, night: datetime) -> None:
        """Secondary sleeps keep their tier at 15% weight."""
        tier, weight = classify_anchor(make_interval(night, hours=8.0, quality=0.9, is_main_sleep=False))

        assert tier == AnchorTier.A
        assert weight == pytest.approx(0.72 * 0.15)

    def test_custom_thresholds(self, night: datetime) -> None:
        """A looser tier A admits shorter sleeps."""
        config = AnchorTierConfig(tier_a=TierThreshold(6.0, 0.65, 1.0))
        tier, _ = classify_anchor(make_interval(night, hours=6.0, quality=0.7), config)

        assert tier == AnchorTier.A


class TestClockMidpoint:
    """Tests for clock_midpoint_hour."""

    def test_overnight_sleep(self, night: datetime) -> None:
        """23:00 to 07:00 has its midpoint at 03:00 of the wake date."""
        assert clock_midpoint_hour(make_interval(night, hours=8.0)) == pytest.approx(3.0)

    def test_daytime_sleep(self) -> None:
        """Sleep within one calendar day uses that day's midnight."""
        assert clock_midpoint_hour(make_interval(datetime(2024, 3, 2, 14, 0), hours=8.0)) == pytest.approx(18.0)


# ============================================================================
# Tier C fallback
# ============================================================================


class TestSelectActiveCandidates:
    """Tests for the tier C fallback rule."""

    def _log(self, ab_gap_days: int) -> list:
        start = datetime(2024, 1, 1, 23, 0)
        records = [make_interval(start + timedelta(days=d)) for d in range(5)]
        records.append(make_interval(start + timedelta(days=5), hours=4.5, quality=0.5))
        records.extend(make_interval(start + timedelta(days=4 + ab_gap_days + d)) for d in range(5))
        return records

    def test_tier_c_dropped_without_long_gap(self) -> None:
        """Dense A/B coverage excludes tier C."""
        config = AnchorTierConfig()
        candidates = classify_records(sort_records(self._log(ab_gap_days=10)), config)
        active = select_active_candidates(candidates, config)

        assert len(candidates) == 11
        assert all(c.tier != AnchorTier.C for c in active)
        assert len(active) == 10

    def test_tier_c_kept_with_long_gap(self) -> None:
        """A hole in A/B coverage longer than 14 days admits tier C."""
        config = AnchorTierConfig()
        active = select_active_candidates(classify_records(sort_records(self._log(ab_gap_days=20)), config), config)

        assert any(c.tier == AnchorTier.C for c in active)
        assert len(active) == 11


# ============================================================================
# Anchor construction
# ============================================================================


class TestBuildAnchors:
    """Tests for build_anchors and per-date helpers."""

    def test_orders_by_date_and_keeps_input_index(self, night: datetime) -> None:
        """Anchors follow sleep date order and point back into the caller's list."""
        records = [make_interval(night + timedelta(days=2)), make_interval(night), make_interval(night + timedelta(days=1))]
        anchors = build_anchors(sort_records(records), date(2024, 3, 2), AnchorTierConfig())

        assert [a.day_number for a in anchors] == [0, 1, 2]
        assert [a.record_index for a in anchors] == [1, 2, 0]
        assert all(a.midpoint_hour == pytest.approx(3.0) for a in anchors)

    def test_best_anchor_per_date(self) -> None:
        """The heaviest anchor of a date wins."""
        same_day = date(2024, 1, 5)
        light = _anchor(4, weight=0.2, sleep_date=same_day)
        heavy = _anchor(4, weight=0.9, sleep_date=same_day)
        other = _anchor(5)

        best = best_anchor_per_date([light, heavy, other])

        assert best[same_day] is heavy
        assert len(best) == 2

    def test_median_spacing(self) -> None:
        """Upper median of consecutive day spacings."""
        assert median_spacing([_anchor(0), _anchor(1), _anchor(3), _anchor(6)]) == 2

    def test_median_spacing_default(self) -> None:
        """Fewer than two anchors fall back to one week."""
        assert median_spacing([_anchor(0)]) == DEFAULT_MEDIAN_SPACING == 7
