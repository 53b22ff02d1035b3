"""
Tests for the phase coherence periodogram.
"""

from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest

from circadian_tracker.core.periodogram import (
    PeriodogramAnchor,
    build_periodogram_anchors,
    compute_periodogram,
    gaussian_smooth,
)
from tests.fixtures import generate_sleep_log, make_interval


class TestBuildAnchors:
    """Tests for build_periodogram_anchors."""

    def test_filters_naps_and_short_sleep(self) -> None:
        """Only main sleeps of at least four hours are kept."""
        records = [
            make_interval(datetime(2024, 1, 1, 23, 0), hours=8.0, quality=0.7),
            make_interval(datetime(2024, 1, 2, 14, 0), hours=1.5, is_main_sleep=False),
            make_interval(datetime(2024, 1, 2, 23, 0), hours=3.0),
        ]
        anchors = build_periodogram_anchors(records)

        assert anchors == [PeriodogramAnchor(day_number=0, midpoint_hour=3.0, weight=0.7)]

    def test_weight_scales_with_duration(self) -> None:
        """Sleeps under seven hours are down-weighted."""
        anchors = build_periodogram_anchors([make_interval(datetime(2024, 1, 1, 23, 0), hours=5.6, quality=1.0)])

        assert anchors[0].weight == pytest.approx(0.8)

    def test_empty(self) -> None:
        """No records give no anchors."""
        assert build_periodogram_anchors([]) == []


class TestGaussianSmooth:
    """Tests for gaussian_smooth."""

    def test_constant_is_unchanged(self) -> None:
        """Edge renormalization keeps a constant series constant."""
        assert gaussian_smooth(np.full(10, 2.0), 3.0) == pytest.approx(np.full(10, 2.0))

    def test_short_series_keeps_length(self) -> None:
        """Series shorter than the kernel keep their length."""
        assert len(gaussian_smooth(np.array([1.0, 2.0, 3.0]), 3.0)) == 3


class TestComputePeriodogram:
    """Tests for compute_periodogram."""

    def test_too_few_anchors_is_empty(self) -> None:
        """Fewer than three anchors give the empty result."""
        result = compute_periodogram([PeriodogramAnchor(0, 3.0, 1.0), PeriodogramAnchor(1, 3.0, 1.0)])

        assert result.is_empty
        assert result.peak_period == 24.0

    def test_zero_weight_is_empty(self) -> None:
        """Windows without weight are skipped."""
        result = compute_periodogram([PeriodogramAnchor(d, 3.0, 0.0) for d in range(10)])

        assert result.is_empty

    @pytest.mark.parametrize("tau", [24.0, 24.5, 25.0])
    def test_peak_near_true_period(self, tau: float) -> None:
        """The strongest coherence is found near the generating period."""
        result = compute_periodogram(build_periodogram_anchors(generate_sleep_log(tau=tau, days=90)))

        assert result.peak_period == pytest.approx(tau, abs=0.1)
        assert result.peak_power > result.significance_threshold

    def test_sweep_shape(self) -> None:
        """Trial periods span the requested range at the requested step."""
        result = compute_periodogram(build_periodogram_anchors(generate_sleep_log(days=30)))

        assert len(result.periods) == 301
        assert result.periods[0] == pytest.approx(23.0)
        assert result.periods[-1] == pytest.approx(26.0)
        assert result.trimmed_periods[0] <= 23.76
        assert result.trimmed_periods[-1] >= 24.24
        assert list(result.to_dataframe().columns) == ["period", "power"]

    def test_long_recording_uses_windows(self) -> None:
        """Recordings longer than 180 days still find the period."""
        result = compute_periodogram(build_periodogram_anchors(generate_sleep_log(tau=24.5, days=300)))

        assert result.peak_period == pytest.approx(24.5, abs=0.1)
