"""
End-to-end tests of every circadian algorithm on synthetic sleep logs.

Logs place one sleep every tau hours with 0.3h onset jitter, so the true
period is known. Accuracy checks use 120 nights; tolerances are looser for
the filter variants, which are tuned toward a 24.5h prior.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from circadian_tracker import (
    AlgorithmFactory,
    CircadianAnalysis,
    SleepInterval,
    ValidationError,
    analyze_circadian,
    intervals_from_dataframe,
)
from circadian_tracker.core.algorithms.circular import circular_distance
from circadian_tracker.core.constants import DRIFT_MAX, DRIFT_MIN, TAU_MAX, TAU_MIN
from tests.fixtures import generate_sleep_log, make_interval, sleep_log_dataframe

ALGORITHM_IDS = ["regression-v1", "csf-v1", "kalman-v1"]

pytestmark = pytest.mark.integration


def _displace_nights(records: list[SleepInterval], every: int, hours: float) -> list[SleepInterval]:
    shift = timedelta(hours=hours)
    return [
        SleepInterval(start=r.start + shift, end=r.end + shift, quality=r.quality) if i % every == 0 else r
        for i, r in enumerate(records)
    ]


def _max_adjacent_jump(analysis: CircadianAnalysis) -> float:
    days = analysis.data_days
    return max(
        circular_distance(b.midpoint_hour % 24, a.midpoint_hour % 24)
        for a, b in zip(days, days[1:], strict=False)
        if (b.date - a.date).days == 1
    )


# ============================================================================
# Period accuracy
# ============================================================================


class TestPeriodAccuracy:
    """Global period recovery on clean synthetic logs."""

    @pytest.mark.parametrize(("tau", "tolerance"), [(24.0, 0.1), (24.5, 0.1), (25.0, 0.15)])
    def test_regression_recovers_tau(self, tau: float, tolerance: float) -> None:
        """The default algorithm recovers the generating period."""
        result = analyze_circadian(generate_sleep_log(tau=tau, days=120))

        assert result.global_tau == pytest.approx(tau, abs=tolerance)
        assert result.global_daily_drift == pytest.approx(result.global_tau - 24.0)

    @pytest.mark.parametrize("algorithm_id", ["csf-v1", "kalman-v1"])
    def test_filters_recover_free_running_tau(self, algorithm_id: str) -> None:
        """Filter variants land near a 24.5h period."""
        result = analyze_circadian(generate_sleep_log(tau=24.5, days=120), algorithm_id=algorithm_id)

        assert result.global_tau == pytest.approx(24.5, abs=0.3)

    def test_regression_robust_to_displaced_nights(self) -> None:
        """Shifting every fifth night by 8h leaves the recovered period on target."""
        records = _displace_nights(generate_sleep_log(tau=24.5, days=120), every=5, hours=8.0)
        result = analyze_circadian(records)

        assert result.global_tau == pytest.approx(24.5, abs=0.1)

    def test_regression_entrained_log(self, entrained_log) -> None:
        """An entrained sleeper keeps the night around 03:00."""
        result = analyze_circadian(entrained_log)

        assert all(circular_distance(d.midpoint_hour % 24, 3.0) < 1.0 for d in result.data_days)
        assert result.r_squared > 0.5


# ============================================================================
# Output shape
# ============================================================================


@pytest.mark.parametrize("algorithm_id", ALGORITHM_IDS)
class TestOutputShape:
    """Day sequence invariants shared by every algorithm."""

    def test_one_day_per_date_in_order(self, free_running_log, algorithm_id: str) -> None:
        """Dates are contiguous, unique and ascending."""
        result = analyze_circadian(free_running_log, forecast_days=7, algorithm_id=algorithm_id)
        dates = [d.date for d in result.days]

        assert all((b - a).days == 1 for a, b in zip(dates, dates[1:], strict=False))
        assert result.algorithm_id == algorithm_id

    def test_bounds(self, free_running_log, algorithm_id: str) -> None:
        """Confidence, tau and drift stay within their ranges."""
        result = analyze_circadian(free_running_log, forecast_days=14, algorithm_id=algorithm_id)

        for day in result.days:
            assert 0.0 <= day.confidence_score <= 1.0
            assert not (day.is_gap and day.is_forecast)
        for day in result.data_days:
            assert TAU_MIN <= day.local_tau <= TAU_MAX
            assert DRIFT_MIN <= day.local_drift <= DRIFT_MAX
        assert TAU_MIN <= result.global_tau <= TAU_MAX

    def test_forecast_days(self, free_running_log, algorithm_id: str) -> None:
        """Forecasts follow the last data day with non-increasing confidence."""
        result = analyze_circadian(free_running_log, forecast_days=14, algorithm_id=algorithm_id)
        forecast = result.forecast_days

        assert len(forecast) == 14
        assert result.days[-14:] == tuple(forecast)
        scores = [d.confidence_score for d in forecast]
        assert all(b <= a for a, b in zip(scores, scores[1:], strict=False))
        assert scores[0] > scores[-1]
        assert all(d.anchor_index is None for d in forecast)

    def test_deterministic(self, free_running_log, algorithm_id: str) -> None:
        """Identical input gives identical output."""
        first = analyze_circadian(free_running_log, forecast_days=5, algorithm_id=algorithm_id)
        second = analyze_circadian(list(free_running_log), forecast_days=5, algorithm_id=algorithm_id)

        assert first == second

    def test_smooth_overlay(self, free_running_log, algorithm_id: str) -> None:
        """Adjacent data days never jump more than three hours."""
        result = analyze_circadian(free_running_log, algorithm_id=algorithm_id)

        assert _max_adjacent_jump(result) <= 3.0

    def test_anchor_indices_point_into_input(self, free_running_log, algorithm_id: str) -> None:
        """Back-references index the caller's record list."""
        result = analyze_circadian(free_running_log, algorithm_id=algorithm_id)
        indices = [d.anchor_index for d in result.days if d.anchor_index is not None]

        assert indices
        assert all(0 <= i < len(free_running_log) for i in indices)


# ============================================================================
# Gaps and segmentation
# ============================================================================


@pytest.mark.parametrize("algorithm_id", ALGORITHM_IDS)
class TestGaps:
    """Gap handling between segments."""

    def test_long_gap_splits(self, algorithm_id: str) -> None:
        """A 30-night hole becomes roughly 30 gap days between two segments."""
        records = generate_sleep_log(tau=24.0, days=120, gap=(45, 30))
        result = analyze_circadian(records, algorithm_id=algorithm_id)

        assert result.segment_count == 2
        assert 28 <= len(result.gap_days) <= 31
        assert all(d.confidence_score == 0.0 for d in result.gap_days)

    def test_short_gap_bridged(self, algorithm_id: str) -> None:
        """A 10-night hole stays inside one segment."""
        records = generate_sleep_log(tau=24.0, days=90, gap=(40, 10))
        result = analyze_circadian(records, algorithm_id=algorithm_id)

        assert result.segment_count == 1
        assert result.gap_days == []

    def test_forecast_only_after_last_segment(self, algorithm_id: str) -> None:
        """Earlier segments get no forecast days."""
        records = generate_sleep_log(tau=24.0, days=120, gap=(45, 30))
        result = analyze_circadian(records, forecast_days=5, algorithm_id=algorithm_id)

        first_gap = result.days.index(result.gap_days[0])
        assert not any(d.is_forecast for d in result.days[:first_gap])
        assert len(result.forecast_days) == 5


# ============================================================================
# Degenerate input
# ============================================================================


@pytest.mark.parametrize("algorithm_id", ALGORITHM_IDS)
class TestDegenerateInput:
    """Inputs that cannot be analyzed degrade to the neutral analysis."""

    def test_empty(self, algorithm_id: str) -> None:
        """No records give the neutral analysis."""
        assert analyze_circadian([], forecast_days=7, algorithm_id=algorithm_id) == CircadianAnalysis.neutral(algorithm_id)

    def test_unusable_records(self, algorithm_id: str) -> None:
        """Records too poor to observe give the neutral analysis."""
        records = generate_sleep_log(days=30, quality=0.05)

        assert analyze_circadian(records, algorithm_id=algorithm_id) == CircadianAnalysis.neutral(algorithm_id)

    def test_negative_forecast_rejected(self, entrained_log, algorithm_id: str) -> None:
        """Negative horizons are invalid input."""
        with pytest.raises(ValidationError):
            analyze_circadian(entrained_log, forecast_days=-1, algorithm_id=algorithm_id)


@pytest.mark.parametrize("algorithm_id", ["regression-v1", "csf-v1"])
def test_single_record_is_neutral(algorithm_id: str) -> None:
    """Anchor-based algorithms need at least two anchors."""
    records = [make_interval(datetime(2024, 1, 1, 23, 0))]

    assert AlgorithmFactory.create(algorithm_id).analyze(records) == CircadianAnalysis.neutral(algorithm_id)


def test_kalman_single_record_produces_day() -> None:
    """The Kalman filter reports a day for a single observation."""
    result = AlgorithmFactory.create("kalman-v1").analyze([make_interval(datetime(2024, 1, 1, 23, 0))], forecast_days=2)

    assert len(result.data_days) == 1
    assert len(result.forecast_days) == 2
    assert result.observation_count == 1


def test_dataframe_round_trip(free_running_log) -> None:
    """A tabular sleep log can be analyzed and the result tabulated."""
    records = intervals_from_dataframe(sleep_log_dataframe(free_running_log))
    df = analyze_circadian(records, forecast_days=3).to_dataframe()

    assert len(df) == (df["date"].iloc[-1] - df["date"].iloc[0]).days + 1
    assert df["is_forecast"].sum() == 3
    assert not df["is_gap"].any()
