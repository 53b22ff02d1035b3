"""
Tests for the circular state-space filter (csf-v1) building blocks.
"""

from __future__ import annotations

import math
from datetime import date, timedelta

import pytest

from circadian_tracker.core.algorithms.csf.config import CSFConfig
from circadian_tracker.core.algorithms.csf.filter import (
    FilterState,
    SmoothedState,
    forward_pass,
    predict,
    rts_smoother,
    update,
    update_prior,
    von_mises_update,
)
from circadian_tracker.core.algorithms.csf.segment import forecast_confidence, state_confidence
from circadian_tracker.core.algorithms.csf.smoothing import correct_edge, smooth_output_phase
from circadian_tracker.core.constants import AnchorTier
from circadian_tracker.core.dataclasses import Anchor
from circadian_tracker.core.exceptions import ConfigurationError

EPOCH = date(2024, 1, 1)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def config() -> CSFConfig:
    return CSFConfig()


def _anchor(day: int, mid: float, weight: float = 0.8) -> Anchor:
    return Anchor(
        day_number=day,
        midpoint_hour=mid,
        weight=weight,
        tier=AnchorTier.A,
        record_index=day,
        duration_hours=8.0,
        sleep_date=EPOCH + timedelta(days=day),
    )


def _state(phase: float = 3.0, tau: float = 24.5, phase_var: float = 0.2) -> FilterState:
    return FilterState(phase=phase, tau=tau, phase_var=phase_var, tau_var=0.05, cov=0.01)


def _smoothed(phase: float, tau: float = 24.5, phase_var: float = 0.2) -> SmoothedState:
    forward = _state(phase, tau, phase_var)
    return SmoothedState(forward=forward, phase=phase, tau=tau, phase_var=phase_var, tau_var=0.05)


# ============================================================================
# Von Mises fusion
# ============================================================================


class TestVonMisesUpdate:
    """Tests for von_mises_update."""

    def test_equal_concentrations_meet_halfway_across_midnight(self) -> None:
        """23:00 and 01:00 with equal weight fuse to midnight."""
        phase, kappa = von_mises_update(23.0, 1.0, 1.0, 1.0)

        assert phase == pytest.approx(0.0, abs=1e-9)
        assert kappa == pytest.approx(2 * math.cos(math.pi / 12))

    def test_agreeing_measurements_add_concentration(self) -> None:
        """Identical phases add their concentrations."""
        phase, kappa = von_mises_update(6.0, 2.0, 6.0, 3.0)

        assert phase == pytest.approx(6.0)
        assert kappa == pytest.approx(5.0)

    def test_opposite_phases_floor_concentration(self) -> None:
        """Perfectly opposed equal measurements cancel to the minimum concentration."""
        _, kappa = von_mises_update(0.0, 1.0, 12.0, 1.0)

        assert kappa == pytest.approx(0.001)


# ============================================================================
# Forward filter
# ============================================================================


class TestFilterSteps:
    """Tests for predict, update and update_prior."""

    def test_predict_advances_by_drift(self, config: CSFConfig) -> None:
        """Phase moves by tau - 24 and uncertainty grows."""
        state = _state()
        predicted = predict(state, config)

        assert predicted.phase == pytest.approx(3.5)
        assert predicted.phase_var > state.phase_var
        assert predicted.tau_var > state.tau_var

    def test_update_moves_toward_measurement(self, config: CSFConfig) -> None:
        """An accepted anchor pulls the phase toward it without overshooting."""
        updated = update(_state(phase=3.0, phase_var=1.0), _anchor(1, 4.0), config)

        assert updated is not None
        assert 3.0 < updated.phase < 4.0
        assert updated.phase_var < 1.0

    def test_update_resolves_branch(self, config: CSFConfig) -> None:
        """A measurement just past midnight is compared on the prediction's branch."""
        updated = update(_state(phase=23.5, phase_var=1.0), _anchor(1, 0.5), config)

        assert updated is not None
        assert 23.5 < updated.phase < 24.5

    def test_update_gates_outlier(self, config: CSFConfig) -> None:
        """A measurement far outside the innovation spread is skipped."""
        assert update(_state(phase=3.0, phase_var=0.1), _anchor(1, 11.0, weight=1.0), config) is None

    def test_update_keeps_tau_in_bounds(self, config: CSFConfig) -> None:
        """Tau stays within the physiological range."""
        state = FilterState(phase=3.0, tau=26.9, phase_var=2.0, tau_var=0.5, cov=0.9)
        updated = update(state, _anchor(1, 5.0, weight=1.0), config)

        assert updated is not None
        assert config.tau_min <= updated.tau <= config.tau_max

    def test_prior_pulls_tau(self, config: CSFConfig) -> None:
        """Tau regresses toward the prior period."""
        state = _state(tau=23.5)
        pulled = update_prior(state, config)

        assert state.tau < pulled.tau < config.tau_prior
        assert pulled.tau_var < state.tau_var

    def test_forward_pass_one_state_per_day(self, config: CSFConfig) -> None:
        """States cover every day including days without anchors."""
        anchors = [_anchor(d, (3.0 + 0.5 * d) % 24) for d in range(0, 30, 2)]
        states, gated = forward_pass(anchors, 0, 35, config)

        assert len(states) == 36
        assert gated == 0
        assert states[0].phase == pytest.approx(3.0)

    def test_forward_pass_tracks_drift(self, config: CSFConfig) -> None:
        """A 24.5h rhythm keeps the filtered tau near 24.5."""
        anchors = [_anchor(d, (3.0 + 0.5 * d) % 24) for d in range(60)]
        states, _ = forward_pass(anchors, 0, 59, config)

        assert states[-1].tau == pytest.approx(24.5, abs=0.2)
        assert math.cos((states[-1].phase - (3.0 + 0.5 * 59)) * math.pi / 12) > math.cos(math.pi / 12)


class TestBackwardPass:
    """Tests for rts_smoother."""

    def test_empty(self, config: CSFConfig) -> None:
        """No forward states give no smoothed states."""
        assert rts_smoother([], config) == []

    def test_last_state_unchanged_and_variance_shrinks(self, config: CSFConfig) -> None:
        """The final day equals its forward estimate; earlier days gain information."""
        anchors = [_anchor(d, (3.0 + 0.5 * d) % 24) for d in range(20)]
        states, _ = forward_pass(anchors, 0, 19, config)
        smoothed = rts_smoother(states, config)

        assert len(smoothed) == 20
        assert smoothed[-1].phase == states[-1].phase
        assert all(s.phase_var <= s.forward.phase_var for s in smoothed)


# ============================================================================
# Output smoothing and edge correction
# ============================================================================


class TestOutputSmoothing:
    """Tests for smooth_output_phase and correct_edge."""

    def test_short_sequences_unchanged(self, config: CSFConfig) -> None:
        """Fewer than three states are returned as-is."""
        states = [_smoothed(3.0), _smoothed(9.0)]

        assert smooth_output_phase(states, config) == states

    def test_linear_interior_preserved(self, config: CSFConfig) -> None:
        """A symmetric kernel leaves interior points of a line unchanged."""
        states = [_smoothed(3.0 + 0.5 * i) for i in range(20)]
        smoothed = smooth_output_phase(states, config)

        assert smoothed[10].phase == pytest.approx(8.0)
        assert smoothed[10].tau == pytest.approx(24.5)

    def test_edge_correction_needs_anchors(self, config: CSFConfig) -> None:
        """Too few anchors leave the states untouched."""
        states = [_smoothed(3.0) for _ in range(20)]

        assert correct_edge(states, [_anchor(0, 3.0)], 0, 19, config) == states

    def test_edge_correction_pulls_toward_recent_anchors(self, config: CSFConfig) -> None:
        """A lagging estimate at the last data day moves onto the anchors' trend."""
        anchors = [_anchor(d, (3.0 + 0.5 * d) % 24) for d in range(30)]
        states = [_smoothed(3.0 + 0.5 * d - (1.0 if d >= 20 else 0.0)) for d in range(30)]
        states += [_smoothed(3.0 + 0.5 * d) for d in range(30, 35)]
        corrected = correct_edge(states, anchors, 0, 29, config)

        assert corrected[29].phase == pytest.approx(3.0 + 0.5 * 29, abs=1e-6)
        assert corrected[19].phase == states[19].phase
        assert corrected[34].tau == pytest.approx(24.5)


class TestConfidence:
    """Tests for confidence helpers and config validation."""

    def test_state_confidence_decreases_with_variance(self) -> None:
        """Tighter states are more confident."""
        assert state_confidence(_smoothed(3.0, phase_var=0.1)) > state_confidence(_smoothed(3.0, phase_var=1.0))
        assert state_confidence(_smoothed(3.0, phase_var=3.0)) == 0.0

    def test_forecast_confidence_decays_to_floor(self, config: CSFConfig) -> None:
        """Forecast confidence starts at the base value and never drops below the floor."""
        assert forecast_confidence(0, config) == pytest.approx(0.5)
        assert forecast_confidence(5, config) < forecast_confidence(1, config)
        assert forecast_confidence(100, config) == pytest.approx(0.1)

    def test_prior_outside_bounds_rejected(self) -> None:
        """The tau prior must lie within the tau bounds."""
        with pytest.raises(ConfigurationError, match="tau_prior"):
            CSFConfig(tau_prior=28.0)
