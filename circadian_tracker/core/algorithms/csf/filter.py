"""
Von Mises circular state-space filter with an RTS-style backward pass.

State per day: unwrapped phase (hours), tau, phase variance, tau variance and
their covariance. The forward pass predicts one day ahead, fuses any anchor
on that day in circular (cos, sin) space, and then pulls tau gently toward a
prior. The backward pass blends each forward estimate with the already
smoothed next day using a gain clamped to [0.1, 0.95].

Every variance is floored and tau is clamped to its physiological range at
every step so no non-finite value can propagate.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from circadian_tracker.core.algorithms.circular import circular_diff, normalize_hour, resolve_branch
from circadian_tracker.core.constants import HOURS_PER_DAY

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import Anchor

    from .config import CSFConfig

logger = logging.getLogger(__name__)

MIN_PHASE_VAR: float = 0.01
MIN_TAU_VAR: float = 0.001
MIN_KAPPA: float = 0.001
MAX_PREDICTED_COV: float = 10.0
MAX_UPDATED_COV: float = 1.0
INITIAL_PHASE_VAR: float = 1.0

RADIANS_PER_HOUR: float = 2 * math.pi / HOURS_PER_DAY


@dataclass(frozen=True)
class FilterState:
    """Forward-pass estimate for one day."""

    phase: float
    tau: float
    phase_var: float
    tau_var: float
    cov: float


@dataclass(frozen=True)
class SmoothedState:
    """Forward estimate extended with its backward-smoothed values."""

    forward: FilterState
    phase: float
    tau: float
    phase_var: float
    tau_var: float


def von_mises_update(
    prior_phase: float,
    prior_kappa: float,
    measurement: float,
    measurement_kappa: float,
) -> tuple[float, float]:
    """
    Fuse two von Mises distributions on the 24h circle.

    Returns:
        (posterior phase in hours, posterior concentration)

    """
    c_post = prior_kappa * math.cos(prior_phase * RADIANS_PER_HOUR) + measurement_kappa * math.cos(
        measurement * RADIANS_PER_HOUR
    )
    s_post = prior_kappa * math.sin(prior_phase * RADIANS_PER_HOUR) + measurement_kappa * math.sin(
        measurement * RADIANS_PER_HOUR
    )
    kappa = max(math.hypot(c_post, s_post), MIN_KAPPA)
    return math.atan2(s_post, c_post) / RADIANS_PER_HOUR, kappa


def initialize_state(first_anchor: Anchor, config: CSFConfig) -> FilterState:
    return FilterState(
        phase=first_anchor.midpoint_hour,
        tau=config.tau_prior,
        phase_var=INITIAL_PHASE_VAR,
        tau_var=config.tau_prior_var,
        cov=0.0,
    )


def predict(state: FilterState, config: CSFConfig) -> FilterState:
    """Advance one day: phase moves by the current drift and uncertainty grows."""
    return FilterState(
        phase=state.phase + (state.tau - HOURS_PER_DAY),
        tau=state.tau,
        phase_var=max(MIN_PHASE_VAR, state.phase_var + 2 * state.cov + state.tau_var + config.process_noise_phase),
        tau_var=max(MIN_TAU_VAR, state.tau_var + config.process_noise_tau),
        cov=min(state.cov + state.tau_var, MAX_PREDICTED_COV),
    )


def update(predicted: FilterState, anchor: Anchor, config: CSFConfig) -> FilterState | None:
    """
    Fuse one anchor into the predicted state.

    Returns:
        Updated state, or None when the measurement fails the Mahalanobis gate

    """
    measurement_kappa = max(MIN_KAPPA, config.measurement_kappa_base * anchor.weight)
    prior_kappa = max(MIN_KAPPA, 1 / max(predicted.phase_var, MIN_PHASE_VAR))

    resolved = resolve_branch(anchor.midpoint_hour, predicted.phase)
    residual = circular_diff(resolved, predicted.phase)
    innovation_var = max(MIN_PHASE_VAR, predicted.phase_var + 1 / measurement_kappa)

    if residual * residual / innovation_var > config.gate_threshold**2:
        return None

    normalized_pred = normalize_hour(predicted.phase)
    posterior_phase, posterior_kappa = von_mises_update(
        normalized_pred, prior_kappa, normalize_hour(resolved), measurement_kappa
    )

    # Clamp per-step corrections so a single strong anchor cannot jump a branch
    max_step = config.max_correction_per_step
    correction = min(max(circular_diff(posterior_phase, normalized_pred), -max_step), max_step)
    clamped_innovation = min(max(residual, -max_step), max_step)

    gain = predicted.cov / innovation_var
    tau = predicted.tau + gain * clamped_innovation
    if not math.isfinite(tau):
        tau = predicted.tau

    return FilterState(
        phase=predicted.phase + correction,
        tau=config.clamp_tau(tau),
        phase_var=max(MIN_PHASE_VAR, 1 / max(posterior_kappa, MIN_KAPPA)),
        tau_var=max(MIN_TAU_VAR, predicted.tau_var - gain * predicted.cov),
        cov=min(predicted.cov - gain * innovation_var, MAX_UPDATED_COV),
    )


def update_prior(state: FilterState, config: CSFConfig) -> FilterState:
    """
    Softly regress tau toward the prior with a one-dimensional Kalman step.

    The prior noise depends on where the current drift sits relative to zero
    and to the prior's drift.
    """
    drift = state.tau - HOURS_PER_DAY
    prior_drift = config.tau_prior - HOURS_PER_DAY

    if drift < 0:
        noise = config.tau_prior_noise.forward
    elif drift > prior_drift:
        noise = config.tau_prior_noise.backward
    else:
        noise = config.tau_prior_noise.none

    gain = state.tau_var / (state.tau_var + noise)
    return replace(
        state,
        tau=config.clamp_tau(state.tau + gain * (config.tau_prior - state.tau)),
        tau_var=max(MIN_TAU_VAR, (1 - gain) * state.tau_var),
        cov=(1 - gain) * state.cov,
    )


def forward_pass(
    anchors: Sequence[Anchor],
    first_day: int,
    last_day: int,
    config: CSFConfig,
) -> tuple[list[FilterState], int]:
    """
    Run the filter from first_day through last_day inclusive.

    Args:
        anchors: At most one anchor per day, sorted by day number
        first_day: Day number of the first state (the first anchor's day)
        last_day: Day number of the last state (including forecast days)
        config: Filter configuration

    Returns:
        (one state per day, number of gated measurements)

    """
    by_day = {a.day_number: a for a in anchors}
    state = initialize_state(anchors[0], config)
    states = [state]
    gated = 0

    for day in range(first_day + 1, last_day + 1):
        state = predict(state, config)
        anchor = by_day.get(day)
        if anchor is not None:
            updated = update(state, anchor, config)
            if updated is None:
                gated += 1
            else:
                state = updated
        state = update_prior(state, config)
        states.append(state)

    if gated:
        logger.debug("CSF forward pass gated %d of %d anchors", gated, len(anchors))
    return states, gated


def rts_smoother(forward_states: Sequence[FilterState], config: CSFConfig) -> list[SmoothedState]:
    """
    Backward pass from the last day to the first.

    The last state is left equal to its forward estimate.
    """
    if not forward_states:
        return []

    last = forward_states[-1]
    smoothed = [SmoothedState(last, last.phase, last.tau, last.phase_var, last.tau_var)]

    for curr in reversed(forward_states[:-1]):
        nxt = smoothed[-1]
        predicted_var = max(MIN_PHASE_VAR, curr.phase_var + 2 * curr.cov + curr.tau_var + config.process_noise_phase)
        gain = min(config.smoother_gain_max, max(config.smoother_gain_min, curr.phase_var / predicted_var))

        expected_phase = curr.phase + (curr.tau - HOURS_PER_DAY)
        tau = curr.tau + gain * (nxt.tau - curr.tau)
        if not math.isfinite(tau):
            tau = curr.tau

        smoothed.append(
            SmoothedState(
                forward=curr,
                phase=curr.phase + gain * circular_diff(nxt.phase, expected_phase),
                tau=config.clamp_tau(tau),
                phase_var=max(MIN_PHASE_VAR, curr.phase_var * (1 - gain)),
                tau_var=max(MIN_TAU_VAR, curr.tau_var * (1 - gain)),
            )
        )

    smoothed.reverse()
    return smoothed
