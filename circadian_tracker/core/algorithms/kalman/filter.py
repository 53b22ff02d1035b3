"""
Forward pass of the kalman-v1 filter.

State x = [phase, drift] in hours and hours/day, with transition
F = [[1, 1], [0, 1]] (phase advances by drift each day) and process noise
Q = diag(q_phase, q_drift). Only phase is observed: H = [1, 0].

Observations are known modulo 24h and are moved onto the branch nearest the
predicted phase before gating and updating.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from circadian_tracker.core.algorithms.circular import pairwise_unwrap, resolve_branch
from circadian_tracker.core.algorithms.fitting import weighted_linear_regression

if TYPE_CHECKING:
    from .config import KalmanConfig
    from .observations import Observation

logger = logging.getLogger(__name__)

TRANSITION = np.array([[1.0, 1.0], [0.0, 1.0]])
OBSERVATION = np.array([1.0, 0.0])
SPARSE_INIT_PHASE: float = 12.0
SINGULAR_DENOMINATOR: float = 1e-10


@dataclass
class ForwardPass:
    """
    Per-day arrays produced by the forward filter.

    ``predicted_states[t]`` is the prediction into day t before any update;
    ``filtered_states[t]`` is the estimate after the day's update.
    """

    filtered_states: list[np.ndarray] = field(default_factory=list)
    filtered_covs: list[np.ndarray] = field(default_factory=list)
    predicted_states: list[np.ndarray] = field(default_factory=list)
    predicted_covs: list[np.ndarray] = field(default_factory=list)
    observation_count: int = 0
    gated_count: int = 0
    innovations: list[float] = field(default_factory=list)

    @property
    def mean_innovation(self) -> float:
        return float(np.mean(np.abs(self.innovations))) if self.innovations else 0.0


def initialize_state(
    observations: dict[int, Observation],
    first_day: int,
    config: KalmanConfig,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Initial state and covariance for the day before ``first_day``.

    Uses up to ``init_window`` observations from the first
    ``2 * init_window`` days. Two or more are fitted by weighted least
    squares (weight 1/R) on pairwise-unwrapped midpoints; one sets phase
    only; none falls back to a wide prior.
    """
    initial = []
    for day in range(first_day, first_day + 2 * config.init_window + 1):
        if len(initial) >= config.init_window:
            break
        obs = observations.get(day)
        if obs is not None:
            initial.append(obs)

    start_day = first_day - 1
    base_cov = np.diag([config.init_p_phase, config.init_p_drift])

    if not initial:
        state = np.array([SPARSE_INIT_PHASE, config.default_drift_prior])
        return state, base_cov * config.sparse_init_scale

    if len(initial) == 1:
        obs = initial[0]
        phase = obs.midpoint_hour - config.default_drift_prior * (obs.day_number - start_day)
        return np.array([phase, config.default_drift_prior]), base_cov

    xs = [obs.day_number for obs in initial]
    ys = pairwise_unwrap([obs.midpoint_hour for obs in initial])
    ws = [1.0 / obs.noise for obs in initial]

    sum_w = sum(ws)
    sum_wx = sum(w * x for w, x in zip(ws, xs, strict=True))
    sum_wxx = sum(w * x * x for w, x in zip(ws, xs, strict=True))
    if abs(sum_w * sum_wxx - sum_wx * sum_wx) < SINGULAR_DENOMINATOR:
        slope = config.default_drift_prior
        intercept = sum(w * y for w, y in zip(ws, ys, strict=True)) / sum_w
    else:
        fit = weighted_linear_regression(xs, ys, ws)
        slope = config.clamp_drift(fit.slope)
        intercept = fit.intercept

    return np.array([intercept + slope * start_day, slope]), base_cov


def predict(state: np.ndarray, cov: np.ndarray, config: KalmanConfig) -> tuple[np.ndarray, np.ndarray]:
    process_noise = np.diag([config.q_phase, config.q_drift])
    return TRANSITION @ state, TRANSITION @ cov @ TRANSITION.T + process_noise


def mahalanobis_squared(state: np.ndarray, cov: np.ndarray, measurement: float, noise: float) -> float:
    innovation = measurement - state[0]
    return float(innovation * innovation / (cov[0, 0] + noise))


def update(
    state: np.ndarray,
    cov: np.ndarray,
    measurement: float,
    noise: float,
) -> tuple[np.ndarray, np.ndarray, float]:
    """
    Standard Kalman measurement update with H = [1, 0].

    Returns:
        (updated state, updated covariance, innovation)

    """
    innovation = measurement - state[0]
    innovation_var = cov[0, 0] + noise
    gain = cov @ OBSERVATION / innovation_var
    new_state = state + gain * innovation
    new_cov = cov - np.outer(gain, OBSERVATION @ cov)
    return new_state, new_cov, float(innovation)


def run_forward(
    observations: dict[int, Observation],
    first_day: int,
    last_data_day: int,
    last_day: int,
    config: KalmanConfig,
) -> ForwardPass:
    """
    Filter every day from first_day through last_day inclusive.

    Days after ``last_data_day`` are predicted only.
    """
    state, cov = initialize_state(observations, first_day, config)
    result = ForwardPass()

    for day in range(first_day, last_day + 1):
        state, cov = predict(state, cov, config)
        result.predicted_states.append(state)
        result.predicted_covs.append(cov)

        obs = observations.get(day) if day <= last_data_day else None
        if obs is not None:
            result.observation_count += 1
            measurement = resolve_branch(obs.midpoint_hour, float(state[0]))
            if mahalanobis_squared(state, cov, measurement, obs.noise) > config.gate_threshold**2:
                result.gated_count += 1
            else:
                state, cov, innovation = update(state, cov, measurement, obs.noise)
                result.innovations.append(innovation)

        result.filtered_states.append(state)
        result.filtered_covs.append(cov)

    if result.gated_count:
        logger.debug("Kalman gate rejected %d of %d observations", result.gated_count, result.observation_count)
    return result
