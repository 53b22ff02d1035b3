"""
Configuration dataclass for the linear Kalman filter (kalman-v1).
"""

from __future__ import annotations

from dataclasses import dataclass

from circadian_tracker.core.algorithms.config import require_positive, require_range
from circadian_tracker.core.constants import DRIFT_MAX, DRIFT_MIN, GAP_THRESHOLD_DAYS


@dataclass(frozen=True)
class KalmanConfig:
    """
    Configuration for the two-state [phase, drift] Kalman filter.

    Attributes:
        q_phase: Process noise for phase (h^2 per day)
        q_drift: Process noise for drift (h^2/day^2 per day)
        r_base: Measurement noise of an ideal observation (h^2)
        gate_threshold: Mahalanobis distance beyond which observations are rejected
        init_window: Maximum observations used by the initial fit
        default_drift_prior: Drift assumed when it cannot be fitted (h/day)
        init_p_phase: Initial phase variance
        init_p_drift: Initial drift variance
        sparse_init_scale: Variance multiplier when no observation is available for initialization
        drift_min: Lower bound on drift
        drift_max: Upper bound on drift
        min_duration_hours: Records shorter than this are not observations
        min_quality: Records below this quality are not observations
        quality_floor: Quality floor in the noise model
        duration_floor_hours: Duration at which the duration factor reaches its minimum
        duration_ramp_hours: Hours above the floor for the duration factor to reach 1
        min_duration_factor: Lower clamp of the duration factor
        nap_factor: Noise divisor factor for records that are not the main sleep
        duration_sigma: Gaussian sigma (days) of the local duration average
        duration_half_window: Half-width (days) of the local duration average
        forecast_decay: Exponential decay rate of forecast confidence per day
        gap_threshold_days: Date gap that splits segments

    """

    q_phase: float = 0.01
    q_drift: float = 0.0001
    r_base: float = 1.5
    gate_threshold: float = 3.5
    init_window: int = 7
    default_drift_prior: float = 0.7
    init_p_phase: float = 4.0
    init_p_drift: float = 0.25
    sparse_init_scale: float = 4.0
    drift_min: float = DRIFT_MIN
    drift_max: float = DRIFT_MAX
    min_duration_hours: float = 2.0
    min_quality: float = 0.1
    quality_floor: float = 0.1
    duration_floor_hours: float = 4.0
    duration_ramp_hours: float = 5.0
    min_duration_factor: float = 0.1
    nap_factor: float = 0.15
    duration_sigma: float = 3.0
    duration_half_window: int = 4
    forecast_decay: float = 0.1
    gap_threshold_days: int = GAP_THRESHOLD_DAYS

    def __post_init__(self) -> None:
        owner = type(self).__name__
        require_positive(
            owner,
            q_phase=self.q_phase,
            q_drift=self.q_drift,
            r_base=self.r_base,
            gate_threshold=self.gate_threshold,
            init_window=self.init_window,
            init_p_phase=self.init_p_phase,
            init_p_drift=self.init_p_drift,
            sparse_init_scale=self.sparse_init_scale,
            quality_floor=self.quality_floor,
            duration_ramp_hours=self.duration_ramp_hours,
            min_duration_factor=self.min_duration_factor,
            nap_factor=self.nap_factor,
            duration_sigma=self.duration_sigma,
            gap_threshold_days=self.gap_threshold_days,
        )
        require_range(owner, "drift_min", self.drift_min, "drift_max", self.drift_max)

    def clamp_drift(self, drift: float) -> float:
        return min(max(drift, self.drift_min), self.drift_max)
