"""
Configuration dataclasses for the circular state-space filter (csf-v1).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from circadian_tracker.core.algorithms.config import AnchorTierConfig, require_positive, require_range
from circadian_tracker.core.constants import DEFAULT_NIGHT_HOURS, DRIFT_MAX, DRIFT_MIN, GAP_THRESHOLD_DAYS, TAU_MAX, TAU_MIN
from circadian_tracker.core.exceptions import ConfigurationError, ErrorCodes


@dataclass(frozen=True)
class TauPriorNoise:
    """
    Asymmetric noise of the tau prior pull, selected by the current drift.

    Smaller noise pulls harder toward the prior.

    Attributes:
        forward: Used when drift is negative (clock running fast)
        backward: Used when drift exceeds the prior's drift
        none: Used when drift lies between zero and the prior's drift

    """

    forward: float = 0.1
    backward: float = 1.0
    none: float = 5.0


@dataclass(frozen=True)
class CSFConfig:
    """
    Configuration for the von Mises circular filter and its smoothers.

    Attributes:
        process_noise_phase: Phase variance added per day (h^2)
        process_noise_tau: Tau variance added per day (h^2)
        measurement_kappa_base: Von Mises concentration of a weight-1 anchor
        tau_prior: Prior period the filter is gently pulled toward
        tau_prior_var: Initial tau variance
        tau_prior_noise: Asymmetric prior-pull noise
        max_correction_per_step: Largest phase correction and tau innovation per update (h)
        gate_threshold: Mahalanobis gate; measurements beyond it are skipped
        tau_min: Lower physiological bound on tau
        tau_max: Upper physiological bound on tau
        drift_min: Lower bound on reported daily drift
        drift_max: Upper bound on reported daily drift
        smoother_gain_min: Lower clamp of the backward smoother gain
        smoother_gain_max: Upper clamp of the backward smoother gain
        output_sigma: Gaussian sigma (days) of the output smoothing
        output_half_window: Half-width (days) of the output smoothing
        edge_window: Trailing data days corrected toward recent anchors
        edge_fit_radius: Days before the last data day used for the edge trend
        edge_anchor_half_window: Anchor radius for the edge residual kernel
        edge_anchor_sigma: Gaussian sigma of the edge residual kernel
        min_edge_coverage: Kernel weight needed before an edge day is corrected
        forecast_base_confidence: Confidence of the first forecast day before decay
        forecast_min_confidence: Floor of forecast confidence
        forecast_decay: Exponential decay rate of forecast confidence per day
        default_night_hours: Night length on days without an anchor
        gap_threshold_days: Date gap that splits segments
        anchor_tiers: Anchor classification thresholds

    """

    process_noise_phase: float = 0.5
    process_noise_tau: float = 0.005
    measurement_kappa_base: float = 1.5
    tau_prior: float = 24.5
    tau_prior_var: float = 0.5
    tau_prior_noise: TauPriorNoise = field(default_factory=TauPriorNoise)
    max_correction_per_step: float = 3.0
    gate_threshold: float = 3.0
    tau_min: float = TAU_MIN
    tau_max: float = TAU_MAX
    drift_min: float = DRIFT_MIN
    drift_max: float = DRIFT_MAX
    smoother_gain_min: float = 0.1
    smoother_gain_max: float = 0.95
    output_sigma: float = 2.0
    output_half_window: int = 3
    edge_window: int = 10
    edge_fit_radius: int = 30
    edge_anchor_half_window: int = 15
    edge_anchor_sigma: float = 7.0
    min_edge_coverage: float = 0.5
    forecast_base_confidence: float = 0.5
    forecast_min_confidence: float = 0.1
    forecast_decay: float = 0.1
    default_night_hours: float = DEFAULT_NIGHT_HOURS
    gap_threshold_days: int = GAP_THRESHOLD_DAYS
    anchor_tiers: AnchorTierConfig = field(default_factory=AnchorTierConfig)

    def __post_init__(self) -> None:
        owner = type(self).__name__
        require_positive(
            owner,
            process_noise_phase=self.process_noise_phase,
            process_noise_tau=self.process_noise_tau,
            measurement_kappa_base=self.measurement_kappa_base,
            tau_prior_var=self.tau_prior_var,
            tau_prior_noise_forward=self.tau_prior_noise.forward,
            tau_prior_noise_backward=self.tau_prior_noise.backward,
            tau_prior_noise_none=self.tau_prior_noise.none,
            max_correction_per_step=self.max_correction_per_step,
            gate_threshold=self.gate_threshold,
            output_sigma=self.output_sigma,
            edge_anchor_sigma=self.edge_anchor_sigma,
            default_night_hours=self.default_night_hours,
            gap_threshold_days=self.gap_threshold_days,
        )
        require_range(owner, "tau_min", self.tau_min, "tau_max", self.tau_max)
        require_range(owner, "drift_min", self.drift_min, "drift_max", self.drift_max)
        require_range(owner, "smoother_gain_min", self.smoother_gain_min, "smoother_gain_max", self.smoother_gain_max)
        if not self.tau_min <= self.tau_prior <= self.tau_max:
            msg = f"{owner}.tau_prior ({self.tau_prior}) must lie within [{self.tau_min}, {self.tau_max}]"
            raise ConfigurationError(msg, ErrorCodes.CONFIG_INVALID)

    def clamp_tau(self, tau: float) -> float:
        return min(max(tau, self.tau_min), self.tau_max)

    def clamp_drift(self, drift: float) -> float:
        return min(max(drift, self.drift_min), self.drift_max)
