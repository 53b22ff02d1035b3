"""
Configuration dataclass for the regression-v1 circadian algorithm.

All window sizes are in days and all thresholds in hours (or hours per day
for slopes). Defaults reproduce the reference tuning of the estimator.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from circadian_tracker.core.algorithms.config import AnchorTierConfig, require_positive, require_range
from circadian_tracker.core.constants import DEFAULT_NIGHT_HOURS, GAP_THRESHOLD_DAYS, TAU_MAX, TAU_MIN
from circadian_tracker.core.exceptions import ConfigurationError, ErrorCodes


@dataclass(frozen=True)
class RegressionConfig:
    """
    Configuration for anchor-weighted sliding-window regression.

    Attributes:
        window_half: Default half-width of the per-day window
        max_window_half: Largest half-width tried when a window is sparse
        min_anchors_per_window: Points needed before a window stops expanding
        gaussian_sigma: Gaussian distance weighting sigma for windows
        outlier_threshold_hours: Residual beyond which an anchor is an outlier
        max_outlier_fraction: Outliers are only dropped below this fraction
        seed_half: Half-width of candidate unwrapping seed windows
        min_seed_anchors: Anchors required for a seed window to be scored
        expansion_lookback_days: Neighbor radius when expanding the unwrap
        nearest_neighbor_days: Nearest resolved neighbor must be this close for pairwise snapping
        pairwise_tolerance_hours: Pairwise snap must stay this close to the neighbor
        regularization_half: Half-width of the regional fallback fit
        plausible_slope_min: Lower bound of a plausible regional slope
        plausible_slope_max: Upper bound of a plausible regional slope
        regime_change_threshold: Local/fallback slope difference that boosts local trust
        regime_change_max_mad: Window MAD below which the regime boost applies
        slope_conf_mad_scale: MAD at which slope confidence reaches zero
        confidence_mad_scale: MAD at which the spread term of day confidence reaches zero
        smooth_half: Kernel half-width for post-hoc smoothing
        smooth_sigma: Kernel sigma for post-hoc smoothing
        smooth_jump_threshold: Day-to-day jump that triggers smoothing
        smooth_margin: Band around flagged days that is also smoothed
        smooth_iterations: Iteration cap for the jump pass
        slope_conf_threshold: Days below this slope confidence get anchor realignment
        min_anchor_coverage: Kernel weight needed for anchor realignment
        backward_deviation: Backward movement beyond expected drift that flags a day
        backward_min_run: Consecutive backward days needed to bridge
        max_bridge_rate: Fastest plausible bridging rate (h/day)
        bridge_min_confidence: Days below this confidence are never bridged
        forecast_decay: Exponential decay rate of forecast confidence per day
        default_night_hours: Night length used when no tier-A sleep is in a window
        tau_min: Lower physiological bound on local tau
        tau_max: Upper physiological bound on local tau
        gap_threshold_days: Date gap that splits segments
        anchor_tiers: Anchor classification thresholds

    """

    window_half: int = 21
    max_window_half: int = 60
    min_anchors_per_window: int = 6
    gaussian_sigma: float = 14.0
    outlier_threshold_hours: float = 8.0
    max_outlier_fraction: float = 0.15
    seed_half: int = 21
    min_seed_anchors: int = 4
    expansion_lookback_days: int = 30
    nearest_neighbor_days: int = 7
    pairwise_tolerance_hours: float = 6.0
    regularization_half: int = 60
    plausible_slope_min: float = -0.5
    plausible_slope_max: float = 2.0
    regime_change_threshold: float = 0.3
    regime_change_max_mad: float = 2.0
    slope_conf_mad_scale: float = 4.0
    confidence_mad_scale: float = 3.0
    smooth_half: int = 7
    smooth_sigma: float = 3.0
    smooth_jump_threshold: float = 2.0
    smooth_margin: int = 5
    smooth_iterations: int = 3
    slope_conf_threshold: float = 0.4
    min_anchor_coverage: float = 0.5
    backward_deviation: float = 0.5
    backward_min_run: int = 3
    max_bridge_rate: float = 3.0
    bridge_min_confidence: float = 0.3
    forecast_decay: float = 0.1
    default_night_hours: float = DEFAULT_NIGHT_HOURS
    tau_min: float = TAU_MIN
    tau_max: float = TAU_MAX
    gap_threshold_days: int = GAP_THRESHOLD_DAYS
    anchor_tiers: AnchorTierConfig = field(default_factory=AnchorTierConfig)

    def __post_init__(self) -> None:
        owner = type(self).__name__
        require_positive(
            owner,
            window_half=self.window_half,
            max_window_half=self.max_window_half,
            min_anchors_per_window=self.min_anchors_per_window,
            gaussian_sigma=self.gaussian_sigma,
            outlier_threshold_hours=self.outlier_threshold_hours,
            seed_half=self.seed_half,
            expansion_lookback_days=self.expansion_lookback_days,
            regularization_half=self.regularization_half,
            smooth_half=self.smooth_half,
            smooth_sigma=self.smooth_sigma,
            smooth_margin=self.smooth_margin,
            default_night_hours=self.default_night_hours,
            gap_threshold_days=self.gap_threshold_days,
        )
        if self.window_half > self.max_window_half:
            msg = f"{owner}.window_half ({self.window_half}) cannot exceed max_window_half ({self.max_window_half})"
            raise ConfigurationError(msg, ErrorCodes.CONFIG_INVALID)
        require_range(owner, "plausible_slope_min", self.plausible_slope_min, "plausible_slope_max", self.plausible_slope_max)
        require_range(owner, "tau_min", self.tau_min, "tau_max", self.tau_max)

    def expected_points(self, spacing: float) -> float:
        """Anchors a full default window should hold at the given median spacing."""
        return self.window_half * 2 / spacing if spacing > 0 else 10.0
