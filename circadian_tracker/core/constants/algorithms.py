"""
Algorithm-related constants for the Circadian Tracker.

Contains enums for algorithm identifiers, anchor tiers and confidence labels,
plus the numeric limits shared by every estimator.
"""

from enum import StrEnum

# Records whose calendar dates are further apart than this start a new segment
GAP_THRESHOLD_DAYS: int = 14

# Hours in one clock cycle; midpoints are only observed modulo this value
HOURS_PER_DAY: float = 24.0
HALF_DAY_HOURS: float = 12.0

# Physiological limits for the estimated period and daily drift
TAU_MIN: float = 22.0
TAU_MAX: float = 27.0
DRIFT_MIN: float = -1.5
DRIFT_MAX: float = 3.0

# Neutral period reported when nothing can be estimated
NEUTRAL_TAU: float = 24.0

# Night window length used when no tier-A sleep is available
DEFAULT_NIGHT_HOURS: float = 8.0

# Confidence label thresholds (score in [0, 1])
HIGH_CONFIDENCE_THRESHOLD: float = 0.6
MEDIUM_CONFIDENCE_THRESHOLD: float = 0.3

# Numeric guard used wherever a weight or variance is divided by
EPSILON: float = 1e-6


class AlgorithmType(StrEnum):
    """
    Circadian period estimation algorithm identifiers.

    The set is closed: every variant is known at import time and registered
    in AlgorithmFactory without any runtime side effects.

    Attributes:
        REGRESSION_V1: Anchor-weighted sliding-window regression with
            seed-based phase unwrapping and post-hoc smoothing (default).
        CSF_V1: Circular state-space filter with von Mises measurement
            fusion and a Rauch-Tung-Striebel backward pass.
        KALMAN_V1: Linear two-state (phase, drift) Kalman filter with a
            full RTS smoother.

    """

    REGRESSION_V1 = "regression-v1"
    CSF_V1 = "csf-v1"
    KALMAN_V1 = "kalman-v1"

    @classmethod
    def get_default(cls) -> "AlgorithmType":
        """Get the default algorithm (regression)."""
        return cls.REGRESSION_V1

    def get_display_name(self) -> str:
        """Get human-readable display name."""
        names = {
            AlgorithmType.REGRESSION_V1: "Weighted Regression",
            AlgorithmType.CSF_V1: "Circular State-Space Filter",
            AlgorithmType.KALMAN_V1: "Kalman Filter",
        }
        return names.get(self, self.value)


class AnchorTier(StrEnum):
    """
    Reliability tier of a sleep interval used as a phase anchor.

    A is the strictest tier (long, high-quality main sleep). C anchors are
    only used when A/B coverage is too sparse.
    """

    A = "A"
    B = "B"
    C = "C"


class ConfidenceLevel(StrEnum):
    """Coarse confidence label attached to every predicted day."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceLevel":
        """Map a confidence score in [0, 1] to its label."""
        if score >= HIGH_CONFIDENCE_THRESHOLD:
            return cls.HIGH
        if score >= MEDIUM_CONFIDENCE_THRESHOLD:
            return cls.MEDIUM
        return cls.LOW
