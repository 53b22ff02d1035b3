"""
Constants for the Circadian Tracker.

All constants are re-exported from this __init__.py. You can import directly
from the submodule for more specific imports:

    from circadian_tracker.core.constants import AlgorithmType
    from circadian_tracker.core.constants.algorithms import GAP_THRESHOLD_DAYS
"""

from .algorithms import (
    DEFAULT_NIGHT_HOURS,
    DRIFT_MAX,
    DRIFT_MIN,
    EPSILON,
    GAP_THRESHOLD_DAYS,
    HALF_DAY_HOURS,
    HIGH_CONFIDENCE_THRESHOLD,
    HOURS_PER_DAY,
    MEDIUM_CONFIDENCE_THRESHOLD,
    NEUTRAL_TAU,
    TAU_MAX,
    TAU_MIN,
    AlgorithmType,
    AnchorTier,
    ConfidenceLevel,
)

__all__ = [
    "DEFAULT_NIGHT_HOURS",
    "DRIFT_MAX",
    "DRIFT_MIN",
    "EPSILON",
    "GAP_THRESHOLD_DAYS",
    "HALF_DAY_HOURS",
    "HIGH_CONFIDENCE_THRESHOLD",
    "HOURS_PER_DAY",
    "MEDIUM_CONFIDENCE_THRESHOLD",
    "NEUTRAL_TAU",
    "TAU_MAX",
    "TAU_MIN",
    "AlgorithmType",
    "AnchorTier",
    "ConfidenceLevel",
]
