"""
Configuration dataclasses shared by every circadian algorithm.

Anchor tiering is common to the anchor-based estimators (regression-v1 and
csf-v1). Thresholds are strictly ordered: tier A is stricter than B, and B
is stricter than C, on both duration and quality.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, TypeVar

from circadian_tracker.core.constants import GAP_THRESHOLD_DAYS
from circadian_tracker.core.exceptions import ConfigurationError, ErrorCodes

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT")


@dataclass(frozen=True)
class TierThreshold:
    """
    Minimum duration and quality for one anchor tier.

    Attributes:
        min_duration_hours: Minimum asleep duration
        min_quality: Minimum quality score
        base_weight: Weight multiplier for anchors of this tier

    """

    min_duration_hours: float
    min_quality: float
    base_weight: float


@dataclass(frozen=True)
class AnchorTierConfig:
    """
    Anchor classification parameters.

    Attributes:
        tier_a: Thresholds for tier A (long, high-quality main sleep)
        tier_b: Thresholds for tier B
        tier_c: Thresholds for tier C (sparse-data fallback only)
        duration_floor_hours: Duration at which the duration factor is zero
        duration_ramp_hours: Hours above the floor for the duration factor to reach 1
        nap_factor: Weight multiplier for records that are not the main sleep
        tier_c_fallback_gap_days: Tier C is used only when tier A/B dates are
            separated by more than this many days somewhere in the segment

    """

    tier_a: TierThreshold = field(default_factory=lambda: TierThreshold(7.0, 0.75, 1.0))
    tier_b: TierThreshold = field(default_factory=lambda: TierThreshold(5.0, 0.6, 0.4))
    tier_c: TierThreshold = field(default_factory=lambda: TierThreshold(4.0, 0.4, 0.1))
    duration_floor_hours: float = 4.0
    duration_ramp_hours: float = 5.0
    nap_factor: float = 0.15
    tier_c_fallback_gap_days: int = GAP_THRESHOLD_DAYS

    def __post_init__(self) -> None:
        ordered = (self.tier_a, self.tier_b, self.tier_c)
        for stricter, looser in zip(ordered, ordered[1:], strict=False):
            if stricter.min_duration_hours <= looser.min_duration_hours or stricter.min_quality <= looser.min_quality:
                msg = "Anchor tier thresholds must be strictly ordered A > B > C on duration and quality"
                raise ConfigurationError(msg, ErrorCodes.CONFIG_INVALID)
        if self.duration_ramp_hours <= 0:
            msg = f"duration_ramp_hours must be positive, got {self.duration_ramp_hours}"
            raise ConfigurationError(msg, ErrorCodes.CONFIG_INVALID)
        if not 0.0 <= self.nap_factor <= 1.0:
            msg = f"nap_factor must be within [0, 1], got {self.nap_factor}"
            raise ConfigurationError(msg, ErrorCodes.CONFIG_INVALID)


def require_positive(owner: str, **values: float) -> None:
    """
    Raise ConfigurationError for any non-positive value.

    Args:
        owner: Config class name used in the error message
        **values: Field name to value mapping

    Raises:
        ConfigurationError: If any value is <= 0

    """
    for name, value in values.items():
        if value <= 0:
            msg = f"{owner}.{name} must be positive, got {value}"
            raise ConfigurationError(msg, ErrorCodes.CONFIG_INVALID, {name: value})


def require_range(owner: str, low_name: str, low: float, high_name: str, high: float) -> None:
    """Raise ConfigurationError when a (low, high) pair is inverted."""
    if low >= high:
        msg = f"{owner}.{low_name} ({low}) must be less than {owner}.{high_name} ({high})"
        raise ConfigurationError(msg, ErrorCodes.CONFIG_INVALID, {low_name: low, high_name: high})


def config_parameters(config: Any) -> dict[str, Any]:
    """Snapshot of a config dataclass as a plain dict (nested configs become dicts)."""
    return asdict(config)


def update_config(config: ConfigT, algorithm_name: str, **kwargs: Any) -> ConfigT:
    """
    Return a copy of config with the recognized keys replaced.

    Unknown keys are ignored with a warning. Values are validated by the
    config's own __post_init__.

    Raises:
        ConfigurationError: If a replaced value is invalid

    """
    valid = {f.name for f in fields(config)}  # type: ignore[arg-type]
    ignored = set(kwargs) - valid
    if ignored:
        logger.warning("%s parameters %s are not recognized and were ignored", algorithm_name, sorted(ignored))
    accepted = {k: v for k, v in kwargs.items() if k in valid}
    if not accepted:
        return config
    return replace(config, **accepted)  # type: ignore[type-var]
