"""
Phase unwrapper for the regression-v1 algorithm.

Raw midpoints are known only modulo 24h. Unwrapping resolves each anchor to a
continuous phase so a drifting rhythm can cross midnight any number of times.

Algorithm Details:
    1. Seed search: slide a 42-day window over the segment, pairwise-unwrap a
       copy of each window, fit a weighted line and score the window on
       residual spread, anchor density, mean weight and slope plausibility.
    2. Pairwise-unwrap the best window in place.
    3. Expand outward one anchor at a time. Each new anchor is snapped to the
       branch nearest a short-range robust fit of resolved neighbors, unless
       that disagrees with the nearest neighbor's branch while the neighbor is
       close in both time and phase.

The anchor list is mutated in place and must not be shared across segments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from circadian_tracker.core.algorithms.circular import gaussian, pairwise_unwrap, snap_near, upper_median
from circadian_tracker.core.algorithms.fitting import robust_weighted_regression, weighted_linear_regression

if TYPE_CHECKING:
    from circadian_tracker.core.dataclasses import Anchor

    from .config import RegressionConfig

logger = logging.getLogger(__name__)

# Seed scoring: slope range that carries no plausibility penalty (h/day)
SEED_SLOPE_MIN: float = -0.5
SEED_SLOPE_MAX: float = 3.0
SEED_MAD_SCALE: float = 6.0
SEED_MAX_WINDOW_COUNT: int = 30

# Regression and pairwise snaps closer than this agree on the branch
BRANCH_AGREEMENT_HOURS: float = 1.0


@dataclass(frozen=True)
class SeedRegion:
    """Index range [start_idx, end_idx] of the seed window and its line."""

    start_idx: int
    end_idx: int
    slope: float
    intercept: float


def _seed_slope_penalty(slope: float) -> float:
    if slope < SEED_SLOPE_MIN:
        return min(1.0, (SEED_SLOPE_MIN - slope) / 5)
    if slope > SEED_SLOPE_MAX:
        return min(1.0, (slope - SEED_SLOPE_MAX) / 5)
    return 0.0


def find_seed_region(anchors: list[Anchor], config: RegressionConfig) -> SeedRegion:
    """
    Find the most self-consistent window to start unwrapping from.

    Args:
        anchors: Anchors sorted by day number (at least two)
        config: Regression configuration (seed_half, min_seed_anchors)

    Returns:
        SeedRegion; the whole segment when it spans fewer than 2 * seed_half days

    """
    first_day = anchors[0].day_number
    last_day = anchors[-1].day_number
    seed_width = config.seed_half * 2

    if last_day - first_day < seed_width:
        mids = pairwise_unwrap([a.midpoint_hour for a in anchors])
        fit = weighted_linear_regression([a.day_number for a in anchors], mids, [a.weight for a in anchors])
        return SeedRegion(0, len(anchors) - 1, fit.slope, fit.intercept)

    step = max(1, (last_day - first_day - seed_width) // SEED_MAX_WINDOW_COUNT)
    best_score = float("-inf")
    best = SeedRegion(0, len(anchors) - 1, 0.0, 0.0)

    for center in range(first_day + config.seed_half, last_day - config.seed_half + 1, step):
        window_start = center - config.seed_half
        window_end = center + config.seed_half
        indices = [i for i, a in enumerate(anchors) if window_start <= a.day_number <= window_end]
        if len(indices) < config.min_seed_anchors:
            continue

        xs = [anchors[i].day_number for i in indices]
        ys = pairwise_unwrap([anchors[i].midpoint_hour for i in indices])
        ws = [anchors[i].weight for i in indices]
        fit = weighted_linear_regression(xs, ys, ws)

        mad = upper_median([abs(y - fit.predict(x)) for x, y in zip(xs, ys, strict=True)])
        density = min(1.0, len(indices) / (seed_width / 2))
        avg_weight = sum(ws) / len(ws)
        mad_score = 1 - min(1.0, mad / SEED_MAD_SCALE)
        score = 0.35 * mad_score + 0.25 * density + 0.25 * avg_weight + 0.15 * (1 - _seed_slope_penalty(fit.slope))

        if score > best_score:
            best_score = score
            best = SeedRegion(indices[0], indices[-1], fit.slope, fit.intercept)

    return best


def snap_to_neighbors(anchors: list[Anchor], idx: int, ref_start: int, ref_end: int, config: RegressionConfig) -> None:
    """
    Move anchors[idx] onto the branch implied by resolved anchors in [ref_start, ref_end].

    Leaves the anchor untouched when no resolved anchor lies within the
    expansion lookback.
    """
    anchor = anchors[idx]
    xs: list[float] = []
    ys: list[float] = []
    ws: list[float] = []
    nearest_dist = float("inf")
    nearest_mid = 0.0

    for j in range(ref_start, ref_end + 1):
        ref = anchors[j]
        day_dist = abs(ref.day_number - anchor.day_number)
        if day_dist <= config.expansion_lookback_days:
            xs.append(ref.day_number)
            ys.append(ref.midpoint_hour)
            ws.append(ref.weight * gaussian(day_dist, config.gaussian_sigma))
        if day_dist < nearest_dist:
            nearest_dist = day_dist
            nearest_mid = ref.midpoint_hour

    if not xs:
        return

    if len(xs) == 1:
        regression_pred = ys[0]
    else:
        regression_pred = robust_weighted_regression(xs, ys, ws).predict(anchor.day_number)

    reg_mid = snap_near(anchor.midpoint_hour, regression_pred)
    pair_mid = snap_near(anchor.midpoint_hour, nearest_mid)

    if abs(reg_mid - pair_mid) < BRANCH_AGREEMENT_HOURS:
        anchor.midpoint_hour = reg_mid
    elif nearest_dist <= config.nearest_neighbor_days and abs(pair_mid - nearest_mid) < config.pairwise_tolerance_hours:
        anchor.midpoint_hour = pair_mid
    else:
        anchor.midpoint_hour = reg_mid


def expand_from_region(anchors: list[Anchor], start_idx: int, end_idx: int, config: RegressionConfig) -> None:
    """Resolve anchors after end_idx forward, then anchors before start_idx backward."""
    for i in range(end_idx + 1, len(anchors)):
        snap_to_neighbors(anchors, i, start_idx, i - 1, config)
    for i in range(start_idx - 1, -1, -1):
        snap_to_neighbors(anchors, i, i + 1, end_idx, config)


def unwrap_anchors_from_seed(anchors: list[Anchor], config: RegressionConfig) -> None:
    """
    Unwrap anchor midpoints in place.

    Args:
        anchors: Anchors sorted by day number; fewer than two is a no-op
        config: Regression configuration

    """
    if len(anchors) < 2:
        return

    seed = find_seed_region(anchors, config)
    logger.debug(
        "Unwrap seed: anchors %d..%d (days %d..%d), slope %.3f h/day",
        seed.start_idx,
        seed.end_idx,
        anchors[seed.start_idx].day_number,
        anchors[seed.end_idx].day_number,
        seed.slope,
    )

    seed_mids = pairwise_unwrap([a.midpoint_hour for a in anchors[seed.start_idx : seed.end_idx + 1]])
    for offset, mid in enumerate(seed_mids):
        anchors[seed.start_idx + offset].midpoint_hour = mid

    expand_from_region(anchors, seed.start_idx, seed.end_idx, config)
