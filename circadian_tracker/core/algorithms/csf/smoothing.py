"""
Output smoothing and edge correction for the csf-v1 filter.

The backward smoother leaves its terminal state unsmoothed, so the last
data days lag behind recent observations and forecasts inherit that lag.
``correct_edge`` pulls the trailing data days toward a local anchor trend
and re-extrapolates forecast days from the corrected last data day.
Everything here works on clock hours and returns new state lists.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from circadian_tracker.core.algorithms.circular import circular_diff, gaussian, normalize_hour, pairwise_unwrap
from circadian_tracker.core.algorithms.fitting import LinearFit
from circadian_tracker.core.constants import HOURS_PER_DAY

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import Anchor

    from .config import CSFConfig
    from .filter import SmoothedState

logger = logging.getLogger(__name__)

MIN_EDGE_ANCHORS: int = 3
SINGULAR_DENOMINATOR: float = 1e-10


def smooth_output_phase(states: Sequence[SmoothedState], config: CSFConfig) -> list[SmoothedState]:
    """
    Gaussian-smooth smoothed phase and tau over neighboring days.

    Fewer than three states are returned unchanged.
    """
    if len(states) < 3:
        return list(states)

    n = len(states)
    half = config.output_half_window
    out = []
    for i, state in enumerate(states):
        phase_sum = 0.0
        tau_sum = 0.0
        w_sum = 0.0
        for j in range(max(0, i - half), min(n - 1, i + half) + 1):
            w = gaussian(abs(j - i), config.output_sigma)
            phase_sum += w * states[j].phase
            tau_sum += w * states[j].tau
            w_sum += w
        out.append(replace(state, phase=phase_sum / w_sum, tau=tau_sum / w_sum))
    return out


def _edge_trend(points: list[tuple[int, float, float]]) -> LinearFit | None:
    """Weighted line through (day, clock hour, weight) points; None when singular."""
    sum_w = sum(w for _, _, w in points)
    sum_wx = sum(w * x for x, _, w in points)
    sum_wy = sum(w * y for _, y, w in points)
    sum_wxx = sum(w * x * x for x, _, w in points)
    sum_wxy = sum(w * x * y for x, y, w in points)

    denom = sum_w * sum_wxx - sum_wx * sum_wx
    if abs(denom) < SINGULAR_DENOMINATOR:
        return None
    slope = (sum_w * sum_wxy - sum_wx * sum_wy) / denom
    return LinearFit(slope=slope, intercept=(sum_wy - slope * sum_wx) / sum_w)


def correct_edge(
    states: Sequence[SmoothedState],
    anchors: Sequence[Anchor],
    first_day: int,
    last_data_index: int,
    config: CSFConfig,
) -> list[SmoothedState]:
    """
    Blend the trailing data days toward recent anchors and re-anchor forecasts.

    Args:
        states: Smoothed states, one per local day (0 = first_day)
        anchors: Segment anchors sorted by day number
        first_day: Day number of local day 0
        last_data_index: Local index of the last data day
        config: Filter configuration

    Returns:
        Corrected states; the input unchanged when the edge has too little support

    """
    out = list(states)
    if len(anchors) < MIN_EDGE_ANCHORS or last_data_index < config.edge_window:
        return out

    last_data_day = first_day + last_data_index
    recent = [a for a in anchors if last_data_day - config.edge_fit_radius <= a.day_number <= last_data_day]
    if len(recent) < MIN_EDGE_ANCHORS:
        return out

    hours = pairwise_unwrap([normalize_hour(a.midpoint_hour) for a in recent])
    points = [(a.day_number, h, a.weight) for a, h in zip(recent, hours, strict=True)]
    trend = _edge_trend(points)
    if trend is None:
        return out

    edge_start = max(0, last_data_index - config.edge_window)
    for i in range(edge_start, min(last_data_index, len(out) - 1) + 1):
        day = first_day + i
        w_residual = 0.0
        w_sum = 0.0
        for x, y, weight in points:
            dist = abs(x - day)
            if dist > config.edge_anchor_half_window:
                continue
            w = gaussian(dist, config.edge_anchor_sigma) * weight
            w_residual += w * (y - trend.predict(x))
            w_sum += w

        if w_sum < config.min_edge_coverage:
            continue

        target = trend.predict(day) + w_residual / w_sum
        correction = circular_diff(target, out[i].phase)
        # Quadratic ramp: no correction at the window start, full at the last data day
        t = (i - edge_start) / config.edge_window
        out[i] = replace(out[i], phase=out[i].phase + t * t * correction)

    last_clock = normalize_hour(out[last_data_index].phase)
    forecast_tau = config.clamp_tau(HOURS_PER_DAY + trend.slope)
    for i in range(last_data_index + 1, len(out)):
        target = last_clock + trend.slope * (i - last_data_index)
        out[i] = replace(out[i], phase=out[i].phase + circular_diff(target, out[i].phase), tau=forecast_tau)

    logger.debug("CSF edge correction from local day %d, trend slope %.3f h/day", edge_start, trend.slope)
    return out
