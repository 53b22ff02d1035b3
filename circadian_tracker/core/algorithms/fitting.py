"""
Weighted and robust linear regression.

Every estimator fits straight lines of unwrapped midpoint hour against day
number. Degenerate inputs never raise: zero total weight, a singular design
or fewer than two points return a flat line.

Algorithm Details:
    - Weighted least squares in closed form
    - Robust variant: iteratively reweighted least squares with Tukey's
      bisquare (tuning constant 4.685) and MAD scale floored at 0.5h
    - At most 5 reweighting iterations; stops early on a negligible slope
      change or when fewer than two points keep a non-zero weight
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from circadian_tracker.core.constants import EPSILON

if TYPE_CHECKING:
    from collections.abc import Sequence

TUKEY_TUNING_CONSTANT: float = 4.685
MAD_TO_SIGMA: float = 0.6745
MIN_ROBUST_SCALE: float = 0.5
MAX_ROBUST_ITERATIONS: int = 5
SLOPE_CONVERGENCE: float = 1e-6


@dataclass(frozen=True)
class LinearFit:
    """Slope and intercept of y = slope * x + intercept."""

    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def weighted_linear_regression(x: Sequence[float], y: Sequence[float], w: Sequence[float]) -> LinearFit:
    """
    Closed-form weighted least squares.

    Args:
        x: Predictor values (day numbers)
        y: Response values (unwrapped hours)
        w: Non-negative weights

    Returns:
        Fitted line; slope 0 and the weighted mean of y when the design is degenerate

    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    ws = np.asarray(w, dtype=float)

    sum_w = float(ws.sum())
    sum_wx = float((ws * xs).sum())
    sum_wy = float((ws * ys).sum())
    sum_wxx = float((ws * xs * xs).sum())
    sum_wxy = float((ws * xs * ys).sum())

    denom = sum_w * sum_wxx - sum_wx * sum_wx
    if denom == 0 or sum_w == 0:
        return LinearFit(slope=0.0, intercept=sum_wy / sum_w if sum_w > 0 else 0.0)

    return LinearFit(
        slope=(sum_w * sum_wxy - sum_wx * sum_wy) / denom,
        intercept=(sum_wy * sum_wxx - sum_wx * sum_wxy) / denom,
    )


def robust_weighted_regression(
    x: Sequence[float],
    y: Sequence[float],
    w: Sequence[float],
    max_iterations: int = MAX_ROBUST_ITERATIONS,
    tuning_constant: float = TUKEY_TUNING_CONSTANT,
) -> LinearFit:
    """
    Tukey-bisquare IRLS regression seeded by weighted least squares.

    Args:
        x: Predictor values
        y: Response values
        w: Prior weights, multiplied by the bisquare weights each iteration
        max_iterations: Reweighting iteration cap
        tuning_constant: Bisquare cutoff in units of the robust scale

    Returns:
        Fitted line; slope 0 and the single y value when fewer than two points

    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    ws = np.asarray(w, dtype=float)

    if len(xs) < 2:
        return LinearFit(slope=0.0, intercept=float(ys[0]) if len(ys) > 0 else 0.0)

    fit = weighted_linear_regression(xs, ys, ws)

    for _ in range(max_iterations):
        residuals = ys - (fit.slope * xs + fit.intercept)
        abs_res = np.sort(np.abs(residuals))
        mad = float(abs_res[len(abs_res) // 2]) or 1.0
        scale = max(mad / MAD_TO_SIGMA, MIN_ROBUST_SCALE)

        u = residuals / (tuning_constant * scale)
        bisquare = np.where(np.abs(u) <= 1, (1 - u * u) ** 2, 0.0)
        reweighted = ws * bisquare

        if int((reweighted > EPSILON).sum()) < 2:
            break

        new_fit = weighted_linear_regression(xs, ys, reweighted)
        if abs(new_fit.slope - fit.slope) < SLOPE_CONVERGENCE:
            break
        fit = new_fit

    return fit
