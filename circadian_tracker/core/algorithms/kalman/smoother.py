"""
Rauch-Tung-Striebel backward smoother for the kalman-v1 state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from .filter import TRANSITION

if TYPE_CHECKING:
    from .filter import ForwardPass

SINGULAR_DETERMINANT: float = 1e-12


def rts_smoother(forward: ForwardPass) -> tuple[list[np.ndarray], list[np.ndarray]]:
    """
    Smooth the forward pass from the last day back to the first.

    The smoother gain is G = P_filt F^T P_pred^-1. Where the next day's
    predicted covariance is singular the filtered estimate is kept.

    Returns:
        (smoothed states, smoothed covariances), one per day

    """
    n = len(forward.filtered_states)
    if n == 0:
        return [], []

    states = list(forward.filtered_states)
    covs = list(forward.filtered_covs)

    for t in range(n - 2, -1, -1):
        filtered_cov = forward.filtered_covs[t]
        predicted_cov = forward.predicted_covs[t + 1]

        if abs(np.linalg.det(predicted_cov)) < SINGULAR_DETERMINANT:
            continue

        gain = filtered_cov @ TRANSITION.T @ np.linalg.inv(predicted_cov)
        states[t] = forward.filtered_states[t] + gain @ (states[t + 1] - forward.predicted_states[t + 1])
        covs[t] = filtered_cov + gain @ (covs[t + 1] - predicted_cov) @ gain.T

    return states, covs
