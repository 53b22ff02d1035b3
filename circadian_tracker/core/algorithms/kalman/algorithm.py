"""
Linear Kalman filter circadian period estimator (kalman-v1).

Tracks [phase, drift] with a constant-drift model, adaptive measurement noise
and Mahalanobis outlier gating, followed by a Rauch-Tung-Striebel smoother.
Reports gated outlier and observation counts alongside the usual analysis.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from circadian_tracker.core.algorithms.config import config_parameters, update_config
from circadian_tracker.core.algorithms.merge import merge_segment_results
from circadian_tracker.core.algorithms.segments import analyze_segments
from circadian_tracker.core.constants import AlgorithmType

from .config import KalmanConfig
from .segment import analyze_segment

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import CircadianAnalysis, SleepInterval

logger = logging.getLogger(__name__)


class KalmanAlgorithm:
    """Two-state Kalman filter with RTS smoothing."""

    def __init__(self, config: KalmanConfig | None = None) -> None:
        self.config = config or KalmanConfig()

    # === Protocol Properties ===

    @property
    def name(self) -> str:
        return AlgorithmType.KALMAN_V1.get_display_name()

    @property
    def identifier(self) -> str:
        return AlgorithmType.KALMAN_V1.value

    @property
    def description(self) -> str:
        return "Linear Kalman filter on phase and drift with outlier gating and RTS smoothing"

    # === Protocol Methods ===

    def analyze(
        self,
        records: Sequence[SleepInterval],
        forecast_days: int = 0,
        config: KalmanConfig | None = None,
    ) -> CircadianAnalysis:
        """
        Estimate the circadian period with a Kalman filter.

        Args:
            records: Validated sleep intervals in any order
            forecast_days: Days to predict past the last record
            config: Per-call configuration override

        Returns:
            CircadianAnalysis with r_squared from the overlay fit

        Raises:
            ValidationError: If forecast_days is negative

        """
        active = config or self.config
        epoch, segments = analyze_segments(
            records,
            forecast_days,
            active.gap_threshold_days,
            lambda items, seg_epoch, extra: analyze_segment(items, seg_epoch, extra, active),
        )
        return merge_segment_results(segments, epoch, self.identifier, overlay_r_squared=True)

    def get_parameters(self) -> dict[str, Any]:
        return config_parameters(self.config)

    def set_parameters(self, **kwargs: Any) -> None:
        self.config = update_config(self.config, self.name, **kwargs)
