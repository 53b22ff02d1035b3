"""
Weighted regression circadian period estimator (regression-v1).

Anchor-based weighted regression with seed-based phase unwrapping, sliding
window evaluation, robust outlier handling and post-hoc overlay smoothing.
This is the default algorithm.

Example Usage:
    >>> from circadian_tracker.core.algorithms import AlgorithmFactory
    >>>
    >>> algorithm = AlgorithmFactory.create("regression-v1")
    >>> analysis = algorithm.analyze(records, forecast_days=14)
    >>> print(f"tau = {analysis.global_tau:.2f}h")

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from circadian_tracker.core.algorithms.config import config_parameters, update_config
from circadian_tracker.core.algorithms.merge import merge_segment_results
from circadian_tracker.core.algorithms.segments import analyze_segments
from circadian_tracker.core.constants import AlgorithmType

from .config import RegressionConfig
from .segment import analyze_segment

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import CircadianAnalysis, SleepInterval

logger = logging.getLogger(__name__)


class RegressionAlgorithm:
    """
    Sliding-window weighted regression over unwrapped sleep midpoints.

    Each segment is unwrapped from its most consistent 42-day window, every
    day gets a robust Gaussian-weighted window fit whose slope is regularized
    toward a regional fallback, and the resulting overlay is smoothed to
    remove window artifacts. The global period is refitted from the final
    overlay.
    """

    def __init__(self, config: RegressionConfig | None = None) -> None:
        """
        Initialize with configuration.

        Args:
            config: Regression configuration (uses defaults if None)

        """
        self.config = config or RegressionConfig()

    # === Protocol Properties ===

    @property
    def name(self) -> str:
        return AlgorithmType.REGRESSION_V1.get_display_name()

    @property
    def identifier(self) -> str:
        return AlgorithmType.REGRESSION_V1.value

    @property
    def description(self) -> str:
        return "Anchor-based weighted regression with sliding window evaluation and robust outlier handling"

    # === Protocol Methods ===

    def analyze(
        self,
        records: Sequence[SleepInterval],
        forecast_days: int = 0,
        config: RegressionConfig | None = None,
    ) -> CircadianAnalysis:
        """
        Estimate the time-varying circadian period and nightly windows.

        Args:
            records: Validated sleep intervals in any order
            forecast_days: Days to predict past the last record
            config: Per-call configuration override

        Returns:
            CircadianAnalysis; the neutral analysis when nothing can be estimated

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
        return merge_segment_results(segments, epoch, self.identifier)

    def get_parameters(self) -> dict[str, Any]:
        """Get current configuration as a dict."""
        return config_parameters(self.config)

    def set_parameters(self, **kwargs: Any) -> None:
        """
        Update configuration values.

        Args:
            **kwargs: RegressionConfig field name-value pairs; unknown names are ignored with a warning

        """
        self.config = update_config(self.config, self.name, **kwargs)
