"""
Circular state-space filter circadian period estimator (csf-v1).

Treats the sleep midpoint as an angle on the 24h circle and tracks phase and
period jointly with a von Mises measurement update, a soft prior on tau and a
backward smoother.

Example Usage:
    >>> from circadian_tracker.core.algorithms import AlgorithmFactory
    >>>
    >>> algorithm = AlgorithmFactory.create("csf-v1")
    >>> algorithm.set_parameters(tau_prior=24.2)
    >>> analysis = algorithm.analyze(records)

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from circadian_tracker.core.algorithms.config import config_parameters, update_config
from circadian_tracker.core.algorithms.merge import merge_segment_results
from circadian_tracker.core.algorithms.segments import analyze_segments
from circadian_tracker.core.constants import AlgorithmType

from .config import CSFConfig
from .segment import analyze_segment

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import CircadianAnalysis, SleepInterval

logger = logging.getLogger(__name__)


class CSFAlgorithm:
    """Von Mises phase and period filter with backward smoothing."""

    def __init__(self, config: CSFConfig | None = None) -> None:
        """
        Initialize with configuration.

        Args:
            config: Filter configuration (uses defaults if None)

        """
        self.config = config or CSFConfig()

    # === Protocol Properties ===

    @property
    def name(self) -> str:
        return AlgorithmType.CSF_V1.get_display_name()

    @property
    def identifier(self) -> str:
        return AlgorithmType.CSF_V1.value

    @property
    def description(self) -> str:
        return "Circular state-space filter with von Mises updates, tau prior and backward smoothing"

    # === Protocol Methods ===

    def analyze(
        self,
        records: Sequence[SleepInterval],
        forecast_days: int = 0,
        config: CSFConfig | None = None,
    ) -> CircadianAnalysis:
        """
        Estimate the circadian period by filtering sleep midpoints.

        Args:
            records: Validated sleep intervals in any order
            forecast_days: Days to predict past the last anchor
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
        """Update configuration values; unknown names are ignored with a warning."""
        self.config = update_config(self.config, self.name, **kwargs)
