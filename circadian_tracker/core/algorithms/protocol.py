"""
Circadian period estimation algorithm protocol for dependency injection.

Every estimator (regression-v1, csf-v1, kalman-v1) implements this
interface, so callers can switch variants without changing their own code.

Architecture:
    - Protocol defines the contract for circadian algorithms
    - Implementations: RegressionAlgorithm, CSFAlgorithm, KalmanAlgorithm
    - AlgorithmFactory creates instances from an algorithm identifier
    - Callers accept the protocol type, not concrete implementations

Example Usage:
    >>> from circadian_tracker.core.algorithms import AlgorithmFactory
    >>>
    >>> algorithm = AlgorithmFactory.create('csf-v1')
    >>>
    >>> def nightly_windows(algorithm: CircadianAlgorithm, records):
    ...     return algorithm.analyze(records, forecast_days=7).days

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circadian_tracker.core.dataclasses import CircadianAnalysis, SleepInterval


@runtime_checkable
class CircadianAlgorithm(Protocol):
    """
    Protocol for circadian period estimation algorithms.

    The protocol is runtime_checkable to allow isinstance() checks for validation.

    Properties:
        name: Human-readable algorithm name for display
        identifier: Unique identifier (e.g. "regression-v1")
        description: One-line summary of the method

    Methods:
        analyze: Estimate period, nightly windows and forecasts from sleep records
        get_parameters: Get current algorithm parameters
        set_parameters: Update algorithm parameters

    """

    @property
    def name(self) -> str:
        """
        Algorithm name for display.

        Returns:
            Human-readable algorithm name (e.g., "Weighted Regression")

        """
        ...

    @property
    def identifier(self) -> str:
        """
        Unique algorithm identifier.

        Returns:
            Versioned identifier (e.g., "regression-v1", "csf-v1")

        """
        ...

    @property
    def description(self) -> str:
        """Short description of the estimation method."""
        ...

    def analyze(
        self,
        records: Sequence[SleepInterval],
        forecast_days: int = 0,
        config: Any = None,
    ) -> CircadianAnalysis:
        """
        Estimate the circadian rhythm from sleep records.

        Args:
            records: Validated sleep intervals in any order
            forecast_days: Number of days to predict past the last data day
            config: Optional per-call configuration of the algorithm's own config type

        Returns:
            CircadianAnalysis; the neutral analysis for empty or degenerate input

        Raises:
            ValidationError: If forecast_days is negative

        """
        ...

    def get_parameters(self) -> dict[str, Any]:
        """
        Get current algorithm parameters.

        Returns:
            Dictionary of parameter names and values

        """
        ...

    def set_parameters(self, **kwargs: Any) -> None:
        """
        Update algorithm parameters.

        Args:
            **kwargs: Parameter name-value pairs to update

        Raises:
            ConfigurationError: If a parameter value is invalid

        """
        ...
