"""
Circadian algorithm factory for dependency injection.

Provides centralized algorithm instantiation. The registry is a closed,
read-only table keyed by AlgorithmType: the set of variants is fixed at
class definition and cannot be extended at runtime.

Example Usage:
    >>> from circadian_tracker.core.algorithms import AlgorithmFactory
    >>>
    >>> # Create the default algorithm (weighted regression)
    >>> algorithm = AlgorithmFactory.create(AlgorithmFactory.get_default_algorithm_id())
    >>>
    >>> # List available algorithms
    >>> available = AlgorithmFactory.get_available_algorithms()
    >>> # {'regression-v1': 'Weighted Regression', 'csf-v1': ..., 'kalman-v1': ...}

"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from circadian_tracker.core.constants import AlgorithmType

from .csf import CSFAlgorithm
from .kalman import KalmanAlgorithm
from .regression import RegressionAlgorithm

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from circadian_tracker.core.dataclasses import CircadianAnalysis, SleepInterval

    from .protocol import CircadianAlgorithm

class _AlgorithmEntry:
    """Internal registry entry for an algorithm variant."""

    def __init__(
        self,
        algorithm_class: type[CircadianAlgorithm],
        display_name: str,
    ) -> None:
        self.algorithm_class = algorithm_class
        self.display_name = display_name


class AlgorithmFactory:
    """
    Factory for creating circadian algorithm instances.

    Class Attributes:
        _registry: Read-only table mapping each AlgorithmType to its entry

    Methods:
        create: Create an algorithm instance, optionally with a config
        get_available_algorithms: List all registered algorithms
        get_default_algorithm_id: Get the default algorithm identifier

    """

    _registry: ClassVar[Mapping[AlgorithmType, _AlgorithmEntry]] = MappingProxyType(
        {
            AlgorithmType.REGRESSION_V1: _AlgorithmEntry(
                algorithm_class=RegressionAlgorithm,
                display_name=AlgorithmType.REGRESSION_V1.get_display_name(),
            ),
            AlgorithmType.CSF_V1: _AlgorithmEntry(
                algorithm_class=CSFAlgorithm,
                display_name=AlgorithmType.CSF_V1.get_display_name(),
            ),
            AlgorithmType.KALMAN_V1: _AlgorithmEntry(
                algorithm_class=KalmanAlgorithm,
                display_name=AlgorithmType.KALMAN_V1.get_display_name(),
            ),
        }
    )

    @classmethod
    def create(cls, algorithm_id: str, config: Any = None) -> CircadianAlgorithm:
        """
        Create a circadian algorithm instance.

        Args:
            algorithm_id: Algorithm identifier (e.g., "regression-v1")
            config: Optional config of the algorithm's own config type

        Returns:
            Configured algorithm instance

        Raises:
            ValueError: If algorithm_id is not registered

        Example:
            >>> algorithm = AlgorithmFactory.create('kalman-v1')
            >>> algorithm.name
            'Kalman Filter'

        """
        if algorithm_id not in cls._registry:
            available = ", ".join(cls._registry.keys())
            msg = f"Unknown algorithm '{algorithm_id}'. Available: {available}"
            raise ValueError(msg)

        entry = cls._registry[algorithm_id]
        return entry.algorithm_class(config)  # type: ignore[call-arg]

    @classmethod
    def get_available_algorithms(cls) -> dict[str, str]:
        """
        Get all available algorithms.

        Returns:
            Dictionary mapping algorithm_id to display name

        """
        return {str(algorithm_type): entry.display_name for algorithm_type, entry in cls._registry.items()}

    @classmethod
    def get_default_algorithm_id(cls) -> str:
        """
        Get the default algorithm identifier.

        Returns:
            Default algorithm ID ('regression-v1')

        """
        return AlgorithmType.get_default()

    @classmethod
    def is_registered(cls, algorithm_id: str) -> bool:
        """Check if an algorithm is registered."""
        return algorithm_id in cls._registry

    @classmethod
    def get_algorithm_description(cls, algorithm_id: str) -> str | None:
        """
        Get the description of a registered algorithm.

        Returns:
            Description, or None if the algorithm is not registered

        """
        if algorithm_id not in cls._registry:
            return None

        # Description is an instance property; use a default-configured instance
        return cls._registry[algorithm_id].algorithm_class().description  # type: ignore[call-arg]


def analyze_circadian(
    records: Sequence[SleepInterval],
    forecast_days: int = 0,
    algorithm_id: str | None = None,
    config: Any = None,
) -> CircadianAnalysis:
    """
    Analyze sleep records with a registered algorithm.

    Args:
        records: Validated sleep intervals in any order
        forecast_days: Days to predict past the last data day
        algorithm_id: Algorithm to use (defaults to regression-v1)
        config: Optional config of the selected algorithm's config type

    Returns:
        CircadianAnalysis produced by the selected algorithm

    Raises:
        ValueError: If algorithm_id is not registered
        ValidationError: If forecast_days is negative

    """
    algorithm = AlgorithmFactory.create(algorithm_id or AlgorithmFactory.get_default_algorithm_id(), config)
    return algorithm.analyze(records, forecast_days)
