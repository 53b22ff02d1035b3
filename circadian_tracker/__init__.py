"""
Circadian Tracker.

Estimates a time-varying circadian period from sleep records and predicts
each day's biological night window, including forecasts past the last record.
"""

from circadian_tracker.core.algorithms import (
    AlgorithmFactory,
    CircadianAlgorithm,
    CSFConfig,
    KalmanConfig,
    RegressionConfig,
    analyze_circadian,
    intervals_from_dataframe,
)
from circadian_tracker.core.constants import AlgorithmType, ConfidenceLevel
from circadian_tracker.core.dataclasses import CircadianAnalysis, CircadianDay, SleepInterval
from circadian_tracker.core.exceptions import (
    CircadianTrackerError,
    ConfigurationError,
    ValidationError,
)
from circadian_tracker.core.periodogram import build_periodogram_anchors, compute_periodogram

__version__ = "0.1.0"

__all__ = [
    "AlgorithmFactory",
    "AlgorithmType",
    "CSFConfig",
    "CircadianAlgorithm",
    "CircadianAnalysis",
    "CircadianDay",
    "CircadianTrackerError",
    "ConfidenceLevel",
    "ConfigurationError",
    "KalmanConfig",
    "RegressionConfig",
    "SleepInterval",
    "ValidationError",
    "analyze_circadian",
    "build_periodogram_anchors",
    "compute_periodogram",
    "intervals_from_dataframe",
]
