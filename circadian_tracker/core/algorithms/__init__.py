"""
Circadian period estimation algorithms.

All algorithms implement the CircadianAlgorithm protocol and are created
through AlgorithmFactory.

Algorithms:
    - RegressionAlgorithm (regression-v1): sliding-window weighted regression (default)
    - CSFAlgorithm (csf-v1): von Mises circular state-space filter
    - KalmanAlgorithm (kalman-v1): linear Kalman filter on phase and drift

Shared stages:
    - anchors: anchor classification
    - segments: gap-based segmentation
    - merge: segment merging and global period
    - fitting: weighted and robust regression
    - circular: modulo-24 helpers

"""

from __future__ import annotations

from .anchors import classify_anchor
from .config import AnchorTierConfig, TierThreshold
from .csf import CSFAlgorithm, CSFConfig, TauPriorNoise
from .factory import AlgorithmFactory, analyze_circadian
from .kalman import KalmanAlgorithm, KalmanConfig
from .protocol import CircadianAlgorithm
from .regression import RegressionAlgorithm, RegressionConfig
from .segments import split_into_segments
from .utils import intervals_from_dataframe

__all__ = [
    "AlgorithmFactory",
    "AnchorTierConfig",
    "CSFAlgorithm",
    "CSFConfig",
    "CircadianAlgorithm",
    "KalmanAlgorithm",
    "KalmanConfig",
    "RegressionAlgorithm",
    "RegressionConfig",
    "TauPriorNoise",
    "TierThreshold",
    "analyze_circadian",
    "classify_anchor",
    "intervals_from_dataframe",
    "split_into_segments",
]
