"""
Circular state-space filter (csf-v1).

Modules:
    config: CSFConfig and TauPriorNoise
    filter: forward von Mises filter and backward smoother
    smoothing: output phase smoothing and edge correction
    segment: per-segment pipeline
    algorithm: CSFAlgorithm
"""

from .algorithm import CSFAlgorithm
from .config import CSFConfig, TauPriorNoise

__all__ = ["CSFAlgorithm", "CSFConfig", "TauPriorNoise"]
