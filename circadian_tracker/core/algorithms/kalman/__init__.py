"""
Linear Kalman filter (kalman-v1).

Modules:
    config: KalmanConfig
    observations: record -> per-day observation with adaptive noise
    filter: initialization, predict, gate and update
    smoother: Rauch-Tung-Striebel backward smoother
    segment: per-segment pipeline
    algorithm: KalmanAlgorithm
"""

from .algorithm import KalmanAlgorithm
from .config import KalmanConfig

__all__ = ["KalmanAlgorithm", "KalmanConfig"]
