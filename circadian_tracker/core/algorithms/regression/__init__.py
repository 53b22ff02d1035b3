"""
Weighted regression circadian algorithm (regression-v1).

Module structure:
    config.py     - RegressionConfig
    window.py     - Sliding-window evaluator (robust Gaussian-weighted fit)
    unwrap.py     - Seed-based phase unwrapping with branch resolution
    smoothing.py  - Post-hoc overlay smoothing and forecast re-anchoring
    segment.py    - Per-segment pipeline
    algorithm.py  - RegressionAlgorithm (CircadianAlgorithm implementation)
"""

from .algorithm import RegressionAlgorithm
from .config import RegressionConfig

__all__ = ["RegressionAlgorithm", "RegressionConfig"]
