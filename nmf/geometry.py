"""
Geometry helpers shared by the feature extractor.

All distances and angles are taken on the 2-D projection (x, y) of a landmark;
depth is ignored. Ratios add a small epsilon to the denominator so that two
coincident landmarks never produce a division fault.
"""

import math
from typing import Sequence

import numpy as np

# Additive floor for every denominator distance
EPSILON = 1e-6


def _xy(point: Sequence[float]) -> np.ndarray:
    return np.asarray(point, dtype=np.float64)[:2]


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two landmarks (x, y only)."""
    return float(np.linalg.norm(_xy(a) - _xy(b)))


def angle_degrees(a: Sequence[float], b: Sequence[float]) -> float:
    """Angle of the line a -> b relative to horizontal, in degrees."""
    pa, pb = _xy(a), _xy(b)
    return math.degrees(math.atan2(pb[1] - pa[1], pb[0] - pa[0]))


def midpoint(a: Sequence[float], b: Sequence[float]) -> np.ndarray:
    return (_xy(a) + _xy(b)) / 2.0


def ratio(numerator: float, denominator: float, eps: float = EPSILON) -> float:
    """numerator / (denominator + eps)."""
    return float(numerator) / (float(denominator) + eps)
