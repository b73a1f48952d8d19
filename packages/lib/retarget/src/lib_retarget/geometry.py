"""Small 2D vector helpers used by the region algorithms.

Degenerate inputs (zero-length vectors) produce NaN rather than raising;
the smoothing filter absorbs NaN downstream.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from lib_pose import PoseLandmark

Vec2 = Tuple[float, float]


def vector_2d(p1: PoseLandmark, p2: PoseLandmark) -> Vec2:
    """Difference vector p2 - p1 in the image plane (z dropped)."""
    return (p2.x - p1.x, p2.y - p1.y)


def midpoint(p1: PoseLandmark, p2: PoseLandmark) -> Vec2:
    return ((p1.x + p2.x) / 2.0, (p1.y + p2.y) / 2.0)


def angle_2d(vec: Vec2) -> float:
    """Signed angle of `vec` from the +x axis, in (-pi, pi]."""
    return math.atan2(vec[1], vec[0])


def magnitude(vec: Vec2) -> float:
    return math.hypot(vec[0], vec[1])


def angle_between(a: Vec2, b: Vec2) -> float:
    """Unsigned angle between two vectors in [0, pi]; NaN if either is zero."""
    norm = magnitude(a) * magnitude(b)
    if norm == 0.0:
        return math.nan
    cos = (a[0] * b[0] + a[1] * b[1]) / norm
    return math.acos(float(np.clip(cos, -1.0, 1.0)))


def deviation_from_horizontal(angle: float) -> float:
    """Distance of `angle` from the nearest horizontal direction (0 or +-pi)."""
    return min(abs(angle), abs(angle - math.pi), abs(angle + math.pi))


def lerp_range(t: float, start: float, end: float) -> float:
    return start + (end - start) * t


def safe_div(num: float, den: float) -> float:
    if den == 0.0:
        return math.nan
    return num / den
