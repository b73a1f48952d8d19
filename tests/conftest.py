"""Shared fixtures: a synthetic subject standing square to the camera."""

from pathlib import Path

import pytest
from lib_pose import POSE_LANDMARK_COUNT, PoseLandmark, PoseLandmarks

ROOT = Path(__file__).resolve().parents[1]
ASSETS = ROOT / "packages" / "app" / "assets"

# (x, y) in normalized image coordinates, y down. Indices follow PoseIndex.
STANDING = {
    0: (0.50, 0.15),
    1: (0.51, 0.13),
    2: (0.52, 0.13),
    3: (0.53, 0.13),
    4: (0.49, 0.13),
    5: (0.48, 0.13),
    6: (0.47, 0.13),
    7: (0.55, 0.14),
    8: (0.45, 0.14),
    9: (0.52, 0.17),
    10: (0.48, 0.17),
    11: (0.60, 0.25),
    12: (0.40, 0.25),
    13: (0.62, 0.38),
    14: (0.38, 0.38),
    15: (0.63, 0.50),
    16: (0.37, 0.50),
    17: (0.63, 0.52),
    18: (0.37, 0.52),
    19: (0.64, 0.53),
    20: (0.36, 0.53),
    21: (0.62, 0.52),
    22: (0.38, 0.52),
    23: (0.56, 0.50),
    24: (0.44, 0.50),
    25: (0.56, 0.68),
    26: (0.44, 0.68),
    27: (0.56, 0.85),
    28: (0.44, 0.85),
    29: (0.56, 0.87),
    30: (0.44, 0.87),
    31: (0.57, 0.88),
    32: (0.43, 0.88),
}

FEET = (27, 28, 29, 30, 31, 32)


def make_pose(moves=None, hidden=(), missing=(), timestamp_ms=0):
    """Build a landmark set from STANDING.

    moves: {index: (x, y) or (x, y, z)} replacing the standing position
    hidden: indices whose visibility is dropped to 0.1
    missing: indices left as None
    """
    moves = moves or {}
    points = []
    for index in range(POSE_LANDMARK_COUNT):
        if index in missing:
            points.append(None)
            continue
        coords = moves.get(index, STANDING[index])
        x, y = coords[0], coords[1]
        z = coords[2] if len(coords) > 2 else 0.0
        visibility = 0.1 if index in hidden else 0.99
        points.append(PoseLandmark(x, y, z, visibility))
    return PoseLandmarks(tuple(points), timestamp_ms=timestamp_ms)


def feet_far():
    """Feet pushed down so hip-to-toe exceeds the full-body bound."""
    return {i: (STANDING[i][0], 0.99) for i in FEET}


@pytest.fixture
def standing():
    return make_pose()


@pytest.fixture
def upper_body():
    return make_pose(missing=FEET)


@pytest.fixture
def head_only():
    return make_pose(moves=feet_far(), hidden=(13, 14))


@pytest.fixture
def nobody():
    return make_pose(moves=feet_far(), hidden=(0, 13, 14))


class RecordingSink:
    """JointSink that remembers every update in order."""

    def __init__(self):
        self.calls = []

    def update_joint(self, joint_name, value):
        self.calls.append((joint_name, value))

    def last(self):
        return dict(self.calls)


@pytest.fixture
def sink():
    return RecordingSink()
