from .data import (
    DEFAULT_VISIBILITY_THRESHOLD,
    POSE_CONNECTIONS,
    POSE_LANDMARK_COUNT,
    POSE_LANDMARKS,
    PoseIndex,
    PoseLandmark,
    PoseLandmarks,
)
from .overlay import OverlayLine, OverlayPoint, OverlayPrimitive, iter_overlay

# detect (mediapipe) と util_2d (cv2) は必要な側で直接 import する

__all__ = [
    "DEFAULT_VISIBILITY_THRESHOLD",
    "POSE_CONNECTIONS",
    "POSE_LANDMARK_COUNT",
    "POSE_LANDMARKS",
    "PoseIndex",
    "PoseLandmark",
    "PoseLandmarks",
    "OverlayLine",
    "OverlayPoint",
    "OverlayPrimitive",
    "iter_overlay",
]
