"""Per-frame classification of how much of the body is in view.

Heights are measured in normalized image units (fraction of frame height).
The thresholds are upper bounds: a subject standing close to the camera
spans more of the frame, so a large head-to-toe height means the feet are
probably cut off.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lib_pose import PoseIndex, PoseLandmarks

from .config import VisibilityConfig

logger = logging.getLogger(__name__)


class VisibilityState(str, Enum):
    FULL_BODY = "FULL_BODY"
    UPPER_BODY = "UPPER_BODY"
    HEAD_ONLY = "HEAD_ONLY"
    NONE = "NONE"


UPPER_BODY_LANDMARKS = (
    PoseIndex.NOSE,
    PoseIndex.LEFT_SHOULDER,
    PoseIndex.RIGHT_SHOULDER,
    PoseIndex.LEFT_HIP,
    PoseIndex.RIGHT_HIP,
    PoseIndex.LEFT_ELBOW,
    PoseIndex.RIGHT_ELBOW,
    PoseIndex.LEFT_WRIST,
    PoseIndex.RIGHT_WRIST,
)

HEAD_ONLY_LANDMARKS = (
    PoseIndex.NOSE,
    PoseIndex.LEFT_EYE,
    PoseIndex.RIGHT_EYE,
    PoseIndex.LEFT_EAR,
    PoseIndex.RIGHT_EAR,
    PoseIndex.MOUTH_LEFT,
    PoseIndex.MOUTH_RIGHT,
)


@dataclass(frozen=True)
class BodyHeights:
    """Normalized vertical spans; None when the landmarks needed are absent."""

    hip_to_toe: Optional[float] = None
    head_to_toe: Optional[float] = None
    head_to_hip: Optional[float] = None
    head_height: Optional[float] = None


def _max_or_none(*values: Optional[float]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def _span(landmarks: PoseLandmarks, a: int, b: int) -> Optional[float]:
    p, q = landmarks.get(a), landmarks.get(b)
    if p is None or q is None:
        return None
    return abs(q.y - p.y)


def measure_heights(landmarks: PoseLandmarks) -> BodyHeights:
    if landmarks.is_empty:
        return BodyHeights()

    hip_to_toe = _max_or_none(
        _span(landmarks, PoseIndex.LEFT_HIP, PoseIndex.LEFT_FOOT_INDEX),
        _span(landmarks, PoseIndex.RIGHT_HIP, PoseIndex.RIGHT_FOOT_INDEX),
    )
    head_to_toe = _max_or_none(
        _span(landmarks, PoseIndex.NOSE, PoseIndex.LEFT_FOOT_INDEX),
        _span(landmarks, PoseIndex.NOSE, PoseIndex.RIGHT_FOOT_INDEX),
    )

    # shoulder midpoint down to the lower of the two hips
    head_to_hip = None
    if landmarks.all_present(
        PoseIndex.NOSE,
        PoseIndex.LEFT_SHOULDER,
        PoseIndex.RIGHT_SHOULDER,
        PoseIndex.LEFT_HIP,
        PoseIndex.RIGHT_HIP,
    ):
        shoulder_y = (
            landmarks[PoseIndex.LEFT_SHOULDER].y + landmarks[PoseIndex.RIGHT_SHOULDER].y
        ) / 2.0
        hip_y = max(landmarks[PoseIndex.LEFT_HIP].y, landmarks[PoseIndex.RIGHT_HIP].y)
        head_to_hip = abs(hip_y - shoulder_y)

    head_height = None
    if landmarks.all_present(PoseIndex.NOSE, PoseIndex.MOUTH_LEFT, PoseIndex.MOUTH_RIGHT):
        mouth_y = (landmarks[PoseIndex.MOUTH_LEFT].y + landmarks[PoseIndex.MOUTH_RIGHT].y) / 2.0
        if landmarks.all_present(PoseIndex.LEFT_EYE, PoseIndex.RIGHT_EYE):
            eye_y = (landmarks[PoseIndex.LEFT_EYE].y + landmarks[PoseIndex.RIGHT_EYE].y) / 2.0
            head_height = abs(mouth_y - eye_y)
        else:
            head_height = abs(mouth_y - landmarks[PoseIndex.NOSE].y)

    return BodyHeights(hip_to_toe, head_to_toe, head_to_hip, head_height)


def _within(value: Optional[float], limit: float, inclusive: bool = True) -> bool:
    if value is None:
        return False
    return value <= limit if inclusive else value < limit


def classify(
    landmarks: PoseLandmarks,
    cfg: VisibilityConfig,
    heights: Optional[BodyHeights] = None,
) -> VisibilityState:
    """First matching state wins: full body, upper body, head only, none."""
    if landmarks.is_empty:
        return VisibilityState.NONE
    if heights is None:
        heights = measure_heights(landmarks)

    if _within(heights.head_to_toe, cfg.head_to_toe_max) and _within(
        heights.hip_to_toe, cfg.hip_to_toe_max, inclusive=False
    ):
        state = VisibilityState.FULL_BODY
    elif _within(heights.head_to_hip, cfg.head_to_hip_max) and landmarks.all_valid(
        *UPPER_BODY_LANDMARKS, threshold=cfg.landmark_threshold
    ):
        state = VisibilityState.UPPER_BODY
    elif _within(heights.head_height, cfg.head_height_max) and landmarks.all_valid(
        *HEAD_ONLY_LANDMARKS, threshold=cfg.landmark_threshold
    ):
        state = VisibilityState.HEAD_ONLY
    else:
        state = VisibilityState.NONE

    logger.debug("visibility: %s %s", state.value, heights)
    return state
