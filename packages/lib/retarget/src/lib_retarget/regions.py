"""Per-region landmark to joint-value algorithms.

Each function reads one body region from a landmark set and returns the raw
(unsmoothed, unclamped) joint values for it, or None when a required
landmark fails the validity check. Image coordinates are normalized with y
pointing down, so "up" on the body means a negative y difference.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional

from lib_pose import PoseIndex, PoseLandmarks

from .config import (
    ArmsConfig,
    HeadConfig,
    LegSideConfig,
    RetargetConfig,
    TorsoConfig,
)
from .geometry import (
    angle_2d,
    angle_between,
    deviation_from_horizontal,
    lerp_range,
    magnitude,
    midpoint,
    safe_div,
    vector_2d,
)
from .smoothing import SmoothingFilter

logger = logging.getLogger(__name__)

JointValues = Dict[str, float]

_SIDE_PREFIX = {"left": "l", "right": "r"}

_ARM_LANDMARKS = {
    "left": (PoseIndex.LEFT_SHOULDER, PoseIndex.LEFT_ELBOW, PoseIndex.LEFT_WRIST),
    "right": (PoseIndex.RIGHT_SHOULDER, PoseIndex.RIGHT_ELBOW, PoseIndex.RIGHT_WRIST),
}

_LEG_LANDMARKS = {
    "left": (PoseIndex.LEFT_HIP, PoseIndex.LEFT_KNEE, PoseIndex.LEFT_ANKLE),
    "right": (PoseIndex.RIGHT_HIP, PoseIndex.RIGHT_KNEE, PoseIndex.RIGHT_ANKLE),
}

HEAD_LANDMARKS = (
    PoseIndex.NOSE,
    PoseIndex.LEFT_EYE_OUTER,
    PoseIndex.RIGHT_EYE_OUTER,
    PoseIndex.LEFT_EAR,
    PoseIndex.RIGHT_EAR,
    PoseIndex.LEFT_SHOULDER,
    PoseIndex.RIGHT_SHOULDER,
)

TORSO_LANDMARKS = (
    PoseIndex.LEFT_SHOULDER,
    PoseIndex.RIGHT_SHOULDER,
    PoseIndex.LEFT_HIP,
    PoseIndex.RIGHT_HIP,
)


@dataclass
class RetargetContext:
    """Mutable state shared by the region algorithms of one pipeline.

    Holds the smoothing memory and one arm-length history per side. Build a
    fresh context per pipeline; nothing here is module-global.
    """

    config: RetargetConfig
    smoother: SmoothingFilter = field(init=False)
    arm_history: Dict[str, Deque[float]] = field(init=False)

    def __post_init__(self) -> None:
        self.smoother = SmoothingFilter(
            alpha=self.config.smoothing.alpha, default=self.config.default
        )
        size = self.config.arms.history_size
        self.arm_history = {
            "left": deque(maxlen=size),
            "right": deque(maxlen=size),
        }


def _map_flexion(angle: float, straight: float, bent: float) -> float:
    """Linear map of an interior joint angle: pi -> straight, 0 -> bent."""
    return lerp_range(angle / math.pi, bent, straight)


def retarget_torso(
    landmarks: PoseLandmarks, cfg: TorsoConfig, threshold: float = 0.5
) -> Optional[JointValues]:
    """Side bend (abs_x), forward lean (abs_y) and twist (abs_z)."""
    if not landmarks.all_valid(*TORSO_LANDMARKS, threshold=threshold):
        return None

    ls = landmarks[PoseIndex.LEFT_SHOULDER]
    rs = landmarks[PoseIndex.RIGHT_SHOULDER]
    lh = landmarks[PoseIndex.LEFT_HIP]
    rh = landmarks[PoseIndex.RIGHT_HIP]

    # side bend: shoulder height difference relative to shoulder width
    vertical = ls.y - rs.y
    horizontal = abs(rs.x - ls.x)
    abs_x = 0.0
    if abs(vertical) > cfg.side_bend_dead_zone and horizontal > cfg.min_shoulder_distance:
        abs_x = -(vertical / horizontal) * cfg.side_bend_sensitivity

    # lean: angle of hip-mid -> shoulder-mid, 0 when upright
    hip_mid = midpoint(lh, rh)
    shoulder_mid = midpoint(ls, rs)
    torso_vec = (shoulder_mid[0] - hip_mid[0], shoulder_mid[1] - hip_mid[1])
    abs_y = map_lean(angle_2d(torso_vec) + math.pi / 2, cfg)

    # twist: depth difference between the shoulders
    z_diff = ls.depth - rs.depth - cfg.twist_neutral
    abs_z = 0.0
    if abs(z_diff) > cfg.twist_dead_zone:
        abs_z = z_diff * cfg.twist_sensitivity

    return {"abs_x": abs_x, "abs_y": abs_y, "abs_z": abs_z}


def map_lean(mapped_angle: float, cfg: TorsoConfig) -> float:
    """Piecewise-linear map from the human lean window to the robot abs_y range.

    Angles behind the window saturate at lean_min, angles past it at
    lean_max; the neutral angle maps to lean_straight.
    """
    neutral = cfg.lean_neutral_angle
    backward = neutral - cfg.lean_range / 2.0
    forward = neutral + cfg.lean_range / 2.0

    if mapped_angle < backward:
        return cfg.lean_min
    if mapped_angle > forward:
        return cfg.lean_max
    if mapped_angle <= neutral:
        t = (mapped_angle - backward) / (neutral - backward)
        return lerp_range(t, cfg.lean_min, cfg.lean_straight)
    t = (mapped_angle - neutral) / (forward - neutral)
    return lerp_range(t, cfg.lean_straight, cfg.lean_max)


def retarget_head(
    landmarks: PoseLandmarks, cfg: HeadConfig, threshold: float = 0.5
) -> Optional[JointValues]:
    """Head yaw (head_z) and pitch (head_y) from the nose offset to the eyes."""
    if not landmarks.all_valid(*HEAD_LANDMARKS, threshold=threshold):
        return None

    nose = landmarks[PoseIndex.NOSE]
    eye_mid = midpoint(
        landmarks[PoseIndex.LEFT_EYE_OUTER], landmarks[PoseIndex.RIGHT_EYE_OUTER]
    )

    # shoulder width is the depth proxy: narrower shoulders -> farther away
    shoulder_distance = abs(
        landmarks[PoseIndex.RIGHT_SHOULDER].x - landmarks[PoseIndex.LEFT_SHOULDER].x
    )
    if shoulder_distance > 0.0:
        factor = cfg.reference_shoulder_distance / shoulder_distance
    else:
        factor = cfg.distance_factor_max
    factor = min(cfg.distance_factor_max, max(cfg.distance_factor_min, factor))

    head_z = (nose.x - eye_mid[0]) * cfg.yaw_sensitivity * factor
    head_y = -(nose.y - eye_mid[1]) * cfg.pitch_sensitivity * factor
    return {"head_z": head_z, "head_y": head_y}


def retarget_leg(
    landmarks: PoseLandmarks,
    side: str,
    cfg: LegSideConfig,
    threshold: float = 0.5,
) -> Optional[JointValues]:
    """Hip abduction, knee flexion and ankle pitch for one leg."""
    hip_idx, knee_idx, ankle_idx = _LEG_LANDMARKS[side]
    if not landmarks.all_valid(hip_idx, knee_idx, ankle_idx, threshold=threshold):
        return None

    hip = landmarks[hip_idx]
    knee = landmarks[knee_idx]
    ankle = landmarks[ankle_idx]
    prefix = _SIDE_PREFIX[side]

    hip_y = cfg.spread_sign * (knee.x - hip.x) * cfg.spread_sensitivity
    knee_angle = angle_between(vector_2d(knee, hip), vector_2d(knee, ankle))
    knee_y = _map_flexion(knee_angle, cfg.knee_straight, cfg.knee_bent)
    ankle_y = -(ankle.y - knee.y) * cfg.ankle_sensitivity

    return {
        f"{prefix}_hip_y": hip_y,
        f"{prefix}_knee_y": knee_y,
        f"{prefix}_ankle_y": ankle_y,
    }


def retarget_arm(
    landmarks: PoseLandmarks,
    side: str,
    cfg: ArmsConfig,
    history: Deque[float],
    threshold: float = 0.5,
) -> Optional[JointValues]:
    """Shoulder, upper-arm twist and elbow for one arm.

    The total arm length is pushed to `history`; an arm that looks much
    shorter than its recent maximum while the upper arm is roughly
    horizontal is taken to point at the camera ("hands forward").
    """
    shoulder_idx, elbow_idx, wrist_idx = _ARM_LANDMARKS[side]
    if not landmarks.all_valid(shoulder_idx, elbow_idx, wrist_idx, threshold=threshold):
        return None

    shoulder = landmarks[shoulder_idx]
    elbow = landmarks[elbow_idx]
    wrist = landmarks[wrist_idx]
    side_cfg = cfg.left if side == "left" else cfg.right
    prefix = _SIDE_PREFIX[side]

    upper = vector_2d(shoulder, elbow)
    forearm = vector_2d(elbow, wrist)
    upper_len = magnitude(upper)
    total = upper_len + magnitude(forearm)

    history.append(total)
    ratio = safe_div(total, max(history))

    deviation = deviation_from_horizontal(angle_2d(upper))
    horizontal = deviation < cfg.horizontal_tolerance
    populated = len(history) >= cfg.history_size
    hands_forward = horizontal and populated and ratio < cfg.foreshortening_threshold

    if hands_forward:
        shoulder_x = cfg.forward_value
        shoulder_y = 0.0
    else:
        if deviation > cfg.interpolation_span:
            shoulder_x = cfg.forward_value
        else:
            shoulder_x = (deviation / cfg.interpolation_span) * cfg.forward_value
        shoulder_y = side_cfg.shoulder_y_sign * safe_div(upper[1], upper_len) * cfg.shoulder_y_scale

    elbow_angle = angle_between(vector_2d(elbow, shoulder), vector_2d(elbow, wrist))
    elbow_y = _map_flexion(elbow_angle, side_cfg.elbow_straight, side_cfg.elbow_bent)

    logger.debug(
        "arm %s: ratio=%.3f deviation=%.3f forward=%s", side, ratio, deviation, hands_forward
    )
    return {
        f"{prefix}_shoulder_x": shoulder_x,
        f"{prefix}_shoulder_y": shoulder_y,
        f"{prefix}_arm_z": 0.0,
        f"{prefix}_elbow_y": elbow_y,
    }
