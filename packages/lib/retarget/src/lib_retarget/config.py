"""
Retargeting configuration: models, defaults and YAML loader.

The defaults reproduce the calibration used for a Poppy-style humanoid
filmed by a single webcam. Every heuristic constant lives here so it can be
retuned for another camera or body scale without touching the algorithms.
"""

from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "RETARGET_LOG_LEVEL"

TORSO_JOINTS = ("abs_x", "abs_y", "abs_z")
HEAD_JOINTS = ("head_z", "head_y")
ARM_JOINTS = {
    "left": ("l_shoulder_x", "l_shoulder_y", "l_arm_z", "l_elbow_y"),
    "right": ("r_shoulder_x", "r_shoulder_y", "r_arm_z", "r_elbow_y"),
}
LEG_JOINTS = {
    "left": ("l_hip_y", "l_knee_y", "l_ankle_y"),
    "right": ("r_hip_y", "r_knee_y", "r_ankle_y"),
}

# (lower, upper) in radians
DEFAULT_JOINT_LIMITS: Dict[str, tuple] = {
    "abs_x": (-0.79, 0.79),
    "abs_y": (-0.87, 0.21),
    "abs_z": (-1.57, 1.57),
    "head_z": (-math.pi / 2, math.pi / 2),
    "head_y": (-math.pi / 4, math.pi / 30),
    "l_shoulder_x": (-1.832, 1.919),
    "l_shoulder_y": (-2.094, 2.705),
    "l_arm_z": (-1.57, 1.57),
    "l_elbow_y": (-2.58, 0.02),
    "r_shoulder_x": (-1.919, 1.832),
    "r_shoulder_y": (-2.705, 2.094),
    "r_arm_z": (-1.57, 1.57),
    "r_elbow_y": (-0.02, 2.58),
    "l_hip_y": (-1.83, 1.48),
    "l_knee_y": (-2.34, 0.06),
    "l_ankle_y": (-0.79, 0.79),
    "r_hip_y": (-1.48, 1.83),
    "r_knee_y": (-2.34, 0.06),
    "r_ankle_y": (-0.79, 0.79),
}


# =============================================================================
# Configuration Models
# =============================================================================


class JointLimit(BaseModel):
    lower: float
    upper: float

    @model_validator(mode="after")
    def _check_order(self) -> "JointLimit":
        if self.lower > self.upper:
            raise ValueError(f"lower ({self.lower}) must be <= upper ({self.upper})")
        return self

    def clamp(self, value: float) -> float:
        return min(self.upper, max(self.lower, value))


class SmoothingConfig(BaseModel):
    alpha: float = Field(0.2, gt=0.0, le=1.0)


class VisibilityConfig(BaseModel):
    head_to_toe_max: float = Field(0.844, gt=0.0)
    hip_to_toe_max: float = Field(0.429, gt=0.0)
    head_to_hip_max: float = Field(0.502, gt=0.0)
    head_height_max: float = Field(0.191, gt=0.0)
    # landmark counts as valid when visibility is missing or above this
    landmark_threshold: float = Field(0.5, ge=0.0, le=1.0)


class TorsoConfig(BaseModel):
    side_bend_dead_zone: float = 0.01
    min_shoulder_distance: float = 0.01
    side_bend_sensitivity: float = 1.0
    lean_neutral_angle: float = 0.02
    lean_range: float = Field(0.6, gt=0.0)
    lean_min: float = -0.87
    lean_straight: float = 0.0
    lean_max: float = 0.21
    twist_neutral: float = 0.0
    twist_dead_zone: float = 0.02
    twist_sensitivity: float = 1.5


class HeadConfig(BaseModel):
    reference_shoulder_distance: float = Field(0.25, gt=0.0)
    distance_factor_min: float = Field(0.5, gt=0.0)
    distance_factor_max: float = Field(2.5, gt=0.0)
    yaw_sensitivity: float = 45.0
    pitch_sensitivity: float = 15.0


# Per-side calibration. The two sides mirror each other, so a partial
# override of one side is merged over that side's own values.
ARM_SIDE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "left": {"shoulder_y_sign": 1.0, "elbow_straight": 0.02, "elbow_bent": -2.58},
    "right": {"shoulder_y_sign": -1.0, "elbow_straight": -0.02, "elbow_bent": 2.58},
}
LEG_SIDE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "left": {"enabled": False, "spread_sensitivity": 5.0, "spread_sign": 1.0},
    "right": {"enabled": True, "spread_sensitivity": 8.0, "spread_sign": -1.0},
}


def _merge_sides(data: Any, defaults: Dict[str, Dict[str, Any]]) -> Any:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return data
    merged = dict(data)
    for side, base in defaults.items():
        override = merged.get(side)
        if isinstance(override, BaseModel):
            continue
        merged[side] = {**base, **(override or {})}
    return merged


class ArmSideConfig(BaseModel):
    shoulder_y_sign: float
    elbow_straight: float
    elbow_bent: float


class ArmsConfig(BaseModel):
    history_size: int = Field(10, ge=1)
    foreshortening_threshold: float = Field(0.75, gt=0.0, le=1.0)
    horizontal_tolerance: float = Field(math.pi / 3, gt=0.0)
    interpolation_span: float = Field(math.pi / 4, gt=0.0)
    forward_value: float = 1.5
    shoulder_y_scale: float = 1.5
    left: ArmSideConfig
    right: ArmSideConfig

    @model_validator(mode="before")
    @classmethod
    def _side_defaults(cls, data: Any) -> Any:
        return _merge_sides(data, ARM_SIDE_DEFAULTS)


class LegSideConfig(BaseModel):
    enabled: bool = True
    spread_sensitivity: float = 8.0
    spread_sign: float = -1.0
    knee_straight: float = 0.06
    knee_bent: float = -2.34
    ankle_sensitivity: float = 5.0


class LegsConfig(BaseModel):
    right: LegSideConfig
    left: LegSideConfig

    @model_validator(mode="before")
    @classmethod
    def _side_defaults(cls, data: Any) -> Any:
        return _merge_sides(data, LEG_SIDE_DEFAULTS)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def _upper(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return v


class RetargetConfig(BaseModel):
    defaults: Dict[str, float] = Field(default_factory=dict, validate_default=True)
    limits: Dict[str, JointLimit] = Field(default_factory=dict, validate_default=True)
    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    visibility: VisibilityConfig = Field(default_factory=VisibilityConfig)
    torso: TorsoConfig = Field(default_factory=TorsoConfig)
    head: HeadConfig = Field(default_factory=HeadConfig)
    arms: ArmsConfig = Field(default_factory=ArmsConfig)
    legs: LegsConfig = Field(default_factory=LegsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("defaults", mode="before")
    @classmethod
    def _merge_defaults(cls, v: Any) -> Dict[str, float]:
        merged = {name: 0.0 for name in DEFAULT_JOINT_LIMITS}
        merged.update(v or {})
        return merged

    @field_validator("limits", mode="before")
    @classmethod
    def _merge_limits(cls, v: Any) -> Dict[str, Any]:
        merged: Dict[str, Any] = {
            name: {"lower": lo, "upper": hi}
            for name, (lo, hi) in DEFAULT_JOINT_LIMITS.items()
        }
        for name, limit in (v or {}).items():
            base = merged.get(name)
            if isinstance(limit, dict) and base is not None:
                # a single bound may be overridden; the other keeps its default
                merged[name] = {**base, **limit}
            else:
                merged[name] = limit
        return merged

    def default(self, joint: str) -> float:
        return self.defaults.get(joint, 0.0)

    def limit(self, joint: str) -> Optional[JointLimit]:
        return self.limits.get(joint)

    def controlled_joints(self) -> List[str]:
        """Joints the engine writes every frame, in emission order."""
        joints = list(TORSO_JOINTS) + list(HEAD_JOINTS)
        joints += list(ARM_JOINTS["left"]) + list(ARM_JOINTS["right"])
        for side in ("right", "left"):
            if getattr(self.legs, side).enabled:
                joints += list(LEG_JOINTS[side])
        return joints


# =============================================================================
# Loader
# =============================================================================


def load_config(config_path: Optional[Union[str, Path]] = None) -> RetargetConfig:
    """
    Load configuration from YAML, apply env overrides, and validate.

    A missing file falls back to defaults; an invalid file raises
    pydantic.ValidationError (or yaml.YAMLError).
    """
    config_data: Dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
            if not isinstance(config_data, dict):
                raise ValueError(f"config root must be a mapping: {path}")
            logger.info("Loaded config from %s", path)
        else:
            logger.warning("Config file %s not found. Using defaults.", path)

    env_level = os.getenv(LOG_LEVEL_ENV)
    if env_level:
        config_data.setdefault("logging", {})
        config_data["logging"]["level"] = env_level.upper()

    return RetargetConfig.model_validate(config_data)
