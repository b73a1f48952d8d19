"""lib_retarget: landmark to robot joint retargeting."""

from .config import (
    DEFAULT_JOINT_LIMITS,
    JointLimit,
    RetargetConfig,
    load_config,
)
from .driver import (
    Detector,
    Frame,
    FrameDecision,
    FrameDriver,
    FrameSource,
    SourceStatus,
    StepResult,
)
from .engine import FrameResult, JointSink, RetargetingEngine
from .logging_utils import setup_logger
from .regions import (
    RetargetContext,
    retarget_arm,
    retarget_head,
    retarget_leg,
    retarget_torso,
)
from .smoothing import SmoothingFilter
from .visibility import BodyHeights, VisibilityState, classify, measure_heights

__all__ = [
    "DEFAULT_JOINT_LIMITS",
    "JointLimit",
    "RetargetConfig",
    "load_config",
    "Detector",
    "Frame",
    "FrameDecision",
    "FrameDriver",
    "FrameSource",
    "SourceStatus",
    "StepResult",
    "FrameResult",
    "JointSink",
    "RetargetingEngine",
    "setup_logger",
    "RetargetContext",
    "retarget_arm",
    "retarget_head",
    "retarget_leg",
    "retarget_torso",
    "SmoothingFilter",
    "BodyHeights",
    "VisibilityState",
    "classify",
    "measure_heights",
]
