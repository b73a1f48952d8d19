"""Retargeting pipeline: visibility -> regions -> smoothing -> clamping -> sink."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Tuple

from lib_pose import OverlayPrimitive, PoseLandmarks, iter_overlay

from .config import (
    ARM_JOINTS,
    HEAD_JOINTS,
    LEG_JOINTS,
    TORSO_JOINTS,
    RetargetConfig,
)
from .regions import (
    JointValues,
    RetargetContext,
    retarget_arm,
    retarget_head,
    retarget_leg,
    retarget_torso,
)
from .visibility import VisibilityState, classify

logger = logging.getLogger(__name__)


class JointSink(Protocol):
    def update_joint(self, joint_name: str, value: float) -> None: ...


@dataclass
class FrameResult:
    """What one frame produced.

    `commands` holds the value sent for every controlled joint, in emission
    order. `overlay` is a lazy iterator; an empty one clears the overlay.
    """

    state: VisibilityState
    commands: Dict[str, float] = field(default_factory=dict)
    overlay: Iterator[OverlayPrimitive] = field(default_factory=lambda: iter(()))
    invalid_regions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class _Region:
    name: str
    joints: Tuple[str, ...]
    compute: Callable[[PoseLandmarks], Optional[JointValues]]


class RetargetingEngine:
    """Turns landmark sets into clamped, smoothed joint commands.

    If a kinematic tree is given it becomes the default sink, and its joint
    limits take precedence over the configured ones.
    """

    def __init__(
        self,
        config: Optional[RetargetConfig] = None,
        sink: Optional[JointSink] = None,
        tree=None,
    ) -> None:
        self.config = config or RetargetConfig()
        self.tree = tree
        self.sink = sink if sink is not None else tree
        self.context = RetargetContext(self.config)
        self.controlled_joints: List[str] = self.config.controlled_joints()
        self._limits = self._build_limits()
        self._regions = self._build_regions()

        for name in self.controlled_joints:
            lower, upper = self._limits[name]
            if not lower <= self.config.default(name) <= upper:
                logger.warning(
                    "default %.3f for %s is outside [%.3f, %.3f]",
                    self.config.default(name),
                    name,
                    lower,
                    upper,
                )

    def _build_limits(self) -> Dict[str, Tuple[float, float]]:
        limits: Dict[str, Tuple[float, float]] = {}
        tree_joints = getattr(self.tree, "joints", {}) or {}
        for name in self.controlled_joints:
            joint = tree_joints.get(name)
            if joint is not None:
                limits[name] = (joint.lower, joint.upper)
                continue
            limit = self.config.limit(name)
            if limit is None:
                logger.warning("no limit configured for %s, leaving it unclamped", name)
                limits[name] = (float("-inf"), float("inf"))
            else:
                limits[name] = (limit.lower, limit.upper)
        return limits

    def _build_regions(self) -> List[_Region]:
        cfg = self.config
        threshold = cfg.visibility.landmark_threshold
        history = self.context.arm_history
        regions = [
            _Region(
                "torso", TORSO_JOINTS, lambda lm: retarget_torso(lm, cfg.torso, threshold)
            ),
            _Region("head", HEAD_JOINTS, lambda lm: retarget_head(lm, cfg.head, threshold)),
        ]
        for side in ("left", "right"):
            regions.append(
                _Region(
                    f"{side}_arm",
                    ARM_JOINTS[side],
                    lambda lm, s=side: retarget_arm(lm, s, cfg.arms, history[s], threshold),
                )
            )
        for side in ("right", "left"):
            leg_cfg = getattr(cfg.legs, side)
            if leg_cfg.enabled:
                regions.append(
                    _Region(
                        f"{side}_leg",
                        LEG_JOINTS[side],
                        lambda lm, s=side, c=leg_cfg: retarget_leg(lm, s, c, threshold),
                    )
                )
        return regions

    # ------------------------------------------------------------------
    def limit(self, joint_name: str) -> Tuple[float, float]:
        return self._limits[joint_name]

    def clamp(self, joint_name: str, value: float) -> float:
        lower, upper = self._limits[joint_name]
        return min(upper, max(lower, value))

    @property
    def smoother(self):
        return self.context.smoother

    def defaults(self) -> Dict[str, float]:
        return {name: self.config.default(name) for name in self.controlled_joints}

    def _emit(self, commands: Dict[str, float]) -> None:
        if self.sink is None:
            return
        for name, value in commands.items():
            self.sink.update_joint(name, value)

    # ------------------------------------------------------------------
    def reset(self) -> FrameResult:
        """Send the default pose and reseed smoothing memory with it."""
        commands = {name: self.clamp(name, value) for name, value in self.defaults().items()}
        self.context.smoother.reseed(commands)
        self._emit(commands)
        return FrameResult(state=VisibilityState.NONE, commands=commands)

    def process(self, landmarks: PoseLandmarks) -> FrameResult:
        cfg = self.config
        state = classify(landmarks, cfg.visibility)

        if state is VisibilityState.NONE:
            result = self.reset()
            result.overlay = iter_overlay(
                landmarks, threshold=cfg.visibility.landmark_threshold
            )
            return result

        if state is VisibilityState.HEAD_ONLY:
            active = {"head"}
        else:
            active = {region.name for region in self._regions}

        commands: Dict[str, float] = {}
        invalid: List[str] = []
        for region in self._regions:
            values = region.compute(landmarks) if region.name in active else None
            if values is None:
                if region.name in active:
                    invalid.append(region.name)
                    logger.debug("region %s invalid, using defaults", region.name)
                for name in region.joints:
                    commands[name] = self.clamp(name, cfg.default(name))
                continue
            for name in region.joints:
                smoothed = self.context.smoother.smooth(name, values[name])
                commands[name] = self.clamp(name, smoothed)

        ordered = {name: commands[name] for name in self.controlled_joints}
        self._emit(ordered)
        return FrameResult(
            state=state,
            commands=ordered,
            overlay=iter_overlay(landmarks, threshold=cfg.visibility.landmark_threshold),
            invalid_regions=tuple(invalid),
        )
