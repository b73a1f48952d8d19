"""Frame driver: feeds source frames through detection and the retargeting engine.

Single-threaded and cooperative. `step()` is meant to be called once per
render tick; it never starts a detection before the previous one returned,
and skips the tick when the source has not produced a newer frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

import numpy as np
from lib_pose import PoseLandmarks

from .engine import FrameResult, RetargetingEngine

logger = logging.getLogger(__name__)


class SourceStatus(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass(frozen=True)
class Frame:
    image: np.ndarray
    timestamp_ms: int

    @property
    def empty(self) -> bool:
        return self.image is None or self.image.size == 0


class FrameSource(Protocol):
    @property
    def status(self) -> SourceStatus: ...

    def read(self) -> Optional[Frame]: ...


class Detector(Protocol):
    def detect_for_video(self, frame: np.ndarray, timestamp_ms: int) -> PoseLandmarks: ...


class FrameDecision(str, Enum):
    PROCESS = "process"
    SKIP = "skip"
    STOPPED = "stopped"


@dataclass
class StepResult:
    decision: FrameDecision
    result: Optional[FrameResult] = None
    frame: Optional[Frame] = None
    detection_failed: bool = False


class FrameDriver:
    def __init__(
        self,
        engine: RetargetingEngine,
        detector: Detector,
        source: Optional[FrameSource] = None,
    ) -> None:
        self.engine = engine
        self.detector = detector
        self.source = source
        self.last_timestamp_ms: Optional[int] = None
        self._stopped = False

    def check(self, frame: Optional[Frame]) -> FrameDecision:
        """PROCESS only for a non-empty frame newer than the last processed one."""
        if frame is None or frame.empty:
            return FrameDecision.SKIP
        if self.last_timestamp_ms is not None and frame.timestamp_ms <= self.last_timestamp_ms:
            return FrameDecision.SKIP
        return FrameDecision.PROCESS

    def _stop(self) -> StepResult:
        # reset once per stop, not on every tick while stopped
        if self._stopped:
            return StepResult(FrameDecision.STOPPED)
        self._stopped = True
        logger.info("FrameDriver: source stopped, resetting to default pose")
        return StepResult(FrameDecision.STOPPED, self.engine.reset())

    def step(self) -> StepResult:
        if self.source is None or self.source.status is not SourceStatus.PLAYING:
            return self._stop()
        self._stopped = False

        frame = self.source.read()
        if self.check(frame) is FrameDecision.SKIP:
            return StepResult(FrameDecision.SKIP, frame=frame)
        self.last_timestamp_ms = frame.timestamp_ms

        try:
            landmarks = self.detector.detect_for_video(frame.image, frame.timestamp_ms)
        except Exception:
            logger.exception("FrameDriver: pose detection failed at %d ms", frame.timestamp_ms)
            return StepResult(
                FrameDecision.PROCESS, self.engine.reset(), frame, detection_failed=True
            )

        return StepResult(FrameDecision.PROCESS, self.engine.process(landmarks), frame)

    def switch_source(self, source: Optional[FrameSource]) -> FrameResult:
        """Replace the source; the pose goes back to defaults until new frames arrive."""
        logger.info("FrameDriver: switching source")
        self.source = source
        self.last_timestamp_ms = None
        self._stopped = False
        return self.engine.reset()

    def run(
        self,
        max_frames: Optional[int] = None,
        on_step: Optional[Callable[[StepResult], None]] = None,
    ) -> int:
        """Step until the source stops or `max_frames` frames were processed.

        Returns the number of processed frames.
        """
        processed = 0
        while max_frames is None or processed < max_frames:
            step = self.step()
            if on_step is not None:
                on_step(step)
            if step.decision is FrameDecision.STOPPED:
                break
            if step.decision is FrameDecision.PROCESS:
                processed += 1
        return processed
