"""FrameDriver scheduling against fake sources and detectors."""

import numpy as np
import pytest
from conftest import make_pose
from lib_pose import PoseLandmarks
from lib_retarget import (
    Frame,
    FrameDecision,
    FrameDriver,
    RetargetConfig,
    RetargetingEngine,
    SourceStatus,
    VisibilityState,
)


def image():
    return np.zeros((4, 4, 3), dtype=np.uint8)


class ListSource:
    """Hands out queued frames; ends when the queue runs dry."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.status = SourceStatus.PLAYING

    def read(self):
        if not self.frames:
            self.status = SourceStatus.ENDED
            return None
        return self.frames.pop(0)


class StaticDetector:
    def __init__(self, landmarks=None, error=None):
        self.landmarks = landmarks if landmarks is not None else make_pose()
        self.error = error
        self.calls = []

    def detect_for_video(self, frame, timestamp_ms):
        self.calls.append(timestamp_ms)
        if self.error is not None:
            raise self.error
        return self.landmarks


@pytest.fixture
def engine(sink):
    return RetargetingEngine(RetargetConfig(defaults={"head_z": 0.2}), sink=sink)


class TestCheck:
    def test_rejects_missing_and_empty_frames(self, engine):
        driver = FrameDriver(engine, StaticDetector())
        assert driver.check(None) is FrameDecision.SKIP
        assert driver.check(Frame(np.zeros((0, 0, 3)), 10)) is FrameDecision.SKIP

    def test_requires_newer_timestamp(self, engine):
        driver = FrameDriver(engine, StaticDetector())
        assert driver.check(Frame(image(), 0)) is FrameDecision.PROCESS
        driver.last_timestamp_ms = 40
        assert driver.check(Frame(image(), 40)) is FrameDecision.SKIP
        assert driver.check(Frame(image(), 39)) is FrameDecision.SKIP
        assert driver.check(Frame(image(), 41)) is FrameDecision.PROCESS


class TestStep:
    def test_processes_new_frame(self, engine):
        detector = StaticDetector()
        driver = FrameDriver(engine, detector, ListSource([Frame(image(), 33)]))
        step = driver.step()
        assert step.decision is FrameDecision.PROCESS
        assert step.result.state is VisibilityState.FULL_BODY
        assert detector.calls == [33]
        assert driver.last_timestamp_ms == 33

    def test_repeated_frame_is_detected_once(self, engine):
        frame = Frame(image(), 33)
        detector = StaticDetector()
        driver = FrameDriver(engine, detector, ListSource([frame, frame]))
        driver.step()
        step = driver.step()
        assert step.decision is FrameDecision.SKIP
        assert step.result is None
        assert detector.calls == [33]

    def test_detector_failure_resets_pose(self, engine, sink):
        detector = StaticDetector(error=RuntimeError("model crashed"))
        driver = FrameDriver(engine, detector, ListSource([Frame(image(), 1)]))
        step = driver.step()
        assert step.detection_failed
        assert step.result.state is VisibilityState.NONE
        assert step.result.commands["head_z"] == 0.2
        assert list(step.result.overlay) == []
        assert sink.last()["head_z"] == 0.2

    def test_empty_detection_is_none_state(self, engine):
        detector = StaticDetector(landmarks=PoseLandmarks.empty())
        driver = FrameDriver(engine, detector, ListSource([Frame(image(), 1)]))
        assert driver.step().result.state is VisibilityState.NONE

    def test_paused_source_resets_once(self, engine, sink):
        source = ListSource([Frame(image(), 1)])
        source.status = SourceStatus.PAUSED
        driver = FrameDriver(engine, StaticDetector(), source)
        first = driver.step()
        second = driver.step()
        assert first.decision is FrameDecision.STOPPED
        assert first.result.commands["head_z"] == 0.2
        assert second.decision is FrameDecision.STOPPED
        assert second.result is None

    def test_resume_after_pause(self, engine):
        source = ListSource([Frame(image(), 1)])
        source.status = SourceStatus.PAUSED
        driver = FrameDriver(engine, StaticDetector(), source)
        driver.step()
        source.status = SourceStatus.PLAYING
        assert driver.step().decision is FrameDecision.PROCESS

    def test_no_source_is_stopped(self, engine):
        assert FrameDriver(engine, StaticDetector()).step().decision is FrameDecision.STOPPED


class TestRun:
    def test_runs_until_source_ends(self, engine):
        frames = [Frame(image(), t) for t in (0, 33, 33, 66)]
        steps = []
        driver = FrameDriver(engine, StaticDetector(), ListSource(frames))
        assert driver.run(on_step=steps.append) == 3
        assert steps[-1].decision is FrameDecision.STOPPED

    def test_max_frames(self, engine):
        frames = [Frame(image(), t) for t in range(10)]
        driver = FrameDriver(engine, StaticDetector(), ListSource(frames))
        assert driver.run(max_frames=4) == 4


class TestSwitchSource:
    def test_switch_resets_timestamp_and_pose(self, engine):
        driver = FrameDriver(engine, StaticDetector(), ListSource([Frame(image(), 500)]))
        driver.step()
        result = driver.switch_source(ListSource([Frame(image(), 10)]))
        assert result.commands["head_z"] == 0.2
        assert driver.last_timestamp_ms is None
        assert driver.step().decision is FrameDecision.PROCESS
