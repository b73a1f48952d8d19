"""CameraSource timestamps against a fake capture and a frozen clock."""

import numpy as np
import pytest
from conftest import make_pose
from lib_retarget import FrameDecision, FrameDriver, RetargetConfig, RetargetingEngine
from lib_viewer.source import CameraSource


class FakeCapture:
    def __init__(self, opened=True):
        self.opened = opened
        self.released = False

    def isOpened(self):
        return self.opened

    def read(self):
        return True, np.zeros((2, 2, 3), dtype=np.uint8)

    def release(self):
        self.released = True


class CountingDetector:
    def __init__(self):
        self.calls = []

    def detect_for_video(self, frame, timestamp_ms):
        self.calls.append(timestamp_ms)
        return make_pose(timestamp_ms=timestamp_ms)


def frozen_clock():
    return 12.5


class TestCameraSource:
    def test_timestamps_increase_within_one_millisecond(self):
        source = CameraSource(clock=frozen_clock, cap=FakeCapture())
        stamps = [source.read().timestamp_ms for _ in range(3)]
        assert stamps == [0, 1, 2]

    def test_timestamps_follow_the_clock(self):
        now = [0.0]
        source = CameraSource(clock=lambda: now[0], cap=FakeCapture())
        assert source.read().timestamp_ms == 0
        now[0] = 0.040
        assert source.read().timestamp_ms == 40

    def test_every_camera_frame_is_processed(self, sink):
        detector = CountingDetector()
        source = CameraSource(clock=frozen_clock, cap=FakeCapture())
        engine = RetargetingEngine(RetargetConfig(), sink=sink)
        driver = FrameDriver(engine, detector, source)
        decisions = [driver.step().decision for _ in range(2)]
        assert decisions == [FrameDecision.PROCESS, FrameDecision.PROCESS]
        assert detector.calls == [0, 1]

    def test_unopened_capture_is_rejected(self):
        with pytest.raises(RuntimeError):
            CameraSource(cap=FakeCapture(opened=False))

    def test_close_releases_capture(self):
        cap = FakeCapture()
        source = CameraSource(clock=frozen_clock, cap=cap)
        source.close()
        assert cap.released
        assert source.read() is None
