"""OpenCV frame sources for the FrameDriver (webcam and video file)."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import cv2
import numpy as np
from lib_retarget import Frame, SourceStatus

logger = logging.getLogger(__name__)


class _CaptureSource:
    def __init__(self, cap: "cv2.VideoCapture", clock: Callable[[], float] = time.monotonic):
        if not cap.isOpened():
            raise RuntimeError("Could not open video source")
        self._cap = cap
        self._clock = clock
        self._paused = False
        self._ended = False
        self._frame: Optional[np.ndarray] = None
        self._timestamp_ms = -1

    @property
    def status(self) -> SourceStatus:
        if self._ended:
            return SourceStatus.ENDED
        if self._paused:
            return SourceStatus.PAUSED
        return SourceStatus.PLAYING

    @property
    def last_frame(self) -> Optional[np.ndarray]:
        return self._frame

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def toggle_pause(self) -> None:
        if self._paused:
            self.resume()
        else:
            self.pause()

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._ended = True


class CameraSource(_CaptureSource):
    """Live webcam; every successful read is a new frame with a later timestamp."""

    def __init__(
        self,
        index: int = 0,
        clock: Callable[[], float] = time.monotonic,
        cap: Optional["cv2.VideoCapture"] = None,
    ):
        super().__init__(cap if cap is not None else cv2.VideoCapture(index), clock)
        self._start = clock()
        logger.info("CameraSource: opened camera %d", index)

    def read(self) -> Optional[Frame]:
        if self._cap is None:
            return None
        ret, frame = self._cap.read()
        if not ret:
            logger.warning("CameraSource: failed to read frame from camera")
            return None
        self._frame = frame
        # two reads inside one millisecond must still count as two frames
        elapsed_ms = int((self._clock() - self._start) * 1000)
        self._timestamp_ms = max(elapsed_ms, self._timestamp_ms + 1)
        return Frame(frame, self._timestamp_ms)


class VideoFileSource(_CaptureSource):
    """Video file played back in real time.

    `read` returns the frame matching the playback clock. When the clock has
    not reached the next frame yet, the previous frame comes back with the
    same timestamp and the driver skips it.
    """

    def __init__(self, path: str, clock: Callable[[], float] = time.monotonic):
        super().__init__(cv2.VideoCapture(path), clock)
        self.path = path
        fps = self._cap.get(cv2.CAP_PROP_FPS)
        self.fps = fps if fps and fps > 0 else 30.0
        self._index = -1
        self._position_s = 0.0
        self._last_tick: Optional[float] = None
        logger.info("VideoFileSource: opened %s (%.1f fps)", path, self.fps)

    def pause(self) -> None:
        super().pause()
        self._last_tick = None

    def _advance_clock(self) -> None:
        now = self._clock()
        if self._last_tick is not None:
            self._position_s += now - self._last_tick
        self._last_tick = now

    def read(self) -> Optional[Frame]:
        if self._cap is None or self._ended:
            return None
        if not self._paused:
            self._advance_clock()

        target = int(self._position_s * self.fps)
        if target <= self._index and self._frame is not None:
            return Frame(self._frame, self._timestamp_ms)

        # drop frames we are late for
        while self._index < target - 1:
            if not self._cap.grab():
                self._ended = True
                return None
            self._index += 1

        ret, frame = self._cap.read()
        if not ret:
            logger.info("VideoFileSource: end of %s", self.path)
            self._ended = True
            return None
        self._index += 1
        self._frame = frame
        self._timestamp_ms = int(self._index * 1000.0 / self.fps)
        return Frame(frame, self._timestamp_ms)
