"""姿勢検出用の関数群"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np
from mediapipe import Image, ImageFormat
from mediapipe.tasks.python.core.base_options import BaseOptions
from mediapipe.tasks.python.vision.core.vision_task_running_mode import (
    VisionTaskRunningMode as RunningMode,
)
from mediapipe.tasks.python.vision.pose_landmarker import (
    PoseLandmarker,
    PoseLandmarkerOptions,
    PoseLandmarkerResult,
)

from .data import PoseLandmark, PoseLandmarks

logger = logging.getLogger(__name__)


def _result_to_landmarks(
    result: "PoseLandmarkerResult", timestamp_ms: int, image_size: tuple
) -> PoseLandmarks:
    """MediaPipe の結果を PoseLandmarks に変換する内部ヘルパー。

    最初の 1 人分のみを使う。被写体が無ければ空の集合を返す。
    """
    if not result.pose_landmarks:
        return PoseLandmarks.empty(timestamp_ms)

    points = []
    for lm in result.pose_landmarks[0]:
        visibility = getattr(lm, "visibility", None)
        points.append(
            PoseLandmark(
                x=float(lm.x),
                y=float(lm.y),
                z=None if lm.z is None else float(lm.z),
                visibility=None if visibility is None else float(visibility),
            )
        )
    return PoseLandmarks.from_sequence(points, timestamp_ms, image_size)


class PoseEstimator:
    """長寿命の MediaPipe Pose ラッパー (VIDEO モード)。

    with 文で使用でき、`detect_for_video(frame, timestamp_ms)` を呼んで各フレームごとに
    `PoseLandmarks` を返します。FrameDriver の検出器としてそのまま渡せます。
    """

    def __init__(
        self,
        model_asset_path: str = "pose_landmarker_full.task",
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        base_options = BaseOptions(model_asset_path=model_asset_path)
        options = PoseLandmarkerOptions(
            base_options=base_options,
            running_mode=RunningMode.VIDEO,
            num_poses=1,
            min_pose_detection_confidence=min_detection_confidence,
            min_pose_presence_confidence=min_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
            output_segmentation_masks=False,
        )
        self._detector: Optional[PoseLandmarker] = PoseLandmarker.create_from_options(
            options
        )
        self._last_timestamp_ms = -1
        logger.info("PoseEstimator: loaded model %s", model_asset_path)

    def detect_for_video(self, frame: np.ndarray, timestamp_ms: int) -> PoseLandmarks:
        """BGR フレームを入力に取り、PoseLandmarks を返す（検出無ければ空）。

        MediaPipe はタイムスタンプの単調増加を要求するため、
        巻き戻った値は直前の値 + 1 に補正する。
        """
        if self._detector is None:
            raise RuntimeError("PoseEstimator is closed")

        height, width = frame.shape[:2]
        ts = int(timestamp_ms)
        if ts <= self._last_timestamp_ms:
            ts = self._last_timestamp_ms + 1
        self._last_timestamp_ms = ts

        image_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image_rgb.flags.writeable = False
        mp_image = Image(image_format=ImageFormat.SRGB, data=image_rgb)
        result = self._detector.detect_for_video(mp_image, ts)
        return _result_to_landmarks(result, int(timestamp_ms), (width, height))

    def close(self) -> None:
        if self._detector is not None:
            self._detector.close()
            self._detector = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
