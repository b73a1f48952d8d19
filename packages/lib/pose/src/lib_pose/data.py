"""姿勢ランドマークに関するデータの定義"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np

POSE_LANDMARK_COUNT = 33

# 可視性スコアがこの値を超えていれば有効なランドマークとみなす
DEFAULT_VISIBILITY_THRESHOLD = 0.5


class PoseIndex(IntEnum):
    """姿勢ランドマークのインデックス (Mediapipe Pose の定義に基づく)"""

    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


# 姿勢ランドマークのラベル
POSE_LANDMARKS = {index.name.lower(): int(index) for index in PoseIndex}

# オーバーレイに描画する接続 (手指の細かい接続は省略)
POSE_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1),
    (0, 4),
    (1, 2),
    (2, 3),
    (4, 5),
    (5, 6),
    (9, 10),
    (0, 7),
    (0, 8),
    (11, 12),
    (23, 24),
    (11, 23),
    (12, 24),
    (11, 13),
    (13, 15),
    (12, 14),
    (14, 16),
    (23, 25),
    (25, 27),
    (24, 26),
    (26, 28),
    (27, 29),
    (29, 31),
    (28, 30),
    (30, 32),
)


@dataclass(frozen=True)
class PoseLandmark:
    """正規化画像座標で表された 1 点のランドマーク。

    attributes:
            x, y: [0, 1] の正規化座標。y は下向きが正。
            z: 深度の代理値 (省略可能、メートルではない)
            visibility: 可視性スコア [0, 1] (省略可能)
    """

    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = None

    @property
    def depth(self) -> float:
        """z が無い場合は 0 として扱う。"""
        return 0.0 if self.z is None else float(self.z)

    def is_valid(self, threshold: float = DEFAULT_VISIBILITY_THRESHOLD) -> bool:
        """visibility が未定義、または threshold を超えていれば有効。"""
        if self.visibility is None:
            return True
        # NaN は比較が常に False になるので無効扱い
        return self.visibility > threshold


@dataclass(frozen=True)
class PoseLandmarks:
    """1 フレーム分のランドマーク集合。

    33 個の固定スロット (欠損は None) か、被写体が検出されなかった場合は空。
    生成後は変更しない。
    """

    points: Tuple[Optional[PoseLandmark], ...] = ()
    timestamp_ms: int = 0
    image_size: Tuple[int, int] = field(default=(0, 0))

    def __post_init__(self) -> None:
        if len(self.points) not in (0, POSE_LANDMARK_COUNT):
            raise ValueError(
                f"expected 0 or {POSE_LANDMARK_COUNT} landmarks, got {len(self.points)}"
            )

    @classmethod
    def empty(cls, timestamp_ms: int = 0) -> "PoseLandmarks":
        return cls(points=(), timestamp_ms=timestamp_ms)

    @classmethod
    def from_sequence(
        cls,
        points: Sequence[Optional[PoseLandmark]],
        timestamp_ms: int = 0,
        image_size: Tuple[int, int] = (0, 0),
    ) -> "PoseLandmarks":
        """足りないスロットは None で埋める。多すぎる場合はエラー。"""
        slots = list(points)
        if len(slots) > POSE_LANDMARK_COUNT:
            raise ValueError(f"too many landmarks: {len(slots)}")
        if slots:
            slots.extend([None] * (POSE_LANDMARK_COUNT - len(slots)))
        return cls(points=tuple(slots), timestamp_ms=timestamp_ms, image_size=image_size)

    @classmethod
    def from_array(
        cls,
        array: np.ndarray,
        timestamp_ms: int = 0,
        image_size: Tuple[int, int] = (0, 0),
    ) -> "PoseLandmarks":
        """(33, 4) の配列 (x, y, z, visibility) から生成する。NaN の行は欠損扱い。"""
        array = np.asarray(array, dtype=float)
        if array.size == 0:
            return cls.empty(timestamp_ms)
        if array.ndim != 2 or array.shape[1] < 2:
            raise ValueError(f"unexpected landmark array shape: {array.shape}")
        points = []
        for row in array:
            if np.isnan(row[0]) or np.isnan(row[1]):
                points.append(None)
                continue
            z = float(row[2]) if array.shape[1] > 2 and not np.isnan(row[2]) else None
            v = float(row[3]) if array.shape[1] > 3 and not np.isnan(row[3]) else None
            points.append(PoseLandmark(float(row[0]), float(row[1]), z, v))
        return cls.from_sequence(points, timestamp_ms, image_size)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Optional[PoseLandmark]]:
        return iter(self.points)

    def __getitem__(self, index: int) -> Optional[PoseLandmark]:
        return self.get(index)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def get(self, index: int) -> Optional[PoseLandmark]:
        if not self.points:
            return None
        return self.points[int(index)]

    def valid(self, index: int, threshold: float = DEFAULT_VISIBILITY_THRESHOLD) -> bool:
        landmark = self.get(index)
        return landmark is not None and landmark.is_valid(threshold)

    def all_present(self, *indices: int) -> bool:
        return all(self.get(i) is not None for i in indices)

    def all_valid(
        self, *indices: int, threshold: float = DEFAULT_VISIBILITY_THRESHOLD
    ) -> bool:
        return all(self.valid(i, threshold) for i in indices)

    def to_array(self) -> np.ndarray:
        """(N, 4) 配列に変換する。欠損値は NaN。"""
        rows = []
        for lm in self.points:
            if lm is None:
                rows.append((np.nan, np.nan, np.nan, np.nan))
                continue
            rows.append(
                (
                    lm.x,
                    lm.y,
                    np.nan if lm.z is None else lm.z,
                    np.nan if lm.visibility is None else lm.visibility,
                )
            )
        return np.array(rows, dtype=float).reshape(-1, 4)

    def __str__(self) -> str:
        np.set_printoptions(precision=3, suppress=True)
        return (
            f"PoseLandmarks(timestamp_ms={self.timestamp_ms}, "
            f"image_size={self.image_size}, points={self.to_array()})"
        )
