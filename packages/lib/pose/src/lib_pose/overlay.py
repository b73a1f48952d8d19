"""フレームごとの 2D オーバーレイ要素 (線分と点) の生成"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple, Union

from .data import DEFAULT_VISIBILITY_THRESHOLD, POSE_CONNECTIONS, PoseLandmarks


@dataclass(frozen=True)
class OverlayLine:
    """ランドマーク間の接続線。visible が False なら描画しない。"""

    start: int
    end: int
    p1: Tuple[float, float]
    p2: Tuple[float, float]
    visible: bool


@dataclass(frozen=True)
class OverlayPoint:
    """ランドマーク 1 点のマーカー。"""

    index: int
    position: Tuple[float, float]
    visibility: float
    visible: bool


OverlayPrimitive = Union[OverlayLine, OverlayPoint]


def iter_overlay(
    landmarks: PoseLandmarks,
    connections: Iterable[Tuple[int, int]] = POSE_CONNECTIONS,
    threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
) -> Iterator[OverlayPrimitive]:
    """線分を先に、続いて点を遅延生成する。

    ランドマークが空なら何も生成しない (描画側はオーバーレイを消去する)。
    欠損スロットは要素自体を生成しない。
    """
    if landmarks.is_empty:
        return

    for start, end in connections:
        a = landmarks.get(start)
        b = landmarks.get(end)
        if a is None or b is None:
            continue
        yield OverlayLine(
            start=start,
            end=end,
            p1=(a.x, a.y),
            p2=(b.x, b.y),
            visible=a.is_valid(threshold) and b.is_valid(threshold),
        )

    for index, lm in enumerate(landmarks):
        if lm is None:
            continue
        yield OverlayPoint(
            index=index,
            position=(lm.x, lm.y),
            visibility=1.0 if lm.visibility is None else float(lm.visibility),
            visible=lm.is_valid(threshold),
        )
