from __future__ import annotations

from typing import Iterable, Tuple

import cv2
import numpy as np

from .overlay import OverlayLine, OverlayPoint, OverlayPrimitive


def _to_pixel(
    position: Tuple[float, float], size: Tuple[int, int], mirror: bool
) -> Tuple[int, int]:
    width, height = size
    x, y = position
    if mirror:
        x = 1.0 - x
    return int(x * width), int(y * height)


def draw_overlay_on_frame(
    frame: np.ndarray, primitives: Iterable[OverlayPrimitive], mirror: bool = False
) -> int:
    """フレーム上にオーバーレイ要素を描画する補助関数。

    引数:
            frame: BGR 画像（描画はこの配列に行われる）
            primitives: iter_overlay() が返す線分と点
            mirror: 鏡像表示しているフレームに描く場合は True

    返り値: 実際に描画した要素数（frame がインプレースで変更される）
    """
    height, width = frame.shape[:2]
    size = (width, height)
    drawn = 0
    for item in primitives:
        if not item.visible:
            continue
        if isinstance(item, OverlayLine):
            cv2.line(
                frame,
                _to_pixel(item.p1, size, mirror),
                _to_pixel(item.p2, size, mirror),
                (255, 0, 0),
                2,
            )
        elif isinstance(item, OverlayPoint):
            v = max(0.0, min(1.0, item.visibility))
            color = (0, int(v * 255), int((1.0 - v) * 255))
            cv2.circle(frame, _to_pixel(item.position, size, mirror), 5, color, -1)
        drawn += 1
    return drawn


def draw_state_on_frame(
    frame: np.ndarray, label: str, location: Tuple[int, int] = (10, 40)
) -> None:
    """フレーム上に可視状態のラベルを描画する補助関数。

    引数:
            frame: BGR 画像（描画はこの配列に行われる）
            label: 表示する文字列 (例: "FULL_BODY")
            location: 描画開始座標 (x, y)
    """
    if label == "NONE":
        color = (0, 0, 200)
    elif label == "HEAD_ONLY":
        color = (0, 200, 200)
    else:
        color = (0, 200, 0)

    cv2.putText(
        frame, label, location, cv2.FONT_HERSHEY_SIMPLEX, 1.0, color, 2, cv2.LINE_AA
    )
