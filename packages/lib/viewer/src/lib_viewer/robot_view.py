from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pygame
from lib_robot import KinematicTree

# robot frame: x forward, y left, z up. Columns pick (screen-right, screen-up).
FRONT_VIEW = (1, 2)
SIDE_VIEW = (0, 2)


def project_segments(
    tree: KinematicTree, axes: Tuple[int, int] = FRONT_VIEW
) -> Iterable[Tuple[np.ndarray, np.ndarray]]:
    """Yield 2D (right, up) endpoints of every link segment."""
    h, v = axes
    for _parent, _child, p0, p1 in tree.link_segments():
        yield np.array([p0[h], p0[v]]), np.array([p1[h], p1[v]])


def _fit(points: np.ndarray, rect: pygame.Rect, margin: int = 20):
    lo = points.min(axis=0)
    hi = points.max(axis=0)
    span = np.maximum(hi - lo, 1e-6)
    scale = min((rect.width - 2 * margin) / span[0], (rect.height - 2 * margin) / span[1])
    center = (lo + hi) / 2.0

    def to_screen(p: np.ndarray) -> Tuple[int, int]:
        x = rect.centerx + (p[0] - center[0]) * scale
        y = rect.centery - (p[1] - center[1]) * scale
        return int(x), int(y)

    return to_screen


def draw_robot(
    surface: pygame.Surface,
    tree: KinematicTree,
    rect: pygame.Rect,
    axes: Tuple[int, int] = FRONT_VIEW,
    color: Tuple[int, int, int] = (230, 230, 230),
) -> int:
    """Draw the tree as a stick figure inside `rect`. Returns the segment count."""
    segments = list(project_segments(tree, axes))
    if not segments:
        return 0
    points = np.array([p for seg in segments for p in seg])
    to_screen = _fit(points, rect)
    for p0, p1 in segments:
        pygame.draw.line(surface, color, to_screen(p0), to_screen(p1), 3)
        pygame.draw.circle(surface, (255, 160, 0), to_screen(p1), 4)
    return len(segments)


def draw_joint_values(
    surface: pygame.Surface,
    font: pygame.font.Font,
    values: Dict[str, float],
    origin: Tuple[int, int],
    line_height: int = 18,
    selected: Optional[str] = None,
) -> None:
    x, y = origin
    for name, value in values.items():
        color = (255, 200, 60) if name == selected else (200, 200, 200)
        marker = ">" if name == selected else " "
        text = font.render(f"{marker}{name:>13s} {value:+.2f}", True, color)
        surface.blit(text, (x, y))
        y += line_height
