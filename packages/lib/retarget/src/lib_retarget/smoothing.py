"""Per-joint exponential moving average."""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class SmoothingFilter:
    """One EMA state per joint name.

    ``smoothed = previous * (1 - alpha) + raw * alpha``. The first sample for a
    joint seeds its state. NaN samples are never stored: the previous value is
    returned instead, or the joint's default when there is none yet.
    """

    def __init__(
        self,
        alpha: float = 0.2,
        default: Optional[Callable[[str], float]] = None,
    ) -> None:
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        self.alpha = alpha
        self._default = default or (lambda _name: 0.0)
        self._state: Dict[str, float] = {}

    def __contains__(self, joint_name: str) -> bool:
        return joint_name in self._state

    def smooth(self, joint_name: str, raw: float, alpha: Optional[float] = None) -> float:
        a = self.alpha if alpha is None else alpha
        previous = self._state.get(joint_name)

        if raw is None or math.isnan(raw):
            fallback = previous if previous is not None else self._default(joint_name)
            logger.debug("smooth: NaN for %s, keeping %.4f", joint_name, fallback)
            return fallback

        if previous is None:
            value = float(raw)
        else:
            value = previous * (1.0 - a) + float(raw) * a
        self._state[joint_name] = value
        return value

    def value(self, joint_name: str) -> Optional[float]:
        return self._state.get(joint_name)

    def reseed(self, values: Mapping[str, float]) -> None:
        """Overwrite the memory of the given joints."""
        for name, v in values.items():
            self._state[name] = float(v)

    def clear(self) -> None:
        self._state.clear()

    def snapshot(self) -> Dict[str, float]:
        return dict(self._state)
