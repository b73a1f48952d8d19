"""Manual joint control for inspecting the robot model by hand.

Values go straight to `KinematicTree.update_joint`, which does not clamp, so a
joint can be pushed past its limits to check how the model behaves there.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from lib_robot import KinematicTree

logger = logging.getLogger(__name__)


class JointJog:
    """Selects one movable joint at a time and nudges it by a fixed step."""

    def __init__(self, tree: KinematicTree, step: float = 0.05) -> None:
        self.tree = tree
        self.step = step
        self.joints = tree.movable_joints()
        self.index = 0

    @property
    def selected(self) -> Optional[str]:
        if not self.joints:
            return None
        return self.joints[self.index]

    def select(self, delta: int) -> Optional[str]:
        """Move the selection by `delta`, wrapping around."""
        if not self.joints:
            return None
        self.index = (self.index + delta) % len(self.joints)
        return self.selected

    def set(self, value: float) -> Optional[float]:
        name = self.selected
        if name is None:
            return None
        self.tree.update_joint(name, value)
        logger.debug("jog: %s = %.3f", name, value)
        return self.tree.joint(name).value

    def nudge(self, direction: float) -> Optional[float]:
        name = self.selected
        if name is None:
            return None
        return self.set(self.tree.joint(name).value + direction * self.step)

    def values(self) -> Dict[str, float]:
        return {name: self.tree.joint(name).value for name in self.joints}
