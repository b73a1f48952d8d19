"""Kinematic tree of links and joints with rest-relative joint updates.

Every link keeps a transform relative to its parent link. A joint snapshots
its child's local transform once, when it is attached, and every later
`update_joint` call rebuilds the child transform from that snapshot. Calling
`update_joint` twice with the same value therefore yields the same transform.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np
from scipy.spatial.transform import Rotation

logger = logging.getLogger(__name__)


class JointKind(str, Enum):
    REVOLUTE = "revolute"
    CONTINUOUS = "continuous"
    PRISMATIC = "prismatic"
    FIXED = "fixed"

    @property
    def is_rotational(self) -> bool:
        return self in (JointKind.REVOLUTE, JointKind.CONTINUOUS)

    @property
    def is_movable(self) -> bool:
        return self is not JointKind.FIXED


# Ranges used when a joint has no <limit> element.
DEFAULT_LIMITS: Dict[JointKind, Tuple[float, float]] = {
    JointKind.REVOLUTE: (-np.pi, np.pi),
    JointKind.CONTINUOUS: (-2.0 * np.pi, 2.0 * np.pi),
    JointKind.PRISMATIC: (-0.5, 0.5),
    JointKind.FIXED: (0.0, 0.0),
}


def _normalize(vector: np.ndarray) -> np.ndarray:
    """Return a normalized copy of `vector`."""

    norm = float(np.linalg.norm(vector))
    if norm < 1e-8:
        raise ValueError("Cannot normalize near-zero vector.")
    return vector / norm


def _as_vec3(values) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"expected 3 components, got {arr.shape[0]}")
    return arr


def compose_matrix(position: np.ndarray, rotation: Rotation) -> np.ndarray:
    """Build a 4x4 homogeneous transform from a translation and a rotation."""

    matrix = np.identity(4, dtype=np.float64)
    matrix[:3, :3] = rotation.as_matrix()
    matrix[:3, 3] = position
    return matrix


@dataclass
class Origin:
    """Rest offset of a joint or visual: translation plus fixed-axis roll/pitch/yaw."""

    xyz: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rpy: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.xyz = _as_vec3(self.xyz)
        self.rpy = _as_vec3(self.rpy)

    @property
    def rotation(self) -> Rotation:
        # lowercase "xyz" is extrinsic: R = Rz(yaw) @ Ry(pitch) @ Rx(roll)
        return Rotation.from_euler("xyz", self.rpy)

    def as_matrix(self) -> np.ndarray:
        return compose_matrix(self.xyz, self.rotation)


@dataclass
class Box:
    size: Tuple[float, float, float] = (0.1, 0.1, 0.1)


@dataclass
class Cylinder:
    radius: float
    length: float


@dataclass
class Sphere:
    radius: float


@dataclass
class Mesh:
    filename: str
    scale: Tuple[float, float, float] = (1.0, 1.0, 1.0)


Geometry = Union[Box, Cylinder, Sphere, Mesh]


@dataclass
class Visual:
    """Geometry reference attached to a link. Opaque to the kinematics."""

    geometry: Geometry
    origin: Origin = field(default_factory=Origin)
    rgba: Optional[Tuple[float, float, float, float]] = None
    material: Optional[str] = None


@dataclass
class Link:
    name: str
    visuals: List[Visual] = field(default_factory=list)
    parent_joint: Optional[str] = None
    child_joints: List[str] = field(default_factory=list)
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: Rotation = field(default_factory=Rotation.identity)

    def local_matrix(self) -> np.ndarray:
        return compose_matrix(self.position, self.rotation)


@dataclass
class Joint:
    """A single degree of freedom between two links.

    `initial_position`/`initial_rotation` hold the child link's local
    transform captured when the joint was attached; they stay None for a
    joint whose links were never connected.
    """

    name: str
    kind: JointKind
    parent: str
    child: str
    origin: Origin = field(default_factory=Origin)
    axis: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0]))
    lower: float = 0.0
    upper: float = 0.0
    value: float = 0.0
    initial_position: Optional[np.ndarray] = None
    initial_rotation: Optional[Rotation] = None

    def __post_init__(self) -> None:
        self.axis = _normalize(_as_vec3(self.axis))
        if self.lower > self.upper:
            raise ValueError(
                f"joint {self.name}: lower limit {self.lower} > upper limit {self.upper}"
            )

    @property
    def attached(self) -> bool:
        return self.initial_position is not None and self.initial_rotation is not None

    def clamp(self, value: float) -> float:
        return float(min(self.upper, max(self.lower, value)))


class KinematicTree:
    """Links and joints indexed by name, with a single root link."""

    def __init__(self, name: str = "robot") -> None:
        self.name = name
        self.links: Dict[str, Link] = {}
        self.joints: Dict[str, Joint] = {}
        self.root: Optional[str] = None
        # ParseWarning records collected while building the tree
        self.warnings: list = []

    def __repr__(self) -> str:
        return (
            f"KinematicTree(name={self.name!r}, root={self.root!r}, "
            f"links={len(self.links)}, joints={len(self.joints)})"
        )

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------
    def add_link(self, link: Link) -> None:
        if link.name in self.links:
            raise ValueError(f"duplicate link name: {link.name}")
        self.links[link.name] = link

    def add_joint(self, joint: Joint) -> None:
        if joint.name in self.joints:
            raise ValueError(f"duplicate joint name: {joint.name}")
        self.joints[joint.name] = joint

    def is_ancestor(self, candidate: str, link_name: str) -> bool:
        """True when `candidate` is `link_name` or lies on its parent chain."""

        current: Optional[str] = link_name
        seen = set()
        while current is not None and current not in seen:
            if current == candidate:
                return True
            seen.add(current)
            link = self.links.get(current)
            if link is None or link.parent_joint is None:
                return False
            current = self.joints[link.parent_joint].parent
        return False

    def attach(self, joint_name: str) -> None:
        """Connect a joint's child under its parent and snapshot the rest transform.

        Raises ValueError when the edge cannot be added to the tree.
        """

        joint = self.joints[joint_name]
        parent = self.links.get(joint.parent)
        child = self.links.get(joint.child)
        if parent is None or child is None:
            missing = joint.parent if parent is None else joint.child
            raise ValueError(f"joint {joint_name} references unknown link {missing}")
        if child.parent_joint is not None:
            raise ValueError(
                f"link {child.name} already has parent joint {child.parent_joint}"
            )
        if self.is_ancestor(child.name, parent.name):
            raise ValueError(f"joint {joint_name} would close a cycle at {child.name}")

        parent.child_joints.append(joint.name)
        child.parent_joint = joint.name
        child.position = joint.origin.xyz.copy()
        child.rotation = joint.origin.rotation
        joint.initial_position = child.position.copy()
        joint.initial_rotation = child.rotation

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------
    def link(self, name: str) -> Optional[Link]:
        return self.links.get(name)

    def joint(self, name: str) -> Optional[Joint]:
        return self.joints.get(name)

    def movable_joints(self) -> List[str]:
        return [
            name
            for name, joint in self.joints.items()
            if joint.kind.is_movable and joint.attached
        ]

    def joint_limits(self) -> Dict[str, Tuple[float, float]]:
        return {name: (j.lower, j.upper) for name, j in self.joints.items()}

    # ------------------------------------------------------------------
    # joint transform
    # ------------------------------------------------------------------
    def update_joint(self, joint_name: str, value: float) -> None:
        """Set a joint value, rebuilding the child transform from its rest pose.

        The value is stored as given; limits are the caller's concern.
        Unknown joints and joints without a connected child are ignored.
        """

        joint = self.joints.get(joint_name)
        if joint is None:
            logger.debug("update_joint: unknown joint %s", joint_name)
            return
        child = self.links.get(joint.child)
        if child is None or not joint.attached:
            logger.debug("update_joint: joint %s has no attached child", joint_name)
            return

        value = float(value)
        joint.value = value
        if joint.kind.is_rotational:
            child.rotation = joint.initial_rotation * Rotation.from_rotvec(
                joint.axis * value
            )
            child.position = joint.initial_position.copy()
        elif joint.kind is JointKind.PRISMATIC:
            child.position = joint.initial_position + joint.axis * value
            child.rotation = joint.initial_rotation

    def reset_joints(self, values: Optional[Dict[str, float]] = None) -> None:
        """Put every movable joint back to `values` (0 where not given)."""

        values = values or {}
        for name in self.movable_joints():
            self.update_joint(name, values.get(name, 0.0))

    # ------------------------------------------------------------------
    # world transforms
    # ------------------------------------------------------------------
    def world_transform(self, link_name: str) -> np.ndarray:
        """Compose local transforms from the root down to `link_name`."""

        if link_name not in self.links:
            raise KeyError(link_name)
        chain = []
        current: Optional[str] = link_name
        while current is not None:
            link = self.links[current]
            chain.append(link)
            current = (
                self.joints[link.parent_joint].parent
                if link.parent_joint is not None
                else None
            )
        matrix = np.identity(4, dtype=np.float64)
        for link in reversed(chain):
            matrix = matrix @ link.local_matrix()
        return matrix

    def iter_depth_first(self) -> Iterator[Tuple[Link, np.ndarray]]:
        """Yield (link, world matrix) pairs from the root, parents before children."""

        if self.root is None:
            return
        root = self.links[self.root]
        stack = [(root, root.local_matrix())]
        while stack:
            link, matrix = stack.pop()
            yield link, matrix
            for joint_name in reversed(link.child_joints):
                child = self.links[self.joints[joint_name].child]
                stack.append((child, matrix @ child.local_matrix()))

    def world_positions(self) -> Dict[str, np.ndarray]:
        return {link.name: matrix[:3, 3].copy() for link, matrix in self.iter_depth_first()}

    def link_segments(self) -> List[Tuple[str, str, np.ndarray, np.ndarray]]:
        """Parent/child world positions for every attached joint, for skeleton drawing."""

        positions = self.world_positions()
        segments = []
        for joint in self.joints.values():
            if joint.parent in positions and joint.child in positions and joint.attached:
                segments.append(
                    (joint.parent, joint.child, positions[joint.parent], positions[joint.child])
                )
        return segments
