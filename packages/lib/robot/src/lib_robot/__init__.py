"""lib_robot: kinematic tree model and URDF loading."""

from .model import (
    DEFAULT_LIMITS,
    Box,
    Cylinder,
    Joint,
    JointKind,
    KinematicTree,
    Link,
    Mesh,
    Origin,
    Sphere,
    Visual,
)
from .urdf import ParseError, ParseWarning, load_urdf, parse_urdf

__all__ = [
    "DEFAULT_LIMITS",
    "Box",
    "Cylinder",
    "Joint",
    "JointKind",
    "KinematicTree",
    "Link",
    "Mesh",
    "Origin",
    "Sphere",
    "Visual",
    "ParseError",
    "ParseWarning",
    "load_urdf",
    "parse_urdf",
]
