"""URDF robot description parser.

Only the subset needed for kinematics and simple rendering is read: links
with their visual geometry, and joints with origin, axis and limits.
Problems that leave the tree usable are recorded as `ParseWarning` and
logged; a document without a <robot> element raises `ParseError`.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .model import (
    DEFAULT_LIMITS,
    Box,
    Cylinder,
    Geometry,
    Joint,
    JointKind,
    KinematicTree,
    Link,
    Mesh,
    Origin,
    Sphere,
    Visual,
)

logger = logging.getLogger(__name__)

PACKAGE_PREFIX = "package://"
FALLBACK_BOX_SIZE = (0.1, 0.1, 0.1)


class ParseError(ValueError):
    """The document cannot be turned into a kinematic tree."""


@dataclass(frozen=True)
class ParseWarning:
    code: str
    message: str


class _Collector:
    def __init__(self, tree: KinematicTree) -> None:
        self.tree = tree

    def warn(self, code: str, message: str) -> None:
        logger.warning("urdf: %s", message)
        self.tree.warnings.append(ParseWarning(code, message))


def _floats(text: Optional[str], count: int, default: Sequence[float]) -> np.ndarray:
    if text is None or not text.strip():
        return np.array(default, dtype=np.float64)
    values = [float(v) for v in text.split()]
    if len(values) != count:
        raise ValueError(f"expected {count} values, got {len(values)}: {text!r}")
    return np.array(values, dtype=np.float64)


def _parse_origin(elem: Optional[ET.Element]) -> Origin:
    if elem is None:
        return Origin()
    return Origin(
        xyz=_floats(elem.get("xyz"), 3, (0.0, 0.0, 0.0)),
        rpy=_floats(elem.get("rpy"), 3, (0.0, 0.0, 0.0)),
    )


def _parse_geometry(elem: Optional[ET.Element], where: str, out: _Collector) -> Geometry:
    if elem is None or len(elem) == 0:
        out.warn("geometry", f"{where}: visual without geometry, using fallback box")
        return Box(FALLBACK_BOX_SIZE)

    shape = elem[0]
    try:
        if shape.tag == "box":
            size = _floats(shape.get("size"), 3, FALLBACK_BOX_SIZE)
            return Box(tuple(float(v) for v in size))
        if shape.tag == "cylinder":
            return Cylinder(float(shape.get("radius")), float(shape.get("length")))
        if shape.tag == "sphere":
            return Sphere(float(shape.get("radius")))
        if shape.tag == "mesh":
            filename = shape.get("filename") or ""
            if filename.startswith(PACKAGE_PREFIX):
                filename = filename[len(PACKAGE_PREFIX):]
            scale = _floats(shape.get("scale"), 3, (1.0, 1.0, 1.0))
            return Mesh(filename, tuple(float(v) for v in scale))
    except (TypeError, ValueError) as e:
        out.warn("geometry", f"{where}: bad <{shape.tag}> ({e}), using fallback box")
        return Box(FALLBACK_BOX_SIZE)

    out.warn("geometry", f"{where}: unknown geometry <{shape.tag}>, using fallback box")
    return Box(FALLBACK_BOX_SIZE)


def _parse_rgba(visual: ET.Element) -> Tuple[Optional[str], Optional[Tuple[float, ...]]]:
    material = visual.find("material")
    if material is None:
        return None, None
    color = material.find("color")
    rgba = None
    if color is not None and color.get("rgba"):
        rgba = tuple(float(v) for v in _floats(color.get("rgba"), 4, (1, 1, 1, 1)))
    return material.get("name"), rgba


def _parse_link(elem: ET.Element, out: _Collector) -> Link:
    name = elem.get("name")
    link = Link(name=name)
    for i, visual in enumerate(elem.findall("visual")):
        where = f"link {name} visual {i}"
        try:
            origin = _parse_origin(visual.find("origin"))
        except ValueError as e:
            out.warn("origin", f"{where}: bad origin ({e}), using zero origin")
            origin = Origin()
        try:
            material, rgba = _parse_rgba(visual)
        except ValueError as e:
            out.warn("material", f"{where}: bad material color ({e})")
            material, rgba = None, None
        link.visuals.append(
            Visual(
                geometry=_parse_geometry(visual.find("geometry"), where, out),
                origin=origin,
                rgba=rgba,
                material=material,
            )
        )
    return link


def _parse_limits(
    elem: ET.Element, kind: JointKind, name: str, out: _Collector
) -> Tuple[float, float]:
    if kind is JointKind.CONTINUOUS:
        return DEFAULT_LIMITS[kind]
    limit = elem.find("limit")
    if limit is None or kind is JointKind.FIXED:
        return DEFAULT_LIMITS[kind]
    try:
        lower = float(limit.get("lower", 0.0))
        upper = float(limit.get("upper", 0.0))
    except ValueError as e:
        out.warn("limit", f"joint {name}: bad limit ({e}), using defaults")
        return DEFAULT_LIMITS[kind]
    if lower > upper:
        out.warn("limit", f"joint {name}: lower > upper, swapping")
        lower, upper = upper, lower
    return lower, upper


def _parse_joint(elem: ET.Element, out: _Collector) -> Optional[Joint]:
    name = elem.get("name")
    if not name:
        out.warn("joint", "joint without a name, skipped")
        return None
    parent = elem.find("parent")
    child = elem.find("child")
    parent_name = parent.get("link") if parent is not None else None
    child_name = child.get("link") if child is not None else None
    if not parent_name or not child_name:
        out.warn("joint-links", f"joint {name}: missing parent or child link, skipped")
        return None

    type_name = (elem.get("type") or "").lower()
    try:
        kind = JointKind(type_name)
    except ValueError:
        out.warn("joint-type", f"joint {name}: unsupported type {type_name!r}, treated as fixed")
        kind = JointKind.FIXED

    try:
        origin = _parse_origin(elem.find("origin"))
    except ValueError as e:
        out.warn("origin", f"joint {name}: bad origin ({e}), using zero origin")
        origin = Origin()

    axis_elem = elem.find("axis")
    try:
        axis = _floats(axis_elem.get("xyz") if axis_elem is not None else None, 3, (1, 0, 0))
    except ValueError as e:
        out.warn("axis", f"joint {name}: bad axis ({e}), using [1, 0, 0]")
        axis = np.array([1.0, 0.0, 0.0])
    if np.linalg.norm(axis) < 1e-8:
        out.warn("axis", f"joint {name}: zero axis, using [1, 0, 0]")
        axis = np.array([1.0, 0.0, 0.0])

    lower, upper = _parse_limits(elem, kind, name, out)
    return Joint(
        name=name,
        kind=kind,
        parent=parent_name,
        child=child_name,
        origin=origin,
        axis=axis,
        lower=lower,
        upper=upper,
    )


def _resolve_root(tree: KinematicTree, link_order: List[str], out: _Collector) -> str:
    children = {joint.child for joint in tree.joints.values()}
    candidates = [name for name in link_order if name not in children]
    if not candidates:
        out.warn("root", f"no root link candidate, using first link {link_order[0]}")
        return link_order[0]
    if len(candidates) > 1:
        out.warn(
            "root",
            f"multiple root candidates {candidates}, using {candidates[0]}",
        )
    return candidates[0]


def parse_urdf(text: Union[str, bytes]) -> KinematicTree:
    """Build a kinematic tree from URDF text."""

    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ParseError(f"invalid XML: {e}") from e
    if root.tag != "robot":
        raise ParseError(f"no <robot> root element (found <{root.tag}>)")

    tree = KinematicTree(root.get("name") or "robot")
    out = _Collector(tree)

    link_order: List[str] = []
    for elem in root.findall("link"):
        name = elem.get("name")
        if not name:
            out.warn("link", "link without a name, skipped")
            continue
        if name in tree.links:
            out.warn("link", f"duplicate link {name}, skipped")
            continue
        tree.add_link(_parse_link(elem, out))
        link_order.append(name)

    if not link_order:
        raise ParseError("robot description has no links")

    for elem in root.findall("joint"):
        joint = _parse_joint(elem, out)
        if joint is None:
            continue
        if joint.name in tree.joints:
            out.warn("joint", f"duplicate joint {joint.name}, skipped")
            continue
        tree.add_joint(joint)

    tree.root = _resolve_root(tree, link_order, out)

    for name in list(tree.joints):
        try:
            tree.attach(name)
        except ValueError as e:
            out.warn("attach", f"{e}, joint not attached")

    logger.info(
        "urdf: loaded %s with %d links, %d joints (root %s)",
        tree.name,
        len(tree.links),
        len(tree.joints),
        tree.root,
    )
    return tree


def load_urdf(path: Union[str, Path]) -> KinematicTree:
    """Read and parse a URDF file."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"URDF file not found: {path}")
    return parse_urdf(path.read_bytes())


__all__ = [
    "ParseError",
    "ParseWarning",
    "parse_urdf",
    "load_urdf",
]
