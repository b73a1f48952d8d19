"""Sequence manager and Scene interface for lib_viewer.

The app registers a small number of scenes (start screen, live
retargeting) and the manager forwards the pygame loop's update, render and
event calls to whichever scene is active.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Dict, Optional

import pygame

logger = logging.getLogger(__name__)


class SceneInterface(abc.ABC):
    """Base class for a scene; override the lifecycle hooks you need."""

    def __init__(self, manager: Optional["SequenceManager"] = None) -> None:
        self.manager = manager

    def enter(self) -> None:
        """Called when the scene becomes active."""
        return None

    def exit(self) -> None:
        """Called when the scene is no longer active."""
        return None

    def update(self, dt: float) -> None:
        """Update scene logic. dt is seconds since last update."""
        return None

    def render(self, surface: Optional[pygame.Surface]) -> None:
        """Render the scene to the given drawing surface.

        surface may be None in non-graphical tests.
        """
        return None

    def handle_event(self, event: Optional[pygame.event.Event]) -> None:
        return None


class GlobalState:
    """State shared between scenes: loaded robot, config, input settings."""

    def __init__(self, **kwargs: Any) -> None:
        self.tree = None
        self.config = None
        self.model_path: str = "pose_landmarker_full.task"
        self.camera_index: int = 0
        self.video_path: Optional[str] = None
        self.use_video: bool = False
        for key, value in kwargs.items():
            setattr(self, key, value)


class SequenceManager:
    """Registers scenes, switches the active one and forwards loop calls."""

    def __init__(self, global_state: Optional[GlobalState] = None) -> None:
        self._scenes: Dict[str, SceneInterface] = {}
        self._current: Optional[SceneInterface] = None
        self._current_name: Optional[str] = None
        self.running: bool = False
        self.global_state = global_state or GlobalState()

    @property
    def current_name(self) -> Optional[str]:
        return self._current_name

    def initialize(self) -> None:
        """Initialize manager resources. Call before starting the loop."""
        self.running = True

    def register_scene(self, name: str, scene: SceneInterface) -> None:
        scene.manager = self
        self._scenes[name] = scene

    def start(self, name: str) -> None:
        """Switch to the named scene, calling lifecycle hooks."""
        if name not in self._scenes:
            raise KeyError(f"unknown scene: {name}")
        if self._current is not None:
            self._current.exit()

        logger.info("scene: %s -> %s", self._current_name, name)
        self._current = self._scenes[name]
        self._current_name = name
        self._current.enter()

    def update(self, dt: float) -> None:
        if self._current is not None:
            self._current.update(dt)

    def render(self, surface: Any) -> None:
        if self._current is not None:
            self._current.render(surface)

    def handle_event(self, event: Any) -> None:
        if self._current is not None:
            self._current.handle_event(event)

    def stop(self) -> None:
        """Ask the main loop to finish after this tick."""
        self.running = False

    def shutdown(self) -> None:
        """Shutdown manager and active scene."""
        if self._current is not None:
            self._current.exit()
            self._current = None
        self.running = False
