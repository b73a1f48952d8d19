import logging
from typing import Dict, Optional

import cv2
import numpy as np
import pygame
from lib_pose.detect import PoseEstimator
from lib_pose.util_2d import draw_overlay_on_frame, draw_state_on_frame
from lib_retarget import FrameDecision, FrameDriver, RetargetingEngine, VisibilityState

from ..jog import JointJog
from ..robot_view import FRONT_VIEW, SIDE_VIEW, draw_joint_values, draw_robot
from ..sequence import SceneInterface
from ..source import CameraSource, VideoFileSource

logger = logging.getLogger(__name__)


class RetargetScene(SceneInterface):
    """Live view: camera/video with landmark overlay next to the robot skeleton.

    SPACE pauses or resumes, W switches to the webcam, ESC returns to the
    start scene and Q quits. J toggles joint-jog mode: retargeting stops,
    LEFT/RIGHT pick a joint, UP/DOWN nudge it and 0 zeroes it.
    """

    def __init__(self, manager=None):
        super().__init__(manager)
        self.source = None
        self.driver: Optional[FrameDriver] = None
        self._estimator: Optional[PoseEstimator] = None
        self.last_frame: Optional[np.ndarray] = None
        self.state = VisibilityState.NONE
        self.commands: Dict[str, float] = {}
        self._font = None
        self.jog: Optional[JointJog] = None

    def _open_source(self):
        state = self.manager.global_state
        if state.use_video and state.video_path:
            return VideoFileSource(state.video_path)
        return CameraSource(state.camera_index)

    def enter(self):
        logger.info("RetargetScene: enter")
        if self.manager is None:
            raise RuntimeError("RetargetScene: no manager assigned")
        state = self.manager.global_state

        self._estimator = PoseEstimator(model_asset_path=state.model_path)
        engine = RetargetingEngine(state.config, tree=state.tree)
        self.source = self._open_source()
        self.driver = FrameDriver(engine, self._estimator, self.source)
        self._apply(self.driver.switch_source(self.source))

        if not pygame.font.get_init():
            pygame.font.init()
        self._font = pygame.font.SysFont(None, 20)

    def exit(self):
        logger.info("RetargetScene: exit")
        if self.driver is not None:
            self.driver.switch_source(None)
        if self.source is not None:
            self.source.close()
        if self._estimator is not None:
            self._estimator.close()
        self.source = None
        self.driver = None
        self._estimator = None
        self.last_frame = None
        self._font = None
        self.jog = None

    def _apply(self, result) -> None:
        if result is None:
            return
        self.state = result.state
        self.commands = dict(result.commands)

    def update(self, dt: float) -> None:
        """Run one driver step and keep a mirrored, annotated copy of the frame."""
        if self.driver is None or self.jog is not None:
            return

        step = self.driver.step()
        self._apply(step.result)

        if step.decision is FrameDecision.PROCESS and step.frame is not None:
            display_frame = np.ascontiguousarray(step.frame.image[:, ::-1, :])
            draw_overlay_on_frame(display_frame, step.result.overlay, mirror=True)
            draw_state_on_frame(display_frame, self.state.value)
            self.last_frame = display_frame
        elif step.decision is FrameDecision.STOPPED and step.result is not None:
            # paused or ended: keep the picture, drop the overlay
            if self.source is not None and self.source.last_frame is not None:
                self.last_frame = np.ascontiguousarray(self.source.last_frame[:, ::-1, :])

    def render(self, surface):
        if surface is None:
            return

        surface.fill((12, 12, 16))
        surf_w, surf_h = surface.get_size()
        half = surf_w // 2

        if self.last_frame is not None:
            frame_resized = cv2.resize(self.last_frame, (half, surf_h))
            frame_rgb = np.ascontiguousarray(cv2.cvtColor(frame_resized, cv2.COLOR_BGR2RGB))
            pg_surf = pygame.image.frombuffer(frame_rgb.tobytes(), (half, surf_h), "RGB")
            surface.blit(pg_surf, (0, 0))

        tree = self.manager.global_state.tree if self.manager is not None else None
        if tree is not None:
            view_h = surf_h // 2
            draw_robot(surface, tree, pygame.Rect(half, 0, half // 2, view_h), FRONT_VIEW)
            draw_robot(
                surface, tree, pygame.Rect(half + half // 2, 0, half // 2, view_h), SIDE_VIEW
            )
        if self._font is not None:
            origin = (half + 10, surf_h // 2)
            if self.jog is not None:
                draw_joint_values(
                    surface, self._font, self.jog.values(), origin, selected=self.jog.selected
                )
            else:
                draw_joint_values(surface, self._font, self.commands, origin)

    def handle_event(self, event) -> None:
        if event is None or event.type != pygame.KEYDOWN or self.manager is None:
            return

        if event.key == pygame.K_j:
            self._toggle_jog()
            return
        if self.jog is not None and self._handle_jog_key(event.key):
            return

        if event.key == pygame.K_SPACE and self.source is not None:
            self.source.toggle_pause()
        elif event.key == pygame.K_w and self.driver is not None:
            if self.source is not None:
                self.source.close()
            self.source = CameraSource(self.manager.global_state.camera_index)
            self._apply(self.driver.switch_source(self.source))
        elif event.key == pygame.K_ESCAPE:
            self.manager.start("start")
        elif event.key == pygame.K_q:
            self.manager.stop()

    def _toggle_jog(self) -> None:
        tree = self.manager.global_state.tree
        if self.jog is None:
            if tree is None:
                logger.warning("RetargetScene: no robot loaded, joint jog unavailable")
                return
            self.jog = JointJog(tree)
            logger.info("RetargetScene: joint jog on (%d joints)", len(self.jog.joints))
            return
        self.jog = None
        logger.info("RetargetScene: joint jog off")
        if self.driver is not None:
            self._apply(self.driver.engine.reset())

    def _handle_jog_key(self, key) -> bool:
        if key == pygame.K_RIGHT:
            self.jog.select(1)
        elif key == pygame.K_LEFT:
            self.jog.select(-1)
        elif key == pygame.K_UP:
            self.jog.nudge(1.0)
        elif key == pygame.K_DOWN:
            self.jog.nudge(-1.0)
        elif key in (pygame.K_0, pygame.K_KP0):
            self.jog.set(0.0)
        else:
            return False
        return True
