import logging
from typing import Optional

import pygame

from ..sequence import SceneInterface

logger = logging.getLogger(__name__)

LINES = (
    "Pose retargeting",
    "",
    "W : start with webcam",
    "V : start with video file",
    "ESC / Q : quit",
)


class StartScene(SceneInterface):
    def __init__(self, manager=None):
        super().__init__(manager)
        self._font = None

    def enter(self):
        if not pygame.font.get_init():
            pygame.font.init()
        self._font = pygame.font.SysFont(None, 42)
        logger.info("StartScene: enter")

    def exit(self):
        self._font = None
        logger.info("StartScene: exit")

    def render(self, surface: Optional[pygame.Surface]) -> None:
        if surface is None or self._font is None:
            return

        surface.fill((20, 20, 28))
        surf_w, surf_h = surface.get_size()
        y = surf_h // 2 - len(LINES) * 22
        for line in LINES:
            text = self._font.render(line, True, (230, 230, 230))
            rect = text.get_rect(center=(surf_w // 2, y))
            surface.blit(text, rect)
            y += 44

    def handle_event(self, event) -> None:
        """W starts on the webcam, V on the video given on the command line."""
        if event is None or self.manager is None:
            return None

        if event.type == pygame.KEYDOWN:
            state = self.manager.global_state
            if event.key == pygame.K_w:
                state.use_video = False
                self.manager.start("retarget")
            elif event.key == pygame.K_v:
                if state.video_path is None:
                    logger.warning("StartScene: no video file given (--video)")
                    return None
                state.use_video = True
                self.manager.start("retarget")
            elif event.key in (pygame.K_ESCAPE, pygame.K_q):
                self.manager.stop()
