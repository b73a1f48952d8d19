import argparse
import logging
import os

import pygame
from lib_retarget import load_config, setup_logger
from lib_robot import load_urdf
from lib_viewer import GlobalState, SequenceManager
from lib_viewer.scenes import RetargetScene, StartScene

"""App entrypoint: loads the robot and config, then runs the scene loop."""

ASSETS = os.path.join(os.path.dirname(os.path.abspath(__file__)), "assets")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Human pose to robot retargeting viewer")
    parser.add_argument("--urdf", default=os.path.join(ASSETS, "humanoid.urdf"))
    parser.add_argument("--config", default=os.path.join(ASSETS, "config.yaml"))
    parser.add_argument("--model", default="pose_landmarker_full.task")
    parser.add_argument("--camera", type=int, default=0)
    parser.add_argument("--video", default=None, help="play a video file instead of the webcam")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = load_config(args.config)
    for name in ("lib_pose", "lib_robot", "lib_retarget", "lib_viewer"):
        setup_logger(name, config.logging.file, config.logging.level)
    logger = logging.getLogger("lib_viewer.app")

    tree = load_urdf(args.urdf)
    logger.info("loaded %r with %d warnings", tree, len(tree.warnings))

    state = GlobalState(
        tree=tree,
        config=config,
        model_path=args.model,
        camera_index=args.camera,
        video_path=args.video,
    )
    manager = SequenceManager(state)
    manager.initialize()
    manager.register_scene("start", StartScene())
    manager.register_scene("retarget", RetargetScene())

    os.environ["SDL_VIDEO_WINDOW_POS"] = "%d,%d" % (100, 100)

    pygame.init()
    screen = pygame.display.set_mode((1280, 720))
    pygame.display.set_caption("pose retarget")
    clock = pygame.time.Clock()

    manager.start("start")
    running = True
    while running and manager.running:
        dt = clock.tick(60) / 1000.0
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            manager.handle_event(event)

        manager.update(dt)
        manager.render(screen)
        pygame.display.flip()

    manager.shutdown()
    pygame.quit()


if __name__ == "__main__":
    main()
