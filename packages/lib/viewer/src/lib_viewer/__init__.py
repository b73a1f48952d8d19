"""lib_viewer package exports for the pygame preview app.

Scenes pull in OpenCV and MediaPipe, so they are imported from
`lib_viewer.scenes` by the app rather than re-exported here.
"""

from .jog import JointJog
from .sequence import GlobalState, SceneInterface, SequenceManager

__all__ = [
    "JointJog",
    "GlobalState",
    "SceneInterface",
    "SequenceManager",
]
