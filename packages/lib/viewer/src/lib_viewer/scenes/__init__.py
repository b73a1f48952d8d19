from .retarget import RetargetScene
from .start import StartScene

__all__ = ["RetargetScene", "StartScene"]
