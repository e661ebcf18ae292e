"""Motion estimation from stereo 2D-3D observations."""

from .observation import Stereo2D3D
from .pnp import PnPRansacEstimator, RobustMotionEstimator
from .refine import MotionRefiner, StereoPoseRefiner

__all__ = [
    "Stereo2D3D",
    "RobustMotionEstimator",
    "PnPRansacEstimator",
    "MotionRefiner",
    "StereoPoseRefiner",
]
