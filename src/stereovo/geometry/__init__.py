"""Geometric primitives: rigid transforms, camera models, stereo calibration."""

from .camera import CameraIntrinsics, DistortionCoeffs, PinholeCamera, StereoParameters
from .pose import SE3

__all__ = [
    "SE3",
    "CameraIntrinsics",
    "DistortionCoeffs",
    "PinholeCamera",
    "StereoParameters",
]
