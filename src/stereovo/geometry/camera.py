"""Pinhole camera models and stereo calibration."""

from __future__ import annotations

from dataclasses import dataclass, field

import cv2
import numpy as np

from .pose import SE3


@dataclass
class CameraIntrinsics:
    """Camera intrinsic parameters (pinhole model)."""

    fx: float  # Focal length x (pixels)
    fy: float  # Focal length y (pixels)
    cx: float  # Principal point x (pixels)
    cy: float  # Principal point y (pixels)

    def to_matrix(self) -> np.ndarray:
        """Return 3x3 camera intrinsic matrix K."""
        return np.array(
            [[self.fx, 0.0, self.cx], [0.0, self.fy, self.cy], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )


@dataclass
class DistortionCoeffs:
    """Radial-tangential distortion coefficients."""

    k1: float = 0.0  # Radial distortion coefficient 1
    k2: float = 0.0  # Radial distortion coefficient 2
    p1: float = 0.0  # Tangential distortion coefficient 1
    p2: float = 0.0  # Tangential distortion coefficient 2

    def to_array(self) -> np.ndarray:
        """Return distortion coefficients as (4,) array for OpenCV."""
        return np.array([self.k1, self.k2, self.p1, self.p2], dtype=np.float64)

    @property
    def is_zero(self) -> bool:
        return not np.any(self.to_array())


@dataclass
class PinholeCamera:
    """A single calibrated camera.

    Converts between pixel coordinates and normalized image coordinates
    (the pixel ray divided by its depth, with lens distortion removed).

    Attributes:
        intrinsics: Focal lengths and principal point
        distortion: Lens distortion of the raw image
        image_size: Image size as (width, height)
    """

    intrinsics: CameraIntrinsics
    distortion: DistortionCoeffs = field(default_factory=DistortionCoeffs)
    image_size: tuple[int, int] = (640, 480)

    def pixels_to_normalized(self, pixels: np.ndarray) -> np.ndarray:
        """Convert Nx2 pixel coordinates to Nx2 normalized coordinates."""
        pixels = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
        if len(pixels) == 0:
            return np.empty((0, 2), dtype=np.float64)

        if self.distortion.is_zero:
            # Plain pinhole: skip the iterative undistortion
            K = self.intrinsics
            return np.column_stack(
                ((pixels[:, 0] - K.cx) / K.fx, (pixels[:, 1] - K.cy) / K.fy)
            )

        undistorted = cv2.undistortPoints(
            pixels.reshape(-1, 1, 2),
            self.intrinsics.to_matrix(),
            self.distortion.to_array(),
        )
        return undistorted.reshape(-1, 2).astype(np.float64)

    def pixel_to_normalized(self, pixel: np.ndarray) -> np.ndarray:
        """Convert a single pixel (x, y) to normalized coordinates."""
        return self.pixels_to_normalized(pixel)[0]

    def normalized_to_pixel(self, point: np.ndarray) -> np.ndarray:
        """Project normalized coordinates back to (undistorted) pixels."""
        point = np.asarray(point, dtype=np.float64).flatten()
        K = self.intrinsics
        return np.array([point[0] * K.fx + K.cx, point[1] * K.fy + K.cy])

    def project(self, point_camera: np.ndarray) -> np.ndarray:
        """Project a 3D point in this camera's frame to pixel coordinates."""
        point_camera = np.asarray(point_camera, dtype=np.float64).flatten()
        return self.normalized_to_pixel(point_camera[:2] / point_camera[2])


@dataclass
class StereoParameters:
    """Calibration of a stereo camera pair.

    Attributes:
        left: Left camera model
        right: Right camera model
        right_to_left: Transform from the right camera frame to the left
            camera frame (the known stereo baseline)
    """

    left: PinholeCamera
    right: PinholeCamera
    right_to_left: SE3

    @property
    def left_to_right(self) -> SE3:
        """Return transform from the left camera frame to the right."""
        return self.right_to_left.inverse()

    @property
    def baseline(self) -> float:
        """Return baseline distance between cameras."""
        return float(np.linalg.norm(self.right_to_left.translation))
