"""Two-view triangulation in normalized image coordinates."""

from __future__ import annotations

from abc import ABC, abstractmethod

import cv2
import numpy as np

from ..geometry.pose import SE3


class Triangulator(ABC):
    """Recovers a 3D point from two calibrated observations."""

    @abstractmethod
    def triangulate(
        self, obs_left: np.ndarray, obs_right: np.ndarray, left_to_right: SE3
    ) -> np.ndarray | None:
        """Triangulate a point seen in two views.

        Args:
            obs_left: Normalized (x, y) observation in the left view
            obs_right: Normalized (x, y) observation in the right view
            left_to_right: Transform from the left camera frame to the right

        Returns:
            (3,) point in the left camera frame, or None on failure
        """


class LinearTriangulator(Triangulator):
    """Linear (DLT) triangulation with cv2.triangulatePoints.

    The left camera is the reference, so its projection matrix is [I | 0]
    and the right camera's is [R | t] of ``left_to_right``. Points that
    land behind either camera are rejected.
    """

    def __init__(self, min_scale: float = 1e-12, min_depth: float = 0.0) -> None:
        """Initialize triangulator.

        Args:
            min_scale: Homogeneous scales with smaller magnitude are treated
                as points at infinity and rejected
            min_depth: Points must be deeper than this in both cameras
        """
        self._min_scale = min_scale
        self._min_depth = min_depth
        self._P_left = np.hstack((np.eye(3), np.zeros((3, 1))))

    def triangulate(
        self, obs_left: np.ndarray, obs_right: np.ndarray, left_to_right: SE3
    ) -> np.ndarray | None:
        P_right = np.hstack(
            (left_to_right.rotation, left_to_right.translation.reshape(3, 1))
        )

        # OpenCV expects 2xN arrays
        pts_left = np.asarray(obs_left, dtype=np.float64).reshape(2, 1)
        pts_right = np.asarray(obs_right, dtype=np.float64).reshape(2, 1)

        point_4d = cv2.triangulatePoints(self._P_left, P_right, pts_left, pts_right)
        w = float(point_4d[3, 0])
        if abs(w) < self._min_scale:
            return None

        point = point_4d[:3, 0] / w
        if not np.isfinite(point).all():
            return None

        depth_right = left_to_right.transform_point(point)[2]
        if point[2] <= self._min_depth or depth_right <= self._min_depth:
            return None
        return point
