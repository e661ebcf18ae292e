"""Epipolar consistency check for left/right pixel pairs."""

from __future__ import annotations

import cv2
import numpy as np

from ..geometry.camera import PinholeCamera, StereoParameters


class StereoConsistencyCheck:
    """Checks that a left/right pixel pair still obeys the stereo geometry.

    Both pixels are mapped into a common rectified frame, where epipolar
    lines are horizontal. A pair is consistent when the rectified rows agree
    within ``tolerance_y`` and the right pixel does not lie more than
    ``tolerance_x`` to the right of the left pixel, i.e. the disparity is
    not negative beyond the tolerance. A negative ``tolerance_x`` demands a
    disparity of at least ``-tolerance_x``.
    """

    def __init__(self, tolerance_x: float, tolerance_y: float) -> None:
        """Initialize check.

        Args:
            tolerance_x: Horizontal tolerance in rectified pixels
            tolerance_y: Vertical tolerance in rectified pixels
        """
        self._tolerance_x = tolerance_x
        self._tolerance_y = tolerance_y
        self._left: PinholeCamera | None = None
        self._right: PinholeCamera | None = None

    def set_calibration(self, params: StereoParameters) -> None:
        """Compute rectifying transforms for a stereo calibration."""
        left_to_right = params.left_to_right
        self._left = params.left
        self._right = params.right

        self._R1, self._R2, self._P1, self._P2, _Q, _roi1, _roi2 = cv2.stereoRectify(
            cameraMatrix1=params.left.intrinsics.to_matrix(),
            distCoeffs1=params.left.distortion.to_array(),
            cameraMatrix2=params.right.intrinsics.to_matrix(),
            distCoeffs2=params.right.distortion.to_array(),
            imageSize=params.left.image_size,
            R=left_to_right.rotation,
            T=left_to_right.translation.reshape(3, 1),
            flags=cv2.CALIB_ZERO_DISPARITY,
            alpha=0,
        )

    def _rectify(
        self, camera: PinholeCamera, R: np.ndarray, P: np.ndarray, pixel: np.ndarray
    ) -> np.ndarray:
        rectified = cv2.undistortPoints(
            np.asarray(pixel, dtype=np.float64).reshape(1, 1, 2),
            camera.intrinsics.to_matrix(),
            camera.distortion.to_array(),
            R=R,
            P=P,
        )
        return rectified.reshape(2)

    def check_pixel(self, left: np.ndarray, right: np.ndarray) -> bool:
        """Return True if the pixel pair satisfies the epipolar constraint.

        Args:
            left: (x, y) pixel in the left image
            right: (x, y) pixel in the right image
        """
        if self._left is None or self._right is None:
            raise ValueError("set_calibration() must be called before check_pixel()")

        rect_left = self._rectify(self._left, self._R1, self._P1, left)
        rect_right = self._rectify(self._right, self._R2, self._P2, right)

        if abs(rect_left[1] - rect_right[1]) > self._tolerance_y:
            return False
        return bool(rect_right[0] <= rect_left[0] + self._tolerance_x)

    @property
    def tolerance_x(self) -> float:
        return self._tolerance_x

    @property
    def tolerance_y(self) -> float:
        return self._tolerance_y
