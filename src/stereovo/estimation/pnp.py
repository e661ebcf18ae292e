"""Robust keyframe-to-camera motion estimation using PnP with RANSAC."""

from __future__ import annotations

from abc import ABC, abstractmethod

import cv2
import numpy as np

from ..geometry.pose import SE3
from .observation import Stereo2D3D, stack_observations


class RobustMotionEstimator(ABC):
    """Fits a rigid motion to stereo observations while rejecting outliers.

    After a successful :meth:`process` call, :attr:`model` holds the
    transform from the landmarks' frame (the keyframe) to the current
    left camera, and :attr:`match_set` the inlier observations.
    """

    @abstractmethod
    def process(self, observations: list[Stereo2D3D]) -> bool:
        """Fit a model. Returns False if no model could be found."""

    @property
    @abstractmethod
    def model(self) -> SE3:
        """Return the fitted keyframe-to-current transform."""

    @property
    @abstractmethod
    def match_set(self) -> list[Stereo2D3D]:
        """Return the inlier observations of the last fit."""

    @abstractmethod
    def input_index(self, match_index: int) -> int:
        """Map an index into :attr:`match_set` back to the input list."""


class PnPRansacEstimator(RobustMotionEstimator):
    """PnP + RANSAC on normalized left-camera observations.

    cv2.solvePnPRansac runs with an identity camera matrix because the
    observations are already normalized, so ``inlier_threshold`` is in
    normalized units (pixels divided by the focal length).

    When the stereo baseline is known, inliers must also reproject into
    the right camera within the threshold.
    """

    def __init__(
        self,
        inlier_threshold: float = 0.003,
        max_iterations: int = 200,
        confidence: float = 0.99,
        min_inliers: int = 6,
        left_to_right: SE3 | None = None,
    ) -> None:
        """Initialize estimator.

        Args:
            inlier_threshold: Reprojection inlier threshold, normalized units
            max_iterations: Maximum RANSAC iterations
            confidence: RANSAC success probability
            min_inliers: Minimum inliers for a valid model (at least 4)
            left_to_right: Stereo baseline used to verify the right view
        """
        self._threshold = inlier_threshold
        self._max_iterations = max_iterations
        self._confidence = confidence
        self._min_inliers = max(4, min_inliers)
        self._left_to_right = left_to_right

        self._model: SE3 | None = None
        self._observations: list[Stereo2D3D] = []
        self._inlier_indices: list[int] = []

    def process(self, observations: list[Stereo2D3D]) -> bool:
        """Estimate ``key_to_curr`` from keyframe landmarks and left observations.

        Points that RANSAC keeps are re-checked in the right view when the
        stereo baseline is known.

        Args:
            observations: Landmarks with their current normalized observations

        Returns:
            True if a model with at least ``min_inliers`` inliers was found
        """
        self._model = None
        self._observations = list(observations)
        self._inlier_indices = []

        if len(observations) < self._min_inliers:
            return False

        locations, left, right = stack_observations(observations)

        try:
            success, rvec, tvec, inliers = cv2.solvePnPRansac(
                objectPoints=locations.reshape(-1, 1, 3),
                imagePoints=left.reshape(-1, 1, 2),
                cameraMatrix=np.eye(3),
                distCoeffs=None,
                iterationsCount=self._max_iterations,
                reprojectionError=self._threshold,
                confidence=self._confidence,
                flags=cv2.SOLVEPNP_ITERATIVE,
            )
        except cv2.error:
            return False

        if not success or inliers is None:
            return False

        key_to_curr = SE3.from_rvec_tvec(rvec, tvec)
        if not key_to_curr.is_finite():
            return False

        indices = np.sort(inliers.flatten())
        if self._left_to_right is not None:
            indices = indices[
                self._right_view_consistent(key_to_curr, locations[indices], right[indices])
            ]

        if len(indices) < self._min_inliers:
            return False

        self._model = key_to_curr
        self._inlier_indices = [int(i) for i in indices]
        return True

    def _right_view_consistent(
        self, key_to_curr: SE3, locations: np.ndarray, right: np.ndarray
    ) -> np.ndarray:
        """Return mask of points that also reproject into the right camera."""
        points_right = self._left_to_right.transform_points(
            key_to_curr.transform_points(locations)
        )
        depth = points_right[:, 2]
        mask = depth > 0

        projected = np.zeros_like(right)
        projected[mask] = points_right[mask, :2] / depth[mask, None]
        errors = np.linalg.norm(projected - right, axis=1)
        return mask & (errors <= self._threshold)

    @property
    def model(self) -> SE3:
        if self._model is None:
            raise ValueError("No model available, process() did not succeed")
        return self._model

    @property
    def match_set(self) -> list[Stereo2D3D]:
        return [self._observations[i] for i in self._inlier_indices]

    def input_index(self, match_index: int) -> int:
        return self._inlier_indices[match_index]

    @property
    def inlier_threshold(self) -> float:
        """Return RANSAC inlier threshold (normalized units)."""
        return self._threshold

    @property
    def min_inliers(self) -> int:
        """Return minimum required inliers."""
        return self._min_inliers
