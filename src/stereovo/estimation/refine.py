"""Non-linear refinement of stereo motion estimates.

Minimises the reprojection error of every observation in both cameras:

    minimize sum_i ||left_i - pi(T p_i)||^2 + ||right_i - pi(L2R T p_i)||^2

over T = keyframe-to-current, parameterised as a Rodrigues vector and a
translation. pi() divides by depth; observations are normalized image
coordinates so no intrinsics appear.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from scipy.optimize import least_squares

from ..geometry.pose import SE3
from .observation import Stereo2D3D, stack_observations

_MIN_DEPTH = 1e-9


class MotionRefiner(ABC):
    """Refines a motion estimate given a seed."""

    @abstractmethod
    def fit(self, observations: list[Stereo2D3D], seed: SE3) -> SE3 | None:
        """Refine ``seed`` (keyframe-to-current). Returns None on failure."""


def _project(points: np.ndarray) -> np.ndarray:
    depth = points[:, 2:3]
    depth = np.where(np.abs(depth) < _MIN_DEPTH, _MIN_DEPTH, depth)
    return points[:, :2] / depth


class StereoPoseRefiner(MotionRefiner):
    """Least-squares stereo pose refinement with scipy."""

    def __init__(
        self,
        left_to_right: SE3 | None = None,
        max_iterations: int = 50,
        ftol: float = 1e-10,
        xtol: float = 1e-10,
        loss: str = "linear",
    ) -> None:
        """Initialize refiner.

        Args:
            left_to_right: Stereo baseline. If None only the left camera
                residuals are used.
            max_iterations: Iteration limit (scaled by parameter count)
            ftol: Function tolerance for convergence
            xtol: Parameter tolerance for convergence
            loss: Loss function ("linear", "huber", "soft_l1", "cauchy")
        """
        self._left_to_right = left_to_right
        self._max_iterations = max_iterations
        self._ftol = ftol
        self._xtol = xtol
        self._loss = loss

    def fit(self, observations: list[Stereo2D3D], seed: SE3) -> SE3 | None:
        locations, left, right = stack_observations(observations)

        views = 1 if self._left_to_right is None else 2
        if 2 * views * len(observations) < 6:
            return None

        rvec, tvec = seed.to_rvec_tvec()
        x0 = np.concatenate((rvec, tvec))

        initial_cost = 0.5 * np.sum(self._residuals(x0, locations, left, right) ** 2)

        result = least_squares(
            fun=self._residuals,
            x0=x0,
            args=(locations, left, right),
            method="trf",
            loss=self._loss,
            ftol=self._ftol,
            xtol=self._xtol,
            max_nfev=self._max_iterations * len(x0),
            verbose=0,
        )

        final_cost = 0.5 * np.sum(result.fun**2)
        if not np.isfinite(result.x).all() or final_cost > initial_cost:
            return None
        if not (result.success or final_cost < initial_cost):
            return None

        refined = SE3.from_rvec_tvec(result.x[:3], result.x[3:])
        return refined if refined.is_finite() else None

    def _residuals(
        self,
        params: np.ndarray,
        locations: np.ndarray,
        left: np.ndarray,
        right: np.ndarray,
    ) -> np.ndarray:
        key_to_curr = SE3.from_rvec_tvec(params[:3], params[3:])
        points_left = key_to_curr.transform_points(locations)
        residuals = [(_project(points_left) - left).ravel()]

        if self._left_to_right is not None:
            points_right = self._left_to_right.transform_points(points_left)
            residuals.append((_project(points_right) - right).ravel())

        return np.concatenate(residuals)
