"""Stereo 2D-3D observation used for motion estimation."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass
class Stereo2D3D:
    """A landmark and its current observations in both cameras.

    Attributes:
        left_obs: Normalized (x, y) observation in the left camera
        right_obs: Normalized (x, y) observation in the right camera
        location: 3D position of the landmark in the keyframe frame
    """

    left_obs: np.ndarray = field(default_factory=lambda: np.zeros(2))
    right_obs: np.ndarray = field(default_factory=lambda: np.zeros(2))
    location: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.left_obs = np.asarray(self.left_obs, dtype=np.float64).flatten()
        self.right_obs = np.asarray(self.right_obs, dtype=np.float64).flatten()
        self.location = np.asarray(self.location, dtype=np.float64).flatten()


def stack_observations(
    observations: list[Stereo2D3D],
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Stack observations into (Nx3 locations, Nx2 left, Nx2 right) arrays."""
    if len(observations) == 0:
        return np.empty((0, 3)), np.empty((0, 2)), np.empty((0, 2))

    locations = np.array([o.location for o in observations], dtype=np.float64)
    left = np.array([o.left_obs for o in observations], dtype=np.float64)
    right = np.array([o.right_obs for o in observations], dtype=np.float64)
    return locations, left, right
