"""Keyframe-relative pose chain."""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from ..geometry.pose import SE3
from .records import LeftRecord

logger = logging.getLogger(__name__)


class PoseChain:
    """Camera pose stored as current-to-keyframe plus keyframe-to-world.

    Landmarks are kept in keyframe coordinates. Periodically moving the
    keyframe to the current camera (:meth:`rebase`) keeps the landmark
    coordinates and ``curr_to_key`` small.
    """

    def __init__(self) -> None:
        self.key_to_world = SE3.identity()
        self.curr_to_key = SE3.identity()
        self._num_keyframes = 0

    @property
    def curr_to_world(self) -> SE3:
        """Return the current camera pose in the world frame."""
        return self.key_to_world @ self.curr_to_key

    def camera_to_key(self, point_camera: np.ndarray) -> np.ndarray:
        """Express a point from the current camera frame in keyframe coordinates."""
        return self.curr_to_key.transform_point(point_camera)

    def rebase(self, records: Iterable[LeftRecord]) -> int:
        """Make the current camera the new keyframe.

        Every landmark is re-expressed in the new keyframe, then
        ``curr_to_key`` is folded into ``key_to_world`` and reset.

        Args:
            records: Records of every live left track

        Returns:
            Number of landmarks moved
        """
        key_to_curr = self.curr_to_key.inverse()

        moved = 0
        for record in records:
            observation = record.observation
            observation.location = key_to_curr.transform_point(observation.location)
            moved += 1

        self.key_to_world = self.key_to_world @ self.curr_to_key
        self.curr_to_key = SE3.identity()
        self._num_keyframes += 1

        logger.info(
            "keyframe %d at %s, %d landmarks re-based",
            self._num_keyframes,
            self.key_to_world,
            moved,
        )
        return moved

    def reset(self) -> None:
        self.key_to_world = SE3.identity()
        self.curr_to_key = SE3.identity()
        self._num_keyframes = 0

    @property
    def num_keyframes(self) -> int:
        """Return number of rebases since the last reset."""
        return self._num_keyframes
