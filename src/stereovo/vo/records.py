"""Auxiliary state the odometry attaches to tracks in each camera.

Left tracks carry a :class:`LeftRecord` holding the landmark, right tracks
a :class:`RightRecord`. The two records of a stereo pair point at each
other through track ids (handles into the owning trackers), never through
object references, so dropping a track cannot leave a dangling pointer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

import numpy as np

from ..estimation.observation import Stereo2D3D
from ..frontend.tracker import PointTrack


@dataclass
class LeftRecord:
    """State attached to a left-camera track.

    Attributes:
        observation: Landmark in keyframe coordinates plus its latest
            normalized observations in both cameras
        last_consistent: Last frame the pair passed the epipolar check
        last_inlier: Last frame the track was in the motion inlier set
        right_id: Id of the paired right-camera track
    """

    observation: Stereo2D3D = field(default_factory=Stereo2D3D)
    last_consistent: int = -1
    last_inlier: int = -1
    right_id: int | None = None


@dataclass
class RightRecord:
    """State attached to a right-camera track.

    Attributes:
        last_active: Last frame the track was in the active list
        left_id: Id of the paired left-camera track
    """

    last_active: int = -1
    left_id: int | None = None


TrackRecord = Union[LeftRecord, RightRecord]


def left_record(track: PointTrack) -> LeftRecord | None:
    """Return the track's LeftRecord, or None if it has not been paired."""
    record = track.record
    return record if isinstance(record, LeftRecord) else None


def right_record(track: PointTrack) -> RightRecord | None:
    """Return the track's RightRecord, or None if it has not been paired."""
    record = track.record
    return record if isinstance(record, RightRecord) else None


def link_pair(
    left: PointTrack, right: PointTrack, location: np.ndarray, frame_id: int
) -> LeftRecord:
    """Attach linked records to a freshly associated stereo pair.

    Trackers may recycle track objects, so existing records are reused.

    Args:
        left: New left-camera track
        right: New right-camera track
        location: 3D landmark position in keyframe coordinates
        frame_id: Current frame

    Returns:
        The left track's record
    """
    info_left = left_record(left)
    if info_left is None:
        info_left = LeftRecord()
        left.record = info_left

    info_right = right_record(right)
    if info_right is None:
        info_right = RightRecord()
        right.record = info_right

    info_left.observation.location = location
    info_left.right_id = right.track_id
    info_left.last_consistent = frame_id
    info_left.last_inlier = frame_id

    info_right.left_id = left.track_id
    info_right.last_active = frame_id
    return info_left
