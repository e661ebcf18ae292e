"""Selection of stereo track pairs that are usable for motion estimation."""

from __future__ import annotations

import logging
from typing import NamedTuple

from ..frontend.epipolar import StereoConsistencyCheck
from ..frontend.tracker import PointTrack, PointTracker
from .records import left_record, right_record

logger = logging.getLogger(__name__)


class StereoPair(NamedTuple):
    """A left track and its paired right track."""

    left: PointTrack
    right: PointTrack


class ConsistencyFilter:
    """Restricts the live tracks to pairs active in both cameras.

    A left track becomes a candidate when it is active in the left tracker,
    its paired right track is active in the right tracker, and the two
    current pixels still satisfy the epipolar constraint.
    """

    def __init__(self, stereo_check: StereoConsistencyCheck) -> None:
        self._stereo_check = stereo_check

    def select(
        self,
        tracker_left: PointTracker,
        tracker_right: PointTracker,
        frame_id: int,
    ) -> list[StereoPair]:
        """Return the consistent pairs, in left-tracker active order.

        Marks each active right track as active in ``frame_id`` and each
        accepted left track as consistent in ``frame_id``. A left track's
        partner counts as active only if it carries this tick's mark.
        """
        num_right = 0
        for track in tracker_right.get_active_tracks():
            info = right_record(track)
            if info is not None:
                info.last_active = frame_id
                num_right += 1

        candidates: list[StereoPair] = []
        mutual_active = 0
        active_left = tracker_left.get_active_tracks()
        for left in active_left:
            info = left_record(left)
            if info is None or info.right_id is None:
                continue

            right = tracker_right.get_track(info.right_id)
            partner = right_record(right) if right is not None else None
            if partner is None or partner.last_active != frame_id:
                continue
            mutual_active += 1

            if self._stereo_check.check_pixel(left.pixel, right.pixel):
                info.last_consistent = frame_id
                candidates.append(StereoPair(left, right))

        logger.debug(
            "frame %d: active left=%d right=%d, mutual=%d, candidates=%d",
            frame_id,
            len(active_left),
            num_right,
            mutual_active,
            len(candidates),
        )
        return candidates
