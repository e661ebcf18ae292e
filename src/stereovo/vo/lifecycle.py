"""Dropping, retiring and spawning of stereo track pairs."""

from __future__ import annotations

import logging

import numpy as np

from ..exceptions import TrackStateError, UnpairedRightTrackError
from ..frontend.tracker import PointTracker
from .pose_chain import PoseChain
from .records import LeftRecord, left_record, link_pair, right_record
from .stereo_pairing import StereoTrackPairing

logger = logging.getLogger(__name__)


class TrackLifecycleManager:
    """Keeps the left and right trackers' populations in step.

    Responsibilities, applied in this order each tick:
    1. Mutual drop: a track lost by one tracker is dropped from the other
    2. Retirement: tracks outside the inlier set for too long are dropped
    3. Spawn: new pairs are created when the inlier count runs low
    """

    def __init__(
        self,
        tracker_left: PointTracker,
        tracker_right: PointTracker,
        pairing: StereoTrackPairing,
        threshold_add: int,
        threshold_retire: int,
    ) -> None:
        """Initialize lifecycle manager.

        Args:
            tracker_left: Left camera tracker
            tracker_right: Right camera tracker
            pairing: Associates and triangulates new tracks
            threshold_add: Spawn when the inlier count is below this;
                zero or negative spawns every tick
            threshold_retire: Ticks a track may stay outside the inlier set
        """
        self._left = tracker_left
        self._right = tracker_right
        self._pairing = pairing
        self.threshold_add = threshold_add
        self.threshold_retire = threshold_retire

    def mutual_drop(self) -> int:
        """Propagate tracks dropped by either tracker to the other one.

        Returns:
            Number of tracks dropped from the partner tracker
        """
        dropped = 0
        for track in self._left.get_dropped_tracks():
            info = left_record(track)
            if info is not None and info.right_id is not None:
                dropped += self._right.drop_track(info.right_id)

        for track in self._right.get_dropped_tracks():
            info = right_record(track)
            # Both sides may have lost the pair; dropping twice is a no-op
            if info is not None and info.left_id is not None:
                dropped += self._left.drop_track(info.left_id)
        return dropped

    def retire(self, frame_id: int) -> int:
        """Drop pairs that have not been inliers for too long.

        Returns:
            Number of retired pairs

        Raises:
            TrackStateError: If a tracker refuses to drop a live track
        """
        retired = 0
        for track in self._left.get_all_tracks():
            info = left_record(track)
            if info is None:
                continue
            if frame_id - info.last_inlier <= self.threshold_retire:
                continue

            if not self._left.drop_track(track.track_id):
                raise TrackStateError("left", track.track_id, frame_id)
            if info.right_id is None or not self._right.drop_track(info.right_id):
                raise TrackStateError("right", info.right_id, frame_id)
            retired += 1

        if retired:
            logger.debug("frame %d: retired %d unused pairs", frame_id, retired)
        return retired

    def should_spawn(self, num_inliers: int) -> bool:
        """Return True if the inlier count calls for new tracks."""
        return self.threshold_add <= 0 or num_inliers < self.threshold_add

    def spawn(
        self,
        image_left: np.ndarray,
        image_right: np.ndarray,
        pose_chain: PoseChain,
        frame_id: int,
    ) -> int:
        """Spawn tracks in both cameras and link the ones that pair up.

        Landmarks are stored in keyframe coordinates. New tracks left
        without a partner are dropped.

        Returns:
            Number of new stereo pairs

        Raises:
            UnpairedRightTrackError: If an associated pair fails to
                triangulate
        """
        self._left.spawn_tracks()
        self._right.spawn_tracks()

        result = self._pairing.pair(
            image_left,
            image_right,
            self._left.get_new_tracks(),
            self._right.get_new_tracks(),
        )

        for match in result.matches:
            if match.point is None:
                self._left.drop_track(match.left.track_id)
                # TODO: decide whether the orphaned right track is dropped or
                # kept for the next association round, then stop raising here
                raise UnpairedRightTrackError(
                    match.left.track_id, match.right.track_id, frame_id
                )
            link_pair(match.left, match.right, pose_chain.camera_to_key(match.point), frame_id)

        for track in result.unmatched_right:
            self._right.drop_track(track.track_id)
        for track in result.unmatched_left:
            self._left.drop_track(track.track_id)

        logger.debug(
            "frame %d: spawned %d pairs, dropped %d left / %d right unmatched",
            frame_id,
            len(result.matches),
            len(result.unmatched_left),
            len(result.unmatched_right),
        )
        return len(result.matches)

    def live_records(self) -> list[LeftRecord]:
        """Return the records of every paired live left track."""
        records = []
        for track in self._left.get_all_tracks():
            info = left_record(track)
            if info is not None:
                records.append(info)
        return records
