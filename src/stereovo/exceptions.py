"""Errors raised by the dual-track visual odometry core."""

from __future__ import annotations


class AssociationConfigError(ValueError):
    """The stereo associator cannot guarantee one-to-one matches."""


class TrackStateError(RuntimeError):
    """The left and right trackers disagree about which tracks are alive.

    Raised when a tracker refuses to drop a track that the odometry still
    holds a record for. The two trackers are out of sync at that point, so
    the instance should be reset rather than fed more frames.
    """

    def __init__(self, camera: str, track_id: int, frame_id: int) -> None:
        super().__init__(
            f"{camera} tracker failed to drop live track {track_id} "
            f"at frame {frame_id}"
        )
        self.camera = camera
        self.track_id = track_id
        self.frame_id = frame_id


class UnpairedRightTrackError(RuntimeError):
    """Triangulation failed for a freshly associated stereo pair.

    The new left track has already been dropped. The right track is still
    alive in the right tracker without a partner.
    """

    def __init__(self, left_id: int, right_id: int, frame_id: int) -> None:
        super().__init__(
            f"triangulation failed for new pair left={left_id} right={right_id} "
            f"at frame {frame_id}; right track left unpaired"
        )
        self.left_id = left_id
        self.right_id = right_id
        self.frame_id = frame_id
