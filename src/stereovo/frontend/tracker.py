"""Single-camera point trackers.

A tracker follows 2D feature positions across frames in one camera. It
owns the tracks it creates: only the tracker decides when a track object
is destroyed. Callers request removal through :meth:`PointTracker.drop_track`
and refer to tracks by their integer ``track_id``, which stays stable until
the track is dropped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import cv2
import numpy as np

from ..config import TrackerConfig

if TYPE_CHECKING:
    from ..vo.records import TrackRecord


@dataclass
class PointTrack:
    """A feature followed across frames by a single-camera tracker.

    Attributes:
        track_id: Handle that is unique within the owning tracker
        pixel: Current (x, y) pixel location, updated every frame
        spawn_frame: Frame in which the track was created
        record: Auxiliary state attached by the odometry, None until the
            track has been paired with a track in the other camera
    """

    track_id: int
    pixel: np.ndarray  # (2,) float64
    spawn_frame: int
    record: TrackRecord | None = None

    def __post_init__(self) -> None:
        self.pixel = np.asarray(self.pixel, dtype=np.float64).flatten()


class PointTracker(ABC):
    """Interface of a single-camera feature tracker."""

    @abstractmethod
    def process(self, image: np.ndarray) -> None:
        """Track existing features into a new image and advance the frame."""

    @abstractmethod
    def spawn_tracks(self) -> None:
        """Detect new features in the current image and start tracks."""

    @abstractmethod
    def get_new_tracks(self) -> list[PointTrack]:
        """Return tracks created by the last :meth:`spawn_tracks` call."""

    @abstractmethod
    def get_active_tracks(self) -> list[PointTrack]:
        """Return tracks that were observed in the current frame."""

    @abstractmethod
    def get_dropped_tracks(self) -> list[PointTrack]:
        """Return tracks the tracker lost during the last :meth:`process`."""

    @abstractmethod
    def get_all_tracks(self) -> list[PointTrack]:
        """Return every live track, active or not."""

    @abstractmethod
    def get_track(self, track_id: int) -> PointTrack | None:
        """Return the live track with this id, or None."""

    @abstractmethod
    def drop_track(self, track_id: int) -> bool:
        """Remove a track. Returns False if it was not live."""

    @abstractmethod
    def reset(self) -> None:
        """Discard all tracks and return to the state before any frame."""

    @abstractmethod
    def get_frame_id(self) -> int:
        """Return the id of the current frame (-1 before the first)."""


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.dtype != np.uint8:
        image = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    return image


class KltPointTracker(PointTracker):
    """Shi-Tomasi corners tracked with pyramidal Lucas-Kanade optical flow.

    Every frame, each live track is followed forward into the new image and
    then backward into the previous one. Tracks whose forward-backward error
    exceeds the threshold, whose flow failed, or which leave the image are
    dropped and reported through :meth:`get_dropped_tracks`.

    New tracks are only created on request (:meth:`spawn_tracks`), masked
    so they keep ``min_distance`` away from existing tracks.
    """

    def __init__(self, config: TrackerConfig | None = None) -> None:
        """Initialize tracker.

        Args:
            config: Detection and optical-flow parameters
        """
        self._config = config or TrackerConfig()
        self._lk_params = dict(
            winSize=(self._config.window_size, self._config.window_size),
            maxLevel=self._config.pyramid_levels,
            criteria=(cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT, 30, 0.01),
        )

        self._tracks: dict[int, PointTrack] = {}
        self._new: list[PointTrack] = []
        self._dropped: list[PointTrack] = []
        self._image: np.ndarray | None = None
        self._frame_id: int = -1
        self._next_id: int = 0

    def process(self, image: np.ndarray) -> None:
        """Follow live tracks into a new image.

        Tracks that fail the forward-backward check or leave the border
        are removed and reported by :meth:`get_dropped_tracks`.

        Args:
            image: Grayscale or BGR image
        """
        gray = _to_gray(image)
        self._frame_id += 1
        self._new = []
        self._dropped = []

        if self._image is not None and self._tracks:
            self._track_into(self._image, gray)

        self._image = gray

    def _track_into(self, prev: np.ndarray, curr: np.ndarray) -> None:
        tracks = list(self._tracks.values())
        pts0 = np.array([t.pixel for t in tracks], dtype=np.float32).reshape(-1, 1, 2)

        pts1, status, _ = cv2.calcOpticalFlowPyrLK(prev, curr, pts0, None, **self._lk_params)
        pts0_back, status_back, _ = cv2.calcOpticalFlowPyrLK(
            curr, prev, pts1, None, **self._lk_params
        )

        h, w = curr.shape[:2]
        border = self._config.border
        fb_error = np.linalg.norm(pts0_back.reshape(-1, 2) - pts0.reshape(-1, 2), axis=1)

        for i, track in enumerate(tracks):
            x, y = (float(v) for v in pts1[i, 0])
            ok = (
                status[i, 0] == 1
                and status_back[i, 0] == 1
                and fb_error[i] <= self._config.forward_backward_threshold
                and border <= x < w - border
                and border <= y < h - border
            )
            if ok:
                track.pixel[0] = x
                track.pixel[1] = y
            else:
                del self._tracks[track.track_id]
                self._dropped.append(track)

    def spawn_tracks(self) -> None:
        """Start tracks at new corners, away from the live tracks.

        Only as many corners as ``max_features`` leaves room for are added.
        """
        if self._image is None:
            return

        needed = self._config.max_features - len(self._tracks)
        if needed <= 0:
            return

        h, w = self._image.shape[:2]
        border = self._config.border
        mask = np.zeros((h, w), dtype=np.uint8)
        mask[border : h - border, border : w - border] = 255
        for track in self._tracks.values():
            center = (int(round(track.pixel[0])), int(round(track.pixel[1])))
            cv2.circle(mask, center, self._config.min_distance, 0, -1)

        corners = cv2.goodFeaturesToTrack(
            self._image,
            maxCorners=needed,
            qualityLevel=self._config.quality_level,
            minDistance=self._config.min_distance,
            mask=mask,
        )
        if corners is None:
            return

        for corner in corners.reshape(-1, 2):
            track = PointTrack(
                track_id=self._next_id,
                pixel=corner,
                spawn_frame=self._frame_id,
            )
            self._next_id += 1
            self._tracks[track.track_id] = track
            self._new.append(track)

    def get_new_tracks(self) -> list[PointTrack]:
        return [t for t in self._new if t.track_id in self._tracks]

    def get_active_tracks(self) -> list[PointTrack]:
        # Every live KLT track was either followed into or spawned in this frame
        return list(self._tracks.values())

    def get_dropped_tracks(self) -> list[PointTrack]:
        return list(self._dropped)

    def get_all_tracks(self) -> list[PointTrack]:
        return list(self._tracks.values())

    def get_track(self, track_id: int) -> PointTrack | None:
        return self._tracks.get(track_id)

    def drop_track(self, track_id: int) -> bool:
        """Remove a live track.

        Returns:
            False if no live track has this id
        """
        return self._tracks.pop(track_id, None) is not None

    def reset(self) -> None:
        self._tracks.clear()
        self._new = []
        self._dropped = []
        self._image = None
        self._frame_id = -1
        self._next_id = 0

    def get_frame_id(self) -> int:
        return self._frame_id

    @property
    def num_tracks(self) -> int:
        """Return number of live tracks."""
        return len(self._tracks)
