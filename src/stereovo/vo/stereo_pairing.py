"""Pairing of newly spawned left and right tracks into stereo landmarks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from ..exceptions import AssociationConfigError
from ..frontend.associate import StereoAssociator
from ..frontend.describe import RegionDescriber
from ..frontend.tracker import PointTrack
from ..frontend.triangulate import Triangulator
from ..geometry.camera import PinholeCamera, StereoParameters
from ..geometry.pose import SE3

logger = logging.getLogger(__name__)


@dataclass
class StereoMatch:
    """An associated pair of new tracks.

    Attributes:
        left: New left-camera track
        right: New right-camera track
        point: Triangulated position in the current left camera frame,
            None if triangulation failed
    """

    left: PointTrack
    right: PointTrack
    point: np.ndarray | None


@dataclass
class PairingResult:
    """Outcome of pairing the new tracks of both cameras."""

    matches: list[StereoMatch] = field(default_factory=list)
    unmatched_left: list[PointTrack] = field(default_factory=list)
    unmatched_right: list[PointTrack] = field(default_factory=list)


@dataclass
class _Described:
    tracks: list[PointTrack]
    points: np.ndarray
    descriptors: np.ndarray
    failed: list[PointTrack]


class StereoTrackPairing:
    """Associates new left tracks with new right tracks and triangulates them.

    Descriptors are computed once, when tracks are spawned. From then on
    each camera tracks its features independently and the pairing is kept
    in the track records.
    """

    def __init__(
        self,
        describer: RegionDescriber,
        associator: StereoAssociator,
        triangulator: Triangulator,
        describe_radius: float = 11.0,
    ) -> None:
        """Initialize pairing.

        Raises:
            AssociationConfigError: If the associator can match a source or
                destination point more than once
        """
        if not associator.unique_source or not associator.unique_destination:
            raise AssociationConfigError(
                "Both unique source and destination must be ensured by association"
            )

        self._describer = describer
        self._associator = associator
        self._triangulator = triangulator
        self.describe_radius = describe_radius

        self._left: PinholeCamera | None = None
        self._right: PinholeCamera | None = None
        self._left_to_right: SE3 | None = None

    def set_calibration(self, params: StereoParameters) -> None:
        """Use the cameras and baseline of ``params`` for triangulation."""
        self._left = params.left
        self._right = params.right
        self._left_to_right = params.left_to_right

    def _describe(self, image: np.ndarray, tracks: list[PointTrack]) -> _Described:
        self._describer.set_image(image)

        kept: list[PointTrack] = []
        failed: list[PointTrack] = []
        descriptors = []
        for track in tracks:
            desc = self._describer.describe(
                track.pixel[0], track.pixel[1], 0.0, self.describe_radius
            )
            if desc is None:
                failed.append(track)
                continue
            kept.append(track)
            descriptors.append(desc)

        points = np.array([t.pixel for t in kept], dtype=np.float64).reshape(-1, 2)
        return _Described(kept, points, np.array(descriptors), failed)

    def pair(
        self,
        image_left: np.ndarray,
        image_right: np.ndarray,
        new_left: list[PointTrack],
        new_right: list[PointTrack],
    ) -> PairingResult:
        """Associate new tracks across cameras and triangulate each match.

        Tracks that could not be described are reported as unmatched.
        """
        if self._left_to_right is None:
            raise ValueError("set_calibration() must be called before pairing tracks")

        left = self._describe(image_left, new_left)
        right = self._describe(image_right, new_right)

        association = self._associator.associate(
            left.points, left.descriptors, right.points, right.descriptors
        )

        result = PairingResult(
            unmatched_left=left.failed + [left.tracks[i] for i in association.unmatched_source],
            unmatched_right=right.failed
            + [right.tracks[i] for i in association.unmatched_destination],
        )

        for src, dst in association.matches:
            track_left = left.tracks[src]
            track_right = right.tracks[dst]

            obs_left = self._left.pixel_to_normalized(track_left.pixel)
            obs_right = self._right.pixel_to_normalized(track_right.pixel)
            point = self._triangulator.triangulate(obs_left, obs_right, self._left_to_right)
            result.matches.append(StereoMatch(track_left, track_right, point))

        logger.debug(
            "paired %d of %d left / %d right new tracks (%d + %d undescribed)",
            len(result.matches),
            len(new_left),
            len(new_right),
            len(left.failed),
            len(right.failed),
        )
        return result
