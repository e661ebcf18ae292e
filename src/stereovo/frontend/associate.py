"""Left-to-right association of newly spawned tracks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import cv2
import numpy as np

from .epipolar import StereoConsistencyCheck


@dataclass
class AssociationResult:
    """Outcome of associating a source set with a destination set.

    Attributes:
        matches: (source_index, destination_index) pairs
        unmatched_source: Source indices with no match
        unmatched_destination: Destination indices with no match
    """

    matches: list[tuple[int, int]] = field(default_factory=list)
    unmatched_source: list[int] = field(default_factory=list)
    unmatched_destination: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        """Return number of matches."""
        return len(self.matches)


class StereoAssociator(ABC):
    """Matches described points in one image to described points in another."""

    @property
    @abstractmethod
    def unique_source(self) -> bool:
        """True if every source index appears in at most one match."""

    @property
    @abstractmethod
    def unique_destination(self) -> bool:
        """True if every destination index appears in at most one match."""

    @abstractmethod
    def associate(
        self,
        source_points: np.ndarray,
        source_descs: np.ndarray,
        destination_points: np.ndarray,
        destination_descs: np.ndarray,
    ) -> AssociationResult:
        """Associate source points with destination points.

        Args:
            source_points: Nx2 pixel coordinates
            source_descs: N descriptors (one per row)
            destination_points: Mx2 pixel coordinates
            destination_descs: M descriptors (one per row)
        """


class BruteForceAssociator(StereoAssociator):
    """Mutual nearest-neighbour matching of binary descriptors.

    Cross-checking keeps a match only when each side is the other's best
    candidate, so both source and destination indices are unique.
    """

    def __init__(
        self,
        max_distance: float = 60.0,
        max_vertical_offset: float | None = None,
        stereo_check: StereoConsistencyCheck | None = None,
        norm_type: int = cv2.NORM_HAMMING,
    ) -> None:
        """Initialize associator.

        Args:
            max_distance: Largest accepted descriptor distance
            max_vertical_offset: If set, reject matches whose pixel rows
                differ by more than this (useful for near-rectified rigs)
            stereo_check: If set, reject matches whose pixels fail this
                calibrated epipolar check
            norm_type: OpenCV norm for descriptor distances
        """
        self._matcher = cv2.BFMatcher(norm_type, crossCheck=True)
        self._max_distance = max_distance
        self._max_vertical_offset = max_vertical_offset
        self._stereo_check = stereo_check

    @property
    def unique_source(self) -> bool:
        return True

    @property
    def unique_destination(self) -> bool:
        return True

    def associate(
        self,
        source_points: np.ndarray,
        source_descs: np.ndarray,
        destination_points: np.ndarray,
        destination_descs: np.ndarray,
    ) -> AssociationResult:
        n_source = len(source_points)
        n_destination = len(destination_points)

        if n_source == 0 or n_destination == 0:
            return AssociationResult(
                unmatched_source=list(range(n_source)),
                unmatched_destination=list(range(n_destination)),
            )

        source_points = np.asarray(source_points, dtype=np.float64).reshape(-1, 2)
        destination_points = np.asarray(destination_points, dtype=np.float64).reshape(-1, 2)

        matches: list[tuple[int, int]] = []
        for m in self._matcher.match(source_descs, destination_descs):
            if m.distance > self._max_distance:
                continue
            if self._max_vertical_offset is not None:
                dy = abs(source_points[m.queryIdx, 1] - destination_points[m.trainIdx, 1])
                if dy > self._max_vertical_offset:
                    continue
            if self._stereo_check is not None and not self._stereo_check.check_pixel(
                source_points[m.queryIdx], destination_points[m.trainIdx]
            ):
                continue
            matches.append((m.queryIdx, m.trainIdx))

        matches.sort()
        matched_source = {s for s, _ in matches}
        matched_destination = {d for _, d in matches}

        return AssociationResult(
            matches=matches,
            unmatched_source=[i for i in range(n_source) if i not in matched_source],
            unmatched_destination=[
                i for i in range(n_destination) if i not in matched_destination
            ],
        )

    @property
    def max_distance(self) -> float:
        """Return the maximum descriptor distance."""
        return self._max_distance
