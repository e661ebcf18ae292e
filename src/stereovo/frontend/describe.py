"""Region descriptors computed around individual track locations."""

from __future__ import annotations

from abc import ABC, abstractmethod

import cv2
import numpy as np


class RegionDescriber(ABC):
    """Describes the image region around a point."""

    @abstractmethod
    def set_image(self, image: np.ndarray) -> None:
        """Set the image subsequent :meth:`describe` calls read from."""

    @abstractmethod
    def describe(
        self, x: float, y: float, orientation: float, radius: float
    ) -> np.ndarray | None:
        """Describe the region centred at (x, y).

        Returns:
            Descriptor vector, or None if the region cannot be described
        """


class OrbDescriber(RegionDescriber):
    """ORB (rotated BRIEF) binary descriptors at caller-chosen locations.

    Only the descriptor half of ORB is used; detection is the tracker's
    job. ORB samples a fixed square patch around each keypoint and ignores
    ``KeyPoint.size``, so the radius selects the patch instead: a radius
    ``r`` describes a ``(2r + 1) x (2r + 1)`` patch. One extractor is
    cached per patch size.
    """

    def __init__(self, min_patch_size: int = 5) -> None:
        """Initialize describer.

        Args:
            min_patch_size: Smallest patch used, whatever the radius
        """
        self._min_patch_size = min_patch_size
        self._extractors: dict[int, cv2.ORB] = {}
        self._image: np.ndarray | None = None

    def set_image(self, image: np.ndarray) -> None:
        if image.ndim == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        self._image = image

    def patch_size(self, radius: float) -> int:
        """Return the side of the square patch described for ``radius``."""
        return max(2 * int(round(radius)) + 1, self._min_patch_size)

    def _extractor(self, patch_size: int) -> cv2.ORB:
        orb = self._extractors.get(patch_size)
        if orb is None:
            # Points closer to the border than the patch are not described
            orb = cv2.ORB_create(edgeThreshold=patch_size, patchSize=patch_size)
            self._extractors[patch_size] = orb
        return orb

    def describe(
        self, x: float, y: float, orientation: float, radius: float
    ) -> np.ndarray | None:
        """Describe the patch of the given radius centred at (x, y).

        Args:
            x: Pixel column
            y: Pixel row
            orientation: Patch orientation in radians
            radius: Half the side of the described patch (pixels)

        Returns:
            (32,) uint8 descriptor, or None if the patch leaves the image
        """
        if self._image is None:
            raise ValueError("set_image() must be called before describe()")

        patch_size = self.patch_size(radius)
        keypoint = cv2.KeyPoint(
            x=float(x), y=float(y), size=float(patch_size), angle=float(np.degrees(orientation))
        )
        try:
            keypoints, descriptors = self._extractor(patch_size).compute(self._image, [keypoint])
        except cv2.error:
            return None

        # ORB silently removes keypoints it cannot describe
        if descriptors is None or len(keypoints) == 0:
            return None
        return descriptors[0]
