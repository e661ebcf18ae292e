"""SE(3) rigid transforms between camera, keyframe and world frames."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation) in SE(3).

    An ``SE3`` named ``a_to_b`` maps points expressed in frame A into
    frame B:

        p_b = R @ p_a + t

    Composition follows matrix order, so ``b_to_c @ a_to_b`` gives
    ``a_to_c``. :meth:`then` reads in application order instead.

    Attributes:
        rotation: 3x3 orthonormal rotation matrix (det = +1)
        translation: (3,) translation vector
    """

    rotation: np.ndarray
    translation: np.ndarray

    def __post_init__(self) -> None:
        rotation = np.array(self.rotation, dtype=np.float64)
        translation = np.array(self.translation, dtype=np.float64).reshape(-1)

        if rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {rotation.shape}")
        if translation.shape != (3,):
            raise ValueError(f"Translation must be (3,), got {translation.shape}")

        self.rotation = rotation
        self.translation = translation

    @classmethod
    def identity(cls) -> SE3:
        return cls(np.eye(3), np.zeros(3))

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> SE3:
        """Create from a 4x4 homogeneous matrix [[R, t], [0, 1]]."""
        T = np.asarray(T, dtype=np.float64)
        if T.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {T.shape}")
        return cls(T[:3, :3], T[:3, 3])

    @classmethod
    def from_rvec_tvec(cls, rvec: np.ndarray, tvec: np.ndarray) -> SE3:
        """Create from an OpenCV Rodrigues vector and translation.

        cv2.solvePnP returns the transform from the object (keyframe)
        frame into the camera frame, so the result is ``key_to_camera``.
        """
        rotation, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).reshape(3, 1))
        return cls(rotation, tvec)

    def to_matrix(self) -> np.ndarray:
        """Return the 4x4 homogeneous matrix."""
        return np.vstack(
            (np.column_stack((self.rotation, self.translation)), [0.0, 0.0, 0.0, 1.0])
        )

    def to_rvec_tvec(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (Rodrigues vector, translation) for OpenCV."""
        rvec, _ = cv2.Rodrigues(self.rotation)
        return rvec.reshape(3), self.translation.copy()

    def inverse(self) -> SE3:
        """Return the transform in the opposite direction.

        The inverse of ``a_to_b`` is ``b_to_a``: [R^T, -R^T t].
        """
        rotation_t = self.rotation.T
        return SE3(rotation_t, -(rotation_t @ self.translation))

    def compose(self, other: SE3) -> SE3:
        """Return ``self @ other``: apply ``other`` first, then ``self``.

        Example:
            key_to_world.compose(curr_to_key) gives curr_to_world
        """
        return SE3(
            self.rotation @ other.rotation,
            self.rotation @ other.translation + self.translation,
        )

    def then(self, other: SE3) -> SE3:
        """Apply ``self`` first, then ``other`` (``other @ self``).

        Example:
            curr_to_key.then(key_to_world) gives curr_to_world
        """
        return other.compose(self)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map an Nx3 array of points from the source frame to the target."""
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if points.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {points.shape}")
        return points @ self.rotation.T + self.translation

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """Map a single 3D point from the source frame to the target."""
        return self.rotation @ np.asarray(point, dtype=np.float64).reshape(3) + self.translation

    def is_finite(self) -> bool:
        """Return True if rotation and translation contain no NaN/inf."""
        return bool(np.isfinite(self.rotation).all() and np.isfinite(self.translation).all())

    def copy(self) -> SE3:
        return SE3(self.rotation.copy(), self.translation.copy())

    @property
    def position(self) -> np.ndarray:
        """Return the source frame's origin expressed in the target frame.

        For ``curr_to_world`` this is the camera position in the world.
        """
        return self.translation.copy()

    def __repr__(self) -> str:
        x, y, z = self.translation
        return f"SE3(position=[{x:.3f}, {y:.3f}, {z:.3f}])"

    def __matmul__(self, other: SE3) -> SE3:
        return self.compose(other)
