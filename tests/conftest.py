"""Shared fixtures: a synthetic stereo rig and scripted collaborators."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pytest

from stereovo.estimation import Stereo2D3D
from stereovo.estimation.pnp import RobustMotionEstimator
from stereovo.estimation.refine import MotionRefiner
from stereovo.frontend import (
    AssociationResult,
    LinearTriangulator,
    PointTrack,
    PointTracker,
    RegionDescriber,
    StereoAssociator,
)
from stereovo.geometry import SE3, CameraIntrinsics, PinholeCamera, StereoParameters
from stereovo.vo import DualTrackVisualOdometry

BASELINE = 0.1


class ScriptedTracker(PointTracker):
    """Tracker whose spawns, losses and pixel motion are set by the test."""

    def __init__(self) -> None:
        self.tracks: dict[int, PointTrack] = {}
        self.pending_spawn: list[np.ndarray] = []
        self.pending_loss: set[int] = set()
        self.refuse_drop: set[int] = set()
        self.inactive: set[int] = set()
        self._new: list[PointTrack] = []
        self._dropped: list[PointTrack] = []
        self._frame_id = -1
        self._next_id = 0

    def set_pixel(self, track_id: int, pixel) -> None:
        self.tracks[track_id].pixel = np.asarray(pixel, dtype=np.float64)

    def process(self, image: np.ndarray) -> None:
        self._frame_id += 1
        self._new = []
        self._dropped = []
        for track_id in sorted(self.pending_loss):
            track = self.tracks.pop(track_id, None)
            if track is not None:
                self._dropped.append(track)
        self.pending_loss.clear()

    def spawn_tracks(self) -> None:
        for pixel in self.pending_spawn:
            track = PointTrack(self._next_id, pixel, self._frame_id)
            self._next_id += 1
            self.tracks[track.track_id] = track
            self._new.append(track)
        self.pending_spawn = []

    def get_new_tracks(self) -> list[PointTrack]:
        return [t for t in self._new if t.track_id in self.tracks]

    def get_active_tracks(self) -> list[PointTrack]:
        return [t for t in self.tracks.values() if t.track_id not in self.inactive]

    def get_dropped_tracks(self) -> list[PointTrack]:
        return list(self._dropped)

    def get_all_tracks(self) -> list[PointTrack]:
        return list(self.tracks.values())

    def get_track(self, track_id: int) -> PointTrack | None:
        return self.tracks.get(track_id)

    def drop_track(self, track_id: int) -> bool:
        if track_id in self.refuse_drop:
            return False
        return self.tracks.pop(track_id, None) is not None

    def reset(self) -> None:
        self.tracks.clear()
        self.pending_spawn = []
        self.pending_loss.clear()
        self.inactive.clear()
        self._new = []
        self._dropped = []
        self._frame_id = -1
        self._next_id = 0

    def get_frame_id(self) -> int:
        return self._frame_id


class PixelDescriber(RegionDescriber):
    """Uses the pixel location as descriptor; can be told to fail."""

    def __init__(self) -> None:
        self.fail_at: set[tuple[int, int]] = set()
        self.radii: list[float] = []

    def set_image(self, image: np.ndarray) -> None:
        pass

    def describe(self, x, y, orientation, radius):
        self.radii.append(radius)
        if (int(round(x)), int(round(y))) in self.fail_at:
            return None
        return np.array([x, y], dtype=np.float32)


class IndexAssociator(StereoAssociator):
    """Pairs the i-th source point with the i-th destination point."""

    def __init__(self, unique_source: bool = True, unique_destination: bool = True) -> None:
        self._unique_source = unique_source
        self._unique_destination = unique_destination

    @property
    def unique_source(self) -> bool:
        return self._unique_source

    @property
    def unique_destination(self) -> bool:
        return self._unique_destination

    def associate(self, source_points, source_descs, destination_points, destination_descs):
        n = min(len(source_points), len(destination_points))
        return AssociationResult(
            matches=[(i, i) for i in range(n)],
            unmatched_source=list(range(n, len(source_points))),
            unmatched_destination=list(range(n, len(destination_points))),
        )


class FailingTriangulator(LinearTriangulator):
    def triangulate(self, obs_left, obs_right, left_to_right):
        return None


class ScriptedEstimator(RobustMotionEstimator):
    """Returns a preset model; inliers are chosen by a predicate."""

    def __init__(self) -> None:
        self.succeed = True
        self.key_to_curr = SE3.identity()
        self.is_inlier: Callable[[Stereo2D3D], bool] = lambda obs: True
        self.calls: list[int] = []
        self._observations: list[Stereo2D3D] = []
        self._indices: list[int] = []

    def process(self, observations: list[Stereo2D3D]) -> bool:
        self.calls.append(len(observations))
        self._observations = list(observations)
        self._indices = []
        if not self.succeed or not observations:
            return False
        self._indices = [i for i, o in enumerate(observations) if self.is_inlier(o)]
        return True

    @property
    def model(self) -> SE3:
        return self.key_to_curr

    @property
    def match_set(self) -> list[Stereo2D3D]:
        return [self._observations[i] for i in self._indices]

    def input_index(self, match_index: int) -> int:
        return self._indices[match_index]


class ScriptedRefiner(MotionRefiner):
    def __init__(self, result: SE3 | None) -> None:
        self.result = result
        self.calls: list[tuple[int, SE3]] = []

    def fit(self, observations, seed):
        self.calls.append((len(observations), seed))
        return self.result


class StereoScene:
    """Known landmarks observed by an ideal, rectified stereo rig."""

    def __init__(self, calibration: StereoParameters, points_world: np.ndarray) -> None:
        self.calibration = calibration
        self.points_world = points_world

    def project(self, curr_to_world: SE3, points_world: np.ndarray | None = None):
        """Return (left_pixels, right_pixels) seen from a camera pose."""
        if points_world is None:
            points_world = self.points_world
        world_to_curr = curr_to_world.inverse()
        left_to_right = self.calibration.left_to_right

        left_px, right_px = [], []
        for point in points_world:
            p_left = world_to_curr.transform_point(point)
            p_right = left_to_right.transform_point(p_left)
            left_px.append(self.calibration.left.project(p_left))
            right_px.append(self.calibration.right.project(p_right))
        return left_px, right_px


def make_calibration() -> StereoParameters:
    camera = PinholeCamera(
        intrinsics=CameraIntrinsics(fx=500.0, fy=500.0, cx=320.0, cy=240.0),
        image_size=(640, 480),
    )
    right = PinholeCamera(
        intrinsics=CameraIntrinsics(fx=500.0, fy=500.0, cx=320.0, cy=240.0),
        image_size=(640, 480),
    )
    # Right camera sits BASELINE to the right of the left camera
    return StereoParameters(
        left=camera,
        right=right,
        right_to_left=SE3(rotation=np.eye(3), translation=[BASELINE, 0.0, 0.0]),
    )


def random_points(n: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return np.column_stack(
        (
            rng.uniform(-1.5, 1.5, n),
            rng.uniform(-1.0, 1.0, n),
            rng.uniform(4.0, 9.0, n),
        )
    )


@pytest.fixture
def calibration() -> StereoParameters:
    return make_calibration()


@pytest.fixture
def scene(calibration: StereoParameters) -> StereoScene:
    return StereoScene(calibration, random_points(20))


@pytest.fixture
def image() -> np.ndarray:
    return np.zeros((480, 640), dtype=np.uint8)


class Rig:
    """A DualTrackVisualOdometry wired to scripted collaborators."""

    def __init__(self, calibration: StereoParameters, **kwargs) -> None:
        self.left = ScriptedTracker()
        self.right = ScriptedTracker()
        self.describer = PixelDescriber()
        self.estimator = ScriptedEstimator()
        self.refiner = kwargs.pop("refiner", None)
        kwargs.setdefault("threshold_add", 5)
        kwargs.setdefault("threshold_retire", 2)
        self.vo = DualTrackVisualOdometry(
            tracker_left=self.left,
            tracker_right=self.right,
            describer=self.describer,
            associator=kwargs.pop("associator", IndexAssociator()),
            triangulator=kwargs.pop("triangulator", LinearTriangulator()),
            estimator=self.estimator,
            refiner=self.refiner,
            **kwargs,
        )
        self.vo.set_calibration(calibration)

    def queue_spawn(self, left_px, right_px) -> None:
        self.left.pending_spawn = list(left_px)
        self.right.pending_spawn = list(right_px)

    def move_to(self, scene: StereoScene, curr_to_world: SE3) -> None:
        """Place every paired track at its projection from a new pose."""
        left_px, right_px = scene.project(curr_to_world)
        for track_id, track in self.left.tracks.items():
            if track_id < len(left_px):
                self.left.set_pixel(track_id, left_px[track_id])
        for track_id, track in self.right.tracks.items():
            if track_id < len(right_px):
                self.right.set_pixel(track_id, right_px[track_id])


@pytest.fixture
def make_rig(calibration: StereoParameters) -> Callable[..., Rig]:
    def _make(**kwargs) -> Rig:
        return Rig(calibration, **kwargs)

    return _make
