"""Dual-track stereo visual odometry pipeline."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

import numpy as np

from ..config import VOConfig
from ..estimation.pnp import PnPRansacEstimator, RobustMotionEstimator
from ..estimation.refine import MotionRefiner, StereoPoseRefiner
from ..frontend.associate import BruteForceAssociator, StereoAssociator
from ..frontend.describe import OrbDescriber, RegionDescriber
from ..frontend.epipolar import StereoConsistencyCheck
from ..frontend.tracker import KltPointTracker, PointTrack, PointTracker
from ..frontend.triangulate import LinearTriangulator, Triangulator
from ..geometry.camera import StereoParameters
from ..geometry.pose import SE3
from .consistency import ConsistencyFilter, StereoPair
from .lifecycle import TrackLifecycleManager
from .motion import MotionEstimator
from .pose_chain import PoseChain
from .stereo_pairing import StereoTrackPairing

logger = logging.getLogger(__name__)


class TrackingStatus(Enum):
    """State of the odometry between ticks."""

    UNINITIALIZED = "UNINITIALIZED"
    TRACKING = "TRACKING"


class TickOutcome(Enum):
    """Result of the most recent tick."""

    BOOTSTRAP = "BOOTSTRAP"
    OK = "OK"
    MOTION_FAILED = "MOTION_FAILED"


@dataclass
class VOTiming:
    """Timing breakdown for a single tick."""

    tracking_ms: float = 0.0
    filter_ms: float = 0.0
    estimate_ms: float = 0.0
    lifecycle_ms: float = 0.0
    spawn_ms: float = 0.0
    total_ms: float = 0.0


class DualTrackVisualOdometry:
    """Stereo visual odometry with independent left and right trackers.

    Features are tracked separately in each camera. The expensive left to
    right association is only done when tracks are spawned; afterwards the
    pairing lives in the track records and is re-validated every tick with
    an epipolar check. Landmarks are triangulated once, stored in keyframe
    coordinates and used for robust 2D-3D motion estimation.

    Per tick:
    1. Track features in both images
    2. Propagate tracks dropped in one camera to the other
    3. Select pairs active in both cameras that pass the epipolar check
    4. Estimate motion robustly, mark inliers
    5. Retire tracks that have not been inliers recently
    6. Optionally refine the motion on the inliers
    7. If inliers are scarce, spawn new tracks. The keyframe moves to the
       current camera first, unless a configured refiner just failed

    Estimated motion is that of the left camera.
    """

    def __init__(
        self,
        tracker_left: PointTracker,
        tracker_right: PointTracker,
        describer: RegionDescriber,
        associator: StereoAssociator,
        triangulator: Triangulator,
        estimator: RobustMotionEstimator,
        refiner: MotionRefiner | None = None,
        threshold_add: int = 120,
        threshold_retire: int = 2,
        epipolar_tolerance_x: float = 1.5,
        epipolar_tolerance_y: float = 1.5,
        describe_radius: float = 11.0,
        enable_timing: bool = True,
    ) -> None:
        """Initialize visual odometry.

        Args:
            tracker_left: Tracker for the left camera
            tracker_right: Tracker for the right camera
            describer: Describes new tracks for association
            associator: Left to right association of new tracks
            triangulator: Estimates a new pair's 3D location
            estimator: Robust motion estimation with outlier rejection
            refiner: Optional non-linear refinement of the motion
            threshold_add: Spawn new tracks when the inlier count is below
                this; zero or negative spawns every tick
            threshold_retire: Drop tracks that have not been inliers for
                more than this many ticks
            epipolar_tolerance_x: Largest negative rectified disparity
                (pixels) a tracked pair may show
            epipolar_tolerance_y: Largest rectified row difference (pixels)
                a tracked pair may show
            describe_radius: Radius of the region described for new tracks
            enable_timing: Record per-stage timing

        Raises:
            AssociationConfigError: If the associator does not guarantee
                unique source and destination matches
        """
        self._tracker_left = tracker_left
        self._tracker_right = tracker_right
        self._enable_timing = enable_timing

        self._pairing = StereoTrackPairing(describer, associator, triangulator, describe_radius)
        self._stereo_check = StereoConsistencyCheck(epipolar_tolerance_x, epipolar_tolerance_y)
        self._filter = ConsistencyFilter(self._stereo_check)
        self._motion = MotionEstimator(estimator, refiner)
        self._lifecycle = TrackLifecycleManager(
            tracker_left, tracker_right, self._pairing, threshold_add, threshold_retire
        )
        self._pose_chain = PoseChain()

        # State
        self._candidates: list[StereoPair] = []
        self._first: bool = True
        self._fault: bool = False
        self._calibrated: bool = False
        self._status = TrackingStatus.UNINITIALIZED
        self._last_outcome: TickOutcome | None = None
        self._trajectory: list[SE3] = []
        self._timing = VOTiming()

    @classmethod
    def from_config(
        cls,
        calibration: StereoParameters,
        config: VOConfig | None = None,
    ) -> DualTrackVisualOdometry:
        """Create odometry with the default OpenCV collaborators.

        Pixel thresholds are converted to normalized units with the left
        camera's focal length. New left-right pairs must agree in rectified
        row and show at least ``association_min_disparity``, so the
        associator never pairs points that would land behind the rig.

        Args:
            calibration: Stereo calibration of the rig
            config: Pipeline parameters, defaults if None

        Returns:
            Calibrated odometry ready for :meth:`process`
        """
        config = config or VOConfig()
        config.validate()

        left_to_right = calibration.left_to_right
        focal = calibration.left.intrinsics.fx

        pairing_check = StereoConsistencyCheck(
            tolerance_x=-config.association_min_disparity,
            tolerance_y=config.epipolar_tolerance_y,
        )
        pairing_check.set_calibration(calibration)

        estimator = PnPRansacEstimator(
            inlier_threshold=config.inlier_threshold / focal,
            max_iterations=config.ransac_iterations,
            confidence=config.ransac_confidence,
            left_to_right=left_to_right,
        )
        refiner = None
        if config.refine_iterations > 0:
            refiner = StereoPoseRefiner(
                left_to_right=left_to_right,
                max_iterations=config.refine_iterations,
            )

        vo = cls(
            tracker_left=KltPointTracker(config.tracker),
            tracker_right=KltPointTracker(config.tracker),
            describer=OrbDescriber(),
            associator=BruteForceAssociator(
                max_distance=config.association_max_distance, stereo_check=pairing_check
            ),
            triangulator=LinearTriangulator(),
            estimator=estimator,
            refiner=refiner,
            threshold_add=config.threshold_add,
            threshold_retire=config.threshold_retire,
            epipolar_tolerance_x=config.epipolar_tolerance_x,
            epipolar_tolerance_y=config.epipolar_tolerance_y,
            describe_radius=config.describe_radius,
            enable_timing=config.enable_timing,
        )
        vo.set_calibration(calibration)
        return vo

    def set_calibration(self, params: StereoParameters) -> None:
        """Set the stereo calibration. Must be called before :meth:`process`.

        Args:
            params: Intrinsics of both cameras and the right-to-left
                extrinsic
        """
        self._stereo_check.set_calibration(params)
        self._motion.set_calibration(params)
        self._pairing.set_calibration(params)
        self._calibrated = True

    def process(self, left: np.ndarray, right: np.ndarray) -> bool:
        """Update the motion estimate with a synchronized stereo pair.

        Args:
            left: Image from the left camera
            right: Image from the right camera

        Returns:
            False if motion could not be estimated this tick. Track
            bookkeeping is still applied and later ticks may recover.
        """
        if not self._calibrated:
            raise ValueError("set_calibration() must be called before process()")

        timing = VOTiming()
        t_start = self._clock()

        t0 = self._clock()
        self._tracker_left.process(left)
        self._tracker_right.process(right)
        timing.tracking_ms = self._elapsed_ms(t0)

        frame_id = self.frame_id

        if self._first:
            t0 = self._clock()
            num_pairs = self._lifecycle.spawn(left, right, self._pose_chain, frame_id)
            timing.spawn_ms = self._elapsed_ms(t0)

            self._first = False
            self._candidates = []
            self._fault = num_pairs == 0
            self._status = TrackingStatus.TRACKING
            logger.info("frame %d: bootstrapped with %d stereo pairs", frame_id, num_pairs)
            self._finish_tick(TickOutcome.BOOTSTRAP, timing, t_start)
            return True

        t0 = self._clock()
        self._lifecycle.mutual_drop()
        self._candidates = self._filter.select(
            self._tracker_left, self._tracker_right, frame_id
        )
        self._fault = not self._candidates
        if self._fault:
            logger.warning("frame %d: no epipolar-consistent tracks", frame_id)
        timing.filter_ms = self._elapsed_ms(t0)

        t0 = self._clock()
        success = self._motion.estimate(self._candidates, self._pose_chain, frame_id)
        timing.estimate_ms = self._elapsed_ms(t0)

        t0 = self._clock()
        self._lifecycle.retire(frame_id)
        timing.lifecycle_ms = self._elapsed_ms(t0)

        if not success:
            self._finish_tick(TickOutcome.MOTION_FAILED, timing, t_start)
            return False

        num_inliers = self._motion.num_inliers

        refined = True
        if self._motion.has_refiner:
            t0 = self._clock()
            refined = self._motion.refine(self._candidates, self._pose_chain)
            timing.estimate_ms += self._elapsed_ms(t0)

        if self._lifecycle.should_spawn(num_inliers):
            t0 = self._clock()
            # A failed refinement keeps the current keyframe
            if refined:
                self._pose_chain.rebase(self._lifecycle.live_records())
            self._lifecycle.spawn(left, right, self._pose_chain, frame_id)
            timing.spawn_ms = self._elapsed_ms(t0)

        self._finish_tick(TickOutcome.OK, timing, t_start)
        return True

    def _finish_tick(self, outcome: TickOutcome, timing: VOTiming, t_start: float) -> None:
        self._last_outcome = outcome
        self._trajectory.append(self._pose_chain.curr_to_world)
        timing.total_ms = self._elapsed_ms(t_start)
        self._timing = timing

    def _clock(self) -> float:
        return time.perf_counter() if self._enable_timing else 0.0

    def _elapsed_ms(self, t0: float) -> float:
        if not self._enable_timing:
            return 0.0
        return (time.perf_counter() - t0) * 1000

    def reset(self) -> None:
        """Reset the odometry to its state before the first frame.

        Track records disappear together with the trackers' tracks.
        """
        self._tracker_left.reset()
        self._tracker_right.reset()
        self._pose_chain.reset()
        self._motion.reset()
        self._candidates = []
        self._first = True
        self._fault = False
        self._status = TrackingStatus.UNINITIALIZED
        self._last_outcome = None
        self._trajectory.clear()
        self._timing = VOTiming()

    def get_curr_to_world(self) -> SE3:
        """Return the current left camera pose in the world frame."""
        return self._pose_chain.curr_to_world

    def is_fault(self) -> bool:
        """Return True if the last tick lost all consistent tracks.

        After the bootstrap tick this is True only if no stereo pair could
        be created.
        """
        return self._fault

    def get_candidates(self) -> list[PointTrack]:
        """Return left tracks that passed the consistency filter this tick."""
        return [pair.left for pair in self._candidates]

    @property
    def candidate_pairs(self) -> list[StereoPair]:
        """Return the (left, right) track pairs behind :meth:`get_candidates`."""
        return list(self._candidates)

    def get_trajectory(self) -> list[SE3]:
        """Return the current-to-world pose after every tick."""
        return self._trajectory.copy()

    def get_trajectory_positions(self) -> np.ndarray:
        """Return camera positions as array."""
        if len(self._trajectory) == 0:
            return np.empty((0, 3), dtype=np.float64)
        return np.array([p.position for p in self._trajectory], dtype=np.float64)

    @property
    def frame_id(self) -> int:
        return self._tracker_left.get_frame_id()

    @property
    def status(self) -> TrackingStatus:
        return self._status

    @property
    def last_outcome(self) -> TickOutcome | None:
        return self._last_outcome

    @property
    def num_inliers(self) -> int:
        """Return inlier count of the last estimate, 0 if it failed."""
        return self._motion.num_inliers

    @property
    def timing(self) -> VOTiming:
        return self._timing

    @property
    def motion_estimator(self) -> RobustMotionEstimator:
        return self._motion.estimator

    @property
    def pose_chain(self) -> PoseChain:
        return self._pose_chain

    @property
    def tracker_left(self) -> PointTracker:
        return self._tracker_left

    @property
    def tracker_right(self) -> PointTracker:
        return self._tracker_right

    @property
    def threshold_add(self) -> int:
        return self._lifecycle.threshold_add

    @property
    def threshold_retire(self) -> int:
        return self._lifecycle.threshold_retire

    @property
    def epipolar_tolerance_x(self) -> float:
        return self._stereo_check.tolerance_x

    @property
    def epipolar_tolerance_y(self) -> float:
        return self._stereo_check.tolerance_y

    @property
    def describe_radius(self) -> float:
        return self._pairing.describe_radius

    @describe_radius.setter
    def describe_radius(self, radius: float) -> None:
        self._pairing.describe_radius = radius
