"""Motion estimation from consistent stereo track pairs."""

from __future__ import annotations

import logging

from ..estimation.observation import Stereo2D3D
from ..estimation.pnp import RobustMotionEstimator
from ..estimation.refine import MotionRefiner
from ..geometry.camera import PinholeCamera, StereoParameters
from .consistency import StereoPair
from .pose_chain import PoseChain
from .records import left_record

logger = logging.getLogger(__name__)


class MotionEstimator:
    """Estimates the current-to-keyframe motion from candidate pairs.

    Each candidate's stored landmark is paired with normalized observations
    computed from the tracks' *current* pixels, the robust estimator fits
    keyframe-to-current, and the inverse is stored in the pose chain.
    Inliers have their ``last_inlier`` frame updated.
    """

    def __init__(
        self,
        estimator: RobustMotionEstimator,
        refiner: MotionRefiner | None = None,
    ) -> None:
        """Initialize motion estimator.

        Args:
            estimator: Robust (outlier rejecting) model fitter
            refiner: Optional non-linear refinement applied to the inliers
        """
        self._estimator = estimator
        self._refiner = refiner
        self._left: PinholeCamera | None = None
        self._right: PinholeCamera | None = None
        self._num_inliers = 0

    def set_calibration(self, params: StereoParameters) -> None:
        """Use the cameras of ``params`` to normalize current pixels."""
        self._left = params.left
        self._right = params.right

    def _observations(self, pairs: list[StereoPair]) -> list[Stereo2D3D]:
        if self._left is None or self._right is None:
            raise ValueError("set_calibration() must be called before estimating motion")

        observations = []
        for left, right in pairs:
            observation = left_record(left).observation
            observation.left_obs = self._left.pixel_to_normalized(left.pixel)
            observation.right_obs = self._right.pixel_to_normalized(right.pixel)
            observations.append(observation)
        return observations

    def estimate(
        self, candidates: list[StereoPair], pose_chain: PoseChain, frame_id: int
    ) -> bool:
        """Robustly estimate motion and mark inliers.

        Returns:
            False if the estimator could not produce a model, in which case
            the pose chain is left untouched
        """
        self._num_inliers = 0
        observations = self._observations(candidates)

        if not self._estimator.process(observations):
            logger.warning(
                "frame %d: motion estimation failed with %d candidates",
                frame_id,
                len(candidates),
            )
            return False

        pose_chain.curr_to_key = self._estimator.model.inverse()

        n_inliers = len(self._estimator.match_set)
        for i in range(n_inliers):
            index = self._estimator.input_index(i)
            left_record(candidates[index].left).last_inlier = frame_id

        self._num_inliers = n_inliers
        logger.debug("frame %d: %d inliers", frame_id, n_inliers)
        return True

    def refine(self, candidates: list[StereoPair], pose_chain: PoseChain) -> bool:
        """Refine the last estimate using its inlier set only.

        The pose chain is updated only if the refiner succeeds.
        """
        if self._refiner is None:
            return False

        inliers = [
            candidates[self._estimator.input_index(i)]
            for i in range(len(self._estimator.match_set))
        ]
        seed = pose_chain.curr_to_key.inverse()

        found = self._refiner.fit(self._observations(inliers), seed)
        if found is None:
            logger.warning("refinement failed, keeping robust estimate")
            return False

        pose_chain.curr_to_key = found.inverse()
        return True

    @property
    def estimator(self) -> RobustMotionEstimator:
        return self._estimator

    @property
    def has_refiner(self) -> bool:
        return self._refiner is not None

    @property
    def num_inliers(self) -> int:
        """Return inlier count of the last estimate, 0 if it failed."""
        return self._num_inliers

    def reset(self) -> None:
        self._num_inliers = 0
