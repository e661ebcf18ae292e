"""Dual-track stereo visual odometry core.

Components:
- DualTrackVisualOdometry: Per-frame pipeline and public surface
- ConsistencyFilter: Pairs active in both cameras passing the epipolar check
- MotionEstimator: Robust 2D-3D motion estimation and refinement
- TrackLifecycleManager: Mutual drop, retirement and spawning of pairs
- StereoTrackPairing: Association and triangulation of new tracks
- PoseChain: Keyframe-relative pose and landmark re-basing
- LeftRecord/RightRecord: State attached to the tracks of each camera
"""

from .consistency import ConsistencyFilter, StereoPair
from .lifecycle import TrackLifecycleManager
from .motion import MotionEstimator
from .pose_chain import PoseChain
from .records import LeftRecord, RightRecord, TrackRecord, left_record, right_record
from .stereo_pairing import PairingResult, StereoMatch, StereoTrackPairing
from .visual_odometry import (
    DualTrackVisualOdometry,
    TickOutcome,
    TrackingStatus,
    VOTiming,
)

__all__ = [
    # Visual Odometry
    "DualTrackVisualOdometry",
    "TrackingStatus",
    "TickOutcome",
    "VOTiming",
    # Components
    "ConsistencyFilter",
    "StereoPair",
    "MotionEstimator",
    "TrackLifecycleManager",
    "StereoTrackPairing",
    "StereoMatch",
    "PairingResult",
    "PoseChain",
    # Records
    "LeftRecord",
    "RightRecord",
    "TrackRecord",
    "left_record",
    "right_record",
]
