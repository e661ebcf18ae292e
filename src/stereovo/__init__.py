"""Python Stereo VO - dual-track stereo visual odometry in Python."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .config import TrackerConfig, VOConfig
from .exceptions import AssociationConfigError, TrackStateError, UnpairedRightTrackError
from .geometry import SE3, CameraIntrinsics, DistortionCoeffs, PinholeCamera, StereoParameters
from .frontend import (
    BruteForceAssociator,
    KltPointTracker,
    LinearTriangulator,
    OrbDescriber,
    PointTrack,
    PointTracker,
    StereoConsistencyCheck,
)
from .estimation import PnPRansacEstimator, Stereo2D3D, StereoPoseRefiner
from .vo import DualTrackVisualOdometry, TickOutcome, TrackingStatus, VOTiming

__all__ = [
    "__version__",
    # Configuration
    "VOConfig",
    "TrackerConfig",
    # Errors
    "AssociationConfigError",
    "TrackStateError",
    "UnpairedRightTrackError",
    # Geometry
    "SE3",
    "CameraIntrinsics",
    "DistortionCoeffs",
    "PinholeCamera",
    "StereoParameters",
    # Front-end
    "PointTrack",
    "PointTracker",
    "KltPointTracker",
    "OrbDescriber",
    "BruteForceAssociator",
    "LinearTriangulator",
    "StereoConsistencyCheck",
    # Estimation
    "Stereo2D3D",
    "PnPRansacEstimator",
    "StereoPoseRefiner",
    # Visual Odometry
    "DualTrackVisualOdometry",
    "TrackingStatus",
    "TickOutcome",
    "VOTiming",
]
