"""Per-camera front-end collaborators of the stereo odometry.

Each module pairs an abstract interface with a default OpenCV
implementation:
- PointTracker / KltPointTracker: single-camera feature tracking
- RegionDescriber / OrbDescriber: descriptors for new tracks
- StereoAssociator / BruteForceAssociator: left-right track pairing
- Triangulator / LinearTriangulator: 3D points from stereo observations
- StereoConsistencyCheck: epipolar sanity check on tracked pairs
"""

from .associate import AssociationResult, BruteForceAssociator, StereoAssociator
from .describe import OrbDescriber, RegionDescriber
from .epipolar import StereoConsistencyCheck
from .tracker import KltPointTracker, PointTrack, PointTracker
from .triangulate import LinearTriangulator, Triangulator

__all__ = [
    # Tracking
    "PointTrack",
    "PointTracker",
    "KltPointTracker",
    # Description
    "RegionDescriber",
    "OrbDescriber",
    # Association
    "StereoAssociator",
    "BruteForceAssociator",
    "AssociationResult",
    # Triangulation
    "Triangulator",
    "LinearTriangulator",
    # Epipolar geometry
    "StereoConsistencyCheck",
]
