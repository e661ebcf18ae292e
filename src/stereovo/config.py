"""Configuration for the dual-track visual odometry pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


@dataclass
class TrackerConfig:
    """Parameters for the KLT point tracker used in each camera."""

    max_features: int = 600  # Upper bound on live tracks per camera
    quality_level: float = 0.01  # goodFeaturesToTrack corner quality
    min_distance: int = 10  # Minimum pixel spacing between tracks
    window_size: int = 21  # LK search window (pixels, square)
    pyramid_levels: int = 3  # LK pyramid depth
    forward_backward_threshold: float = 1.0  # Max forward-backward error (px)
    border: int = 8  # Tracks closer than this to the image edge are dropped


@dataclass
class VOConfig:
    """Parameters for :class:`~stereovo.vo.DualTrackVisualOdometry`.

    Attributes:
        threshold_add: Spawn new tracks when the inlier count drops below
            this. Zero or negative spawns on every tick.
        threshold_retire: Drop a track after it has been outside the
            inlier set for more than this many ticks.
        epipolar_tolerance_x: Largest negative disparity (rectified pixels)
            a tracked pair may show.
        epipolar_tolerance_y: Largest rectified row difference (pixels) a
            tracked pair may show.
        describe_radius: Radius of the region described around new tracks.
        association_max_distance: Largest accepted descriptor distance
            when pairing left and right tracks.
        association_min_disparity: Smallest rectified disparity (pixels) of
            a new left-right pair. Rows must agree within
            ``epipolar_tolerance_y``.
        ransac_iterations: Maximum RANSAC iterations for motion estimation.
        ransac_confidence: RANSAC success probability.
        inlier_threshold: Reprojection inlier threshold in pixels.
        refine_iterations: Iterations of non-linear refinement. Zero
            disables the refiner.
        enable_timing: Record per-stage timing for each tick.
        tracker: Per-camera tracker parameters.
    """

    threshold_add: int = 120
    threshold_retire: int = 2
    epipolar_tolerance_x: float = 1.5
    epipolar_tolerance_y: float = 1.5
    describe_radius: float = 11.0
    association_max_distance: float = 60.0
    association_min_disparity: float = 0.5
    ransac_iterations: int = 200
    ransac_confidence: float = 0.99
    inlier_threshold: float = 1.5
    refine_iterations: int = 50
    enable_timing: bool = True
    tracker: TrackerConfig = field(default_factory=TrackerConfig)

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: If any parameter is out of range
        """
        if self.threshold_retire < 0:
            raise ValueError(
                f"threshold_retire must be >= 0, got {self.threshold_retire}"
            )
        if self.describe_radius <= 0:
            raise ValueError(
                f"describe_radius must be > 0, got {self.describe_radius}"
            )
        if self.epipolar_tolerance_x < 0:
            raise ValueError(
                f"epipolar_tolerance_x must be >= 0, got {self.epipolar_tolerance_x}"
            )
        if self.epipolar_tolerance_y < 0:
            raise ValueError(
                f"epipolar_tolerance_y must be >= 0, got {self.epipolar_tolerance_y}"
            )
        if self.association_min_disparity < 0:
            raise ValueError(
                "association_min_disparity must be >= 0, "
                f"got {self.association_min_disparity}"
            )
        if self.inlier_threshold <= 0:
            raise ValueError(
                f"inlier_threshold must be > 0, got {self.inlier_threshold}"
            )
        if self.ransac_iterations <= 0:
            raise ValueError(
                f"ransac_iterations must be > 0, got {self.ransac_iterations}"
            )
        if not 0.0 < self.ransac_confidence < 1.0:
            raise ValueError(
                f"ransac_confidence must be in (0, 1), got {self.ransac_confidence}"
            )
        if self.refine_iterations < 0:
            raise ValueError(
                f"refine_iterations must be >= 0, got {self.refine_iterations}"
            )
        if self.tracker.max_features <= 0:
            raise ValueError(
                f"tracker.max_features must be > 0, got {self.tracker.max_features}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VOConfig:
        """Build a config from a (possibly partial) mapping.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        data = dict(data)
        tracker_data = data.pop("tracker", None) or {}
        if not isinstance(tracker_data, dict):
            raise ValueError("tracker section must be a mapping")

        _check_keys(cls, data, "")
        _check_keys(TrackerConfig, tracker_data, "tracker.")

        config = cls(**data, tracker=TrackerConfig(**tracker_data))
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> VOConfig:
        """Load a config from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file content is invalid
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping in {yaml_path}")

        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _check_keys(config_cls: type, data: dict[str, Any], prefix: str) -> None:
    known = {f.name for f in fields(config_cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        names = ", ".join(prefix + key for key in unknown)
        raise ValueError(f"Unknown config keys: {names}")
