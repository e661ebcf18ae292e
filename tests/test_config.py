"""Tests for VOConfig loading and validation."""

from pathlib import Path

import pytest

from stereovo.config import TrackerConfig, VOConfig


class TestVOConfig:
    """Test suite for VOConfig."""

    def test_defaults_are_valid(self):
        """Test that the default config passes validation."""
        config = VOConfig()
        config.validate()

        assert config.threshold_add == 120
        assert config.threshold_retire == 2
        assert isinstance(config.tracker, TrackerConfig)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"threshold_retire": -1},
            {"describe_radius": 0.0},
            {"epipolar_tolerance_x": -0.5},
            {"epipolar_tolerance_y": -0.5},
            {"association_min_disparity": -1.0},
            {"inlier_threshold": 0.0},
            {"ransac_iterations": 0},
            {"ransac_confidence": 1.0},
            {"refine_iterations": -1},
        ],
    )
    def test_validate_rejects(self, overrides):
        """Test that out-of-range values are rejected, naming the field."""
        with pytest.raises(ValueError, match=next(iter(overrides))):
            VOConfig(**overrides).validate()

    def test_negative_threshold_add_allowed(self):
        """Non-positive threshold_add means spawn every tick."""
        VOConfig(threshold_add=-1).validate()

    def test_from_dict(self):
        """Test that a partial mapping overrides only the given fields."""
        config = VOConfig.from_dict(
            {"threshold_add": 80, "tracker": {"max_features": 300, "window_size": 15}}
        )

        assert config.threshold_add == 80
        assert config.tracker.max_features == 300
        assert config.tracker.window_size == 15
        assert config.tracker.pyramid_levels == TrackerConfig().pyramid_levels

    def test_from_dict_unknown_keys(self):
        """Test that unknown keys are reported with their section prefix."""
        with pytest.raises(ValueError, match="Unknown config keys: threshold_ad"):
            VOConfig.from_dict({"threshold_ad": 10})
        with pytest.raises(ValueError, match="tracker.levels"):
            VOConfig.from_dict({"tracker": {"levels": 2}})

    def test_from_dict_invalid_tracker(self):
        """Test that a malformed tracker section is rejected."""
        with pytest.raises(ValueError, match="tracker section must be a mapping"):
            VOConfig.from_dict({"tracker": [1, 2]})
        with pytest.raises(ValueError, match="max_features"):
            VOConfig.from_dict({"tracker": {"max_features": 0}})

    def test_to_dict_roundtrip(self):
        """Test that to_dict output loads back into an equal config."""
        config = VOConfig(threshold_retire=4, tracker=TrackerConfig(border=3))
        assert VOConfig.from_dict(config.to_dict()) == config


class TestVOConfigYaml:
    """Loading configs from YAML files."""

    def test_from_yaml(self, tmp_path: Path):
        """Test loading a config from a YAML file."""
        path = tmp_path / "vo.yaml"
        path.write_text(
            "threshold_add: 50\n"
            "epipolar_tolerance_x: 2.0\n"
            "epipolar_tolerance_y: 0.5\n"
            "tracker:\n"
            "  max_features: 250\n"
        )

        config = VOConfig.from_yaml(path)

        assert config.threshold_add == 50
        assert config.epipolar_tolerance_x == 2.0
        assert config.epipolar_tolerance_y == 0.5
        assert config.tracker.max_features == 250

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        """Test that an empty YAML file gives the default config."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert VOConfig.from_yaml(path) == VOConfig()

    def test_missing_file(self, tmp_path: Path):
        """Test that a missing YAML file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            VOConfig.from_yaml(tmp_path / "missing.yaml")

    def test_non_mapping_root(self, tmp_path: Path):
        """Test that a YAML list at the root is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="Config root must be a mapping"):
            VOConfig.from_yaml(path)
