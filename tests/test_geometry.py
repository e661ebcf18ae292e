"""Tests for SE3 transforms and the camera models."""

import numpy as np
import pytest

from stereovo.geometry import (
    SE3,
    CameraIntrinsics,
    DistortionCoeffs,
    PinholeCamera,
    StereoParameters,
)


@pytest.fixture
def pose() -> SE3:
    return SE3.from_rvec_tvec([0.1, -0.2, 0.3], [1.0, 2.0, -0.5])


@pytest.fixture
def camera() -> PinholeCamera:
    return PinholeCamera(intrinsics=CameraIntrinsics(fx=400.0, fy=410.0, cx=300.0, cy=200.0))


class TestSE3:
    """Test suite for SE3."""

    def test_identity(self):
        """Test that identity is the 4x4 identity matrix."""
        T = SE3.identity()
        np.testing.assert_array_equal(T.to_matrix(), np.eye(4))

    def test_invalid_shapes(self):
        """Test that malformed rotation, translation and matrix inputs raise."""
        with pytest.raises(ValueError, match="Rotation must be 3x3"):
            SE3(rotation=np.eye(2), translation=np.zeros(3))
        with pytest.raises(ValueError, match="Translation must be"):
            SE3(rotation=np.eye(3), translation=np.zeros(4))
        with pytest.raises(ValueError, match="Transform must be 4x4"):
            SE3.from_matrix(np.eye(3))

    def test_inverse(self, pose: SE3):
        """Composing with the inverse gives identity on both sides."""
        np.testing.assert_allclose((pose @ pose.inverse()).to_matrix(), np.eye(4), atol=1e-12)
        np.testing.assert_allclose((pose.inverse() @ pose).to_matrix(), np.eye(4), atol=1e-12)

    def test_composition_order(self, pose: SE3):
        """``b_to_c @ a_to_b`` applies a_to_b first."""
        a_to_b = pose
        b_to_c = SE3.from_rvec_tvec([0.0, 0.5, 0.0], [0.0, 0.0, 1.0])
        point = np.array([0.3, -1.0, 2.0])

        expected = b_to_c.transform_point(a_to_b.transform_point(point))
        np.testing.assert_allclose((b_to_c @ a_to_b).transform_point(point), expected)
        np.testing.assert_allclose(a_to_b.then(b_to_c).transform_point(point), expected)

    def test_matrix_roundtrip(self, pose: SE3):
        """Test that a pose survives conversion to a 4x4 matrix and back."""
        restored = SE3.from_matrix(pose.to_matrix())
        np.testing.assert_allclose(restored.rotation, pose.rotation)
        np.testing.assert_allclose(restored.translation, pose.translation)

    def test_rvec_tvec(self, pose: SE3):
        """Test that a pose survives conversion to a Rodrigues vector and back."""
        rvec, tvec = pose.to_rvec_tvec()
        np.testing.assert_allclose(rvec, [0.1, -0.2, 0.3], atol=1e-12)
        np.testing.assert_allclose(tvec, [1.0, 2.0, -0.5])

    def test_transform_points(self, pose: SE3):
        """Test that transform_points matches transform_point row by row."""
        points = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
        out = pose.transform_points(points)

        assert out.shape == (2, 3)
        np.testing.assert_allclose(out[0], pose.translation)
        np.testing.assert_allclose(out[1], pose.transform_point(points[1]))

        with pytest.raises(ValueError, match="Nx3"):
            pose.transform_points(np.zeros((2, 2)))

    def test_is_finite(self):
        """Test that NaN entries make a pose non-finite."""
        assert SE3.identity().is_finite()
        assert not SE3(rotation=np.eye(3), translation=[np.nan, 0.0, 0.0]).is_finite()

    def test_copy_is_independent(self, pose: SE3):
        """Test that a copy does not share arrays with the original."""
        clone = pose.copy()
        clone.translation[0] = 100.0
        assert pose.translation[0] == 1.0

    def test_repr(self):
        """Test that the repr shows the rounded position."""
        assert repr(SE3(rotation=np.eye(3), translation=[1, 2, 3])) == (
            "SE3(position=[1.000, 2.000, 3.000])"
        )


class TestPinholeCamera:
    """Test suite for PinholeCamera."""

    def test_intrinsic_matrix(self, camera: PinholeCamera):
        """Test that intrinsics build the expected camera matrix."""
        K = camera.intrinsics.to_matrix()
        np.testing.assert_array_equal(
            K, [[400.0, 0.0, 300.0], [0.0, 410.0, 200.0], [0.0, 0.0, 1.0]]
        )

    def test_normalize_without_distortion(self, camera: PinholeCamera):
        """Test that normalization without distortion is the inverse of K."""
        normalized = camera.pixel_to_normalized([340.0, 159.0])
        np.testing.assert_allclose(normalized, [0.1, -0.1])

    def test_normalize_roundtrip(self, camera: PinholeCamera):
        """Test that normalizing a pixel and mapping it back is lossless."""
        pixel = np.array([123.4, 456.7])
        np.testing.assert_allclose(
            camera.normalized_to_pixel(camera.pixel_to_normalized(pixel)), pixel
        )

    def test_empty_pixels(self, camera: PinholeCamera):
        """Test that an empty pixel array normalizes to an empty array."""
        assert camera.pixels_to_normalized(np.empty((0, 2))).shape == (0, 2)

    def test_project(self, camera: PinholeCamera):
        """Test that projection applies the intrinsics."""
        np.testing.assert_allclose(camera.project([0.2, -0.4, 2.0]), [340.0, 118.0])

    def test_distortion_removed(self):
        """Normalizing a distorted pixel inverts the distortion model."""
        distorted = PinholeCamera(
            intrinsics=CameraIntrinsics(fx=400.0, fy=400.0, cx=320.0, cy=240.0),
            distortion=DistortionCoeffs(k1=-0.2, k2=0.05, p1=0.001, p2=-0.001),
        )
        assert not distorted.distortion.is_zero

        # Apply the radial-tangential model by hand
        x, y = 0.2, -0.15
        r2 = x * x + y * y
        d = distorted.distortion
        radial = 1 + d.k1 * r2 + d.k2 * r2 * r2
        xd = x * radial + 2 * d.p1 * x * y + d.p2 * (r2 + 2 * x * x)
        yd = y * radial + d.p1 * (r2 + 2 * y * y) + 2 * d.p2 * x * y
        pixel = [xd * 400.0 + 320.0, yd * 400.0 + 240.0]

        np.testing.assert_allclose(distorted.pixel_to_normalized(pixel), [x, y], atol=1e-5)


class TestStereoParameters:
    """Test suite for StereoParameters."""

    def test_baseline(self, camera: PinholeCamera):
        """Test the baseline length and the derived left_to_right extrinsic."""
        params = StereoParameters(
            left=camera,
            right=camera,
            right_to_left=SE3(rotation=np.eye(3), translation=[0.12, 0.0, 0.0]),
        )

        assert params.baseline == pytest.approx(0.12)
        np.testing.assert_allclose(params.left_to_right.translation, [-0.12, 0.0, 0.0])
