"""
Tests for the Renderer and Status Panel
=======================================
"""

import math

import numpy as np
import pytest

from galaxy_control.core.types import CameraPose, PipelineState, TrackingStatus
from galaxy_control.modules.control.smoothing_controller import spherical_to_cartesian
from galaxy_control.modules.visualization.dashboard import StatusPanel
from galaxy_control.modules.visualization.renderer import (
    GalaxyRenderer, RendererConfig, look_at, project_points,
)

SMALL = RendererConfig(width=160, height=120)


def pose_at(radius=5.0, polar=math.pi / 2, azimuth=0.0):
    return CameraPose(
        position=spherical_to_cartesian(radius, polar, azimuth),
        target=(0.0, 0.0, 0.0),
        azimuth=azimuth,
        polar_angle=polar,
        radius=radius,
    )


def single_point(color=(1.0, 1.0, 1.0)):
    return (np.zeros((1, 3), dtype=np.float32), np.array([color], dtype=np.float32))


class TestLookAt:

    def test_orthonormal(self):
        rotation = look_at((1.0, 2.0, 3.0))
        np.testing.assert_allclose(rotation @ rotation.T, np.eye(3), atol=1e-9)

    def test_looks_at_target(self):
        """Backward axis points from the target to the eye."""
        rotation = look_at((0.0, 0.0, 5.0))
        np.testing.assert_allclose(rotation[2], [0.0, 0.0, 1.0], atol=1e-9)
        np.testing.assert_allclose(rotation[1], [0.0, 1.0, 0.0], atol=1e-9)

    def test_straight_down_still_defined(self):
        rotation = look_at((0.0, 5.0, 0.0))
        assert np.all(np.isfinite(rotation))

    def test_eye_on_target_rejected(self):
        with pytest.raises(ValueError):
            look_at((0.0, 0.0, 0.0))


class TestProjectPoints:

    def test_origin_at_image_center(self):
        u, v, depth, visible = project_points(np.zeros((1, 3), dtype=np.float32), pose_at(), SMALL)

        assert visible[0]
        assert (u[0], v[0]) == (80, 60)
        assert depth[0] == pytest.approx(5.0)

    def test_right_and_up(self):
        points = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], dtype=np.float32)
        u, v, _, _ = project_points(points, pose_at(), SMALL)

        assert u[0] > 80
        assert v[1] < 60

    def test_behind_camera_invisible(self):
        points = np.array([[0.0, 0.0, 10.0]], dtype=np.float32)
        _, _, _, visible = project_points(points, pose_at(), SMALL)
        assert not visible[0]

    def test_focal_length(self):
        assert RendererConfig(height=720, fov_deg=90.0).focal_px == pytest.approx(360.0)


class TestGalaxyRenderer:
    """Test suite for point-cloud rendering."""

    def test_output_shape_and_background(self):
        renderer = GalaxyRenderer(single_point(), config=SMALL)
        image = renderer.render(pose_at(), elapsed_s=0.0)

        assert image.shape == (120, 160, 3)
        assert image.dtype == np.uint8
        assert 4 <= image[0, 0, 0] <= 5

    def test_point_drawn_at_center(self):
        renderer = GalaxyRenderer(single_point(), config=SMALL)
        image = renderer.render(pose_at())

        assert image[60, 80].max() > image[0, 0].max()

    def test_empty_scene(self):
        empty = (np.zeros((0, 3), dtype=np.float32), np.zeros((0, 3), dtype=np.float32))
        image = GalaxyRenderer(empty, empty, config=SMALL).render(pose_at())
        assert image.shape == (120, 160, 3)

    def test_colour_order_is_bgr(self):
        """Pure red point lands in the last channel."""
        renderer = GalaxyRenderer(single_point((1.0, 0.0, 0.0)), config=SMALL, point_size=1.0)
        pixel = renderer.render(pose_at())[60, 80]
        assert pixel[2] > pixel[0]

    def test_any_pose_renders(self):
        renderer = GalaxyRenderer(single_point(), config=SMALL)
        for polar in (0.1, math.pi / 2, math.pi - 0.1):
            for azimuth in (-3.0, 0.0, 3.0):
                image = renderer.render(pose_at(3.0, polar, azimuth), elapsed_s=12.0)
                assert image.shape == (120, 160, 3)


class TestStatusPanel:
    """Smoke tests for the HUD overlay."""

    def _state(self, status=TrackingStatus.ACTIVE, hand=False):
        state = PipelineState()
        state.status = status
        state.hand_detected = hand
        state.pose = pose_at()
        return state.to_dashboard_dict()

    def test_draws_in_place(self):
        frame = np.zeros((360, 640, 3), dtype=np.uint8)
        out = StatusPanel({}).render(frame, self._state())

        assert out is frame
        assert frame.any()

    def test_with_preview(self):
        frame = np.zeros((360, 640, 3), dtype=np.uint8)
        preview = np.full((480, 640, 3), 200, dtype=np.uint8)

        StatusPanel({"show_camera_readout": True}).render(frame, self._state(hand=True), preview)

        assert frame[-20, -20].max() > 0

    def test_error_status(self):
        frame = np.zeros((360, 640, 3), dtype=np.uint8)
        StatusPanel({"show_preview": False}).render(
            frame, self._state(TrackingStatus.CAMERA_ERROR))
        assert frame.any()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
