"""
Software point-cloud renderer.

Projects the galaxy and the starfield through a perspective camera built
from the current CameraPose and splats the points into a BGR image with
additive blending. The galaxy slowly spins on its own; the camera only
decides where we look from.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from galaxy_control.core.types import CameraPose
from galaxy_control.modules.scene.galaxy import hex_to_rgb, rotate_y
from galaxy_control.modules.utils.config import config_value

logger = logging.getLogger(__name__)

WORLD_UP = np.array([0.0, 1.0, 0.0])


@dataclass
class RendererConfig:
    """Output size and camera lens."""
    width: int = 1280
    height: int = 720
    fov_deg: float = 60.0
    near: float = 0.1
    background: str = "#050505"

    @classmethod
    def from_dict(cls, d: dict) -> "RendererConfig":
        return cls(
            width=config_value(d, "display", "width", 1280),
            height=config_value(d, "display", "height", 720),
            fov_deg=config_value(d, "display", "fov_deg", 60.0),
            near=config_value(d, "display", "near", 0.1),
            background=config_value(d, "display", "background", "#050505"),
        )

    @property
    def focal_px(self) -> float:
        """Focal length in pixels for the vertical field of view."""
        return (self.height / 2.0) / math.tan(math.radians(self.fov_deg) / 2.0)


def look_at(eye, target=(0.0, 0.0, 0.0), up=WORLD_UP) -> np.ndarray:
    """World-to-camera rotation (rows: right, up, backward) for a camera at eye."""
    eye = np.asarray(eye, dtype=np.float64)
    forward = np.asarray(target, dtype=np.float64) - eye
    norm = np.linalg.norm(forward)
    if norm == 0:
        raise ValueError("Camera position coincides with its target")
    forward /= norm

    right = np.cross(forward, up)
    if np.linalg.norm(right) < 1e-9:
        # Looking straight along the up axis
        right = np.cross(forward, np.array([0.0, 0.0, 1.0]))
    right /= np.linalg.norm(right)
    true_up = np.cross(right, forward)
    return np.stack([right, true_up, -forward])


def project_points(positions: np.ndarray, pose: CameraPose,
                   config: RendererConfig) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Project world points to pixel coordinates.

    Returns:
        (u, v, depth, visible): integer pixel columns / rows, view depth and
        a mask of points in front of the camera and inside the image
    """
    rotation = look_at(pose.position, pose.target)
    camera = (positions - np.asarray(pose.position, dtype=np.float32)) @ rotation.T.astype(np.float32)
    depth = -camera[:, 2]

    in_front = depth > config.near
    safe_depth = np.where(in_front, depth, 1.0)
    focal = config.focal_px
    u = np.round(config.width / 2.0 + focal * camera[:, 0] / safe_depth).astype(np.int64)
    v = np.round(config.height / 2.0 - focal * camera[:, 1] / safe_depth).astype(np.int64)

    visible = in_front & (u >= 0) & (u < config.width) & (v >= 0) & (v < config.height)
    return u, v, depth, visible


class GalaxyRenderer:
    """Draws the galaxy and starfield for a given camera pose."""

    def __init__(self, galaxy: Tuple[np.ndarray, np.ndarray],
                 stars: Optional[Tuple[np.ndarray, np.ndarray]] = None,
                 config: Optional[RendererConfig] = None,
                 point_size: float = 0.015, rotation_speed: float = 0.05):
        self.config = config or RendererConfig()
        self._galaxy_positions, galaxy_rgb = galaxy
        self._galaxy_bgr = galaxy_rgb[:, ::-1].astype(np.float32)
        if stars is not None:
            self._star_positions, star_rgb = stars
            self._star_bgr = star_rgb[:, ::-1].astype(np.float32)
        else:
            self._star_positions = np.zeros((0, 3), dtype=np.float32)
            self._star_bgr = np.zeros((0, 3), dtype=np.float32)
        self._point_size = point_size
        self._rotation_speed = rotation_speed
        self._background = hex_to_rgb(self.config.background)[::-1]

    def render(self, pose: CameraPose, elapsed_s: float = 0.0) -> np.ndarray:
        """Render one frame.

        Args:
            pose: camera pose from the smoothing controller
            elapsed_s: seconds since start, drives the galaxy's own spin

        Returns:
            BGR uint8 image of the configured size
        """
        cfg = self.config
        canvas = np.empty((cfg.height, cfg.width, 3), dtype=np.float32)
        canvas[:] = self._background

        # Stars stay fixed and draw as single pixels
        self._splat(canvas, self._star_positions, self._star_bgr, pose, size_scaled=False)

        galaxy = rotate_y(self._galaxy_positions, elapsed_s * self._rotation_speed)
        self._splat(canvas, galaxy, self._galaxy_bgr, pose, size_scaled=True)

        np.clip(canvas, 0.0, 1.0, out=canvas)
        return (canvas * 255.0).astype(np.uint8)

    def _splat(self, canvas, positions, colors, pose, size_scaled):
        if len(positions) == 0:
            return
        cfg = self.config
        u, v, depth, visible = project_points(positions, pose, cfg)
        if not visible.any():
            return

        u, v, depth, colors = u[visible], v[visible], depth[visible], colors[visible]

        if not size_scaled:
            np.add.at(canvas, (v, u), colors)
            return

        # Size attenuation: world-space point size to pixels at this depth
        size_px = self._point_size * cfg.focal_px / depth
        weight = np.clip(size_px, 0.2, 1.0)[:, None]
        np.add.at(canvas, (v, u), colors * weight)

        # Points closer than ~1.5 px wide also cover their right / lower neighbours
        big = size_px >= 1.5
        if big.any():
            bu, bv, bc = u[big], v[big], colors[big]
            for du, dv in ((1, 0), (0, 1), (1, 1)):
                nu, nv = bu + du, bv + dv
                inside = (nu < cfg.width) & (nv < cfg.height)
                np.add.at(canvas, (nv[inside], nu[inside]), bc[inside])
