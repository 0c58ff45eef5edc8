"""
Procedural spiral-galaxy and background-starfield point clouds.

Both are generated once at startup; nothing here changes per frame.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from galaxy_control.modules.utils.config import config_value

logger = logging.getLogger(__name__)


def hex_to_rgb(color: str) -> np.ndarray:
    """'#ff6030' -> array([1.0, 0.376, 0.188])"""
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected a #rrggbb colour, got {color!r}")
    return np.array([int(value[i:i + 2], 16) for i in (0, 2, 4)], dtype=np.float32) / 255.0


@dataclass
class GalaxyConfig:
    """Spiral galaxy shape and colours."""
    count: int = 8000
    size: float = 0.015
    radius: float = 5.0
    branches: int = 3
    spin: float = 1.0
    randomness: float = 0.2
    randomness_power: float = 3.0
    inside_color: str = "#ff6030"
    outside_color: str = "#1b3984"
    rotation_speed: float = 0.05
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, d: dict) -> "GalaxyConfig":
        """Create config from dictionary (YAML parsed)."""
        defaults = cls()
        return cls(
            seed=d.get("seed"),
            **{
                name: config_value(d, "galaxy", name, getattr(defaults, name))
                for name in cls.__dataclass_fields__ if name != "seed"
            },
        )


@dataclass
class StarfieldConfig:
    """Background stars on a thick spherical shell."""
    count: int = 5000
    radius: float = 100.0
    depth: float = 50.0
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, d: dict) -> "StarfieldConfig":
        return cls(
            count=config_value(d, "starfield", "count", 5000),
            radius=config_value(d, "starfield", "radius", 100.0),
            depth=config_value(d, "starfield", "depth", 50.0),
            seed=d.get("seed"),
        )


def _random_sign(rng: np.random.Generator, n: int) -> np.ndarray:
    return np.where(rng.random(n) < 0.5, 1.0, -1.0)


def generate_galaxy(config: Optional[GalaxyConfig] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Build the spiral galaxy.

    Points sit on `branches` arms that twist by `spin` radians per unit of
    radius. Each point is pushed off its arm by a random offset whose size
    falls off with `randomness_power`, so most points hug the arm. The vertical
    offset is halved to keep the disc flat. Colour fades from the inside
    colour at the core to the outside colour at the rim.

    Returns:
        (positions, colors): float32 arrays of shape (count, 3); colors are RGB in [0, 1]
    """
    cfg = config or GalaxyConfig()
    if cfg.count <= 0:
        empty = np.zeros((0, 3), dtype=np.float32)
        return empty, empty.copy()
    if cfg.branches <= 0:
        raise ValueError("branches must be positive")

    rng = np.random.default_rng(cfg.seed)
    n = cfg.count

    radius = rng.random(n) * cfg.radius
    spin_angle = radius * cfg.spin
    branch_angle = (np.arange(n) % cfg.branches) / cfg.branches * math.pi * 2

    offsets = np.empty((n, 3))
    for axis in range(3):
        offsets[:, axis] = rng.random(n) ** cfg.randomness_power * _random_sign(rng, n)

    angle = branch_angle + spin_angle
    positions = np.empty((n, 3), dtype=np.float32)
    positions[:, 0] = np.cos(angle) * radius + offsets[:, 0]
    positions[:, 1] = offsets[:, 1] * 0.5
    positions[:, 2] = np.sin(angle) * radius + offsets[:, 2]

    inside = hex_to_rgb(cfg.inside_color)
    outside = hex_to_rgb(cfg.outside_color)
    mix = (radius / cfg.radius)[:, None] if cfg.radius > 0 else np.zeros((n, 1))
    colors = (inside + (outside - inside) * mix).astype(np.float32)

    logger.info("Generated galaxy: %d points, %d branches", n, cfg.branches)
    return positions, colors


def generate_starfield(config: Optional[StarfieldConfig] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Scatter stars uniformly in direction, between radius and radius + depth.

    Returns:
        (positions, colors) with grey colours of random brightness
    """
    cfg = config or StarfieldConfig()
    rng = np.random.default_rng(cfg.seed)
    n = max(cfg.count, 0)

    directions = rng.normal(size=(n, 3))
    norms = np.linalg.norm(directions, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    directions /= norms

    distance = cfg.radius + rng.random(n) * cfg.depth
    positions = (directions * distance[:, None]).astype(np.float32)

    brightness = rng.uniform(0.3, 1.0, size=(n, 1))
    colors = np.repeat(brightness, 3, axis=1).astype(np.float32)

    logger.info("Generated starfield: %d stars", n)
    return positions, colors


def rotate_y(positions: np.ndarray, angle: float) -> np.ndarray:
    """Rotate points about the vertical axis (right-handed, y-up)."""
    c, s = math.cos(angle), math.sin(angle)
    rotation = np.array([[c, 0.0, s],
                         [0.0, 1.0, 0.0],
                         [-s, 0.0, c]], dtype=np.float32)
    return positions @ rotation.T
