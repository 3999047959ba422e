"""Camera helpers shared by every population of the scene."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

__all__ = [
    "Projection",
    "rotate_y",
    "perspective_scale",
    "project",
    "project_flat",
    "rise_offset_y",
    "is_visible",
    "screen_origin",
]


@dataclass(frozen=True)
class Projection:
    """Screen position of a world point together with its depth data."""

    sx: float
    sy: float
    scale: float
    depth: float


def rotate_y(x: float, z: float, angle: float) -> Tuple[float, float]:
    """Rotate ``(x, z)`` around the vertical axis and return ``(rx, rz)``."""

    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return x * cos_a - z * sin_a, x * sin_a + z * cos_a


def perspective_scale(depth: float, perspective: float, bias: float = 0.0) -> float:
    """Return the size factor of a point at ``depth``.

    Points at or beyond the camera plane get a negative factor so callers can
    drop them instead of drawing mirrored coordinates.
    """

    denom = perspective + depth + bias
    if denom <= 0.0:
        return -1.0
    return perspective / denom


def project(
    x: float,
    y: float,
    z: float,
    angle: float,
    cx: float,
    cy: float,
    perspective: float,
    bias: float = 0.0,
) -> Projection:
    rx, rz = rotate_y(x, z, angle)
    scale = perspective_scale(rz, perspective, bias)
    return Projection(rx * scale + cx, y * scale + cy, scale, rz)


def project_flat(x: float, y: float, z: float, cx: float, cy: float, perspective: float) -> Projection:
    """Project without camera rotation; only ``z`` affects the scale."""

    scale = perspective_scale(z, perspective)
    return Projection(x * scale + cx, y * scale + cy, scale, z)


def rise_offset_y(home_y: float, eased: float, distance: float = 1500.0) -> float:
    """Return the animated height of a particle rising towards ``home_y``."""

    return home_y + (1.0 - eased) * distance


def is_visible(scale: float) -> bool:
    return scale > 0.0


def screen_origin(width: float, height: float) -> Tuple[float, float]:
    # The tree is taller than it is wide; nudge the origin down a little.
    return width / 2.0, height / 2.0 + 50.0
