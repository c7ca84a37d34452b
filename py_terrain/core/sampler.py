"""
Point queries against a heightmap.

These sit on per-frame and per-vertex paths, so they never raise:
invalid heightmaps and out-of-range coordinates produce a safe default.
"""

import math
from typing import NamedTuple, Optional

import structlog

from .heightmap import HeightmapData, is_valid_heightmap

logger = structlog.get_logger()


class Vector3(NamedTuple):
    x: float
    y: float
    z: float


UP = Vector3(0.0, 1.0, 0.0)


def height_at(heightmap: Optional[HeightmapData], world_x: float, world_z: float) -> float:
    """
    Bilinearly interpolated height at a world position.

    Returns 0 when the position lies outside the grid or is not finite. Neighbours past the
    last row or column are clamped to the edge.
    """
    if not is_valid_heightmap(heightmap):
        logger.warning("Invalid heightmap data in height_at")
        return 0.0

    heights = heightmap.heights
    rows, cols = heights.shape
    grid_x = world_x / heightmap.resolution
    grid_z = world_z / heightmap.resolution
    if not (math.isfinite(grid_x) and math.isfinite(grid_z)):
        return 0.0

    x0 = math.floor(grid_x)
    z0 = math.floor(grid_z)
    if x0 < 0 or x0 >= cols or z0 < 0 or z0 >= rows:
        return 0.0

    x1 = min(x0 + 1, cols - 1)
    z1 = min(z0 + 1, rows - 1)
    fx = grid_x - x0
    fz = grid_z - z0

    h00 = heights[z0, x0]
    h10 = heights[z0, x1]
    h01 = heights[z1, x0]
    h11 = heights[z1, x1]

    h0 = h00 * (1 - fx) + h10 * fx
    h1 = h01 * (1 - fx) + h11 * fx
    return float(h0 * (1 - fz) + h1 * fz)


def normal_at(heightmap: Optional[HeightmapData], world_x: float, world_z: float) -> Vector3:
    """Unit surface normal from central differences half a cell either side."""
    if not is_valid_heightmap(heightmap):
        logger.warning("Invalid heightmap data in normal_at")
        return UP

    delta = heightmap.resolution * 0.5
    left = height_at(heightmap, world_x - delta, world_z)
    right = height_at(heightmap, world_x + delta, world_z)
    back = height_at(heightmap, world_x, world_z - delta)
    front = height_at(heightmap, world_x, world_z + delta)

    dx = (right - left) / (2 * delta)
    dz = (front - back) / (2 * delta)

    length = math.sqrt(dx * dx + dz * dz + 1)
    return Vector3(-dx / length, 1 / length, -dz / length)
