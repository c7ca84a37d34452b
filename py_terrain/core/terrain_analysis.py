"""
Terrain statistics and collision queries.

Slope statistics use central differences over interior cells; border
cells contribute to the average height only.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import structlog

from .heightmap import HeightmapData, is_valid_heightmap
from .sampler import Vector3, height_at, normal_at

logger = structlog.get_logger()

FLAT_SLOPE = 0.1  # ~5.7 degrees
STEEP_SLOPE = 0.5  # ~28.6 degrees
WATER_LEVEL_OFFSET = 0.5
DEFAULT_COLLISION_RADIUS = 0.1


@dataclass
class TerrainStats:
    """Summary statistics for a heightmap."""

    average_height: float = 0.0
    max_slope: float = 0.0
    average_slope: float = 0.0
    flat_areas: int = 0
    steep_areas: int = 0
    water_level: float = 0.0


@dataclass
class CollisionData:
    """Result of a collision check against the terrain surface."""

    collision: bool
    height: float
    normal: Vector3
    slope: float


def slope_grid(heightmap: HeightmapData) -> np.ndarray:
    """Slope angle in radians for each interior cell, shape (rows-2, cols-2)."""
    heights = heightmap.heights
    resolution = heightmap.resolution
    dx = (heights[1:-1, 2:] - heights[1:-1, :-2]) / (2 * resolution)
    dz = (heights[2:, 1:-1] - heights[:-2, 1:-1]) / (2 * resolution)
    return np.arctan2(np.sqrt(dx * dx + dz * dz), 1.0)


def analyze_terrain(heightmap: Optional[HeightmapData]) -> TerrainStats:
    """
    Compute height and slope statistics.

    Flat cells have a slope under 0.1 rad, steep cells over 0.5 rad. The
    water level is a simple estimate half a unit below the mean height.
    """
    if not is_valid_heightmap(heightmap):
        return TerrainStats()

    average_height = float(np.mean(heightmap.heights))
    slopes = slope_grid(heightmap)

    if slopes.size == 0:
        stats = TerrainStats(
            average_height=average_height,
            water_level=average_height - WATER_LEVEL_OFFSET,
        )
    else:
        stats = TerrainStats(
            average_height=average_height,
            max_slope=float(slopes.max()),
            average_slope=float(slopes.mean()),
            flat_areas=int(np.count_nonzero(slopes < FLAT_SLOPE)),
            steep_areas=int(np.count_nonzero(slopes > STEEP_SLOPE)),
            water_level=average_height - WATER_LEVEL_OFFSET,
        )

    logger.debug("Terrain analyzed", **stats.__dict__)
    return stats


def check_collision(
    heightmap: Optional[HeightmapData],
    position: Sequence[float],
    radius: float = DEFAULT_COLLISION_RADIUS,
) -> bool:
    """Whether a point (x, y, z) is within `radius` above the surface or below it."""
    x, y, z = position
    return y < height_at(heightmap, x, z) + radius


def get_collision_data(
    heightmap: Optional[HeightmapData],
    position: Sequence[float],
    radius: float = DEFAULT_COLLISION_RADIUS,
) -> CollisionData:
    """
    Check a point against the surface under it.

    The slope is only reported for colliding points; it is the angle
    between the surface normal and straight up.
    """
    x, y, z = position
    height = height_at(heightmap, x, z)
    normal = normal_at(heightmap, x, z)
    collision = y < height + radius

    slope = 0.0
    if collision:
        slope = math.atan2(math.sqrt(normal.x * normal.x + normal.z * normal.z), normal.y)

    return CollisionData(collision=collision, height=height, normal=normal, slope=slope)
