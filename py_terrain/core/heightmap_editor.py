"""
Brush editing for heightmaps.

An edit touches every grid cell within a circular radius of a
world-space centre, weighted by a falloff kernel. Edits never mutate
their input: each one returns a new HeightmapData with bounds updated
from the touched cells.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional

import numpy as np
import structlog

from .heightmap import HeightmapData, compute_bounds

logger = structlog.get_logger()


class EditType(str, Enum):
    """Brush operation."""

    RAISE = "raise"
    LOWER = "lower"
    SMOOTH = "smooth"
    FLATTEN = "flatten"
    NOISE = "noise"


class Falloff(str, Enum):
    """Brush weight as a function of normalized distance from the centre."""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    GAUSSIAN = "gaussian"


@dataclass
class EditOperation:
    """A single brush application in world space."""

    type: EditType
    x: float
    z: float
    radius: float
    intensity: float
    falloff: Falloff = Falloff.GAUSSIAN

    def __post_init__(self):
        self.type = EditType(self.type)
        self.falloff = Falloff(self.falloff)


def falloff_factor(distance: np.ndarray, falloff: Falloff) -> np.ndarray:
    """
    Weight for a normalized distance in [0, 1].

    Args:
        distance: Distance from the brush centre divided by the brush radius
        falloff: Kernel to apply

    Returns:
        Weights, 1 at the centre
    """
    if falloff is Falloff.LINEAR:
        return 1 - distance
    if falloff is Falloff.EXPONENTIAL:
        return np.exp(-distance * 3)
    if falloff is Falloff.GAUSSIAN:
        return np.exp(-(distance * distance) * 4)
    raise ValueError(f"Unknown falloff: {falloff}")


def smooth_point(heights: np.ndarray, x: int, z: int, amount: float) -> float:
    """
    Blend cell (x, z) toward the mean of its 4 neighbours.

    Cells on the grid border are returned unchanged.
    """
    rows, cols = heights.shape
    if x <= 0 or x >= cols - 1 or z <= 0 or z >= rows - 1:
        return float(heights[z, x])

    average = (
        heights[z, x - 1] + heights[z, x + 1] + heights[z - 1, x] + heights[z + 1, x]
    ) / 4
    current = heights[z, x]
    return float(current + amount * (average - current))


class HeightmapEditor:
    """
    Applies brush operations to heightmaps.

    Args:
        rng: Random generator for the noise brush. Left unseeded by
            default, so noise edits differ from run to run.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def apply(self, heightmap: HeightmapData, operation: EditOperation) -> HeightmapData:
        """
        Apply one brush operation.

        Args:
            heightmap: Source heightmap, left untouched
            operation: Brush to apply

        Returns:
            New heightmap with the edit applied and bounds updated
        """
        heights = heightmap.heights.copy()
        if heightmap.is_empty:
            return replace(heightmap, heights=heights)

        rows, cols = heights.shape
        resolution = heightmap.resolution
        grid_x = math.floor(operation.x / resolution)
        grid_z = math.floor(operation.z / resolution)
        grid_radius = math.ceil(operation.radius / resolution)

        # Bounding square clipped to the grid
        x0, x1 = max(grid_x - grid_radius, 0), min(grid_x + grid_radius, cols - 1)
        z0, z1 = max(grid_z - grid_radius, 0), min(grid_z + grid_radius, rows - 1)
        if x0 > x1 or z0 > z1:
            logger.debug("Edit outside grid", x=operation.x, z=operation.z)
            return replace(heightmap, heights=heights)

        dx, dz = np.meshgrid(
            np.arange(x0, x1 + 1) - grid_x, np.arange(z0, z1 + 1) - grid_z
        )
        distance = np.sqrt(dx * dx + dz * dz)
        inside = distance <= grid_radius
        if grid_radius > 0:
            normalized = distance / grid_radius
        else:
            normalized = np.zeros_like(distance)
        factor = falloff_factor(normalized, operation.falloff)

        region = heights[z0 : z1 + 1, x0 : x1 + 1]
        before = region[inside]
        weight = factor[inside]
        intensity = operation.intensity

        if operation.type is EditType.RAISE:
            region[inside] = before + intensity * weight
        elif operation.type is EditType.LOWER:
            region[inside] = before - intensity * weight
        elif operation.type is EditType.FLATTEN:
            region[inside] = before + (intensity - before) * weight
        elif operation.type is EditType.NOISE:
            jitter = self.rng.uniform(-1.0, 1.0, size=before.shape)
            region[inside] = before + jitter * intensity * weight
        elif operation.type is EditType.SMOOTH:
            # Row-major order; later cells see earlier results
            for (row, col), w in zip(np.argwhere(inside), weight):
                z, x = z0 + row, x0 + col
                heights[z, x] = smooth_point(heights, x, z, w * intensity)
        else:
            raise ValueError(f"Unknown edit type: {operation.type}")

        min_height, max_height = self._update_bounds(heightmap, before, region[inside], heights)

        logger.debug(
            "Heightmap edited",
            operation=operation.type.value,
            cells=int(inside.sum()),
            min_height=min_height,
            max_height=max_height,
        )

        return replace(
            heightmap, heights=heights, min_height=min_height, max_height=max_height
        )

    def apply_all(
        self, heightmap: HeightmapData, operations: Iterable[EditOperation]
    ) -> HeightmapData:
        """Fold a sequence of operations over a heightmap."""
        current = heightmap
        for operation in operations:
            current = self.apply(current, operation)
        return current

    @staticmethod
    def _update_bounds(
        heightmap: HeightmapData,
        before: np.ndarray,
        after: np.ndarray,
        heights: np.ndarray,
    ):
        """
        Bounds after an edit, from the prior bounds and the touched cells.

        Falls back to a full rescan when a cell that held a prior extreme
        moved inward, since the new extreme may then lie elsewhere.
        """
        if before.size == 0:
            return heightmap.min_height, heightmap.max_height

        lost_min = np.any((before <= heightmap.min_height) & (after > before))
        lost_max = np.any((before >= heightmap.max_height) & (after < before))
        if lost_min or lost_max:
            return compute_bounds(heights)

        return (
            min(heightmap.min_height, float(after.min())),
            max(heightmap.max_height, float(after.max())),
        )


def modify_heightmap(heightmap: HeightmapData, operation: EditOperation) -> HeightmapData:
    """Apply one operation with a fresh, unseeded editor."""
    return HeightmapEditor().apply(heightmap, operation)


def stroke_operations(
    operation: EditOperation,
    to_x: float,
    to_z: float,
    spacing: float = 2.0,
) -> List[EditOperation]:
    """
    Expand a brush drag into evenly spaced dabs.

    The stroke runs from the operation's centre to (to_x, to_z), placing a
    dab every `spacing` world units and always including both ends.
    """
    length = math.hypot(to_x - operation.x, to_z - operation.z)
    steps = max(1, math.floor(length / spacing)) if spacing > 0 else 1

    dabs = []
    for i in range(steps + 1):
        t = i / steps
        dabs.append(
            replace(
                operation,
                x=operation.x + (to_x - operation.x) * t,
                z=operation.z + (to_z - operation.z) * t,
            )
        )
    return dabs
