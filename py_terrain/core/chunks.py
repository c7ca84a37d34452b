"""
Chunk extraction for transmitting a heightmap piecewise.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

import numpy as np
import structlog

from .heightmap import HeightmapData, is_valid_heightmap

logger = structlog.get_logger()


@dataclass(eq=False)
class HeightmapChunk:
    """A rectangular slice of a heightmap grid, re-indexed from zero."""

    x: int
    z: int
    width: int = 0
    height: int = 0
    heights: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "z": self.z,
            "width": self.width,
            "height": self.height,
            "heights": self.heights.tolist(),
        }


def _empty_chunk(chunk_x: int, chunk_z: int) -> HeightmapChunk:
    return HeightmapChunk(x=chunk_x, z=chunk_z)


def create_chunk(
    heightmap: Optional[HeightmapData], chunk_x: int, chunk_z: int, chunk_size: int
) -> HeightmapChunk:
    """
    Extract the sub-grid for chunk (chunk_x, chunk_z).

    Args:
        heightmap: Source heightmap
        chunk_x: Chunk column
        chunk_z: Chunk row
        chunk_size: Chunk edge length in grid cells

    Returns:
        The chunk, possibly smaller at the map edge. A chunk starting
        outside the grid comes back with zero width and height.
    """
    if not is_valid_heightmap(heightmap):
        logger.warning("Invalid heightmap data in create_chunk")
        return _empty_chunk(chunk_x, chunk_z)

    rows, cols = heightmap.heights.shape
    start_x = math.floor(chunk_x * chunk_size / heightmap.resolution)
    start_z = math.floor(chunk_z * chunk_size / heightmap.resolution)

    clamped_x = max(0, start_x)
    clamped_z = max(0, start_z)
    end_x = min(start_x + chunk_size, cols)
    end_z = min(start_z + chunk_size, rows)

    if clamped_x >= cols or clamped_z >= rows:
        logger.warning(
            "Chunk coordinates out of bounds",
            chunk_x=chunk_x,
            chunk_z=chunk_z,
            start_x=start_x,
            start_z=start_z,
        )
        return _empty_chunk(chunk_x, chunk_z)

    # A chunk entirely left of or above the grid ends before it starts
    end_x = max(end_x, clamped_x)
    end_z = max(end_z, clamped_z)

    return HeightmapChunk(
        x=chunk_x,
        z=chunk_z,
        width=end_x - clamped_x,
        height=end_z - clamped_z,
        heights=heightmap.heights[clamped_z:end_z, clamped_x:end_x].copy(),
    )


def chunk_grid_shape(heightmap: HeightmapData, chunk_size: int) -> Tuple[int, int]:
    """Number of (chunk rows, chunk columns) whose start cell lies in the grid."""
    if not is_valid_heightmap(heightmap) or chunk_size <= 0:
        return 0, 0
    rows, cols = heightmap.heights.shape
    scale = heightmap.resolution / chunk_size
    return math.ceil(rows * scale), math.ceil(cols * scale)


def iter_chunks(heightmap: HeightmapData, chunk_size: int) -> Iterator[HeightmapChunk]:
    """Yield every non-empty chunk of the heightmap, row by row."""
    chunk_rows, chunk_cols = chunk_grid_shape(heightmap, chunk_size)
    for chunk_z in range(chunk_rows):
        for chunk_x in range(chunk_cols):
            chunk = create_chunk(heightmap, chunk_x, chunk_z, chunk_size)
            if not chunk.is_empty:
                yield chunk
