"""
Heightmap data model.

The grid is held as a contiguous row-major NumPy buffer of shape
(rows, cols), indexed [z][x]. Every engine operation treats a
HeightmapData as a value: edits build a new instance rather than
mutating the one they were given.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

import numpy as np


@dataclass
class HeightmapMetadata:
    """Generation provenance. Informational only."""

    name: Optional[str] = None
    description: Optional[str] = None
    created: Optional[str] = None
    version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("name", self.name),
                ("description", self.description),
                ("created", self.created),
                ("version", self.version),
            )
            if value is not None
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["HeightmapMetadata"]:
        if data is None:
            return None
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            created=data.get("created"),
            version=data.get("version"),
        )


def grid_dimensions(width: float, height: float, resolution: float) -> Tuple[int, int]:
    """Return (rows, cols) for a world extent sampled every `resolution` units."""
    if resolution <= 0:
        return 0, 0
    return math.ceil(height / resolution), math.ceil(width / resolution)


def compute_bounds(heights: np.ndarray) -> Tuple[float, float]:
    """Full scan for the (min, max) of a grid. Empty grids report (0, 0)."""
    if heights.size == 0:
        return 0.0, 0.0
    return float(np.min(heights)), float(np.max(heights))


@dataclass(eq=False)
class HeightmapData:
    """
    A rectangular grid of elevation samples.

    Attributes:
        width: World-space extent along x
        height: World-space extent along z
        resolution: World units per grid cell
        heights: Elevations, shape (rows, cols), row = z index, col = x index
        min_height: Smallest value in the grid
        max_height: Largest value in the grid
        metadata: Optional provenance information
    """

    width: float
    height: float
    resolution: float
    heights: np.ndarray
    min_height: float
    max_height: float
    metadata: Optional[HeightmapMetadata] = field(default=None)

    def __post_init__(self):
        grid = np.ascontiguousarray(self.heights, dtype=np.float64)
        if grid.size == 0:
            grid = grid.reshape(0, 0)
        elif grid.ndim != 2:
            raise ValueError(f"Heights must be a 2D grid, got shape {grid.shape}")
        self.heights = grid

    @property
    def rows(self) -> int:
        return self.heights.shape[0]

    @property
    def cols(self) -> int:
        return self.heights.shape[1]

    @property
    def is_empty(self) -> bool:
        return self.heights.size == 0

    def in_bounds(self, x: int, z: int) -> bool:
        """Whether grid cell (x, z) exists."""
        return 0 <= x < self.cols and 0 <= z < self.rows

    def cell(self, x: int, z: int) -> float:
        """Bounds-checked read of grid cell (x, z)."""
        if not self.in_bounds(x, z):
            raise IndexError(f"Cell ({x}, {z}) outside {self.cols}x{self.rows} grid")
        return float(self.heights[z, x])

    def copy(self) -> "HeightmapData":
        return replace(
            self,
            heights=self.heights.copy(),
            metadata=replace(self.metadata) if self.metadata else None,
        )

    def with_heights(self, heights: np.ndarray) -> "HeightmapData":
        """New heightmap sharing this one's extents, with bounds rescanned."""
        min_height, max_height = compute_bounds(np.asarray(heights))
        return replace(
            self, heights=heights, min_height=min_height, max_height=max_height
        )

    def to_dict(self) -> Dict[str, Any]:
        """Interchange representation using the wire field names."""
        data = {
            "width": self.width,
            "height": self.height,
            "resolution": self.resolution,
            "heights": self.heights.tolist(),
            "minHeight": self.min_height,
            "maxHeight": self.max_height,
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HeightmapData":
        """
        Rebuild a heightmap from its interchange representation.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the resolution is not positive or the grid
                does not match the declared extents
        """
        resolution = float(data["resolution"])
        if not (math.isfinite(resolution) and resolution > 0):
            raise ValueError(f"Resolution must be positive, got {data['resolution']}")

        heightmap = cls(
            width=data["width"],
            height=data["height"],
            resolution=resolution,
            heights=np.array(data["heights"], dtype=np.float64),
            min_height=data["minHeight"],
            max_height=data["maxHeight"],
            metadata=HeightmapMetadata.from_dict(data.get("metadata")),
        )

        expected = grid_dimensions(heightmap.width, heightmap.height, resolution)
        if not heightmap.is_empty and heightmap.heights.shape != expected:
            raise ValueError(
                f"Grid shape {heightmap.heights.shape} does not match "
                f"{heightmap.width}x{heightmap.height} at resolution {resolution}, expected {expected}"
            )
        return heightmap

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeightmapData):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and self.resolution == other.resolution
            and self.min_height == other.min_height
            and self.max_height == other.max_height
            and self.metadata == other.metadata
            and self.heights.shape == other.heights.shape
            and bool(np.array_equal(self.heights, other.heights))
        )

    __hash__ = None


def is_valid_heightmap(heightmap: Optional[HeightmapData]) -> bool:
    """A heightmap is usable for queries when it exists, has cells and a positive resolution."""
    return heightmap is not None and not heightmap.is_empty and heightmap.resolution > 0
