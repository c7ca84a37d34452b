"""
Heightmap generation module.

Builds a regular grid of elevation samples from noise parameters, maps
the raw noise into the requested height range and optionally smooths
the result. Noise is evaluated with NumPy over the whole grid at once.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import numpy as np
import structlog
from scipy import ndimage

from ..utils import random as random_source
from .exceptions import EmptyHeightmapError, InvalidDimensionsError
from .heightmap import HeightmapData, HeightmapMetadata, compute_bounds, grid_dimensions
from .noise import NoiseContext

logger = structlog.get_logger()

# Grid indices are scaled by this before sampling noise
SAMPLE_SCALE = 0.1

FORMAT_VERSION = "1.0"

# 4-neighbour mean, centre excluded
_SMOOTHING_KERNEL = np.array(
    [[0.0, 0.25, 0.0], [0.25, 0.0, 0.25], [0.0, 0.25, 0.0]], dtype=np.float64
)


class Algorithm(str, Enum):
    """Noise algorithm used to fill the grid."""

    PERLIN = "perlin"
    SIMPLEX = "simplex"
    FRACTAL = "fractal"
    CELLULAR = "cellular"
    RANDOM = "random"


@dataclass
class GenerationParams:
    """Parameters for heightmap generation."""

    width: float
    height: float
    resolution: float = 1.0
    algorithm: Algorithm = Algorithm.PERLIN
    seed: Optional[int] = None  # Only the random algorithm honours it
    octaves: int = 4
    frequency: float = 1.0
    amplitude: float = 1.0
    persistence: float = 0.5
    lacunarity: float = 2.0
    min_height: float = 0.0
    max_height: float = 1.0
    smoothing: int = 0

    def __post_init__(self):
        self.algorithm = Algorithm(self.algorithm)


def map_range(
    value: np.ndarray, in_min: float, in_max: float, out_min: float, out_max: float
) -> np.ndarray:
    """Linearly map values from [in_min, in_max] onto [out_min, out_max]."""
    return (value - in_min) * (out_max - out_min) / (in_max - in_min) + out_min


def smooth_heightmap(heights: np.ndarray, iterations: int) -> np.ndarray:
    """
    Box-blur interior cells with their 4 neighbours.

    Each pass reads the grid produced by the previous pass. Border rows
    and columns are never changed.

    Args:
        heights: Grid to smooth
        iterations: Number of passes

    Returns:
        New smoothed grid
    """
    smoothed = heights.copy()
    if heights.shape[0] < 3 or heights.shape[1] < 3:
        return smoothed

    for _ in range(iterations):
        blurred = ndimage.convolve(smoothed, _SMOOTHING_KERNEL, mode="nearest")
        smoothed[1:-1, 1:-1] = blurred[1:-1, 1:-1]

    return smoothed


class HeightmapGenerator:
    """
    Generates heightmaps from noise parameters.

    Args:
        noise: Noise context to sample. Defaults to the process-global
            context, which is shared by every heightmap in the process.
    """

    def __init__(self, noise: Optional[NoiseContext] = None):
        self._noise = noise

    @property
    def noise(self) -> NoiseContext:
        if self._noise is None:
            self._noise = random_source.get_noise_context()
        return self._noise

    def generate(self, params: GenerationParams) -> HeightmapData:
        """
        Generate a heightmap.

        Args:
            params: Generation parameters

        Returns:
            New HeightmapData whose bounds match its grid

        Raises:
            InvalidDimensionsError: If the grid would have no rows or columns
            EmptyHeightmapError: If generation produced an empty grid
        """
        rows, cols = grid_dimensions(params.width, params.height, params.resolution)
        if rows <= 0 or cols <= 0:
            raise InvalidDimensionsError(f"Invalid grid dimensions: {cols}x{rows}")

        raw = np.clip(self._sample(params, rows, cols), -1.0, 1.0)
        heights = map_range(raw, -1.0, 1.0, params.min_height, params.max_height)

        if params.smoothing and params.smoothing > 0:
            heights = smooth_heightmap(heights, params.smoothing)
            # Rounding in the blur may step a hair outside the range
            heights = np.clip(heights, params.min_height, params.max_height)

        if heights.shape[0] == 0 or heights.shape[1] == 0:
            raise EmptyHeightmapError("Failed to generate valid heightmap data")

        min_height, max_height = compute_bounds(heights)
        algorithm = params.algorithm.value

        logger.info(
            "Heightmap generated",
            algorithm=algorithm,
            rows=rows,
            cols=cols,
            min_height=min_height,
            max_height=max_height,
        )

        return HeightmapData(
            width=params.width,
            height=params.height,
            resolution=params.resolution,
            heights=heights,
            min_height=min_height,
            max_height=max_height,
            metadata=HeightmapMetadata(
                name=f"Generated_{algorithm}_{int(time.time() * 1000)}",
                created=datetime.now(timezone.utc).isoformat(),
                version=FORMAT_VERSION,
            ),
        )

    def _sample(self, params: GenerationParams, rows: int, cols: int) -> np.ndarray:
        """Raw per-cell values, nominally in [-1, 1]."""
        if params.algorithm is Algorithm.RANDOM:
            prng = random_source.get_prng(params.seed)
            values = np.array([prng.random() for _ in range(rows * cols)])
            return values.reshape(rows, cols) * 2 - 1

        xs, zs = np.meshgrid(
            np.arange(cols) * SAMPLE_SCALE, np.arange(rows) * SAMPLE_SCALE
        )

        if params.algorithm is Algorithm.CELLULAR:
            return np.asarray(self.noise.cellular(xs, zs))

        # perlin, simplex and fractal share the octave sum
        return np.asarray(
            self.noise.fractal(
                xs,
                zs,
                octaves=params.octaves,
                frequency=params.frequency,
                amplitude=params.amplitude,
                persistence=params.persistence,
                lacunarity=params.lacunarity,
            )
        )


def generate_heightmap(params: GenerationParams) -> HeightmapData:
    """Generate a heightmap with the process-global noise context."""
    return HeightmapGenerator().generate(params)
