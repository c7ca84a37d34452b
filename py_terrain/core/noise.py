"""
Coherent 2D noise for heightmap generation.

Provides classic gradient (Perlin) noise, its multi-octave fractal sum,
and a cellular variant that measures distance to jittered feature
points. All functions accept scalars or NumPy arrays of coordinates and
are vectorized over the array case.
"""

import random
from typing import Optional, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]

PERMUTATION_TABLE_SIZE = 256

# 2D gradient directions, selected by hash & 7
GRADIENTS = np.array(
    [[1, 1], [-1, 1], [1, -1], [-1, -1], [1, 0], [-1, 0], [0, 1], [0, -1]],
    dtype=np.float64,
)

DEFAULT_CELL_SIZE = 10


def _fade(t: np.ndarray) -> np.ndarray:
    """Quintic smoothstep 6t^5 - 15t^4 + 10t^3."""
    return t * t * t * (t * (t * 6 - 15) + 10)


def _lerp(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def _to_int32(values: np.ndarray) -> np.ndarray:
    """Wrap int64 values into the signed 32-bit range."""
    return ((values + 2**31) % 2**32) - 2**31


def cell_hash(x: ArrayLike, z: ArrayLike) -> np.ndarray:
    """Spatial hash of integer cell coordinates on 32-bit integers."""
    x = np.asarray(x, dtype=np.int64)
    z = np.asarray(z, dtype=np.int64)
    return _to_int32(_to_int32(x * 73856093) ^ _to_int32(z * 19349663))


def _unwrap(result: np.ndarray) -> ArrayLike:
    return float(result) if result.ndim == 0 else result


class NoiseContext:
    """
    Permutation table and gradients backing the noise functions.

    Args:
        seed: Optional seed for the table shuffle. Without one the shuffle
            draws from the process-global random source, so two contexts
            built in different processes generally differ.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        rng = random.Random(seed) if seed is not None else random

        table = list(range(PERMUTATION_TABLE_SIZE))
        # Fisher-Yates
        for i in range(PERMUTATION_TABLE_SIZE - 1, 0, -1):
            j = int(rng.random() * (i + 1))
            table[i], table[j] = table[j], table[i]

        self.permutation = np.array(table, dtype=np.int64)
        self.gradients = GRADIENTS

    def _grad(self, hashed: np.ndarray, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        g = self.gradients[hashed & 7]
        return g[..., 0] * x + g[..., 1] * z

    def perlin(self, x: ArrayLike, z: ArrayLike) -> ArrayLike:
        """Single octave of 2D gradient noise, roughly in [-1, 1]."""
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        perm = self.permutation

        x_floor = np.floor(x)
        z_floor = np.floor(z)
        xi = x_floor.astype(np.int64) & 255
        zi = z_floor.astype(np.int64) & 255
        xf = x - x_floor
        zf = z - z_floor

        u = _fade(xf)
        w = _fade(zf)

        a = perm[xi] + zi
        aa = perm[a & 255]
        ab = perm[(a + 1) & 255]
        b = perm[(xi + 1) & 255] + zi
        ba = perm[b & 255]
        bb = perm[(b + 1) & 255]

        x1 = _lerp(
            self._grad(perm[aa & 255], xf, zf),
            self._grad(perm[ba & 255], xf - 1, zf),
            u,
        )
        x2 = _lerp(
            self._grad(perm[ab & 255], xf, zf - 1),
            self._grad(perm[bb & 255], xf - 1, zf - 1),
            u,
        )
        return _unwrap(_lerp(x1, x2, w))

    def fractal(
        self,
        x: ArrayLike,
        z: ArrayLike,
        octaves: int = 4,
        frequency: float = 1.0,
        amplitude: float = 1.0,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
    ) -> ArrayLike:
        """
        Sum `octaves` layers of gradient noise.

        Each layer samples at the current frequency and is weighted by the
        current amplitude; amplitude then decays by `persistence` and
        frequency grows by `lacunarity`.
        """
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        total = np.zeros(np.broadcast(x, z).shape, dtype=np.float64)

        current_amplitude = amplitude
        current_frequency = frequency
        for _ in range(octaves):
            total = total + (
                np.asarray(self.perlin(x * current_frequency, z * current_frequency))
                * current_amplitude
            )
            current_amplitude *= persistence
            current_frequency *= lacunarity

        return _unwrap(total)

    def cellular(
        self, x: ArrayLike, z: ArrayLike, cell_size: int = DEFAULT_CELL_SIZE
    ) -> ArrayLike:
        """
        Distance-to-nearest-feature noise in [0, 1].

        Space is divided into square cells of `cell_size`; each cell holds
        one feature point offset by a hash of the cell coordinates. The
        result is 1 on a feature point and falls to 0 a full cell away.
        """
        x = np.asarray(x, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        cell_x = np.floor(x / cell_size).astype(np.int64)
        cell_z = np.floor(z / cell_size).astype(np.int64)

        min_dist = np.full(np.broadcast(x, z).shape, np.inf)
        for dz in (-1, 0, 1):
            for dx in (-1, 0, 1):
                check_x = cell_x + dx
                check_z = cell_z + dz
                # fmod keeps the sign of the hash, so points may sit left of the cell
                point_x = check_x * cell_size + np.fmod(cell_hash(check_x, check_z), cell_size)
                point_z = check_z * cell_size + np.fmod(cell_hash(check_x, check_z + 1), cell_size)
                dist = np.sqrt((x - point_x) ** 2 + (z - point_z) ** 2)
                min_dist = np.minimum(min_dist, dist)

        return _unwrap(np.maximum(0.0, 1.0 - min_dist / cell_size))
