"""
End-to-end test: generate, edit, export and re-import a small terrain.
"""

import math

import numpy as np

from py_terrain.core import (
    EditOperation,
    GenerationParams,
    HeightmapEditor,
    export_heightmap,
    generate_heightmap,
    height_at,
    import_heightmap,
)


class TestEndToEnd:
    """Generate a 10x10 random map, raise its centre and round-trip it through JSON."""

    def test_random_raise_round_trip(self):
        heightmap = generate_heightmap(
            GenerationParams(
                width=10, height=10, resolution=1.0, algorithm="random",
                seed=12345, min_height=0.0, max_height=1.0,
            )
        )
        assert heightmap.heights.shape == (10, 10)
        assert np.all(heightmap.heights >= 0.0)
        assert np.all(heightmap.heights <= 1.0)

        center = heightmap.width / 2
        operation = EditOperation("raise", center, center, radius=3, intensity=2, falloff="linear")
        edited = HeightmapEditor().apply(heightmap, operation)

        delta = edited.heights - heightmap.heights
        assert 0.0 < delta[5, 5] <= 2.0
        zs, xs = np.mgrid[0:10, 0:10]
        beyond = np.hypot(xs - 5, zs - 5) > 3
        assert np.all(delta[beyond] == 0.0)
        assert edited.max_height == edited.heights.max()
        assert edited.min_height == edited.heights.min()

        restored = import_heightmap(export_heightmap(edited, "json"), "json")
        assert restored == edited
        assert height_at(restored, 5.0, 5.0) == edited.heights[5, 5]

    def test_world_queries_match_grid(self):
        heightmap = generate_heightmap(
            GenerationParams(width=12, height=8, resolution=0.5, algorithm="random", seed=3)
        )
        assert heightmap.heights.shape == (16, 24)
        for x, z in [(0, 0), (7, 3), (23, 15)]:
            assert math.isclose(height_at(heightmap, x * 0.5, z * 0.5), heightmap.heights[z, x])
