"""
Tests for chunk extraction.
"""

import numpy as np
import pytest

from py_terrain.core.chunks import chunk_grid_shape, create_chunk, iter_chunks
from py_terrain.core.heightmap import HeightmapData


class TestChunks:
    """Test chunk slicing."""

    @pytest.fixture
    def heightmap(self):
        heights = np.arange(10 * 13, dtype=np.float64).reshape(10, 13)
        return HeightmapData(
            width=13, height=10, resolution=1.0, heights=heights,
            min_height=0.0, max_height=float(heights.max()),
        )

    def test_interior_chunk_matches_slice(self, heightmap):
        chunk = create_chunk(heightmap, 1, 1, 4)
        assert (chunk.x, chunk.z, chunk.width, chunk.height) == (1, 1, 4, 4)
        assert np.array_equal(chunk.heights, heightmap.heights[4:8, 4:8])

    def test_edge_chunk_is_truncated(self, heightmap):
        chunk = create_chunk(heightmap, 3, 2, 4)
        assert (chunk.width, chunk.height) == (1, 2)
        assert np.array_equal(chunk.heights, heightmap.heights[8:10, 12:13])

    def test_chunk_is_a_copy(self, heightmap):
        chunk = create_chunk(heightmap, 0, 0, 4)
        chunk.heights[0, 0] = -100.0
        assert heightmap.heights[0, 0] == 0.0

    @pytest.mark.parametrize("cx,cz", [(4, 0), (0, 3), (10, 10)])
    def test_out_of_range_is_empty(self, heightmap, cx, cz):
        chunk = create_chunk(heightmap, cx, cz, 4)
        assert (chunk.x, chunk.z) == (cx, cz)
        assert chunk.width == 0 and chunk.height == 0
        assert chunk.heights.size == 0
        assert chunk.is_empty

    def test_negative_chunk_is_empty(self, heightmap):
        chunk = create_chunk(heightmap, -1, 0, 4)
        assert chunk.width == 0
        assert chunk.is_empty

    def test_invalid_heightmap(self):
        chunk = create_chunk(None, 0, 0, 4)
        assert chunk.is_empty

    def test_grid_shape(self, heightmap):
        assert chunk_grid_shape(heightmap, 4) == (3, 4)

    def test_iter_chunks_covers_grid(self, heightmap):
        chunks = list(iter_chunks(heightmap, 4))
        assert len(chunks) == 12
        assert sum(chunk.width * chunk.height for chunk in chunks) == heightmap.heights.size

    def test_to_dict(self, heightmap):
        data = create_chunk(heightmap, 0, 0, 2).to_dict()
        assert data == {"x": 0, "z": 0, "width": 2, "height": 2, "heights": [[0.0, 1.0], [13.0, 14.0]]}
