"""
Tests for heightmap import and export.
"""

import base64
import io
import json

import numpy as np
import pytest
from PIL import Image

from py_terrain.core.exceptions import SerializationError, UnsupportedFormatError
from py_terrain.core.heightmap import HeightmapData, HeightmapMetadata
from py_terrain.core.heightmap_editor import EditOperation, HeightmapEditor
from py_terrain.core.serialization import (
    PNG_DATA_URL_PREFIX,
    export_heightmap,
    heights_to_grayscale,
    import_heightmap,
)


@pytest.fixture
def heightmap():
    rng = np.random.default_rng(8)
    heights = rng.uniform(-2.0, 6.0, size=(6, 9))
    return HeightmapData(
        width=9,
        height=6,
        resolution=1.0,
        heights=heights,
        min_height=float(heights.min()),
        max_height=float(heights.max()),
        metadata=HeightmapMetadata(name="sample", created="2024-01-01T00:00:00+00:00", version="1.0"),
    )


class TestJson:
    """Test the structured format."""

    def test_round_trip(self, heightmap):
        text = export_heightmap(heightmap, "json")
        assert import_heightmap(text, "json") == heightmap

    def test_wire_field_names(self, heightmap):
        data = json.loads(export_heightmap(heightmap, "json"))
        assert set(data) == {"width", "height", "resolution", "heights", "minHeight", "maxHeight", "metadata"}
        assert len(data["heights"]) == 6
        assert len(data["heights"][0]) == 9
        assert data["metadata"]["name"] == "sample"

    def test_without_metadata(self, heightmap):
        heightmap.metadata = None
        data = json.loads(export_heightmap(heightmap, "json"))
        assert "metadata" not in data
        assert import_heightmap(json.dumps(data), "json") == heightmap

    @pytest.mark.parametrize("payload", ["not json", "{}", '{"width": 1}'])
    def test_invalid_payload(self, payload):
        with pytest.raises(SerializationError):
            import_heightmap(payload, "json")

    @pytest.mark.parametrize("resolution", [0, -1.0, None])
    def test_rejects_bad_resolution(self, heightmap, resolution):
        data = json.loads(export_heightmap(heightmap, "json"))
        data["resolution"] = resolution
        with pytest.raises(SerializationError):
            import_heightmap(json.dumps(data), "json")

    def test_rejects_grid_not_matching_extents(self, heightmap):
        data = json.loads(export_heightmap(heightmap, "json"))
        data["width"] = 20
        with pytest.raises(SerializationError):
            import_heightmap(json.dumps(data), "json")

        data = json.loads(export_heightmap(heightmap, "json"))
        data["heights"] = data["heights"][:-1]
        with pytest.raises(SerializationError):
            import_heightmap(json.dumps(data), "json")

    def test_declared_bounds_replaced_by_grid_bounds(self):
        data = {
            "width": 4, "height": 3, "resolution": 1.0,
            "heights": [[0.5] * 4 for _ in range(3)],
            "minHeight": -5.0, "maxHeight": 5.0,
        }
        restored = import_heightmap(json.dumps(data), "json")
        assert (restored.min_height, restored.max_height) == (0.5, 0.5)

        edited = HeightmapEditor().apply(restored, EditOperation("raise", 1, 1, 0, 1.0))
        assert (edited.min_height, edited.max_height) == (0.5, 1.5)


class TestRaw:
    """Test headerless float32 buffers."""

    def test_round_trip(self, heightmap):
        data = export_heightmap(heightmap, "raw")
        assert isinstance(data, bytes)
        assert len(data) == 4 * 6 * 9

        restored = import_heightmap(data, "raw", 9, 6, 1.0)
        assert restored.heights.shape == (6, 9)
        assert np.allclose(restored.heights, heightmap.heights, rtol=1e-6, atol=1e-6)
        assert restored.min_height == restored.heights.min()
        assert restored.max_height == restored.heights.max()
        assert restored.metadata is None

    def test_little_endian_row_major(self):
        heights = np.array([[1.0, 2.0], [3.0, 4.0]])
        heightmap = HeightmapData(width=2, height=2, resolution=1, heights=heights, min_height=1, max_height=4)
        data = export_heightmap(heightmap, "raw")
        assert np.frombuffer(data, dtype="<f4").tolist() == [1.0, 2.0, 3.0, 4.0]

    def test_length_mismatch(self, heightmap):
        data = export_heightmap(heightmap, "raw")
        with pytest.raises(SerializationError):
            import_heightmap(data, "raw", 10, 6, 1.0)

    def test_dimensions_from_resolution(self):
        data = np.arange(6, dtype="<f4").tobytes()
        restored = import_heightmap(data, "raw", 6, 4, 2.0)
        assert restored.heights.shape == (2, 3)
        assert restored.heights[1, 2] == 5.0

    def test_missing_dimensions(self):
        with pytest.raises(SerializationError):
            import_heightmap(b"\x00" * 16, "raw")


class TestPng:
    """Test image export."""

    def test_data_url_decodes(self, heightmap):
        url = export_heightmap(heightmap, "png")
        assert url.startswith(PNG_DATA_URL_PREFIX)

        image = Image.open(io.BytesIO(base64.b64decode(url[len(PNG_DATA_URL_PREFIX):])))
        assert image.size == (9, 6)
        pixels = np.asarray(image.convert("RGBA"))
        assert np.all(pixels[..., 3] == 255)
        assert np.array_equal(pixels[..., 0], heights_to_grayscale(heightmap))

    def test_grayscale_spans_full_range(self, heightmap):
        gray = heights_to_grayscale(heightmap)
        assert gray.min() == 0
        assert gray.max() == 255

    def test_flat_map_is_black(self):
        flat = HeightmapData(width=3, height=3, resolution=1, heights=np.full((3, 3), 2.0), min_height=2, max_height=2)
        assert np.all(heights_to_grayscale(flat) == 0)
        assert export_heightmap(flat, "png").startswith(PNG_DATA_URL_PREFIX)

    def test_png_import_not_supported(self):
        with pytest.raises(UnsupportedFormatError):
            import_heightmap("data:image/png;base64,", "png")


@pytest.mark.parametrize("fmt", ["xml", "tiff", ""])
def test_unknown_formats(heightmap, fmt):
    with pytest.raises(UnsupportedFormatError):
        export_heightmap(heightmap, fmt)
    with pytest.raises(UnsupportedFormatError):
        import_heightmap("", fmt)
