"""
Tests for the terrain HTTP API.
"""

import base64
import json

import numpy as np
import pytest
from fastapi.testclient import TestClient

from py_terrain.api.main import app
from py_terrain.api.terrain import get_terrain_manager
from py_terrain.config import settings
from py_terrain.core.heightmap_generator import HeightmapGenerator
from py_terrain.core.noise import NoiseContext
from py_terrain.core.terrain_manager import TerrainConfig, TerrainManager


class TestTerrainAPI:
    """Test the terrain API endpoints."""

    @pytest.fixture
    def manager(self):
        return TerrainManager(
            TerrainConfig(width=20, height=20, chunk_size=8),
            generator=HeightmapGenerator(NoiseContext(seed=10)),
        )

    @pytest.fixture
    def client(self, manager):
        app.dependency_overrides[get_terrain_manager] = lambda: manager
        yield TestClient(app)
        app.dependency_overrides.clear()

    @pytest.fixture
    def generated(self, client):
        response = client.post(
            "/terrain/generate",
            json={"width": 20, "height": 20, "algorithm": "perlin", "frequency": 2.0,
                  "min_height": -5, "max_height": 5, "smoothing": 1},
        )
        assert response.status_code == 200
        return client

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "Terrain Heightmap API"

    def test_debug_follows_settings(self):
        assert app.debug is settings.debug

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_no_terrain(self, client):
        assert client.get("/terrain").status_code == 404
        assert client.get("/terrain/height", params={"x": 1, "z": 1}).status_code == 404
        assert client.post("/terrain/edit", json={"type": "raise", "x": 1, "z": 1, "radius": 2, "intensity": 1}).status_code == 404
        assert client.get("/terrain/export/json").status_code == 404

    def test_generate(self, generated, manager):
        summary = generated.get("/terrain").json()
        assert summary["rows"] == 20
        assert summary["cols"] == 20
        assert -5 <= summary["min_height"] <= summary["max_height"] <= 5
        assert summary["metadata"]["name"].startswith("Generated_perlin_")
        assert not summary["can_undo"]

    def test_generate_rejects_bad_input(self, client):
        assert client.post("/terrain/generate", json={"width": 0, "height": 10}).status_code == 422
        assert client.post("/terrain/generate", json={"width": 10, "height": 10, "algorithm": "voronoi"}).status_code == 422
        too_big = client.post("/terrain/generate", json={"width": 100000, "height": 100000})
        assert too_big.status_code == 400

    def test_edit_and_undo(self, generated, manager):
        before = manager.heightmap.heights[10, 10]
        response = generated.post(
            "/terrain/edit",
            json={"type": "raise", "x": 10, "z": 10, "radius": 3, "intensity": 2, "falloff": "linear"},
        )
        assert response.status_code == 200
        assert response.json()["can_undo"]
        assert manager.heightmap.heights[10, 10] == pytest.approx(before + 2)

        assert generated.post("/terrain/undo").status_code == 200
        assert manager.heightmap.heights[10, 10] == pytest.approx(before)
        assert generated.post("/terrain/redo").status_code == 200
        assert manager.heightmap.heights[10, 10] == pytest.approx(before + 2)

    def test_undo_without_history(self, generated):
        assert generated.post("/terrain/undo").status_code == 409

    def test_edit_validation(self, generated):
        response = generated.post(
            "/terrain/edit", json={"type": "raise", "x": 1, "z": 1, "radius": 1000, "intensity": 1}
        )
        assert response.status_code == 400
        response = generated.post(
            "/terrain/edit", json={"type": "erode", "x": 1, "z": 1, "radius": 2, "intensity": 1}
        )
        assert response.status_code == 422

    def test_batch_edit(self, generated, manager):
        response = generated.post(
            "/terrain/edit/batch",
            json={"operations": [
                {"type": "flatten", "x": 5, "z": 5, "radius": 2, "intensity": 0},
                {"type": "raise", "x": 5, "z": 5, "radius": 0, "intensity": 1},
            ]},
        )
        assert response.status_code == 200
        assert manager.heightmap.heights[5, 5] == pytest.approx(1.0)

    def test_stroke(self, generated, manager):
        response = generated.post(
            "/terrain/edit/stroke",
            json={"type": "lower", "x": 2, "z": 10, "radius": 1, "intensity": 1, "to_x": 18, "to_z": 10},
        )
        assert response.status_code == 200
        assert manager.can_undo

    def test_presets(self, generated, manager):
        names = generated.get("/terrain/presets").json()
        assert "mountain" in names

        before = manager.heightmap.heights[10, 10]
        assert generated.post("/terrain/presets/mountain").status_code == 200
        assert manager.heightmap.heights[10, 10] > before
        assert generated.post("/terrain/presets/volcano").status_code == 404

    def test_height_and_normal(self, generated, manager):
        response = generated.get("/terrain/height", params={"x": 4, "z": 7})
        assert response.json()["height"] == pytest.approx(manager.heightmap.heights[7, 4])
        outside = generated.get("/terrain/height", params={"x": -4, "z": 7})
        assert outside.json()["height"] == 0.0
        assert generated.get("/terrain/height", params={"x": "inf", "z": 7}).status_code == 422
        assert generated.get("/terrain/normal", params={"x": 1, "z": "nan"}).status_code == 422

        normal = generated.get("/terrain/normal", params={"x": 4.5, "z": 7.5}).json()
        length = np.sqrt(normal["x"] ** 2 + normal["y"] ** 2 + normal["z"] ** 2)
        assert length == pytest.approx(1.0)

    def test_collision(self, generated):
        data = generated.get("/terrain/collision", params={"x": 5, "y": -50, "z": 5}).json()
        assert data["collision"]
        assert data["enabled"]

    def test_chunks(self, generated, manager):
        chunk = generated.get("/terrain/chunks/1/0").json()
        assert chunk["width"] == 8
        assert chunk["resolution"] == 1.0
        assert np.allclose(chunk["heights"], manager.heightmap.heights[0:8, 8:16])

        edge = generated.get("/terrain/chunks/2/2").json()
        assert (edge["width"], edge["height"]) == (4, 4)

        empty = generated.get("/terrain/chunks/9/9").json()
        assert empty["width"] == 0 and empty["heights"] == []

    def test_analysis(self, generated, manager):
        stats = generated.get("/terrain/analysis").json()
        assert stats["average_height"] == pytest.approx(manager.heightmap.heights.mean())
        assert stats["water_level"] == pytest.approx(stats["average_height"] - 0.5)

    def test_path(self, generated):
        response = generated.post("/terrain/path", json={"start": [0, 0], "goal": [5, 3], "max_slope": 1.5})
        body = response.json()
        assert body["found"]
        assert body["path"][0] == [0, 0]
        assert body["path"][-1] == [5, 3]
        assert body["length"] == len(body["path"])

        outside = generated.post("/terrain/path", json={"start": [0, 0], "goal": [50, 3]}).json()
        assert not outside["found"]

    def test_grid_path_rejects_fractional_cells(self, generated):
        response = generated.post("/terrain/path", json={"start": [-0.5, 0], "goal": [5, 3]})
        assert response.status_code == 422
        response = generated.post("/terrain/path", json={"start": [0, 0], "goal": [5.25, 3]})
        assert response.status_code == 422

    def test_world_path(self, generated):
        body = generated.post(
            "/terrain/path", json={"start": [0.5, 0.5], "goal": [3.5, 0.5], "max_slope": 1.5, "world": True}
        ).json()
        assert body["path"][-1] == [3.0, 0.0]

    def test_export_formats(self, generated, manager):
        exported = generated.get("/terrain/export/json")
        assert exported.headers["content-type"].startswith("application/json")
        assert exported.json()["minHeight"] == manager.heightmap.min_height

        raw = generated.get("/terrain/export/raw")
        assert len(raw.content) == 4 * 20 * 20

        png = generated.get("/terrain/export/png")
        assert png.text.startswith("data:image/png;base64,")

        assert generated.get("/terrain/export/tiff").status_code == 400

    def test_json_import_round_trip(self, generated, manager):
        generated.post("/terrain/edit", json={"type": "raise", "x": 10, "z": 10, "radius": 3, "intensity": 2})
        edited = manager.heightmap
        text = generated.get("/terrain/export/json").text

        generated.post("/terrain/generate", json={"width": 8, "height": 8})
        response = generated.post("/terrain/import", json={"format": "json", "data": text})
        assert response.status_code == 200
        assert manager.heightmap == edited

    def test_raw_import(self, generated, manager):
        raw = generated.get("/terrain/export/raw").content
        payload = {"format": "raw", "data": base64.b64encode(raw).decode("ascii"),
                   "width": 20, "height": 20, "resolution": 1.0}
        response = generated.post("/terrain/import", json=payload)
        assert response.status_code == 200
        assert response.json()["rows"] == 20

        payload["width"] = 21
        assert generated.post("/terrain/import", json=payload).status_code == 400

    def test_import_errors(self, client):
        assert client.post("/terrain/import", json={"format": "png", "data": ""}).status_code == 501
        assert client.post("/terrain/import", json={"format": "json", "data": "{"}).status_code == 400
        assert client.post("/terrain/import", json={"format": "raw", "data": "***"}).status_code == 400
        assert client.post("/terrain/import", json={"format": "bmp", "data": json.dumps({})}).status_code == 400
