"""
Tests for editor settings, brush presets and application settings.
"""

import numpy as np
import pytest

from py_terrain.api.terrain import build_terrain_config
from py_terrain.config.brush_presets import PRESETS, get_preset, list_presets
from py_terrain.config.config import Settings
from py_terrain.config.editor_settings import (
    BrushSettings,
    EditorSettings,
    get_editor_settings,
    validate_edit_operation,
)
from py_terrain.core.heightmap import HeightmapData
from py_terrain.core.heightmap_editor import EditOperation, EditType, Falloff, HeightmapEditor


class TestEditorSettings:
    """Test brush validation."""

    def test_defaults(self):
        settings = get_editor_settings()
        assert settings.brush.max_radius == 200.0
        assert set(settings.brush.allowed_operations) == set(EditType)
        assert settings.brush.default_falloff is Falloff.GAUSSIAN

    def test_valid_operation(self):
        assert validate_edit_operation(EditOperation("raise", 0, 0, 10, 1.0)) is None

    def test_radius_limit(self):
        error = validate_edit_operation(EditOperation("raise", 0, 0, 500, 1.0))
        assert "Radius" in error

    def test_intensity_limit(self):
        error = validate_edit_operation(EditOperation("lower", 0, 0, 5, -1000.0))
        assert "Intensity" in error

    def test_disallowed_operation(self):
        settings = EditorSettings(brush=BrushSettings(allowed_operations=[EditType.RAISE]))
        error = validate_edit_operation(EditOperation("noise", 0, 0, 5, 1.0), settings)
        assert "noise" in error

    def test_disallowed_falloff(self):
        settings = EditorSettings(brush=BrushSettings(allowed_falloffs=[Falloff.LINEAR]))
        error = validate_edit_operation(EditOperation("raise", 0, 0, 5, 1.0, "gaussian"), settings)
        assert "gaussian" in error


class TestBrushPresets:
    """Test preset expansion."""

    def test_list(self):
        assert list_presets() == ["mountain", "valley", "plateau", "island", "canyon", "rolling"]

    def test_offsets_are_relative(self):
        operations = get_preset("mountain", 50, 60)
        assert [(op.x, op.z) for op in operations] == [(50, 60), (70, 80), (30, 40)]
        assert all(op.type is EditType.RAISE for op in operations)

    def test_presets_not_mutated(self):
        get_preset("rolling", 100, 100)
        assert PRESETS["rolling"][1]["x"] == 40

    def test_unknown(self):
        with pytest.raises(KeyError):
            get_preset("volcano")

    @pytest.mark.parametrize("name", list(PRESETS))
    def test_presets_apply(self, name):
        heightmap = HeightmapData(
            width=64, height=64, resolution=1.0, heights=np.zeros((64, 64)),
            min_height=0.0, max_height=0.0,
        )
        result = HeightmapEditor(np.random.default_rng(0)).apply_all(heightmap, get_preset(name, 32, 32))
        assert result.heights.shape == (64, 64)
        assert result.min_height == pytest.approx(result.heights.min())
        assert result.max_height == pytest.approx(result.heights.max())

    def test_presets_pass_validation(self):
        for name in PRESETS:
            for operation in get_preset(name):
                assert validate_edit_operation(operation) is None


class TestSettings:
    """Test environment driven settings."""

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("TERRAIN_WIDTH", "64")
        monkeypatch.setenv("CHUNK_SIZE", "16")
        settings = Settings()
        assert settings.terrain_width == 64.0
        assert settings.chunk_size == 16

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TERRAIN_MIN_HEIGHT", raising=False)
        settings = Settings(_env_file=None)
        assert settings.terrain_min_height == -5.0
        assert settings.log_format in ("json", "plain")

    def test_terrain_config_takes_path_limits_from_editor_settings(self):
        pathfinding = get_editor_settings().pathfinding
        config = build_terrain_config()
        assert config.max_path_slope == pathfinding.default_max_slope
        assert config.max_path_expansions == pathfinding.max_expansions
        assert config.path_timeout == pathfinding.timeout_seconds
