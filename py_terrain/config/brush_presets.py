"""
Brush presets for the terrain editor.

Each preset is a list of edits with centres given relative to the point
the preset is applied at.
"""

from typing import Dict, List

from ..core.heightmap_editor import EditOperation

PRESETS: Dict[str, List[dict]] = {
    "mountain": [
        {"type": "raise", "x": 0, "z": 0, "radius": 50, "intensity": 3, "falloff": "gaussian"},
        {"type": "raise", "x": 20, "z": 20, "radius": 30, "intensity": 2, "falloff": "gaussian"},
        {"type": "raise", "x": -20, "z": -20, "radius": 25, "intensity": 2.5, "falloff": "gaussian"},
    ],
    "valley": [
        {"type": "lower", "x": 0, "z": 0, "radius": 60, "intensity": 2, "falloff": "gaussian"},
        {"type": "smooth", "x": 0, "z": 0, "radius": 40, "intensity": 0.8, "falloff": "gaussian"},
    ],
    "plateau": [
        {"type": "flatten", "x": 0, "z": 0, "radius": 80, "intensity": 0, "falloff": "gaussian"},
        {"type": "raise", "x": 0, "z": 0, "radius": 80, "intensity": 1, "falloff": "gaussian"},
    ],
    "island": [
        {"type": "raise", "x": 0, "z": 0, "radius": 70, "intensity": 2.5, "falloff": "gaussian"},
        {"type": "lower", "x": 0, "z": 0, "radius": 100, "intensity": 1, "falloff": "gaussian"},
    ],
    "canyon": [
        {"type": "lower", "x": 0, "z": 0, "radius": 40, "intensity": 3, "falloff": "linear"},
        {"type": "lower", "x": 0, "z": 0, "radius": 20, "intensity": 1.5, "falloff": "gaussian"},
    ],
    "rolling": [
        {"type": "raise", "x": 0, "z": 0, "radius": 30, "intensity": 1, "falloff": "gaussian"},
        {"type": "raise", "x": 40, "z": 40, "radius": 25, "intensity": 0.8, "falloff": "gaussian"},
        {"type": "raise", "x": -40, "z": -40, "radius": 25, "intensity": 0.8, "falloff": "gaussian"},
        {"type": "smooth", "x": 0, "z": 0, "radius": 60, "intensity": 0.5, "falloff": "gaussian"},
    ],
}


def list_presets() -> List[str]:
    """Names of the available presets."""
    return list(PRESETS)


def get_preset(name: str, center_x: float = 0.0, center_z: float = 0.0) -> List[EditOperation]:
    """
    Build the edits for a preset placed at (center_x, center_z).

    Raises:
        KeyError: If no preset has that name
    """
    if name not in PRESETS:
        raise KeyError(f"Unknown brush preset: {name}")

    operations = []
    for step in PRESETS[name]:
        operation = EditOperation(**step)
        operation.x += center_x
        operation.z += center_z
        operations.append(operation)
    return operations
