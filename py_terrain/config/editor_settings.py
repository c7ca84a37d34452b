"""
Configuration settings for the terrain editor.

This module defines constraints and defaults for brush editing, path
queries and export, shared by the terrain manager and the HTTP API.
"""

import math
from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.heightmap_editor import EditOperation, EditType, Falloff
from ..core.serialization import ExportFormat


class BrushSettings(BaseModel):
    """Settings for brush editing operations."""

    # Brush constraints
    max_radius: float = Field(default=200.0, description="Largest brush radius in world units")
    max_intensity: float = Field(default=100.0, description="Largest absolute brush intensity")
    stroke_spacing: float = Field(default=2.0, gt=0, description="World units between dabs in a stroke")

    allowed_operations: List[EditType] = Field(
        default=list(EditType), description="Brush operations the editor accepts"
    )
    allowed_falloffs: List[Falloff] = Field(
        default=list(Falloff), description="Falloff kernels the editor accepts"
    )
    default_falloff: Falloff = Field(default=Falloff.GAUSSIAN, description="Falloff when none is given")

    # Batch limits
    max_operations_per_batch: int = Field(default=500, description="Maximum edits in one batch request")


class PathfindingSettings(BaseModel):
    """Settings for path queries."""

    default_max_slope: float = Field(
        default=math.pi / 4, gt=0, le=math.pi / 2, description="Steepest walkable step in radians"
    )
    max_expansions: int = Field(default=250_000, gt=0, description="Cells expanded before giving up")
    timeout_seconds: Optional[float] = Field(default=5.0, description="Wall-clock limit per search")


class ExportSettings(BaseModel):
    """Settings for heightmap export over the server surface."""

    allowed_formats: List[ExportFormat] = Field(
        default=[ExportFormat.JSON, ExportFormat.RAW, ExportFormat.PNG],
        description="Formats clients may request",
    )


class EditorSettings(BaseModel):
    """Complete editor configuration."""

    brush: BrushSettings = Field(default_factory=BrushSettings)
    pathfinding: PathfindingSettings = Field(default_factory=PathfindingSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)


# Default settings instance
default_editor_settings = EditorSettings()


def get_editor_settings() -> EditorSettings:
    """Get the current editor settings."""
    return default_editor_settings


def validate_edit_operation(
    operation: EditOperation, settings: Optional[EditorSettings] = None
) -> Optional[str]:
    """
    Check a brush operation against the editor constraints.

    Args:
        operation: The edit to validate
        settings: Settings to validate against, defaults to the current ones

    Returns:
        A description of the first violated constraint, or None if the
        operation is allowed
    """
    brush = (settings or get_editor_settings()).brush

    if operation.type not in brush.allowed_operations:
        return f"Operation '{operation.type.value}' is not allowed"
    if operation.falloff not in brush.allowed_falloffs:
        return f"Falloff '{operation.falloff.value}' is not allowed"
    if operation.radius < 0 or operation.radius > brush.max_radius:
        return f"Radius must be between 0 and {brush.max_radius}"
    if abs(operation.intensity) > brush.max_intensity:
        return f"Intensity magnitude must not exceed {brush.max_intensity}"

    return None
