"""
Terrain API endpoints.

This module exposes the terrain manager over HTTP: generation, brush
editing with undo, point and chunk queries, analysis, path planning,
and import/export.
"""

import base64
import binascii
import math
from typing import Any, Dict, List, Optional, Tuple

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field

from ..config import settings
from ..config.brush_presets import get_preset, list_presets
from ..config.editor_settings import get_editor_settings, validate_edit_operation
from ..core.exceptions import (
    EmptyHeightmapError,
    InvalidDimensionsError,
    SerializationError,
    UnsupportedFormatError,
)
from ..core.heightmap import HeightmapData, grid_dimensions
from ..core.heightmap_editor import EditOperation, EditType, Falloff
from ..core.heightmap_generator import Algorithm, GenerationParams
from ..core.serialization import ExportFormat
from ..core.terrain_manager import TerrainConfig, TerrainManager

logger = structlog.get_logger()

# Create router
router = APIRouter(prefix="/terrain", tags=["terrain"])


def build_terrain_config() -> TerrainConfig:
    """Terrain defaults from the application and editor settings."""
    pathfinding = get_editor_settings().pathfinding
    return TerrainConfig(
        width=settings.terrain_width,
        height=settings.terrain_height,
        resolution=settings.terrain_resolution,
        min_height=settings.terrain_min_height,
        max_height=settings.terrain_max_height,
        algorithm=settings.terrain_algorithm,
        frequency=settings.terrain_frequency,
        smoothing=settings.terrain_smoothing,
        chunk_size=settings.chunk_size,
        undo_history_limit=settings.undo_history_limit,
        max_path_slope=pathfinding.default_max_slope,
        max_path_expansions=pathfinding.max_expansions,
        path_timeout=pathfinding.timeout_seconds,
    )


terrain_manager = TerrainManager(build_terrain_config())


def get_terrain_manager() -> TerrainManager:
    """Dependency returning the process-wide terrain manager."""
    return terrain_manager


def _require_terrain(manager: TerrainManager) -> HeightmapData:
    heightmap = manager.heightmap
    if heightmap is None:
        raise HTTPException(status_code=404, detail="No terrain loaded")
    return heightmap


# Pydantic models
class GenerateRequest(BaseModel):
    """Request to generate a new terrain."""

    width: float = Field(default_factory=lambda: settings.terrain_width, gt=0, description="World width")
    height: float = Field(default_factory=lambda: settings.terrain_height, gt=0, description="World depth")
    resolution: float = Field(default_factory=lambda: settings.terrain_resolution, gt=0, description="World units per cell")
    algorithm: Algorithm = Field(default=Algorithm.PERLIN, description="Noise algorithm")
    seed: Optional[int] = Field(default=None, description="Seed for the random algorithm")
    octaves: int = Field(default=4, ge=1, le=16, description="Fractal octaves")
    frequency: float = Field(default_factory=lambda: settings.terrain_frequency, gt=0, description="Base frequency")
    amplitude: float = Field(default=1.0, description="Base amplitude")
    persistence: float = Field(default=0.5, description="Amplitude multiplier per octave")
    lacunarity: float = Field(default=2.0, description="Frequency multiplier per octave")
    min_height: float = Field(default_factory=lambda: settings.terrain_min_height, description="Lowest elevation")
    max_height: float = Field(default_factory=lambda: settings.terrain_max_height, description="Highest elevation")
    smoothing: int = Field(default=0, ge=0, le=32, description="Smoothing passes")

    def to_params(self) -> GenerationParams:
        return GenerationParams(**self.model_dump())


class EditRequest(BaseModel):
    """A single brush application."""

    type: EditType = Field(description="Operation: raise, lower, smooth, flatten, noise")
    x: float = Field(description="World X of the brush centre")
    z: float = Field(description="World Z of the brush centre")
    radius: float = Field(ge=0, description="Brush radius in world units")
    intensity: float = Field(description="Brush strength, or target height for flatten")
    falloff: Optional[Falloff] = Field(default=None, description="Falloff kernel")

    def to_operation(self) -> EditOperation:
        falloff = self.falloff or get_editor_settings().brush.default_falloff
        return EditOperation(
            type=self.type,
            x=self.x,
            z=self.z,
            radius=self.radius,
            intensity=self.intensity,
            falloff=falloff,
        )


class BatchEditRequest(BaseModel):
    """Edits applied in order as one undo step."""

    operations: List[EditRequest] = Field(description="Edits to apply")


class StrokeRequest(EditRequest):
    """A brush dragged from (x, z) to (to_x, to_z)."""

    to_x: float = Field(description="World X where the stroke ends")
    to_z: float = Field(description="World Z where the stroke ends")
    spacing: Optional[float] = Field(default=None, gt=0, description="World units between dabs")


class PresetRequest(BaseModel):
    """Where to place a brush preset; defaults to the terrain centre."""

    x: Optional[float] = Field(default=None, description="World X of the preset centre")
    z: Optional[float] = Field(default=None, description="World Z of the preset centre")


class PathRequest(BaseModel):
    """Path query between two points."""

    start: Tuple[float, float] = Field(description="Start as (x, z)")
    goal: Tuple[float, float] = Field(description="Goal as (x, z)")
    max_slope: Optional[float] = Field(default=None, gt=0, le=math.pi / 2, description="Steepest step in radians")
    world: bool = Field(default=False, description="Treat points as world coordinates instead of grid cells")


class ImportRequest(BaseModel):
    """Heightmap payload to load."""

    format: str = Field(description="Payload format: json or raw")
    data: str = Field(description="JSON text, or base64 encoded little-endian float32 for raw")
    width: float = Field(default=0, ge=0, description="World width, raw only")
    height: float = Field(default=0, ge=0, description="World depth, raw only")
    resolution: float = Field(default=1.0, gt=0, description="World units per cell, raw only")


class TerrainSummary(BaseModel):
    """Terrain description without the height grid."""

    width: float
    height: float
    resolution: float
    rows: int
    cols: int
    min_height: float
    max_height: float
    chunk_size: int
    metadata: Optional[Dict[str, Any]] = None
    can_undo: bool = False
    can_redo: bool = False


class PathResponse(BaseModel):
    """Result of a path query."""

    found: bool
    path: List[Tuple[float, float]] = Field(default_factory=list)
    length: int = 0


def _summary(manager: TerrainManager) -> TerrainSummary:
    heightmap = _require_terrain(manager)
    return TerrainSummary(
        width=heightmap.width,
        height=heightmap.height,
        resolution=heightmap.resolution,
        rows=heightmap.rows,
        cols=heightmap.cols,
        min_height=heightmap.min_height,
        max_height=heightmap.max_height,
        chunk_size=manager.config.chunk_size,
        metadata=heightmap.metadata.to_dict() if heightmap.metadata else None,
        can_undo=manager.can_undo,
        can_redo=manager.can_redo,
    )


def _validated(edits: List[EditRequest]) -> List[EditOperation]:
    brush = get_editor_settings().brush
    if len(edits) > brush.max_operations_per_batch:
        raise HTTPException(
            status_code=400,
            detail=f"At most {brush.max_operations_per_batch} operations per batch",
        )

    operations = []
    for edit in edits:
        operation = edit.to_operation()
        error = validate_edit_operation(operation)
        if error:
            raise HTTPException(status_code=400, detail=error)
        operations.append(operation)
    return operations


def _grid_point(point: Tuple[float, float]) -> Tuple[int, int]:
    x, z = point
    if not (float(x).is_integer() and float(z).is_integer()):
        raise HTTPException(status_code=422, detail=f"Grid points must be whole cell indices, got {point}")
    return int(x), int(z)


@router.post("/generate", response_model=TerrainSummary)
def generate_terrain(request: GenerateRequest, manager: TerrainManager = Depends(get_terrain_manager)):
    """Generate a new terrain, replacing the current one and its history."""
    rows, cols = grid_dimensions(request.width, request.height, request.resolution)
    if rows * cols > settings.max_grid_cells:
        raise HTTPException(
            status_code=400,
            detail=f"Grid of {cols}x{rows} cells exceeds the limit of {settings.max_grid_cells}",
        )

    logger.info("Terrain generation requested", request=request.model_dump(mode="json"))
    try:
        manager.generate(request.to_params())
    except (InvalidDimensionsError, EmptyHeightmapError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _summary(manager)


@router.get("", response_model=TerrainSummary)
def get_terrain(manager: TerrainManager = Depends(get_terrain_manager)):
    """Describe the current terrain."""
    return _summary(manager)


@router.post("/edit", response_model=TerrainSummary)
def edit_terrain(request: EditRequest, manager: TerrainManager = Depends(get_terrain_manager)):
    """Apply one brush edit."""
    _require_terrain(manager)
    operation = _validated([request])[0]
    manager.modify(operation)
    return _summary(manager)


@router.post("/edit/batch", response_model=TerrainSummary)
def batch_edit_terrain(request: BatchEditRequest, manager: TerrainManager = Depends(get_terrain_manager)):
    """Apply several brush edits as one undo step."""
    _require_terrain(manager)
    operations = _validated(request.operations)
    manager.batch_modify(operations)
    return _summary(manager)


@router.post("/edit/stroke", response_model=TerrainSummary)
def stroke_terrain(request: StrokeRequest, manager: TerrainManager = Depends(get_terrain_manager)):
    """Drag a brush along a line as one undo step."""
    _require_terrain(manager)
    operation = _validated([request])[0]
    spacing = request.spacing or get_editor_settings().brush.stroke_spacing
    manager.stroke(operation, request.to_x, request.to_z, spacing)
    return _summary(manager)


@router.get("/presets", response_model=List[str])
def get_presets():
    """Names of the available brush presets."""
    return list_presets()


@router.post("/presets/{name}", response_model=TerrainSummary)
def apply_preset(
    name: str,
    request: Optional[PresetRequest] = None,
    manager: TerrainManager = Depends(get_terrain_manager),
):
    """Apply a brush preset, centred on the terrain unless a point is given."""
    heightmap = _require_terrain(manager)
    request = request or PresetRequest()
    center_x = heightmap.width / 2 if request.x is None else request.x
    center_z = heightmap.height / 2 if request.z is None else request.z

    try:
        operations = get_preset(name, center_x, center_z)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Preset '{name}' not found")

    manager.batch_modify(operations)
    logger.info("Brush preset applied", preset=name, x=center_x, z=center_z)
    return _summary(manager)


@router.post("/undo", response_model=TerrainSummary)
def undo_edit(manager: TerrainManager = Depends(get_terrain_manager)):
    """Revert the last edit."""
    _require_terrain(manager)
    if manager.undo() is None:
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return _summary(manager)


@router.post("/redo", response_model=TerrainSummary)
def redo_edit(manager: TerrainManager = Depends(get_terrain_manager)):
    """Re-apply the last undone edit."""
    _require_terrain(manager)
    if manager.redo() is None:
        raise HTTPException(status_code=409, detail="Nothing to redo")
    return _summary(manager)


@router.get("/height")
def get_height(
    x: float = Query(allow_inf_nan=False, description="World X"),
    z: float = Query(allow_inf_nan=False, description="World Z"),
    manager: TerrainManager = Depends(get_terrain_manager),
):
    """Interpolated height at a world position."""
    _require_terrain(manager)
    return {"x": x, "z": z, "height": manager.height_at(x, z)}


@router.get("/normal")
def get_normal(
    x: float = Query(allow_inf_nan=False, description="World X"),
    z: float = Query(allow_inf_nan=False, description="World Z"),
    manager: TerrainManager = Depends(get_terrain_manager),
):
    """Unit surface normal at a world position."""
    _require_terrain(manager)
    return manager.normal_at(x, z)._asdict()


@router.get("/collision")
def get_collision(
    x: float = Query(allow_inf_nan=False, description="World X"),
    y: float = Query(allow_inf_nan=False, description="World Y"),
    z: float = Query(allow_inf_nan=False, description="World Z"),
    radius: float = Query(default=0.1, ge=0, description="Collision sphere radius"),
    manager: TerrainManager = Depends(get_terrain_manager),
):
    """Test a point against the surface under it."""
    _require_terrain(manager)
    data = manager.get_collision_data((x, y, z), radius)
    if data is None:
        return {"collision": False, "enabled": False}
    return {
        "collision": data.collision,
        "height": data.height,
        "normal": data.normal._asdict(),
        "slope": data.slope,
        "enabled": True,
    }


@router.get("/chunks/{chunk_x}/{chunk_z}")
def get_chunk(
    chunk_x: int,
    chunk_z: int,
    size: Optional[int] = Query(default=None, gt=0, description="Chunk edge in cells"),
    manager: TerrainManager = Depends(get_terrain_manager),
):
    """Heights for one chunk; chunks past the grid come back empty."""
    _require_terrain(manager)
    return manager.get_chunk_for_client(chunk_x, chunk_z, size)


@router.get("/analysis")
def get_analysis(manager: TerrainManager = Depends(get_terrain_manager)):
    """Height and slope statistics."""
    _require_terrain(manager)
    return manager.analyze().__dict__


@router.post("/path", response_model=PathResponse)
def find_path(request: PathRequest, manager: TerrainManager = Depends(get_terrain_manager)):
    """Plan a slope-limited path between two points."""
    _require_terrain(manager)

    if request.world:
        path = manager.find_path_world(request.start, request.goal, request.max_slope)
    else:
        path = manager.find_path(_grid_point(request.start), _grid_point(request.goal), request.max_slope)

    if path is None:
        logger.info("No path found", start=request.start, goal=request.goal)
        return PathResponse(found=False)

    points = [(float(px), float(pz)) for px, pz in path]
    return PathResponse(found=True, path=points, length=len(points))


@router.get("/export/{fmt}")
def export_terrain(fmt: str, manager: TerrainManager = Depends(get_terrain_manager)):
    """Download the terrain as json, raw float32 bytes or a PNG data URL."""
    _require_terrain(manager)
    if fmt not in get_editor_settings().export.allowed_formats:
        raise HTTPException(status_code=400, detail=f"Unsupported format: {fmt}")

    try:
        payload = manager.export(fmt)
    except UnsupportedFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SerializationError as e:
        logger.error("Export failed", format=fmt, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))

    fmt = ExportFormat(fmt)
    if fmt is ExportFormat.JSON:
        return Response(content=payload, media_type="application/json")
    if fmt is ExportFormat.RAW:
        return Response(content=payload, media_type="application/octet-stream")
    return Response(content=payload, media_type="text/plain")


@router.post("/import", response_model=TerrainSummary)
def import_terrain(request: ImportRequest, manager: TerrainManager = Depends(get_terrain_manager)):
    """Replace the terrain with an uploaded heightmap."""
    if request.format == ExportFormat.PNG.value:
        raise HTTPException(status_code=501, detail="PNG import not implemented")

    data: Any = request.data
    if request.format == ExportFormat.RAW.value:
        try:
            data = base64.b64decode(request.data, validate=True)
        except binascii.Error:
            raise HTTPException(status_code=400, detail="Raw data must be base64 encoded")

    try:
        manager.import_(data, request.format, request.width, request.height, request.resolution)
    except (UnsupportedFormatError, SerializationError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _summary(manager)
