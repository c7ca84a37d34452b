"""
Stateful owner of the current terrain.

The manager holds one heightmap at a time and routes generation, edits,
queries and serialization through the core modules. Edits are recorded
in a bounded undo history. All public methods are safe to call from
several threads; reads see either the state before or after an edit.
"""

import threading
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from .chunks import create_chunk
from .exceptions import EmptyHeightmapError
from .heightmap import HeightmapData
from .heightmap_editor import EditOperation, HeightmapEditor, stroke_operations
from .heightmap_generator import Algorithm, GenerationParams, HeightmapGenerator
from .pathfinding import DEFAULT_MAX_EXPANSIONS, DEFAULT_MAX_SLOPE, CancellationToken, GridPoint
from .pathfinding import find_path as plan_path
from .pathfinding import find_path_world as plan_path_world
from .sampler import UP, Vector3, height_at, normal_at
from .serialization import ExportFormat, export_heightmap, import_heightmap
from .terrain_analysis import (
    DEFAULT_COLLISION_RADIUS,
    CollisionData,
    TerrainStats,
    analyze_terrain,
    get_collision_data,
)

logger = structlog.get_logger()


@dataclass
class TerrainConfig:
    """Defaults and limits for a managed terrain."""

    width: float = 100.0
    height: float = 100.0
    resolution: float = 1.0
    min_height: float = -5.0
    max_height: float = 5.0
    algorithm: Algorithm = Algorithm.PERLIN
    frequency: float = 0.02
    smoothing: int = 2
    chunk_size: int = 32
    collision_enabled: bool = True
    undo_history_limit: int = 50
    max_path_slope: float = DEFAULT_MAX_SLOPE
    max_path_expansions: int = DEFAULT_MAX_EXPANSIONS
    path_timeout: Optional[float] = None

    def __post_init__(self):
        self.algorithm = Algorithm(self.algorithm)
        if self.undo_history_limit < 0:
            raise ValueError(f"undo_history_limit must not be negative, got {self.undo_history_limit}")

    def default_params(self, seed: Optional[int] = None) -> GenerationParams:
        """Generation parameters for the default terrain."""
        return GenerationParams(
            width=self.width,
            height=self.height,
            resolution=self.resolution,
            algorithm=self.algorithm,
            seed=seed,
            octaves=4,
            frequency=self.frequency,
            amplitude=1.0,
            persistence=0.5,
            lacunarity=2.0,
            min_height=self.min_height,
            max_height=self.max_height,
            smoothing=self.smoothing,
        )


class TerrainManager:
    """
    Holds the current heightmap and its edit history.

    Args:
        config: Terrain defaults, TerrainConfig() if omitted
        generator: Heightmap generator to use
        editor: Brush editor to use
    """

    def __init__(
        self,
        config: Optional[TerrainConfig] = None,
        generator: Optional[HeightmapGenerator] = None,
        editor: Optional[HeightmapEditor] = None,
    ):
        self.config = config or TerrainConfig()
        self.generator = generator or HeightmapGenerator()
        self.editor = editor or HeightmapEditor()

        self._lock = threading.RLock()
        self._heightmap: Optional[HeightmapData] = None
        self._undo: deque = deque(maxlen=self.config.undo_history_limit)
        self._redo: List[HeightmapData] = []
        self._initialized = False

    # -- state --------------------------------------------------------------

    @property
    def heightmap(self) -> Optional[HeightmapData]:
        return self._heightmap

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def initialize(self, seed: Optional[int] = None) -> HeightmapData:
        """Generate the default terrain unless one is already loaded."""
        with self._lock:
            if self._initialized and self._heightmap is not None:
                return self._heightmap
            if self._heightmap is None:
                self._set_terrain(self.generator.generate(self.config.default_params(seed)))
            self._initialized = True
            logger.info("Terrain manager initialized", name=self._heightmap.metadata.name)
            return self._heightmap

    def dispose(self) -> None:
        """Drop the terrain and its history."""
        with self._lock:
            self._heightmap = None
            self._undo.clear()
            self._redo.clear()
            self._initialized = False
        logger.info("Terrain manager disposed")

    def update_config(self, **changes: Any) -> TerrainConfig:
        """
        Replace selected config fields.

        Raises:
            TypeError: For unknown field names
            ValueError: For invalid values; the current config is kept
        """
        with self._lock:
            config = replace(self.config, **changes)
            if self._undo.maxlen != config.undo_history_limit:
                self._undo = deque(self._undo, maxlen=config.undo_history_limit)
            self.config = config
        logger.info("Terrain config updated", fields=sorted(changes))
        return self.config

    def _set_terrain(self, heightmap: HeightmapData) -> None:
        """Install a new terrain, clearing the history."""
        self._heightmap = heightmap
        self._undo.clear()
        self._redo.clear()

    def _commit(self, heightmap: HeightmapData) -> HeightmapData:
        """Install an edited terrain, keeping the previous one for undo."""
        if self.config.undo_history_limit > 0:
            self._undo.append(self._heightmap)
        self._redo.clear()
        self._heightmap = heightmap
        return heightmap

    # -- generation and edits -----------------------------------------------

    def generate(self, params: GenerationParams) -> HeightmapData:
        """Replace the terrain with a freshly generated one."""
        heightmap = self.generator.generate(params)
        with self._lock:
            self._set_terrain(heightmap)
            self._initialized = True
        return heightmap

    def modify(self, operation: EditOperation) -> Optional[HeightmapData]:
        """Apply one brush edit. Returns None when no terrain is loaded."""
        with self._lock:
            if self._heightmap is None:
                return None
            return self._commit(self.editor.apply(self._heightmap, operation))

    def batch_modify(self, operations: Iterable[EditOperation]) -> Optional[HeightmapData]:
        """Apply edits in order as a single undo step."""
        with self._lock:
            if self._heightmap is None:
                return None
            operations = list(operations)
            result = self.editor.apply_all(self._heightmap, operations)
            logger.info("Batch edit applied", operations=len(operations))
            return self._commit(result)

    def stroke(
        self, operation: EditOperation, to_x: float, to_z: float, spacing: float = 2.0
    ) -> Optional[HeightmapData]:
        """Drag a brush from the operation's centre to (to_x, to_z) as one undo step."""
        return self.batch_modify(stroke_operations(operation, to_x, to_z, spacing))

    def undo(self) -> Optional[HeightmapData]:
        """Step back one edit. Returns None when there is nothing to undo."""
        with self._lock:
            if not self._undo:
                return None
            self._redo.append(self._heightmap)
            self._heightmap = self._undo.pop()
            return self._heightmap

    def redo(self) -> Optional[HeightmapData]:
        """Re-apply the last undone edit. Returns None when there is nothing to redo."""
        with self._lock:
            if not self._redo:
                return None
            self._undo.append(self._heightmap)
            self._heightmap = self._redo.pop()
            return self._heightmap

    # -- queries ------------------------------------------------------------

    def height_at(self, world_x: float, world_z: float) -> float:
        heightmap = self._heightmap
        if heightmap is None:
            return 0.0
        return height_at(heightmap, world_x, world_z)

    def normal_at(self, world_x: float, world_z: float) -> Vector3:
        heightmap = self._heightmap
        if heightmap is None:
            return UP
        return normal_at(heightmap, world_x, world_z)

    def check_collision(
        self, position: Sequence[float], radius: float = DEFAULT_COLLISION_RADIUS
    ) -> bool:
        """Whether a point is at or under the surface. Always False with collision off."""
        data = self.get_collision_data(position, radius)
        return data is not None and data.collision

    def get_collision_data(
        self, position: Sequence[float], radius: float = DEFAULT_COLLISION_RADIUS
    ) -> Optional[CollisionData]:
        heightmap = self._heightmap
        if heightmap is None or not self.config.collision_enabled:
            return None
        return get_collision_data(heightmap, position, radius)

    def get_chunk(
        self, chunk_x: int, chunk_z: int, chunk_size: Optional[int] = None
    ):
        heightmap = self._heightmap
        if heightmap is None:
            return None
        return create_chunk(heightmap, chunk_x, chunk_z, chunk_size or self.config.chunk_size)

    def get_chunk_for_client(
        self, chunk_x: int, chunk_z: int, chunk_size: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        """Chunk payload for network transfer, tagged with the grid resolution."""
        chunk = self.get_chunk(chunk_x, chunk_z, chunk_size)
        if chunk is None:
            return None
        payload = chunk.to_dict()
        payload["resolution"] = self._heightmap.resolution
        return payload

    def get_heightmap_for_client(self) -> Optional[Dict[str, Any]]:
        """Terrain summary without the height grid, for clients that stream chunks."""
        heightmap = self._heightmap
        if heightmap is None:
            return None
        return {
            "width": heightmap.width,
            "height": heightmap.height,
            "resolution": heightmap.resolution,
            "rows": heightmap.rows,
            "cols": heightmap.cols,
            "minHeight": heightmap.min_height,
            "maxHeight": heightmap.max_height,
            "chunkSize": self.config.chunk_size,
            "metadata": heightmap.metadata.to_dict() if heightmap.metadata else None,
        }

    def analyze(self) -> TerrainStats:
        return analyze_terrain(self._heightmap)

    def find_path(
        self,
        start: Tuple[int, int],
        goal: Tuple[int, int],
        max_slope: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[List[GridPoint]]:
        """Grid path between two cells, see pathfinding.find_path."""
        heightmap = self._heightmap
        if heightmap is None:
            return None
        kwargs = self._path_options(max_slope)
        return plan_path(heightmap, start, goal, cancel=cancel, **kwargs)

    def find_path_world(
        self,
        start: Tuple[float, float],
        goal: Tuple[float, float],
        max_slope: Optional[float] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[List[Tuple[float, float]]]:
        """World-space path between two positions."""
        heightmap = self._heightmap
        if heightmap is None:
            return None
        kwargs = self._path_options(max_slope)
        return plan_path_world(heightmap, start, goal, cancel=cancel, **kwargs)

    def _path_options(self, max_slope: Optional[float]) -> Dict[str, Any]:
        return {
            "max_slope": self.config.max_path_slope if max_slope is None else max_slope,
            "max_expansions": self.config.max_path_expansions,
            "timeout": self.config.path_timeout,
        }

    # -- serialization ------------------------------------------------------

    def export(self, fmt: Union[str, ExportFormat]) -> Union[str, bytes]:
        """
        Serialize the current terrain.

        Raises:
            EmptyHeightmapError: If no terrain is loaded
        """
        heightmap = self._heightmap
        if heightmap is None:
            raise EmptyHeightmapError("No heightmap to export")
        return export_heightmap(heightmap, fmt)

    def import_(
        self,
        data: Union[str, bytes],
        fmt: Union[str, ExportFormat],
        width: float = 0,
        height: float = 0,
        resolution: float = 1.0,
    ) -> HeightmapData:
        """Replace the terrain with a decoded one, clearing the history."""
        heightmap = import_heightmap(data, fmt, width, height, resolution)
        with self._lock:
            self._set_terrain(heightmap)
            self._initialized = True
        logger.info("Terrain imported", format=ExportFormat(fmt).value, rows=heightmap.rows, cols=heightmap.cols)
        return heightmap
