"""
Core terrain generation, editing and query functionality.
"""

from .chunks import HeightmapChunk, create_chunk, iter_chunks
from .exceptions import (
    EmptyHeightmapError,
    InvalidDimensionsError,
    SerializationError,
    TerrainError,
    UnsupportedFormatError,
)
from .heightmap import HeightmapData, HeightmapMetadata, is_valid_heightmap
from .heightmap_editor import EditOperation, EditType, Falloff, HeightmapEditor, modify_heightmap
from .heightmap_generator import Algorithm, GenerationParams, HeightmapGenerator, generate_heightmap
from .noise import NoiseContext
from .pathfinding import CancellationToken, PathPlanner, find_path, find_path_world
from .sampler import Vector3, height_at, normal_at
from .serialization import ExportFormat, export_heightmap, import_heightmap
from .terrain_analysis import TerrainStats, analyze_terrain
from .terrain_manager import TerrainConfig, TerrainManager

__all__ = ['HeightmapChunk', 'create_chunk', 'iter_chunks',
           'EmptyHeightmapError', 'InvalidDimensionsError', 'SerializationError',
           'TerrainError', 'UnsupportedFormatError',
           'HeightmapData', 'HeightmapMetadata', 'is_valid_heightmap',
           'EditOperation', 'EditType', 'Falloff', 'HeightmapEditor', 'modify_heightmap',
           'Algorithm', 'GenerationParams', 'HeightmapGenerator', 'generate_heightmap',
           'NoiseContext', 'CancellationToken', 'PathPlanner', 'find_path', 'find_path_world',
           'Vector3', 'height_at', 'normal_at',
           'ExportFormat', 'export_heightmap', 'import_heightmap',
           'TerrainStats', 'analyze_terrain', 'TerrainConfig', 'TerrainManager']
