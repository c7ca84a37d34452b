"""Exceptions raised by the heightmap engine."""


class TerrainError(Exception):
    """Base class for heightmap engine failures."""


class InvalidDimensionsError(TerrainError, ValueError):
    """Generation parameters describe a grid with no cells."""


class EmptyHeightmapError(TerrainError, RuntimeError):
    """Generation produced a grid with zero rows or zero columns."""


class UnsupportedFormatError(TerrainError, ValueError):
    """Export or import was requested in a format that is not available."""


class SerializationError(TerrainError, ValueError):
    """Serialized data could not be produced or decoded."""
