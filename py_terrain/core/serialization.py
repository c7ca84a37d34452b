"""
Heightmap import and export.

Formats:
- json: every field including metadata; round-trips exactly
- raw: headerless little-endian float32 cells in row-major order; the
  caller supplies width, height and resolution on import
- png: 8-bit grayscale image as a data URL; export only
"""

import base64
import io
import json
from enum import Enum
from typing import Union

import numpy as np
import structlog

from .exceptions import SerializationError, UnsupportedFormatError
from .heightmap import HeightmapData, compute_bounds, grid_dimensions

logger = structlog.get_logger()

RAW_DTYPE = np.dtype("<f4")
PNG_DATA_URL_PREFIX = "data:image/png;base64,"


class ExportFormat(str, Enum):
    JSON = "json"
    RAW = "raw"
    PNG = "png"


def _parse_format(fmt: Union[str, ExportFormat]) -> ExportFormat:
    try:
        return ExportFormat(fmt)
    except ValueError:
        raise UnsupportedFormatError(f"Unsupported format: {fmt}") from None


def export_heightmap(
    heightmap: HeightmapData, fmt: Union[str, ExportFormat]
) -> Union[str, bytes]:
    """
    Serialize a heightmap.

    Args:
        heightmap: Heightmap to export
        fmt: "json", "raw" or "png"

    Returns:
        JSON text, raw bytes, or a PNG data URL

    Raises:
        UnsupportedFormatError: For unknown formats
        SerializationError: If PNG support is unavailable
    """
    fmt = _parse_format(fmt)

    if fmt is ExportFormat.JSON:
        return json.dumps(heightmap.to_dict(), indent=2)
    if fmt is ExportFormat.RAW:
        return heightmap.heights.astype(RAW_DTYPE).tobytes(order="C")
    if fmt is ExportFormat.PNG:
        return _export_png(heightmap)

    raise UnsupportedFormatError(f"Unsupported export format: {fmt}")


def import_heightmap(
    data: Union[str, bytes],
    fmt: Union[str, ExportFormat],
    width: float = 0,
    height: float = 0,
    resolution: float = 1.0,
) -> HeightmapData:
    """
    Deserialize a heightmap.

    Args:
        data: JSON text or raw bytes
        fmt: "json" or "raw"
        width: World width, raw format only
        height: World height, raw format only
        resolution: World units per cell, raw format only

    Returns:
        Decoded heightmap. Raw imports have their bounds recomputed; JSON
        bounds are kept only when they match the grid.

    Raises:
        UnsupportedFormatError: For png or unknown formats
        SerializationError: If the payload cannot be decoded
    """
    fmt = _parse_format(fmt)

    if fmt is ExportFormat.JSON:
        try:
            heightmap = HeightmapData.from_dict(json.loads(data))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Invalid heightmap JSON: {e}") from e
        return _with_exact_bounds(heightmap)
    if fmt is ExportFormat.RAW:
        return _import_raw(data, width, height, resolution)
    if fmt is ExportFormat.PNG:
        raise UnsupportedFormatError("PNG import not implemented")

    raise UnsupportedFormatError(f"Unsupported import format: {fmt}")


def _with_exact_bounds(heightmap: HeightmapData) -> HeightmapData:
    """Replace declared bounds that disagree with the grid by the scanned ones."""
    min_height, max_height = compute_bounds(heightmap.heights)
    if (min_height, max_height) == (heightmap.min_height, heightmap.max_height):
        return heightmap

    logger.warning(
        "Declared bounds differ from grid, rescanned",
        declared=(heightmap.min_height, heightmap.max_height),
        actual=(min_height, max_height),
    )
    heightmap.min_height = min_height
    heightmap.max_height = max_height
    return heightmap


def _import_raw(data: bytes, width: float, height: float, resolution: float) -> HeightmapData:
    rows, cols = grid_dimensions(width, height, resolution)
    if rows <= 0 or cols <= 0:
        raise SerializationError(
            f"Raw import needs positive dimensions, got {width}x{height} at {resolution}"
        )

    values = np.frombuffer(data, dtype=RAW_DTYPE)
    if values.size != rows * cols:
        raise SerializationError(
            f"Raw buffer holds {values.size} values, expected {rows * cols} ({cols}x{rows})"
        )

    heights = values.astype(np.float64).reshape(rows, cols)
    min_height, max_height = compute_bounds(heights)
    logger.info("Raw heightmap imported", rows=rows, cols=cols)

    return HeightmapData(
        width=width,
        height=height,
        resolution=resolution,
        heights=heights,
        min_height=min_height,
        max_height=max_height,
    )


def heights_to_grayscale(heightmap: HeightmapData) -> np.ndarray:
    """Scale heights into 0-255 using the heightmap's own bounds."""
    span = heightmap.max_height - heightmap.min_height
    if span == 0:
        return np.zeros(heightmap.heights.shape, dtype=np.uint8)
    normalized = (heightmap.heights - heightmap.min_height) / span
    return np.clip(np.floor(normalized * 255), 0, 255).astype(np.uint8)


def _export_png(heightmap: HeightmapData) -> str:
    try:
        from PIL import Image
    except ImportError as e:
        raise SerializationError("PNG export requires the Pillow imaging library") from e

    if heightmap.is_empty:
        raise SerializationError("Cannot export an empty heightmap as PNG")

    gray = heights_to_grayscale(heightmap)
    rgba = np.empty(gray.shape + (4,), dtype=np.uint8)
    rgba[..., 0] = gray
    rgba[..., 1] = gray
    rgba[..., 2] = gray
    rgba[..., 3] = 255

    buffer = io.BytesIO()
    Image.fromarray(rgba).save(buffer, format="PNG")
    return PNG_DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")
