"""
Slope-constrained path search over a heightmap grid.

A* over grid cells with 8-directional moves. A move is only allowed when
the elevation angle between the two cells stays within `max_slope`, so
steep terrain is impassable rather than merely expensive.

Waypoints are grid indices (column x, row z). Use `find_path_world` to
work in world coordinates instead.
"""

import heapq
import itertools
import math
import threading
import time
from typing import Dict, List, NamedTuple, Optional, Tuple

import structlog

from .heightmap import HeightmapData, is_valid_heightmap

logger = structlog.get_logger()

DEFAULT_MAX_SLOPE = math.pi / 4
DEFAULT_MAX_EXPANSIONS = 250_000

NEIGHBOR_OFFSETS = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (-1, 1), (1, -1), (-1, -1),
)


class GridPoint(NamedTuple):
    x: int
    z: int


class CancellationToken:
    """Lets another thread stop a running search."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _distance(a: Tuple[int, int], b: Tuple[int, int]) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


class PathPlanner:
    """
    A* search with a slope limit on every step.

    Args:
        heightmap: Grid to search
        max_slope: Steepest allowed step, in radians
        max_expansions: Give up after expanding this many cells
        timeout: Give up after this many seconds, if set
    """

    def __init__(
        self,
        heightmap: HeightmapData,
        max_slope: float = DEFAULT_MAX_SLOPE,
        max_expansions: int = DEFAULT_MAX_EXPANSIONS,
        timeout: Optional[float] = None,
    ):
        self.heightmap = heightmap
        self.max_slope = max_slope
        self.max_expansions = max_expansions
        self.timeout = timeout
        self.expanded = 0

    def is_valid_position(self, x: int, z: int) -> bool:
        return is_valid_heightmap(self.heightmap) and self.heightmap.in_bounds(x, z)

    def slope_between(self, a: Tuple[int, int], b: Tuple[int, int]) -> float:
        """Elevation angle from cell a to cell b, in radians."""
        planar = _distance(a, b) * self.heightmap.resolution
        if planar == 0:
            return 0.0
        heights = self.heightmap.heights
        rise = abs(heights[b[1], b[0]] - heights[a[1], a[0]])
        return math.atan2(rise, planar)

    def neighbors(self, cell: Tuple[int, int]) -> List[GridPoint]:
        """Adjacent cells reachable from `cell` without exceeding the slope limit."""
        result = []
        for dx, dz in NEIGHBOR_OFFSETS:
            candidate = GridPoint(cell[0] + dx, cell[1] + dz)
            if not self.is_valid_position(*candidate):
                continue
            if self.slope_between(cell, candidate) <= self.max_slope:
                result.append(candidate)
        return result

    def find_path(
        self,
        start: Tuple[int, int],
        goal: Tuple[int, int],
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[List[GridPoint]]:
        """
        Shortest slope-respecting path from start to goal.

        Args:
            start: Starting cell (x, z)
            goal: Target cell (x, z)
            cancel: Optional token checked between expansions

        Returns:
            Cells from start to goal inclusive, or None if the goal is
            unreachable, out of bounds, or the search was cut short.
        """
        start = GridPoint(*start)
        goal = GridPoint(*goal)
        self.expanded = 0

        if not self.is_valid_position(*start) or not self.is_valid_position(*goal):
            logger.warning("Path endpoints outside grid", start=start, goal=goal)
            return None

        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        counter = itertools.count()

        open_heap = [(_distance(start, goal), next(counter), start)]
        came_from: Dict[GridPoint, GridPoint] = {}
        g_score: Dict[GridPoint, float] = {start: 0.0}
        closed = set()

        while open_heap:
            _, _, current = heapq.heappop(open_heap)
            if current in closed:
                continue
            if current == goal:
                path = self._reconstruct_path(came_from, current)
                logger.debug("Path found", length=len(path), expanded=self.expanded)
                return path

            closed.add(current)
            self.expanded += 1

            if self.expanded > self.max_expansions:
                logger.warning("Path search expansion limit reached", limit=self.max_expansions)
                return None
            if cancel is not None and cancel.cancelled:
                logger.info("Path search cancelled", expanded=self.expanded)
                return None
            if deadline is not None and time.monotonic() > deadline:
                logger.warning("Path search timed out", timeout=self.timeout)
                return None

            for neighbor in self.neighbors(current):
                if neighbor in closed:
                    continue

                tentative = g_score[current] + _distance(current, neighbor)
                if tentative >= g_score.get(neighbor, math.inf):
                    continue

                came_from[neighbor] = current
                g_score[neighbor] = tentative
                f_score = tentative + _distance(neighbor, goal)
                heapq.heappush(open_heap, (f_score, next(counter), neighbor))

        logger.debug("No path found", start=start, goal=goal, expanded=self.expanded)
        return None

    @staticmethod
    def _reconstruct_path(
        came_from: Dict[GridPoint, GridPoint], current: GridPoint
    ) -> List[GridPoint]:
        path = [current]
        while current in came_from:
            current = came_from[current]
            path.append(current)
        path.reverse()
        return path


def find_path(
    heightmap: Optional[HeightmapData],
    start: Tuple[int, int],
    goal: Tuple[int, int],
    max_slope: float = DEFAULT_MAX_SLOPE,
    max_expansions: int = DEFAULT_MAX_EXPANSIONS,
    timeout: Optional[float] = None,
    cancel: Optional[CancellationToken] = None,
) -> Optional[List[GridPoint]]:
    """Convenience wrapper around PathPlanner.find_path."""
    if not is_valid_heightmap(heightmap):
        logger.warning("Invalid heightmap data in find_path")
        return None
    planner = PathPlanner(
        heightmap, max_slope=max_slope, max_expansions=max_expansions, timeout=timeout
    )
    return planner.find_path(start, goal, cancel=cancel)


def world_to_grid(heightmap: HeightmapData, world_x: float, world_z: float) -> GridPoint:
    """Grid cell containing a world position."""
    return GridPoint(
        math.floor(world_x / heightmap.resolution),
        math.floor(world_z / heightmap.resolution),
    )


def grid_to_world(heightmap: HeightmapData, cell: Tuple[int, int]) -> Tuple[float, float]:
    """World position of a cell's origin corner."""
    return cell[0] * heightmap.resolution, cell[1] * heightmap.resolution


def find_path_world(
    heightmap: Optional[HeightmapData],
    start: Tuple[float, float],
    goal: Tuple[float, float],
    max_slope: float = DEFAULT_MAX_SLOPE,
    **kwargs,
) -> Optional[List[Tuple[float, float]]]:
    """Like find_path, but endpoints and waypoints are world coordinates."""
    if not is_valid_heightmap(heightmap):
        logger.warning("Invalid heightmap data in find_path_world")
        return None
    path = find_path(
        heightmap,
        world_to_grid(heightmap, *start),
        world_to_grid(heightmap, *goal),
        max_slope=max_slope,
        **kwargs,
    )
    if path is None:
        return None
    return [grid_to_world(heightmap, cell) for cell in path]
