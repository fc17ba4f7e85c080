"""
Drawing algorithms for the tile editor.
All functions work on plain cell coordinates and numpy grids and never
touch the document directly.
"""

from typing import List, Optional, Tuple

import numpy as np

from .models import UNSET

Point = Tuple[int, int]


def line_points(x0: int, y0: int, x1: int, y1: int) -> List[Point]:
    """
    Bresenham line between two cells, endpoints included.
    Endpoints are put in a canonical order first so the path is the same
    whichever end the stroke started from.
    """
    if (x1, y1) < (x0, y0):
        x0, y0, x1, y1 = x1, y1, x0, y0

    points = []
    dx, dy = abs(x1 - x0), -abs(y1 - y0)
    sx, sy = (1 if x0 < x1 else -1), (1 if y0 < y1 else -1)
    err = dx + dy
    while True:
        points.append((x0, y0))
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy
    return points


def rect_points(x0: int, y0: int, x1: int, y1: int) -> List[Point]:
    """Border cells of the inclusive bounding box of two corners."""
    x_min, x_max = min(x0, x1), max(x0, x1)
    y_min, y_max = min(y0, y1), max(y0, y1)

    points = []
    for ry in range(y_min, y_max + 1):
        for rx in range(x_min, x_max + 1):
            if rx in (x_min, x_max) or ry in (y_min, y_max):
                points.append((rx, ry))
    return points


def filled_rect_points(x0: int, y0: int, x1: int, y1: int) -> List[Point]:
    x_min, x_max = min(x0, x1), max(x0, x1)
    y_min, y_max = min(y0, y1), max(y0, y1)
    return [
        (rx, ry)
        for ry in range(y_min, y_max + 1)
        for rx in range(x_min, x_max + 1)
    ]


def flood_fill_points(
    grid: np.ndarray, x: int, y: int, replace: int, blocked: Optional[int] = UNSET
) -> List[Point]:
    """
    Cells 4-connected to (x, y) that share its value.
    Returns nothing when the seed already holds `replace` or the `blocked` value.
    Uses an explicit stack so large regions cannot exhaust the call stack.
    """
    height, width = grid.shape
    if not (0 <= x < width and 0 <= y < height):
        return []

    target = grid[y, x]
    if target == replace or target == blocked:
        return []

    stack = [(x, y)]
    visited = {(x, y)}
    while stack:
        cx, cy = stack.pop()
        for dx, dy in [(1, 0), (-1, 0), (0, 1), (0, -1)]:
            nx, ny = cx + dx, cy + dy
            if 0 <= nx < width and 0 <= ny < height:
                if (nx, ny) not in visited and grid[ny, nx] == target:
                    visited.add((nx, ny))
                    stack.append((nx, ny))
    return sorted(visited, key=lambda p: (p[1], p[0]))


def flip(data: np.ndarray, horizontal: bool) -> np.ndarray:
    """Mirrors a block left-right (horizontal) or top-bottom."""
    return np.fliplr(data).copy() if horizontal else np.flipud(data).copy()


def rotate_clockwise(data: np.ndarray) -> np.ndarray:
    """Rotates a block 90 degrees clockwise; an h x w block becomes w x h."""
    return np.rot90(data, k=-1).copy()
