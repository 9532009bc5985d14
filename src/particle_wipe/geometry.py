"""
Geometry helpers shared by the cell-order patterns and the growth profile.

- `reflect` / `reflect_max`: distance from the nearest edge of a 0..count-1
  span, used by every symmetric pattern.
- `trace_line`: grid traversal yielding every cell a segment crosses, in
  order, used to march from a stamp pixel back to the particle center.
"""

from __future__ import annotations

import math
from typing import Iterator, Tuple

import numpy as np
from numba import njit


def reflect(n, count):
    """
    Distance of index `n` from the nearest edge of a span of `count` items.

    Works for integer and real steps alike, so it can also fold the output
    of another pattern.
    """
    if n < count / 2:
        return n
    return count - 1 - n


def reflect_max(count):
    """Largest value `reflect` can return for a span of `count` items."""
    return math.floor(count / 2 - 0.5)


###############################################################################
# Line marching
###############################################################################


@njit(cache=True)
def _trace_cells(x0: float, y0: float, x1: float, y1: float):
    """
    Modified Bresenham traversal between two real points.

    Everything is mirrored into the first quadrant, then split on whichever
    axis changes faster (the main axis). `err` tracks the scaled distance
    between the ray and the next grid line parallel to the main axis; when
    it turns positive the ray has crossed onto the next minor-axis cell
    before the next main-axis cell.

    Returns:
        (cells, n): an (N, 2) int64 array of (x, y) cells and the number
        of valid rows in it.
    """
    dx = x1 - x0
    dy = y1 - y0
    a = math.floor(x0)
    b = math.floor(y0)

    min_x = math.floor(min(x0, x1))
    max_x = math.floor(max(x0, x1))
    min_y = math.floor(min(y0, y1))
    max_y = math.floor(max(y0, y1))

    capacity = (max_x - min_x) + (max_y - min_y) + 2
    cells = np.empty((capacity, 2), dtype=np.int64)

    if dx == 0.0 and dy == 0.0:
        cells[0, 0] = a
        cells[0, 1] = b
        return cells, 1

    # Distance from the start to the next grid line along each axis
    step_a = 1
    offset_x = 1.0 - (x0 - a)
    if dx < 0.0:
        dx = -dx
        step_a = -1
        offset_x = 1.0 - offset_x
    # On a grid line: the next one is a full cell away
    if offset_x == 0.0:
        offset_x = 1.0

    step_b = 1
    offset_y = 1.0 - (y0 - b)
    if dy < 0.0:
        dy = -dy
        step_b = -1
        offset_y = 1.0 - offset_y
    if offset_y == 0.0:
        offset_y = 1.0

    err = dy * offset_x - dx * offset_y
    n = 0

    if dx > dy:
        # Main axis is x
        while min_x <= a and a <= max_x and min_y <= b and b <= max_y and n < capacity:
            cells[n, 0] = a
            cells[n, 1] = b
            n += 1
            if err > 0.0:
                err -= dx
                b += step_b
                if b < min_y or b > max_y or n >= capacity:
                    break
                cells[n, 0] = a
                cells[n, 1] = b
                n += 1
            err += dy
            a += step_a
    else:
        # Main axis is y
        err = -err
        while min_x <= a and a <= max_x and min_y <= b and b <= max_y and n < capacity:
            cells[n, 0] = a
            cells[n, 1] = b
            n += 1
            if err > 0.0:
                err -= dy
                a += step_a
                if a < min_x or a > max_x or n >= capacity:
                    break
                cells[n, 0] = a
                cells[n, 1] = b
                n += 1
            err += dx
            b += step_b

    return cells, n


def trace_line(x0: float, y0: float, x1: float, y1: float) -> Iterator[Tuple[int, int]]:
    """
    Yield the integer (x, y) cells crossed by the segment (x0, y0)-(x1, y1),
    starting with the cell holding the first point.

    Each call returns a fresh iterator, so the walk can be restarted by
    calling again with the same endpoints.
    """
    cells, n = _trace_cells(float(x0), float(y0), float(x1), float(y1))
    for k in range(n):
        yield int(cells[k, 0]), int(cells[k, 1])


__all__ = ["reflect", "reflect_max", "trace_line"]
