"""
Cell-order patterns.

A pattern assigns every grid cell a "step": the moment, relative to the
other cells, at which the cell starts revealing. Step 0 goes first and
`max_step` last. A row pattern, for instance, gives each cell its row
index, so its `max_step` is one less than the number of rows.

Cells one ring OUTSIDE the grid may also be queried, since a particle
growing from the border could reach into the image. Anything further out
is undefined and trips an assertion.

Wrappers (`PatternInterlaced`, `PatternReflected`, `PatternReversed`,
`PatternMirrored`, `PatternFlipped`) take any pattern and rearrange its
order. They nest freely, but the nesting order matters: reflect before
reverse, or the reversal is folded away.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

import numpy as np

from . import utils
from .geometry import reflect, reflect_max

TAU = 2 * math.pi

DEFAULT_STEP_RANGE = 16
DEFAULT_INFECT_DENSITY = 1 / 32


@dataclass(frozen=True)
class Grid:
    """Immutable (row_count, column_count) pair shared by a whole mask."""

    row_count: int
    column_count: int

    def __post_init__(self) -> None:
        if int(self.row_count) < 1 or int(self.column_count) < 1:
            raise ValueError(
                f"Grid needs at least one row and column, got "
                f"{self.row_count}x{self.column_count}"
            )


class PatternGenerator:
    """
    Base for every pattern and wrapper.

    Subclasses set `self.max_step` in their constructor and implement
    `cell(r, c)`.
    """

    max_step = 0

    def __init__(self, row_count: int, column_count: int) -> None:
        self.grid = Grid(int(row_count), int(column_count))
        self.row_count = self.grid.row_count
        self.column_count = self.grid.column_count

    def _check_cell(self, r: int, c: int) -> None:
        assert -1 <= r <= self.row_count and -1 <= c <= self.column_count, (
            f"cell ({r}, {c}) is outside the queryable border of a "
            f"{self.row_count}x{self.column_count} grid"
        )

    def cell(self, r: int, c: int):
        raise NotImplementedError

    def cell_grid(self) -> np.ndarray:
        """
        Steps for the grid plus its one-cell border ring, as a
        (rows + 2, cols + 2) float array indexed by [r + 1, c + 1].
        """
        steps = np.empty((self.row_count + 2, self.column_count + 2), dtype=np.float64)
        for r in range(-1, self.row_count + 1):
            for c in range(-1, self.column_count + 1):
                steps[r + 1, c + 1] = self.cell(r, c)
        return steps

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.row_count}x{self.column_count}, "
            f"max_step={self.max_step})"
        )


###############################################################################
# Wipes
###############################################################################


def _droop_offsets(count: int, droop: float, size: int, rng) -> tuple[int, np.ndarray]:
    span = math.ceil(droop * count)
    if span <= 0:
        return 0, np.zeros(size, dtype=np.int64)
    return span, utils.make_rng(rng).integers(0, span, size=size)


class RowPattern(PatternGenerator):
    """Rows in order, each column optionally pushed back by a random droop."""

    def __init__(self, row_count, column_count, droop: float = 0.0, rng=None):
        super().__init__(row_count, column_count)
        self.range, self.offsets = _droop_offsets(
            self.row_count, droop, self.column_count + 2, rng
        )
        self.max_step = self.row_count - 1 + self.range

    def cell(self, r, c):
        self._check_cell(r, c)
        return r + int(self.offsets[c + 1])


class ColumnPattern(PatternGenerator):
    def __init__(self, row_count, column_count, droop: float = 0.0, rng=None):
        super().__init__(row_count, column_count)
        self.range, self.offsets = _droop_offsets(
            self.column_count, droop, self.row_count + 2, rng
        )
        self.max_step = self.column_count - 1 + self.range

    def cell(self, r, c):
        self._check_cell(r, c)
        return c + int(self.offsets[r + 1])


class DiagonalPattern(PatternGenerator):
    """Anti-diagonals in order. Takes the wipe arguments, but has no droop."""

    def __init__(self, row_count, column_count, droop: float = 0.0, rng=None):
        super().__init__(row_count, column_count)
        self.max_step = self.row_count - 1 + self.column_count - 1

    def cell(self, r, c):
        self._check_cell(r, c)
        return r + c


###############################################################################
# Curtains and shutters
###############################################################################


class RowCurtainPattern(PatternGenerator):
    """Rows in order, closing in from both side edges at once."""

    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = self.row_count - 1 + reflect_max(self.column_count)

    def cell(self, r, c):
        self._check_cell(r, c)
        return r + reflect(c, self.column_count)


class ColumnCurtainPattern(PatternGenerator):
    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = self.column_count - 1 + reflect_max(self.row_count)

    def cell(self, r, c):
        self._check_cell(r, c)
        return c + reflect(r, self.row_count)


class DiagonalCurtainPattern(PatternGenerator):
    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = min(self.row_count, self.column_count) - 1

    def cell(self, r, c):
        self._check_cell(r, c)
        return min(r, c)


class RowShutterPattern(PatternGenerator):
    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = reflect_max(self.row_count)

    def cell(self, r, c):
        self._check_cell(r, c)
        return reflect(r, self.row_count)


class ColumnShutterPattern(PatternGenerator):
    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = reflect_max(self.column_count)

    def cell(self, r, c):
        self._check_cell(r, c)
        return reflect(c, self.column_count)


class MainDiagonalShutterPattern(PatternGenerator):
    """
    Closes from the top-left and bottom-right corners. The other diagonal
    is this one mirrored or flipped.
    """

    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = reflect_max(self.row_count + self.column_count)

    def cell(self, r, c):
        self._check_cell(r, c)
        return reflect(r + c, self.row_count + self.column_count)


class DiamondPattern(PatternGenerator):
    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = reflect_max(self.row_count) + reflect_max(self.column_count)

    def cell(self, r, c):
        self._check_cell(r, c)
        return reflect(r, self.row_count) + reflect(c, self.column_count)


class BoxPattern(PatternGenerator):
    def __init__(self, row_count, column_count):
        super().__init__(row_count, column_count)
        self.max_step = min(reflect_max(self.row_count), reflect_max(self.column_count))

    def cell(self, r, c):
        self._check_cell(r, c)
        return min(reflect(r, self.row_count), reflect(c, self.column_count))


###############################################################################
# Spiral
###############################################################################


class SpiralPattern(PatternGenerator):
    """
    Archimedean spiral(s) from the grid center.

    The spiral arm itself is the main counter; cells between windings fill
    outwards from one arm and inwards from the next, meeting at `fill_meet`
    (a fraction of one winding). `fill_delay` is how long, in full
    windings, the fill takes to cross from one arm to the next.

    Steps here are reals rather than integers, scaled by the circumference
    of a circle of half the grid radius so they land in a comparable range.
    """

    def __init__(
        self,
        row_count,
        column_count,
        fill_delay: float = 1.0,
        spiral_count: float = 1.0,
        arm_count: int = 1,
        angle: float = 0.0,
    ):
        super().__init__(row_count, column_count)
        self.fill_delay = float(fill_delay)
        self.spiral_count = float(spiral_count)
        self.arm_count = int(arm_count)
        # In turns, 0-1
        self.angle = float(angle)

        self.radius = max(self.row_count, self.column_count) / 2
        # Spacing between windings, in cells
        self.spiral_width = self.radius / self.spiral_count
        self.fill_meet = (1 + 1 / self.fill_delay) / 2
        self.scale = self.radius / 2 * TAU
        self.max_step = self._estimate_max_step()

    def _estimate_max_step(self) -> float:
        """
        Evaluate the four grid corners and keep the largest.

        No closed form is known; this usually overshoots by about 1% and
        very rarely undershoots by less than that.
        """
        dx = self.column_count / 2 - 1 / 2
        dy = self.row_count / 2 - 1 / 2
        d = math.sqrt(dx * dx + dy * dy) / self.spiral_width
        base_angle = (math.atan2(dy, dx) + TAU) % (TAU / 4)

        def corner(theta: float) -> float:
            offset = (theta * self.arm_count / TAU - self.angle + 1) % 1
            # Past the meeting point the meeting point itself is brighter
            d2 = d
            if d < offset:
                if d > offset * self.fill_meet:
                    d2 = offset * self.fill_meet
            else:
                rem = (d - offset) % 1
                if rem > self.fill_meet:
                    d2 = d - rem + self.fill_meet
            return self._calc(d2, theta)

        return max(
            corner(base_angle),
            corner(TAU / 2 - base_angle),
            corner(base_angle + TAU / 2),
            corner(TAU - base_angle),
        )

    def _calc(self, d: float, theta: float) -> float:
        theta = (theta * self.arm_count + TAU * (2 - self.angle)) % TAU
        # How far out the windings start at this angle, as a winding fraction
        offset = theta / TAU

        d2 = d - offset
        nearest_spiral = math.floor(d2 + 1 - self.fill_meet)
        dist_to_spiral = abs(nearest_spiral - d2)
        # Position along the spiral, in revolutions
        t = nearest_spiral + offset
        if d < offset:
            # Inside the innermost winding
            if d < offset * self.fill_meet:
                t = 0
                dist_to_spiral = d
            else:
                dist_to_spiral = offset - d

        return self.scale * (t + dist_to_spiral * self.fill_delay)

    def cell(self, r, c):
        self._check_cell(r, c)
        x = (c + 0.5) - self.column_count / 2
        y = (r + 0.5) - self.row_count / 2
        d = math.sqrt(x * x + y * y) / self.spiral_width
        # Image y points down, atan2 expects it up
        return self._calc(d, math.atan2(-y, x))


###############################################################################
# Random patterns
###############################################################################


class RandomPattern(PatternGenerator):
    """Independent random step per cell, drawn once at construction."""

    def __init__(self, row_count, column_count, step_range: int = DEFAULT_STEP_RANGE, rng=None):
        super().__init__(row_count, column_count)
        # TODO: derive the default range from the cell count instead of a constant
        if int(step_range) < 1:
            raise ValueError(f"step_range must be at least 1, got {step_range}")
        self.step_range = int(step_range)
        self.cells = utils.make_rng(rng).integers(
            0, self.step_range, size=(self.row_count + 2, self.column_count + 2)
        )
        self.max_step = self.step_range - 1

    def cell(self, r, c):
        self._check_cell(r, c)
        return int(self.cells[r + 1, c + 1])


class InfectPattern(PatternGenerator):
    """
    Random seed cells that spread to their 4-neighbours one step at a time.

    The flood fill covers the grid and its border ring, so every queryable
    cell ends up with a step.
    """

    def __init__(
        self, row_count, column_count, density: float = DEFAULT_INFECT_DENSITY, rng=None
    ):
        super().__init__(row_count, column_count)
        if not 0.0 < density <= 1.0:
            raise ValueError(f"density must be in (0, 1], got {density}")
        self.density = float(density)

        rows, cols = self.row_count, self.column_count
        self.cells = np.full((rows + 2, cols + 2), -1, dtype=np.int64)

        cell_ct = rows * cols
        num_seeds = min(cell_ct, math.ceil(self.density * cell_ct))
        seeds = utils.make_rng(rng).choice(cell_ct, size=num_seeds, replace=False)

        frontier = deque()
        for n in seeds:
            r, c = divmod(int(n), cols)
            self.cells[r + 1, c + 1] = 0
            frontier.append((r, c))

        step = 0
        while frontier:
            next_round = deque()
            for r, c in frontier:
                for nr, nc in ((r - 1, c), (r + 1, c), (r, c - 1), (r, c + 1)):
                    if nr < -1 or nr > rows or nc < -1 or nc > cols:
                        continue
                    if self.cells[nr + 1, nc + 1] >= 0:
                        continue
                    self.cells[nr + 1, nc + 1] = step + 1
                    next_round.append((nr, nc))
            if next_round:
                step += 1
            frontier = next_round

        self.max_step = step

    def cell(self, r, c):
        self._check_cell(r, c)
        return int(self.cells[r + 1, c + 1])


###############################################################################
# Wrappers
###############################################################################


class PatternWrapper(PatternGenerator):
    def __init__(self, pattern: PatternGenerator) -> None:
        super().__init__(pattern.row_count, pattern.column_count)
        self.wrapped = pattern
        self.max_step = pattern.max_step


class PatternInterlaced(PatternWrapper):
    """
    Clusters steps by their residue modulo `stride`: every stride-th step
    first, then the ones after those, and so on.
    """

    def __init__(self, pattern, stride: int):
        super().__init__(pattern)
        if int(stride) < 1:
            raise ValueError(f"Interlace stride must be at least 1, got {stride}")
        self.stride = int(stride)
        if self.stride > 1:
            # Residues only make sense for whole steps, so real-valued
            # orders (spiral) are floored first
            self.max_step = math.floor(self.max_step)

    def cell(self, r, c):
        step = self.wrapped.cell(r, c)
        stride = self.stride
        if stride == 1:
            return step
        step = math.floor(step)
        residue = step % stride
        return (
            # Division clusters them together
            math.floor(step / stride)
            # Each cluster starts after all the clusters before it
            + math.floor(self.max_step / stride) * residue
            # When the span doesn't divide evenly the last cluster is shorter
            + min(residue, (self.max_step + 1) % stride)
        )


class PatternReversed(PatternWrapper):
    def cell(self, r, c):
        return self.max_step - self.wrapped.cell(r, c)


class PatternMirrored(PatternWrapper):
    def cell(self, r, c):
        return self.wrapped.cell(r, self.column_count - c - 1)


class PatternFlipped(PatternWrapper):
    def cell(self, r, c):
        return self.wrapped.cell(self.row_count - r - 1, c)


class PatternReflected(PatternWrapper):
    """Folds the order in half, turning any linear pattern symmetric."""

    def __init__(self, pattern):
        super().__init__(pattern)
        # Folding needs whole steps; real-valued orders are floored
        self.span = math.floor(self.wrapped.max_step) + 1
        self.max_step = reflect_max(self.span)

    def cell(self, r, c):
        return reflect(math.floor(self.wrapped.cell(r, c)), self.span)


###############################################################################
# Preview
###############################################################################


def pattern_preview(pattern: PatternGenerator, width: int, height: int, verbose: bool = False) -> np.ndarray:
    """
    Greyscale (height, width) float image of `cell / max_step`, one flat
    block per cell, for eyeballing an order before building a full mask.
    """
    rows, cols = pattern.row_count, pattern.column_count
    steps = pattern.cell_grid()[1:-1, 1:-1]
    max_step = pattern.max_step
    if max_step > 0:
        values = steps / max_step
    else:
        values = np.zeros_like(steps)

    if verbose and np.any(steps > max_step):
        r, c = np.unravel_index(np.argmax(steps), steps.shape)
        print(
            f"[pattern] warning: step {steps[r, c]} at ({r}, {c}) exceeds "
            f"max_step {max_step}"
        )

    row_idx = np.minimum((np.arange(height) * rows) // height, rows - 1)
    col_idx = np.minimum((np.arange(width) * cols) // width, cols - 1)
    return values[np.ix_(row_idx, col_idx)]


__all__ = [
    "Grid",
    "PatternGenerator",
    "RowPattern",
    "ColumnPattern",
    "DiagonalPattern",
    "RowCurtainPattern",
    "ColumnCurtainPattern",
    "DiagonalCurtainPattern",
    "RowShutterPattern",
    "ColumnShutterPattern",
    "MainDiagonalShutterPattern",
    "DiamondPattern",
    "BoxPattern",
    "SpiralPattern",
    "RandomPattern",
    "InfectPattern",
    "PatternWrapper",
    "PatternInterlaced",
    "PatternReversed",
    "PatternMirrored",
    "PatternFlipped",
    "PatternReflected",
    "pattern_preview",
]
