"""
Growth profile ("stamp") builder.

For a 3x3 block of cells centered on one cell, the profile stores, per
pixel, how much the particle must be enlarged (scaled about the center
cell's center) before its silhouette covers that pixel. The mask
compositor reuses the same table for every cell in the grid.

Per tile pixel:
1.  Take the particle's bounding box and find the scale at which the box
    edge reaches the pixel center.
2.  Back-project the pixel onto that box edge, in particle coordinates.
3.  March from there towards the particle center until the first pixel at
    least half opaque. The ratio of distances from the center to the entry
    point and to where the ray enters that pixel is the extra growth the
    real silhouette needs beyond its bounding box.

Particles with holes are not handled: a ray that finds nothing before the
center leaves a scale of 0 for that pixel.

The hit point is where the ray enters the opaque pixel, not the pixel's
integer corner, so a solid box particle grows at exactly its box scale.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass

import numpy as np
from numba import njit

from .geometry import _trace_cells
from .particles import ParticleField

OPACITY_THRESHOLD = 0.5


@njit(cache=True)
def _hit_scale(opacity: np.ndarray, ix: float, iy: float, pcx: float, pcy: float) -> float:
    """
    March from the entry point (ix, iy) back to the particle center and
    return how much further the particle must grow for its first opaque
    pixel on that ray to reach the entry point. Zero when nothing is hit.
    """
    ph, pw = opacity.shape
    cells, n = _trace_cells(ix, iy, pcx, pcy)
    dir_x = pcx - ix
    dir_y = pcy - iy
    dist_to_entry2 = dir_x * dir_x + dir_y * dir_y

    for k in range(n):
        ax = cells[k, 0]
        ay = cells[k, 1]
        # A particle N pixels wide touched on its right edge starts at
        # pixel N, which is outside it
        if ax < 0 or ay < 0 or ax >= pw or ay >= ph:
            continue
        if opacity[ay, ax] < OPACITY_THRESHOLD:
            continue

        # Where the ray enters this pixel, as a fraction of the way to the center
        if dir_x > 0.0:
            tx = (ax - ix) / dir_x
        elif dir_x < 0.0:
            tx = (ax + 1 - ix) / dir_x
        else:
            tx = 0.0
        if dir_y > 0.0:
            ty = (ay - iy) / dir_y
        elif dir_y < 0.0:
            ty = (ay + 1 - iy) / dir_y
        else:
            ty = 0.0
        t_enter = max(max(tx, ty), 0.0)

        hx = ix + t_enter * dir_x
        hy = iy + t_enter * dir_y
        dist_to_hit2 = (hx - pcx) * (hx - pcx) + (hy - pcy) * (hy - pcy)
        if dist_to_hit2 <= 0.0:
            continue
        return math.sqrt(dist_to_entry2 / dist_to_hit2)

    return 0.0


@njit(cache=True)
def _build_scales(opacity: np.ndarray, cell_width: int, cell_height: int):
    ph, pw = opacity.shape
    tile_w = cell_width * 3
    tile_h = cell_height * 3
    scales = np.zeros((tile_h, tile_w), dtype=np.float64)

    # Center of the tile, and of the particle
    mid_x = cell_width * 3 / 2
    mid_y = cell_height * 3 / 2
    pcx = pw / 2
    pcy = ph / 2

    max_scale = 0.0
    for py in range(tile_h):
        for px in range(tile_w):
            # A pixel counts as hit once its center is covered
            dx = (px + 0.5) - mid_x
            dy = (py + 0.5) - mid_y
            # Scale at which the particle's bounding box reaches the pixel
            scale = max(abs(dx * 2) / pw, abs(dy * 2) / ph)
            if scale == 0.0:
                # Exact center: lights first
                continue

            ix = pcx + dx / scale
            iy = pcy + dy / scale
            value = scale * _hit_scale(opacity, ix, iy, pcx, pcy)
            scales[py, px] = value

            in_center_row = cell_height <= py and py < cell_height * 2
            if in_center_row and cell_width <= px and px < cell_width * 2:
                if value > max_scale:
                    max_scale = value

    return scales, max_scale


@dataclass(frozen=True, eq=False)
class GrowthProfile:
    """Scale table over a 3x3-cell tile, plus its normalisation constant."""

    scales: np.ndarray
    max_scale: float
    cell_width: int
    cell_height: int

    @property
    def shape(self) -> tuple[int, int]:
        return self.scales.shape

    def stamp_image(self) -> np.ndarray:
        """Greyscale uint8 rendering of the table, for inspection."""
        if self.max_scale <= 0.0:
            return np.zeros(self.scales.shape, dtype=np.uint8)
        values = self.scales / (self.max_scale * 3) * 255
        return np.clip(values, 0, 255).astype(np.uint8)


def build_growth_profile(
    particle: ParticleField,
    cell_width: int,
    cell_height: int,
    verbose: bool = False,
) -> GrowthProfile:
    """
    Build the growth profile of `particle` for cells of the given size.

    Args:
        particle: Opacity field; only pixels at least half opaque count.
        cell_width: Width of one grid cell in output pixels.
        cell_height: Height of one grid cell in output pixels.
        verbose: Print the table size, max scale and build time.
    """
    if cell_width < 1 or cell_height < 1:
        raise ValueError(f"Cell size must be positive, got {cell_width}x{cell_height}")

    start_time = time.time()
    scales, max_scale = _build_scales(
        np.array(particle.opacity, dtype=np.float64), int(cell_width), int(cell_height)
    )
    scales.setflags(write=False)
    if verbose:
        print(
            f"[profile] {scales.shape[1]}x{scales.shape[0]} stamp for "
            f"{particle.width}x{particle.height} particle, max_scale={max_scale:.4f}, "
            f"elapsed={time.time() - start_time:.2f}s"
        )
    return GrowthProfile(
        scales=scales,
        max_scale=float(max_scale),
        cell_width=int(cell_width),
        cell_height=int(cell_height),
    )


__all__ = ["GrowthProfile", "build_growth_profile", "OPACITY_THRESHOLD"]
