"""
Particle wipe mask compositor.

Every output pixel belongs to one grid cell. Its reveal time is the
earliest moment any particle, growing from its own cell center or from one
of the eight neighbouring cell centers, covers it:

    time = step * delay + min_over_neighbours(scale + (n_step - step) * delay * max_scale) / max_scale

Times are normalised by `total_time = max_step * delay + 1` (the last step
starts at `max_step * delay` and takes one unit to grow) and packed into
the RGBA channels in base 256, coarse digit first, so a consumer reading
only the red channel still gets an 8-bit order.

`total_time` ignores that growth can spill into neighbouring cells, so a
few raw values can land slightly above 1. They are clamped before
encoding; the unclamped values stay on the result.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

import numpy as np
from numba import njit, prange

from . import utils
from .catalog import PatternConfig, PatternConfigError, build_pattern
from .particles import DEFAULT_PARTICLE_SIZE, ParticleField, resolve_particle
from .patterns import PatternGenerator
from .profile import GrowthProfile, build_growth_profile

# Largest value the three 8-bit digits can hold: (255, 255, 255)
MAX_ENCODABLE = 1.0 - 2.0 ** -24
CHANNEL_SCALES = np.array([256.0, 256.0 ** 2, 256.0 ** 3])

###############################################################################
# Kernel
###############################################################################


@njit(parallel=True, cache=True)
def _composite_kernel(
    steps: np.ndarray,
    scales: np.ndarray,
    max_scale: float,
    row_count: int,
    column_count: int,
    column_width: int,
    row_height: int,
    width: int,
    height: int,
    delay: float,
    total_time: float,
) -> np.ndarray:
    """
    Reveal time of every output pixel, normalised by `total_time`.

    Rows are independent, so they are split across threads; `steps` is the
    padded (rows + 2, cols + 2) step grid and `scales` the growth profile.
    """
    values = np.empty((height, width), dtype=np.float64)
    for y in prange(height):
        row = y // row_height
        by = y % row_height
        for x in range(width):
            col = x // column_width
            bx = x % column_width
            step = steps[row + 1, col + 1]
            start_time = step * delay

            scale = np.inf
            # drow/dcol index the stamp; the particle they sample grows from
            # the cell in the opposite direction
            for drow in range(3):
                srow = row + 1 - drow
                if srow < 0 or srow >= row_count:
                    continue
                for dcol in range(3):
                    scol = col + 1 - dcol
                    if scol < 0 or scol >= column_count:
                        continue
                    s = scales[by + row_height * drow, bx + column_width * dcol]
                    s += (steps[srow + 1, scol + 1] - step) * delay * max_scale
                    if s < scale:
                        scale = s

            if max_scale > 0.0:
                growth = scale / max_scale
            else:
                growth = 0.0
            values[y, x] = (start_time + growth) / total_time
    return values


###############################################################################
# Channel encoding
###############################################################################


def encode_mask(values: np.ndarray) -> np.ndarray:
    """
    Pack normalised reveal times into an RGBA uint8 buffer.

    Each of R, G, B holds the next base-256 digit of the value; alpha is
    fully opaque. Values are clamped to [0, 1] and NaN is read as 0.
    """
    values = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0)
    remainder = np.clip(values, 0.0, MAX_ENCODABLE)
    pixels = np.empty(values.shape + (4,), dtype=np.uint8)
    for channel in range(3):
        remainder = remainder * 256.0
        digit = np.floor(remainder)
        pixels[..., channel] = digit.astype(np.uint8)
        remainder = remainder - digit
    pixels[..., 3] = 255
    return pixels


def decode_mask(pixels: np.ndarray) -> np.ndarray:
    """Rebuild the per-pixel reveal threshold (the renderer's discriminator)."""
    pixels = np.asarray(pixels)
    digits = pixels[..., :3].astype(np.float64)
    return (digits / CHANNEL_SCALES).sum(axis=-1)


###############################################################################
# Compositor
###############################################################################


def cell_size(width: int, height: int, row_count: int, column_count: int) -> tuple[int, int]:
    """(column_width, row_height) in pixels; the last row/column may be short."""
    return math.ceil(width / column_count), math.ceil(height / row_count)


def generate_mask(
    particle: ParticleField,
    pattern: PatternGenerator,
    width: int,
    height: int,
    delay: float,
    *,
    profile: GrowthProfile | None = None,
    verbose: bool = False,
) -> utils.MaskResult:
    """
    Build the full mask for one parameter set.

    Args:
        particle: Particle silhouette.
        pattern: Cell-order generator; its grid decides the cell layout.
        width: Output width in pixels.
        height: Output height in pixels.
        delay: Fraction of one cell's growth to wait before the next step
            starts, in [0, 1].
        profile: A growth profile already built for this particle and cell
            size, to skip rebuilding it.
        verbose: Print progress and diagnostics.

    Returns:
        MaskResult with RGBA `pixels`, raw unclamped `values` and `meta`.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Mask size must be positive, got {width}x{height}")
    if not 0.0 <= delay <= 1.0:
        raise ValueError(f"delay must be in [0, 1], got {delay}")

    row_count, column_count = pattern.row_count, pattern.column_count
    column_width, row_height = cell_size(width, height, row_count, column_count)

    if profile is None:
        profile = build_growth_profile(particle, column_width, row_height, verbose=verbose)
    elif (profile.cell_width, profile.cell_height) != (column_width, row_height):
        raise ValueError(
            f"Growth profile was built for {profile.cell_width}x{profile.cell_height} cells, "
            f"mask needs {column_width}x{row_height}"
        )

    # The last step starts at max_step * delay and takes one unit to grow.
    # TODO: merge overlapping per-cell growth windows so this covers spill-over
    total_time = pattern.max_step * delay + 1

    start_time = time.time()
    steps = pattern.cell_grid()
    values = _composite_kernel(
        steps,
        profile.scales,
        profile.max_scale,
        row_count,
        column_count,
        column_width,
        row_height,
        int(width),
        int(height),
        float(delay),
        float(total_time),
    )
    pixels = encode_mask(values)
    elapsed = time.time() - start_time

    in_grid = steps[1:-1, 1:-1]
    observed_min = float(in_grid.min())
    observed_max = float(in_grid.max())
    overflow = float(np.mean(values > 1.0))

    if verbose:
        print(
            f"[mask] {width}x{height} mask, grid {row_count}x{column_count} "
            f"({column_width}x{row_height} px cells), max_step={pattern.max_step}, "
            f"delay={delay}, total_time={total_time:.3f}, elapsed={elapsed:.2f}s"
        )
        if observed_max > pattern.max_step:
            print(
                f"[mask] warning: claimed step range 0 to {pattern.max_step}, "
                f"observed {observed_min} to {observed_max}"
            )
        if overflow > 0.0:
            print(f"[mask] {overflow:.2%} of pixels exceeded total_time and were clamped")

    meta = {
        "width": int(width),
        "height": int(height),
        "rows": int(row_count),
        "columns": int(column_count),
        "delay": float(delay),
        "pattern": repr(pattern),
        "max_step": float(pattern.max_step),
        "total_time": float(total_time),
        "max_scale": float(profile.max_scale),
        "observed_step_range": (observed_min, observed_max),
        "overflow_fraction": overflow,
        "time_elapsed": elapsed,
    }
    return utils.MaskResult(pixels=pixels, values=values, meta=meta)


###############################################################################
# Configuration + manager
###############################################################################


@dataclass
class MaskConfig:
    """Everything needed to produce one mask."""

    width: int = 640
    height: int = 360
    rows: int = 9
    columns: int = 16
    delay: float = 0.5
    # Preset name or path to an image whose alpha is the particle
    particle: str = "diamond"
    particle_size: int = DEFAULT_PARTICLE_SIZE
    pattern: PatternConfig = field(
        default_factory=lambda: PatternConfig(pattern="wipe", direction="row")
    )
    verbose: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MaskConfig":
        data = dict(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise PatternConfigError(f"Unknown mask setting(s): {', '.join(unknown)}")
        pattern = data.pop("pattern", None)
        if isinstance(pattern, dict):
            data["pattern"] = PatternConfig.from_dict(pattern)
        elif isinstance(pattern, str):
            data["pattern"] = PatternConfig(pattern=pattern)
        elif pattern is not None:
            data["pattern"] = pattern
        return cls(**data)


class MaskGenerator:
    """
    Holds a particle and its growth profile, and builds masks from them.

    The profile depends only on the particle and the cell size, so runs
    that change just the pattern or the delay reuse it.
    """

    def __init__(self, config: MaskConfig | None = None, *, particle=None) -> None:
        self.config = config or MaskConfig()
        source = self.config.particle if particle is None else particle
        self.particle = resolve_particle(source, self.config.particle_size)
        self._profile: Optional[GrowthProfile] = None
        self.pattern: Optional[PatternGenerator] = None
        self.result: Optional[utils.MaskResult] = None

    @property
    def cell_size(self) -> tuple[int, int]:
        cfg = self.config
        return cell_size(cfg.width, cfg.height, cfg.rows, cfg.columns)

    def profile(self) -> GrowthProfile:
        """Growth profile for the current cell size, built on first use."""
        column_width, row_height = self.cell_size
        cached = self._profile
        if cached is None or (cached.cell_width, cached.cell_height) != (column_width, row_height):
            self._profile = build_growth_profile(
                self.particle, column_width, row_height, verbose=self.config.verbose
            )
        return self._profile

    def run(self, pattern: PatternGenerator | None = None) -> utils.MaskResult:
        """Generate the mask, building the pattern from the config unless given."""
        cfg = self.config
        if pattern is None:
            pattern = build_pattern(cfg.rows, cfg.columns, cfg.pattern)
        elif (pattern.row_count, pattern.column_count) != (cfg.rows, cfg.columns):
            raise ValueError(
                f"Pattern grid {pattern.row_count}x{pattern.column_count} does not match "
                f"config grid {cfg.rows}x{cfg.columns}"
            )
        self.pattern = pattern
        self.result = generate_mask(
            self.particle,
            pattern,
            cfg.width,
            cfg.height,
            cfg.delay,
            profile=self.profile(),
            verbose=cfg.verbose,
        )
        self.result.ensure_meta()["pattern_config"] = cfg.pattern.to_dict()
        return self.result

    def get_pixels(self) -> np.ndarray:
        """RGBA mask of the last run."""
        if self.result is None:
            raise RuntimeError("Mask has not been generated. Call run() first.")
        return self.result.pixels


def run_model(config: dict | None = None) -> utils.MaskResult:
    """Generate a mask from a plain dict of settings (see MaskConfig)."""
    return MaskGenerator(MaskConfig.from_dict(config or {})).run()


__all__ = [
    "MaskConfig",
    "MaskGenerator",
    "cell_size",
    "decode_mask",
    "encode_mask",
    "generate_mask",
    "run_model",
]


if __name__ == "__main__":
    # Standalone execution for testing
    result = run_model({"pattern": {"pattern": "spiral", "loops": 2, "arms": 2}})
    print(f"Generated {result.pixels.shape[1]}x{result.pixels.shape[0]} mask")
