"""
Particle opacity fields.

A particle is only its silhouette: a (height, width) array of opacity in
[0, 1]. Fields come from arrays, from the alpha channel of an image file,
or from one of the preset shapes drawn with Pillow.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw

DEFAULT_PARTICLE_SIZE = 64


@dataclass(frozen=True, eq=False)
class ParticleField:
    """Read-only opacity sample, one float in [0, 1] per pixel."""

    opacity: np.ndarray

    def __post_init__(self) -> None:
        opacity = np.array(self.opacity, dtype=np.float64)
        if opacity.ndim != 2 or opacity.size == 0:
            raise ValueError(
                f"Particle opacity must be a non-empty 2D array, got shape {opacity.shape}"
            )
        opacity.setflags(write=False)
        object.__setattr__(self, "opacity", opacity)

    @property
    def width(self) -> int:
        return int(self.opacity.shape[1])

    @property
    def height(self) -> int:
        return int(self.opacity.shape[0])

    @property
    def coverage(self) -> float:
        """Fraction of pixels at least half opaque."""
        return float(np.mean(self.opacity >= 0.5))

    @classmethod
    def from_array(cls, data) -> "ParticleField":
        """
        Accept a 2D opacity array or an (H, W, 2|4) image array, whose last
        channel is taken as alpha.

        Arrays with any value above 1, integer or float, are read as 0-255;
        everything else, 0/1 integer masks included, as 0-1.
        """
        arr = np.asarray(data)
        if arr.ndim == 3:
            if arr.shape[2] not in (2, 4):
                raise ValueError(
                    f"Expected a greyscale+alpha or RGBA array, got {arr.shape[2]} channels"
                )
            arr = arr[..., -1]
        if arr.dtype == bool or not arr.size or float(arr.max()) <= 1.0:
            opacity = arr.astype(np.float64)
        else:
            opacity = arr.astype(np.float64) / 255.0
        return cls(np.clip(opacity, 0.0, 1.0))


def load_particle(path: str | os.PathLike[str]) -> ParticleField:
    """Read an image file and keep only its alpha channel."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing particle image: {path}")
    with Image.open(path) as img:
        rgba = np.array(img.convert("RGBA"))
    return ParticleField.from_array(rgba)


###############################################################################
# Presets
###############################################################################


def _draw_diamond(draw: ImageDraw.ImageDraw, w: float, h: float) -> None:
    draw.polygon([(0, h / 2), (w / 2, 0), (w, h / 2), (w / 2, h)], fill=255)


def _draw_circle(draw: ImageDraw.ImageDraw, w: float, h: float) -> None:
    draw.ellipse([0, 0, w, h], fill=255)


def _draw_heart(draw: ImageDraw.ImageDraw, w: float, h: float) -> None:
    # Two lobes over a downward-pointing triangle
    draw.polygon([(0, h / 4), (w / 2, h), (w, h / 4)], fill=255)
    draw.ellipse([0, 0, w / 2, h / 2], fill=255)
    draw.ellipse([w / 2, 0, w, h / 2], fill=255)


def _draw_star(draw: ImageDraw.ImageDraw, w: float, h: float) -> None:
    r = w / 2
    # Inner (dimple) radius of a regular five-pointed star
    r2 = r * math.sqrt((7 - 3 * math.sqrt(5)) / 2)
    # Shifting down by r2/4 centers the star vertically
    x0 = w / 2
    y0 = h / 2 + r2 / 4
    points = []
    for i in range(5):
        points.append(
            (x0 + r * math.cos(math.tau * (0.75 + i / 5)), y0 + r * math.sin(math.tau * (0.75 + i / 5)))
        )
        points.append(
            (x0 + r2 * math.cos(math.tau * (0.85 + i / 5)), y0 + r2 * math.sin(math.tau * (0.85 + i / 5)))
        )
    draw.polygon(points, fill=255)


PRESET_PARTICLES = {
    "diamond": _draw_diamond,
    "circle": _draw_circle,
    "heart": _draw_heart,
    "star": _draw_star,
}


def preset_particle(
    name: str, width: int = DEFAULT_PARTICLE_SIZE, height: int | None = None
) -> ParticleField:
    """Rasterise one of `PRESET_PARTICLES` at the given size."""
    draw_fn = PRESET_PARTICLES.get(name)
    if draw_fn is None:
        raise ValueError(
            f"Unknown preset particle '{name}'; expected one of {', '.join(PRESET_PARTICLES)}"
        )
    height = width if height is None else height
    if width < 1 or height < 1:
        raise ValueError(f"Particle size must be positive, got {width}x{height}")

    canvas = Image.new("L", (int(width), int(height)), 0)
    # Pillow treats bounding boxes as inclusive, so draw on the last pixel
    draw_fn(ImageDraw.Draw(canvas), width - 1, height - 1)
    return ParticleField.from_array(np.array(canvas, dtype=np.uint8))


def resolve_particle(source, size: int = DEFAULT_PARTICLE_SIZE) -> ParticleField:
    """Turn a preset name, image path, array, or ParticleField into a field."""
    if isinstance(source, ParticleField):
        return source
    if isinstance(source, (str, os.PathLike)):
        if str(source) in PRESET_PARTICLES:
            return preset_particle(str(source), size)
        return load_particle(source)
    return ParticleField.from_array(source)


__all__ = [
    "ParticleField",
    "PRESET_PARTICLES",
    "load_particle",
    "preset_particle",
    "resolve_particle",
]
