"""
Named patterns and how their settings pick and configure a generator.

Several named patterns map to more than one generator class depending on
`direction`; the others take extra constructor arguments from the config.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

import numpy as np

from . import patterns as pt
from . import utils


class PatternConfigError(ValueError):
    """Raised for unknown patterns, missing keys, or out-of-range settings."""


@dataclass
class PatternConfig:
    """Settings for one cell-order pattern plus its wrappers."""

    pattern: str = "wipe"
    direction: Optional[str] = None
    # wipe
    droop: float = 0.0
    # spiral
    fill_delay: float = 1.0
    loops: float = 1.0
    arms: int = 1
    angle: float = 0.0
    # random / infect
    step_range: int = pt.DEFAULT_STEP_RANGE
    density: float = pt.DEFAULT_INFECT_DENSITY
    seed: Optional[int] = None
    # wrappers
    interlace: int = 1
    reflect: bool = False
    reverse: bool = False
    mirror: bool = False
    flip: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatternConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise PatternConfigError(f"Unknown pattern setting(s): {', '.join(unknown)}")
        if "pattern" not in data:
            raise PatternConfigError("Missing required setting 'pattern'")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Pattern name -> settings it reads, and the generator(s) they select
PATTERN_GENERATORS: Dict[str, Dict[str, Any]] = {
    # Straight wipe in one direction
    "wipe": {
        "extra_controls": ["direction"],
        "extra_args": ["droop"],
        "rng": True,
        "generator": {
            "row": pt.RowPattern,
            "column": pt.ColumnPattern,
            "diagonal": pt.DiagonalPattern,
        },
    },
    # Expands from two adjacent corners, like stage curtains
    "curtain": {
        "extra_controls": ["direction"],
        "generator": {
            "row": pt.RowCurtainPattern,
            "column": pt.ColumnCurtainPattern,
            "diagonal": pt.DiagonalCurtainPattern,
        },
    },
    # Closes from two opposite sides or corners
    "shutter": {
        "extra_controls": ["direction"],
        "generator": {
            "row": pt.RowShutterPattern,
            "column": pt.ColumnShutterPattern,
            "diagonal": pt.MainDiagonalShutterPattern,
        },
    },
    # Closes from all four corners
    "diamond": {"generator": pt.DiamondPattern},
    # Closes from all four edges
    "box": {"generator": pt.BoxPattern},
    "spiral": {
        "generator": pt.SpiralPattern,
        "extra_args": ["fill_delay", "loops", "arms", "angle"],
    },
    "random": {"generator": pt.RandomPattern, "extra_args": ["step_range"], "rng": True},
    # Random seeds growing outwards
    "infect": {"generator": pt.InfectPattern, "extra_args": ["density"], "rng": True},
}


def _validate(config: PatternConfig) -> None:
    if not 0.0 <= config.droop <= 1.0:
        raise PatternConfigError(f"'droop' must be in [0, 1], got {config.droop}")
    if not 1.0 <= config.fill_delay <= 10.0:
        raise PatternConfigError(f"'fill_delay' must be in [1, 10], got {config.fill_delay}")
    if config.loops < 0.25:
        raise PatternConfigError(f"'loops' must be at least 0.25, got {config.loops}")
    if config.arms < 1:
        raise PatternConfigError(f"'arms' must be at least 1, got {config.arms}")
    if not 0.0 <= config.angle <= 1.0:
        raise PatternConfigError(f"'angle' must be in [0, 1] turns, got {config.angle}")
    if config.step_range < 1:
        raise PatternConfigError(f"'step_range' must be at least 1, got {config.step_range}")
    if not 0.0 < config.density <= 1.0:
        raise PatternConfigError(f"'density' must be in (0, 1], got {config.density}")
    if config.interlace < 1:
        raise PatternConfigError(f"'interlace' must be at least 1, got {config.interlace}")


def build_pattern(
    row_count: int,
    column_count: int,
    config: PatternConfig | dict,
    rng: np.random.Generator | None = None,
) -> pt.PatternGenerator:
    """
    Construct the generator a config describes and apply its wrappers.

    Wrappers go on in a fixed order: interlace, reflect, reverse, mirror,
    flip. Reflect has to precede reverse or the reversal would be folded
    away.
    """
    if isinstance(config, dict):
        config = PatternConfig.from_dict(config)

    generator_def = PATTERN_GENERATORS.get(config.pattern)
    if generator_def is None:
        raise PatternConfigError(
            f"Unknown pattern '{config.pattern}'; expected one of "
            f"{', '.join(PATTERN_GENERATORS)}"
        )
    _validate(config)

    generator_tree = generator_def["generator"]
    for key in generator_def.get("extra_controls", []):
        value = getattr(config, key)
        if value is None:
            raise PatternConfigError(f"Pattern '{config.pattern}' requires '{key}'")
        generator_tree = generator_tree.get(value)
        if generator_tree is None:
            raise PatternConfigError(f"Can't find a generator for {key} = {value!r}")

    extra_args = [getattr(config, key) for key in generator_def.get("extra_args", [])]
    kwargs = {}
    if generator_def.get("rng"):
        kwargs["rng"] = rng if rng is not None else utils.make_rng(config.seed)

    generator = generator_tree(row_count, column_count, *extra_args, **kwargs)

    if config.interlace > 1:
        generator = pt.PatternInterlaced(generator, config.interlace)
    if config.reflect:
        generator = pt.PatternReflected(generator)
    if config.reverse:
        generator = pt.PatternReversed(generator)
    if config.mirror:
        generator = pt.PatternMirrored(generator)
    if config.flip:
        generator = pt.PatternFlipped(generator)
    return generator


__all__ = ["PatternConfig", "PatternConfigError", "PATTERN_GENERATORS", "build_pattern"]
