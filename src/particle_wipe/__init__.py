"""
Particle Wipe - transition mask generator

This package builds RGBA masks for image-to-image transitions in which the
incoming image is revealed by growing particles, one per grid cell:
- patterns: cell-order generators and wrappers (when each cell starts)
- profile: per-pixel growth scale for a particle shape (how it spreads)
- mask: compositor combining both into an encoded reveal-time mask
"""

from .catalog import PATTERN_GENERATORS, PatternConfig, PatternConfigError, build_pattern
from .mask import MaskConfig, MaskGenerator, decode_mask, encode_mask, generate_mask
from .particles import ParticleField, load_particle, preset_particle
from .profile import GrowthProfile, build_growth_profile
from . import patterns
from . import utils

__all__ = [
    # Compositor
    "MaskGenerator",
    "generate_mask",
    "encode_mask",
    "decode_mask",
    # Configuration classes
    "MaskConfig",
    "PatternConfig",
    "PatternConfigError",
    "PATTERN_GENERATORS",
    "build_pattern",
    # Particles and profiles
    "ParticleField",
    "load_particle",
    "preset_particle",
    "GrowthProfile",
    "build_growth_profile",
    # Modules
    "patterns",
    "utils",
]
