#!/usr/bin/env python3
"""
Single Mask Generator

CLI for building one transition mask, either from a JSON/TOML parameter
file or from flags. Flags given alongside a parameter file override it.
Writes the encoded mask as PNG and the full result (raw values, metadata)
as .npz.
"""

import argparse
import sys
import time
from pathlib import Path

# Add src to path
SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from particle_wipe import PATTERN_GENERATORS, MaskConfig, MaskGenerator, utils


def build_config(args) -> MaskConfig:
    """Merge the parameter file (if any) with the flags that were set."""
    params = utils.load_params(args.params) if args.params else {}
    pattern = params.pop("pattern", None) or {}
    pattern = {"pattern": pattern} if isinstance(pattern, str) else dict(pattern)

    for key in ("width", "height", "rows", "columns", "delay", "particle", "particle_size"):
        value = getattr(args, key)
        if value is not None:
            params[key] = value

    pattern_flags = {
        "pattern": args.pattern,
        "direction": args.direction,
        "droop": args.droop,
        "fill_delay": args.fill_delay,
        "loops": args.loops,
        "arms": args.arms,
        "angle": args.angle,
        "step_range": args.step_range,
        "density": args.density,
        "seed": args.seed,
        "interlace": args.interlace,
    }
    for key, value in pattern_flags.items():
        if value is not None:
            pattern[key] = value
    for key in ("reflect", "reverse", "mirror", "flip"):
        if getattr(args, key):
            pattern[key] = True

    pattern.setdefault("pattern", "wipe")
    if pattern["pattern"] in ("wipe", "curtain", "shutter"):
        pattern.setdefault("direction", "row")
    params["pattern"] = pattern
    params["verbose"] = not args.quiet
    return MaskConfig.from_dict(params)


def main():
    parser = argparse.ArgumentParser(
        description="Generate a particle wipe transition mask",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--params", type=str, default=None, help="JSON or TOML parameter file")
    parser.add_argument("--width", type=int, default=None, help="Mask width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Mask height in pixels")
    parser.add_argument("--rows", type=int, default=None, help="Number of grid rows")
    parser.add_argument("--columns", type=int, default=None, help="Number of grid columns")
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Fraction of one cell's growth before the next step starts (0-1)",
    )
    parser.add_argument(
        "--particle",
        type=str,
        default=None,
        help="Preset particle (diamond, circle, heart, star) or image path",
    )
    parser.add_argument("--particle-size", dest="particle_size", type=int, default=None)

    parser.add_argument("--pattern", choices=sorted(PATTERN_GENERATORS), default=None)
    parser.add_argument("--direction", choices=["row", "column", "diagonal"], default=None)
    parser.add_argument("--droop", type=float, default=None)
    parser.add_argument("--fill-delay", dest="fill_delay", type=float, default=None)
    parser.add_argument("--loops", type=float, default=None)
    parser.add_argument("--arms", type=int, default=None)
    parser.add_argument("--angle", type=float, default=None, help="Spiral start angle in turns")
    parser.add_argument("--step-range", dest="step_range", type=int, default=None)
    parser.add_argument("--density", type=float, default=None)
    parser.add_argument("--seed", type=int, default=None, help="Seed for random patterns")
    parser.add_argument("--interlace", type=int, default=None)
    parser.add_argument("--reflect", action="store_true")
    parser.add_argument("--reverse", action="store_true")
    parser.add_argument("--mirror", action="store_true")
    parser.add_argument("--flip", action="store_true")

    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output .png path (auto-generated if not provided); the .npz goes beside it",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")

    args = parser.parse_args()
    config = build_config(args)

    print(
        f"Generating {config.width}x{config.height} mask: pattern={config.pattern.pattern}, "
        f"grid={config.rows}x{config.columns}, delay={config.delay}"
    )
    start_time = time.time()
    result = MaskGenerator(config).run()
    elapsed_time = time.time() - start_time

    if args.out is None:
        timestamp = utils.now_str()
        output_dir = Path("results")
        output_dir.mkdir(exist_ok=True)
        args.out = str(output_dir / f"{config.pattern.pattern}_{config.rows}x{config.columns}_{timestamp}.png")

    out_png = Path(args.out)
    utils.save_mask_png(out_png, result.pixels)
    utils.save_mask_result(out_png.with_suffix(".npz"), result)

    print("\nMask generated.")
    print(f"   Time elapsed: {elapsed_time:.2f} seconds")
    print(f"   Total time units: {result.meta['total_time']:.3f}")
    print(f"   Mask saved to: {out_png}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
