# src/scripts/plot_pattern.py
import argparse
import os
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.append(str(SRC))

from particle_wipe import MaskConfig, MaskGenerator, decode_mask, utils  # type: ignore[import]
from particle_wipe.patterns import pattern_preview  # type: ignore[import]


def format_title(meta):
    """One-line summary of a mask's settings from its metadata."""
    if not meta:
        return None
    parts = [str(meta.get("pattern", "?"))]
    delay = meta.get("delay")
    if delay is not None:
        parts.append(f"delay={delay:.2f}")
    total_time = meta.get("total_time")
    if total_time is not None:
        parts.append(f"T={total_time:.2f}")
    overflow = meta.get("overflow_fraction")
    if overflow:
        parts.append(f"overflow={overflow:.2%}")
    return " | ".join(parts)


def render(panels, title=None, output=None, cmap="gray", dpi=150, show=False):
    """
    Draw greyscale panels side by side.

    Args:
        panels: List of (label, 2D array) pairs
        title: Optional figure title
        output: Output file path (None to skip saving)
        cmap: Matplotlib colormap name
        dpi: DPI for output
        show: Open an interactive window
    """
    fig, axes = plt.subplots(1, len(panels), figsize=(5 * len(panels), 4))
    axes = np.atleast_1d(axes)
    for ax, (label, image) in zip(axes, panels):
        ax.imshow(image, interpolation="nearest", cmap=cmap)
        ax.set_title(label)
        ax.axis("off")

    if title:
        fig.suptitle(title)

    if output:
        os.makedirs(os.path.dirname(output) if os.path.dirname(output) else ".", exist_ok=True)
        plt.savefig(output, dpi=dpi, bbox_inches="tight", pad_inches=0.1)
        print(f"Saved figure to {output}")

    if show:
        plt.show()
    plt.close(fig)


def panels_from_config(config: MaskConfig):
    """Cell order, growth stamp and mask for a freshly generated mask."""
    generator = MaskGenerator(config)
    result = generator.run()
    pattern = generator.pattern
    return result.meta, [
        ("cell order", pattern_preview(pattern, config.width, config.height, verbose=config.verbose)),
        ("growth stamp", generator.profile().stamp_image()),
        ("mask", decode_mask(result.pixels)),
    ]


def panels_from_file(path):
    """Mask, and its unclamped reveal times when saved, from a make_mask.py output."""
    if Path(path).suffix.lower() == ".png":
        return {}, [("mask", decode_mask(utils.load_mask_png(path)))]
    result = utils.load_mask_result(path)
    panels = [("mask", decode_mask(result.pixels))]
    if result.values is not None:
        panels.append(("raw reveal time", result.values))
    return result.meta, panels


def main():
    parser = argparse.ArgumentParser(
        description="Plot a pattern's cell order, growth stamp and resulting mask"
    )
    parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help="Saved .npz or .png mask to plot instead of generating one",
    )
    parser.add_argument("--params", default=None, help="JSON or TOML parameter file")
    parser.add_argument("--out", default=None, help="Output image path (PNG)")
    parser.add_argument("--cmap", default="gray", help="Matplotlib colormap (default: gray)")
    parser.add_argument("--dpi", type=int, default=150)
    parser.add_argument("--show", action="store_true", help="Show plot interactively")
    args = parser.parse_args()

    if args.file is not None:
        if not os.path.exists(args.file):
            print(f"Error: file not found: {args.file}")
            return 1
        meta, panels = panels_from_file(args.file)
        default_out = Path(args.file).with_name(Path(args.file).stem + "_plot.png")
    else:
        params = utils.load_params(args.params) if args.params else {}
        meta, panels = panels_from_config(MaskConfig.from_dict(params))
        default_out = Path("results") / f"pattern_{utils.now_str()}.png"

    render(
        panels,
        title=format_title(meta),
        output=args.out or str(default_out),
        cmap=args.cmap,
        dpi=args.dpi,
        show=args.show,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
