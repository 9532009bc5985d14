#!/usr/bin/env python3
"""
Pattern Gallery Generator

Builds one mask per catalog pattern (every direction of the directional
ones) in parallel, for comparing transitions side by side.
"""

import argparse
import json
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List

# Add src to path
SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from particle_wipe import PATTERN_GENERATORS, MaskConfig, MaskGenerator, utils


def gallery_patterns(seed: int) -> List[Dict[str, Any]]:
    """One pattern config per catalog entry and direction."""
    configs = []
    for name, generator_def in PATTERN_GENERATORS.items():
        if "direction" in generator_def.get("extra_controls", []):
            for direction in generator_def["generator"]:
                configs.append({"pattern": name, "direction": direction})
        else:
            configs.append({"pattern": name})
    for config in configs:
        if PATTERN_GENERATORS[config["pattern"]].get("rng"):
            config["seed"] = seed
    return configs


def run_single_mask(settings: Dict[str, Any], output_path: str) -> Dict[str, Any]:
    """
    Generate and save one mask.

    Called in worker processes by ProcessPoolExecutor, so it lives at
    module level for pickling.
    """
    config = MaskConfig.from_dict(settings)
    result = MaskGenerator(config).run()
    utils.save_mask_png(output_path, result.pixels)
    return {
        "output_path": output_path,
        "pattern": settings["pattern"],
        "max_step": result.meta["max_step"],
        "overflow_fraction": result.meta["overflow_fraction"],
        "success": True,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Generate one mask for every catalog pattern",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=320)
    parser.add_argument("--height", type=int, default=180)
    parser.add_argument("--rows", type=int, default=9)
    parser.add_argument("--columns", type=int, default=16)
    parser.add_argument("--delay", type=float, default=0.5)
    parser.add_argument("--particle", type=str, default="diamond")
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of parallel processes (default: 1)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Seed for the random patterns")

    args = parser.parse_args()

    timestamp = utils.now_str()
    gallery_dir = Path("results") / "gallery" / f"{args.particle}_{args.rows}x{args.columns}_{timestamp}"
    gallery_dir.mkdir(parents=True, exist_ok=True)

    manifest = {
        "width": args.width,
        "height": args.height,
        "rows": args.rows,
        "columns": args.columns,
        "delay": args.delay,
        "particle": args.particle,
        "seed": args.seed,
        "timestamp": timestamp,
    }

    tasks = []
    for pattern in gallery_patterns(args.seed):
        settings = {
            "width": args.width,
            "height": args.height,
            "rows": args.rows,
            "columns": args.columns,
            "delay": args.delay,
            "particle": args.particle,
            "pattern": pattern,
            "verbose": False,
        }
        stem = "_".join([pattern["pattern"]] + ([pattern["direction"]] if "direction" in pattern else []))
        tasks.append((settings, str(gallery_dir / f"{stem}.png")))

    print(f"Gallery generation started: {len(tasks)} masks, {args.jobs} job(s)")
    print(f"  Output directory: {gallery_dir}")

    start_time = time.time()
    results = []
    failed = []

    with ProcessPoolExecutor(max_workers=args.jobs) as executor:
        future_to_task = {executor.submit(run_single_mask, *task): task for task in tasks}

        completed = 0
        for future in as_completed(future_to_task):
            completed += 1
            task = future_to_task[future]
            try:
                result = future.result()
                results.append(result)
                print(f"  [{completed}/{len(tasks)}] {Path(result['output_path']).name}")
            except Exception as e:
                failed.append({"task": task[1], "error": str(e)})
                print(f"  [{completed}/{len(tasks)}] FAILED: {task[1]} - {e}")

    elapsed_time = time.time() - start_time

    manifest["results"] = {
        "total": len(tasks),
        "successful": len(results),
        "failed": len(failed),
        "elapsed_seconds": elapsed_time,
    }
    manifest["masks"] = results
    if failed:
        manifest["failures"] = failed

    manifest_path = gallery_dir / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print()
    print("=" * 60)
    print("Gallery generation completed!")
    print(f"  Successful: {len(results)}/{len(tasks)}")
    print(f"  Total time: {elapsed_time:.2f} seconds")
    print(f"  Manifest: {manifest_path}")
    print("=" * 60)

    return 0 if len(failed) == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
