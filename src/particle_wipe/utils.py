# src/particle_wipe/utils.py
from __future__ import annotations

import json
import os
import time
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
from PIL import Image


@dataclass
class MaskResult:
    """Common container for a generated mask."""

    pixels: Optional[np.ndarray] = None
    values: Optional[np.ndarray] = None
    meta: Optional[Dict[str, Any]] = None

    def ensure_meta(self) -> Dict[str, Any]:
        if self.meta is None:
            self.meta = {}
        return self.meta


def make_rng(seed=None) -> np.random.Generator:
    """
    Random generator for the random patterns; a fixed seed reproduces a mask.
    An existing Generator is passed through unchanged.
    """
    return np.random.default_rng(seed)


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def save_mask_png(path: str | os.PathLike[str], pixels: np.ndarray) -> None:
    """Write an RGBA uint8 mask to an image file (PNG keeps every channel exact)."""
    out_dir = Path(path).parent
    out_dir.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(path)


def load_mask_png(path: str | os.PathLike[str]) -> np.ndarray:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing mask image: {path}")
    with Image.open(path) as img:
        return np.array(img.convert("RGBA"))


def save_mask_result(
    path: str | os.PathLike[str], result: MaskResult, *, overwrite: bool = True
) -> None:
    """Serialize a MaskResult to a compressed .npz."""
    out_dir = Path(path).parent
    out_dir.mkdir(parents=True, exist_ok=True)
    out: Dict[str, Any] = {}
    if result.pixels is not None:
        out["pixels"] = np.asarray(result.pixels, dtype=np.uint8)
    if result.values is not None:
        out["values"] = np.asarray(result.values, dtype=np.float64)

    # Arrays in the metadata go to the top level for easier loading
    meta = result.meta or {}
    meta_clean = {}
    for key, value in meta.items():
        if isinstance(value, np.ndarray):
            out[key] = value
        else:
            meta_clean[key] = value
    out["meta"] = meta_clean

    if not overwrite and Path(path).exists():
        raise FileExistsError(f"{path} already exists")
    np.savez_compressed(path, **out)


def load_mask_result(path: str | os.PathLike[str]) -> MaskResult:
    """Load a .npz written by `save_mask_result`."""
    data = np.load(path, allow_pickle=True)
    pixels = data["pixels"].astype(np.uint8) if "pixels" in data else None
    values = data["values"].astype(np.float64) if "values" in data else None
    meta: Dict[str, Any] = {}
    if "meta" in data:
        meta_raw = data["meta"]
        if hasattr(meta_raw, "item"):
            try:
                meta = meta_raw.item()
            except ValueError:
                meta = meta_raw
        else:
            meta = meta_raw
    for key in data.files:
        if key not in ("pixels", "values", "meta") and key not in meta:
            meta[key] = data[key]
    return MaskResult(pixels=pixels, values=values, meta=meta)


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load mask parameters from JSON or TOML.
    """
    path = str(path)
    if not Path(path).exists():
        raise FileNotFoundError(f"Missing parameter file: {path}")
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
