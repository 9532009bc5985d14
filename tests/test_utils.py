# tests/test_utils.py
import json

import numpy as np
import pytest

from particle_wipe import utils


def test_make_rng_is_reproducible():
    assert np.array_equal(utils.make_rng(3).integers(0, 100, 10), utils.make_rng(3).integers(0, 100, 10))


def test_mask_png_round_trip(tmp_path):
    pixels = np.random.default_rng(1).integers(0, 256, size=(6, 9, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    path = tmp_path / "out" / "mask.png"
    utils.save_mask_png(path, pixels)
    assert np.array_equal(utils.load_mask_png(path), pixels)


def test_load_mask_png_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        utils.load_mask_png(tmp_path / "missing.png")


def test_mask_result_round_trip(tmp_path):
    result = utils.MaskResult(
        pixels=np.zeros((2, 3, 4), dtype=np.uint8),
        values=np.linspace(0.0, 1.2, 6).reshape(2, 3),
        meta={"pattern": "RowPattern(2x3, max_step=1)", "total_time": 1.5, "steps": np.arange(4)},
    )
    path = tmp_path / "mask.npz"
    utils.save_mask_result(path, result)

    loaded = utils.load_mask_result(path)
    assert np.array_equal(loaded.pixels, result.pixels)
    assert np.allclose(loaded.values, result.values)
    assert loaded.meta["pattern"] == "RowPattern(2x3, max_step=1)"
    assert loaded.meta["total_time"] == 1.5
    assert np.array_equal(loaded.meta["steps"], np.arange(4))


def test_save_mask_result_without_overwrite(tmp_path):
    path = tmp_path / "mask.npz"
    result = utils.MaskResult(pixels=np.zeros((1, 1, 4), dtype=np.uint8))
    utils.save_mask_result(path, result)
    with pytest.raises(FileExistsError):
        utils.save_mask_result(path, result, overwrite=False)


def test_ensure_meta():
    result = utils.MaskResult()
    result.ensure_meta()["a"] = 1
    assert result.meta == {"a": 1}


def test_load_params_json_and_toml(tmp_path):
    json_path = tmp_path / "params.json"
    json_path.write_text(json.dumps({"rows": 3, "pattern": {"pattern": "box"}}))
    assert utils.load_params(json_path) == {"rows": 3, "pattern": {"pattern": "box"}}

    toml_path = tmp_path / "params.toml"
    toml_path.write_text('rows = 3\ndelay = 0.5\n\n[pattern]\npattern = "spiral"\nloops = 2\n')
    assert utils.load_params(toml_path) == {
        "rows": 3,
        "delay": 0.5,
        "pattern": {"pattern": "spiral", "loops": 2},
    }


def test_load_params_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        utils.load_params(tmp_path / "missing.json")
    bad = tmp_path / "params.yaml"
    bad.write_text("rows: 3\n")
    with pytest.raises(ValueError):
        utils.load_params(bad)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
