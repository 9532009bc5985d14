# tests/test_particles.py
import numpy as np
import pytest
from PIL import Image

from particle_wipe.particles import (
    PRESET_PARTICLES,
    ParticleField,
    load_particle,
    preset_particle,
    resolve_particle,
)


def test_from_array_scales_bytes():
    field = ParticleField.from_array(np.array([[0, 255], [128, 255]], dtype=np.uint8))
    assert field.opacity.dtype == np.float64
    assert field.opacity[0, 0] == 0.0
    assert field.opacity[0, 1] == 1.0
    assert field.opacity[1, 0] == pytest.approx(128 / 255)
    assert (field.width, field.height) == (2, 2)


def test_from_array_keeps_unit_floats_and_bools():
    field = ParticleField.from_array(np.array([[0.0, 0.25], [0.5, 1.0]]))
    assert field.opacity[0, 1] == 0.25
    assert ParticleField.from_array(np.ones((3, 2), dtype=bool)).coverage == 1.0


def test_from_array_keeps_integer_zero_one_masks():
    field = ParticleField.from_array(np.ones((3, 3), dtype=int))
    assert field.coverage == 1.0
    field = ParticleField.from_array(np.array([[0, 1], [1, 0]]))
    assert field.opacity.tolist() == [[0.0, 1.0], [1.0, 0.0]]


def test_from_array_reads_alpha_channel():
    rgba = np.zeros((4, 3, 4), dtype=np.uint8)
    rgba[..., :3] = 200
    rgba[1, 1, 3] = 255
    field = ParticleField.from_array(rgba)
    assert field.opacity.shape == (4, 3)
    assert field.opacity.sum() == 1.0


def test_from_array_rejects_bad_shapes():
    with pytest.raises(ValueError):
        ParticleField.from_array(np.zeros((4, 4, 3)))
    with pytest.raises(ValueError):
        ParticleField(np.zeros(5))
    with pytest.raises(ValueError):
        ParticleField(np.zeros((0, 3)))


def test_field_is_read_only_and_leaves_input_alone():
    source = np.ones((2, 2))
    field = ParticleField(source)
    with pytest.raises(ValueError):
        field.opacity[0, 0] = 0.0
    source[0, 0] = 0.0
    assert field.opacity[0, 0] == 1.0


def test_presets_render_filled_centers():
    for name in PRESET_PARTICLES:
        field = preset_particle(name, 32)
        assert field.opacity.shape == (32, 32)
        assert field.opacity[16, 16] == 1.0, name
        assert 0.0 < field.coverage < 1.0, name


def test_diamond_corners_are_clear():
    field = preset_particle("diamond", 20, 10)
    assert field.opacity.shape == (10, 20)
    for r, c in ((0, 0), (0, 19), (9, 0), (9, 19)):
        assert field.opacity[r, c] == 0.0


def test_unknown_preset():
    with pytest.raises(ValueError, match="Unknown preset"):
        preset_particle("hexagon")


def test_load_particle_uses_alpha(tmp_path):
    rgba = np.zeros((6, 5, 4), dtype=np.uint8)
    rgba[2:4, 1:4] = (10, 20, 30, 255)
    path = tmp_path / "particle.png"
    Image.fromarray(rgba).save(path)

    field = load_particle(path)
    assert field.opacity.shape == (6, 5)
    assert field.opacity.sum() == 6.0


def test_load_particle_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_particle(tmp_path / "nope.png")


def test_resolve_particle():
    field = preset_particle("circle", 8)
    assert resolve_particle(field) is field
    assert resolve_particle("star", 12).opacity.shape == (12, 12)
    assert resolve_particle(np.ones((3, 4))).opacity.shape == (3, 4)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
