# tests/test_mask.py
import numpy as np
import pytest

from particle_wipe import patterns as pt
from particle_wipe.catalog import PatternConfig, PatternConfigError
from particle_wipe.mask import (
    MaskConfig,
    MaskGenerator,
    decode_mask,
    encode_mask,
    generate_mask,
    run_model,
)
from particle_wipe.particles import ParticleField, preset_particle
from particle_wipe.profile import build_growth_profile


def small_config(**overrides):
    settings = {
        "width": 32,
        "height": 18,
        "rows": 3,
        "columns": 4,
        "delay": 0.5,
        "particle": "diamond",
        "particle_size": 16,
        "verbose": False,
        "pattern": {"pattern": "diamond"},
    }
    settings.update(overrides)
    return MaskConfig.from_dict(settings)


def test_encode_digits():
    values = np.array([[0.0, 0.5], [0.25 + 1 / 512, 1.0]])
    pixels = encode_mask(values)
    assert pixels.dtype == np.uint8
    assert pixels.shape == (2, 2, 4)
    assert np.all(pixels[..., 3] == 255)
    assert tuple(pixels[0, 0]) == (0, 0, 0, 255)
    assert tuple(pixels[0, 1]) == (128, 0, 0, 255)
    assert tuple(pixels[1, 0]) == (64, 128, 0, 255)
    # 1.0 saturates every digit
    assert tuple(pixels[1, 1]) == (255, 255, 255, 255)


def test_encode_clamps_out_of_range_and_nan():
    pixels = encode_mask(np.array([-0.5, 1.7, np.nan]))
    assert tuple(pixels[0]) == (0, 0, 0, 255)
    assert tuple(pixels[1]) == (255, 255, 255, 255)
    assert tuple(pixels[2]) == (0, 0, 0, 255)


def test_decode_recovers_value():
    values = np.random.default_rng(0).uniform(0.0, 1.0, size=(5, 7))
    decoded = decode_mask(encode_mask(values))
    assert np.all(decoded <= values)
    assert np.all(values - decoded < 2.0 ** -24)


def test_coarse_channel_orders_pixels():
    values = np.linspace(0.0, 0.99, 50)
    pixels = encode_mask(values)
    assert np.all(np.diff(pixels[:, 0].astype(int)) >= 0)
    assert np.array_equal(pixels[:, 0], np.floor(values * 256).astype(np.uint8))


def test_two_by_two_grid_with_point_particle_is_constant():
    particle = ParticleField(np.ones((1, 1)))
    result = generate_mask(particle, pt.RowPattern(2, 2), 2, 2, 0.0)
    assert result.pixels.shape == (2, 2, 4)
    assert np.all(result.values == result.values[0, 0])
    assert np.all(np.isfinite(result.values))


def test_single_cell_full_particle_reveals_within_one_growth():
    particle = ParticleField(np.ones((5, 5)))
    result = generate_mask(particle, pt.RowPattern(1, 1), 5, 5, 0.0)
    assert result.meta["total_time"] == 1
    assert result.values[2, 2] == 0.0
    assert result.values.min() >= 0.0
    assert result.values.max() == pytest.approx(1.0)


def test_row_wipe_reveals_rows_in_order():
    particle = preset_particle("diamond", 16)
    result = generate_mask(particle, pt.RowPattern(4, 2), 40, 40, 1.0)
    assert result.meta["total_time"] == 4
    # Centers of the cells in column 0, top to bottom
    centers = [result.values[10 * r + 5, 5] for r in range(4)]
    assert all(a < b for a, b in zip(centers, centers[1:]))
    assert result.values.min() >= 0.0


def test_meta_and_overflow_tracking():
    result = generate_mask(preset_particle("circle", 16), pt.DiamondPattern(3, 3), 30, 30, 0.5)
    meta = result.meta
    assert meta["max_step"] == 2
    assert meta["total_time"] == pytest.approx(2 * 0.5 + 1)
    assert meta["observed_step_range"] == (0.0, 2.0)
    assert meta["overflow_fraction"] == pytest.approx(np.mean(result.values > 1.0))
    assert decode_mask(result.pixels).max() <= 1.0


def test_uneven_cell_sizes():
    result = generate_mask(preset_particle("star", 16), pt.BoxPattern(3, 4), 31, 17, 0.3)
    assert result.pixels.shape == (17, 31, 4)
    assert np.all(np.isfinite(result.values))


def test_invalid_arguments():
    particle = preset_particle("circle", 8)
    pattern = pt.RowPattern(2, 2)
    with pytest.raises(ValueError):
        generate_mask(particle, pattern, 10, 10, -0.1)
    with pytest.raises(ValueError):
        generate_mask(particle, pattern, 10, 10, 1.5)
    with pytest.raises(ValueError):
        generate_mask(particle, pattern, 0, 10, 0.5)


def test_profile_must_match_cell_size():
    particle = preset_particle("circle", 8)
    profile = build_growth_profile(particle, 3, 3)
    with pytest.raises(ValueError, match="Growth profile"):
        generate_mask(particle, pt.RowPattern(2, 2), 10, 10, 0.5, profile=profile)


def test_verbose_output(capsys):
    generate_mask(preset_particle("circle", 8), pt.RowPattern(2, 2), 8, 8, 0.5, verbose=True)
    out = capsys.readouterr().out
    assert "[mask]" in out
    assert "[profile]" in out


def test_generator_requires_run():
    generator = MaskGenerator(small_config())
    with pytest.raises(RuntimeError):
        generator.get_pixels()


def test_generator_reuses_profile_across_runs():
    generator = MaskGenerator(small_config())
    first = generator.run()
    profile = generator.profile()
    second = generator.run(pt.RowPattern(3, 4))
    assert generator.profile() is profile
    assert first.pixels.shape == second.pixels.shape == (18, 32, 4)
    assert generator.get_pixels() is second.pixels
    assert second.meta["pattern_config"]["pattern"] == "diamond"


def test_generator_rejects_mismatched_pattern():
    generator = MaskGenerator(small_config())
    with pytest.raises(ValueError, match="does not match"):
        generator.run(pt.RowPattern(2, 2))


def test_generator_accepts_particle_array():
    generator = MaskGenerator(small_config(), particle=np.ones((4, 4)))
    assert generator.particle.opacity.shape == (4, 4)
    assert generator.run().pixels.shape == (18, 32, 4)


def test_config_from_dict():
    config = MaskConfig.from_dict({"rows": 2, "pattern": {"pattern": "spiral", "loops": 2}})
    assert isinstance(config.pattern, PatternConfig)
    assert config.pattern.loops == 2
    assert MaskConfig.from_dict({"pattern": "box"}).pattern.pattern == "box"
    assert MaskConfig.from_dict({}).pattern.direction == "row"
    with pytest.raises(PatternConfigError):
        MaskConfig.from_dict({"colour": "red"})


def test_run_model():
    result = run_model(
        {
            "width": 24,
            "height": 16,
            "rows": 2,
            "columns": 3,
            "delay": 0.25,
            "particle": "heart",
            "particle_size": 16,
            "verbose": False,
            "pattern": {"pattern": "infect", "density": 0.5, "seed": 3},
        }
    )
    assert result.pixels.shape == (16, 24, 4)
    assert result.meta["total_time"] == pytest.approx(result.meta["max_step"] * 0.25 + 1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
