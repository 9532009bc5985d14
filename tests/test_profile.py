# tests/test_profile.py
import numpy as np
import pytest

from particle_wipe.particles import ParticleField, preset_particle
from particle_wipe.profile import build_growth_profile


def test_profile_covers_three_by_three_cells():
    profile = build_growth_profile(preset_particle("circle", 16), 6, 4)
    assert profile.shape == (12, 18)
    assert (profile.cell_width, profile.cell_height) == (6, 4)
    assert not profile.scales.flags.writeable


def test_exact_center_has_zero_scale():
    # Odd cell sizes put a pixel center exactly on the tile center
    profile = build_growth_profile(preset_particle("diamond", 16), 5, 5)
    assert profile.scales[7, 7] == 0.0
    assert profile.max_scale > 0.0


def test_values_are_finite_and_non_negative():
    for name in ("diamond", "circle", "heart", "star"):
        profile = build_growth_profile(preset_particle(name, 24), 7, 5)
        assert np.all(np.isfinite(profile.scales)), name
        assert profile.scales.min() >= 0.0, name


def test_non_decreasing_along_rays_from_center():
    profile = build_growth_profile(preset_particle("diamond", 16), 5, 5)
    scales = profile.scales
    center = 7
    # Right, down, and the main diagonal
    right = scales[center, center:]
    down = scales[center:, center]
    diagonal = np.array([scales[center + k, center + k] for k in range(8)])
    for ray in (right, down, diagonal):
        assert np.all(np.diff(ray) >= 0.0)


def test_every_integer_ray_is_non_decreasing():
    # A power-of-two particle size keeps the back-projected entry point
    # identical for every pixel along a ray
    profile = build_growth_profile(preset_particle("circle", 16), 9, 9)
    scales = profile.scales
    center = 13
    for dx in range(-3, 4):
        for dy in range(-3, 4):
            if dx == 0 and dy == 0:
                continue
            ray = []
            k = 0
            while 0 <= center + k * dy < scales.shape[0] and 0 <= center + k * dx < scales.shape[1]:
                ray.append(scales[center + k * dy, center + k * dx])
                k += 1
            assert np.all(np.diff(ray) >= 0.0), (dx, dy)


def test_box_particle_reaches_edge_pixels_at_box_scale():
    particle = ParticleField(np.ones((8, 8)))
    profile = build_growth_profile(particle, 8, 8)
    # Pixel (11, 11) sits half a pixel from the tile center on both axes
    assert profile.scales[11, 11] == pytest.approx(0.125)
    # Straight right of the center the first pixel hit is on the box edge
    assert profile.scales[12, 20] == pytest.approx(2 * 8.5 / 8)


def test_transparent_particle_gives_empty_profile():
    profile = build_growth_profile(ParticleField(np.zeros((6, 6))), 4, 4)
    assert profile.max_scale == 0.0
    assert not profile.scales.any()
    assert not profile.stamp_image().any()


def test_stamp_image():
    profile = build_growth_profile(preset_particle("circle", 16), 5, 5)
    stamp = profile.stamp_image()
    assert stamp.dtype == np.uint8
    assert stamp.shape == profile.shape
    assert stamp[7, 7] == 0
    assert stamp.max() > 0


def test_rejects_empty_cells():
    with pytest.raises(ValueError):
        build_growth_profile(preset_particle("circle", 8), 0, 4)


def test_verbose_reports(capsys):
    build_growth_profile(preset_particle("heart", 12), 3, 3, verbose=True)
    assert "[profile]" in capsys.readouterr().out


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
