import numpy as np
import pytest

from photobooth.pipeline.presets import OVERLAY_PROFILES
from photobooth.pipeline.raster import solid
from photobooth.pipeline.textures import (
    OverlayProfile,
    apply_overlays,
    dust_layers,
    overlay_opacities,
)


def test_bw_uses_grain_and_vignette_only():
    opacity = overlay_opacities(OVERLAY_PROFILES["bw"], intensity=1.0, grain=1.0)
    assert opacity["dust"] == 0
    assert opacity["light_leak"] == 0
    assert opacity["grain"] > 0
    assert opacity["vignette"] > 0


def test_vintage_uses_every_layer():
    opacity = overlay_opacities(OVERLAY_PROFILES["vintage"], intensity=1.0, grain=1.0)
    assert all(value > 0 for value in opacity.values())


def test_color_has_no_overlays():
    assert OVERLAY_PROFILES["color"].is_empty


@pytest.mark.parametrize("name", ["vintage", "retro", "fadedfilm"])
def test_opacities_scale_linearly_with_intensity(name):
    profile = OVERLAY_PROFILES[name]
    full = overlay_opacities(profile, intensity=1.0, grain=1.0)
    half = overlay_opacities(profile, intensity=0.5, grain=0.5)
    for layer, value in full.items():
        assert half[layer] == pytest.approx(value / 2)


def test_zero_controls_leave_image_untouched(gradient, rng):
    out = apply_overlays(gradient, OVERLAY_PROFILES["vintage"], intensity=0.0, grain=0.0, rng=rng)
    np.testing.assert_array_equal(out, gradient)


def test_grain_is_monochrome(rng):
    gray = solid(64, 48, (128, 128, 128))
    out = apply_overlays(gray, OverlayProfile(grain_amplitude=0.1), intensity=1.0, grain=1.0, rng=rng)
    np.testing.assert_array_equal(out[:, :, 0], out[:, :, 1])
    np.testing.assert_array_equal(out[:, :, 1], out[:, :, 2])
    assert np.abs(out.astype(int) - 128).max() <= 26
    assert not (out == 128).all()


def test_dust_grows_with_area():
    small_light, small_dark = dust_layers(100, 100, np.random.default_rng(3))
    big_light, big_dark = dust_layers(600, 600, np.random.default_rng(3))
    small = np.count_nonzero((small_light > 0) | (small_dark > 0))
    big = np.count_nonzero((big_light > 0) | (big_dark > 0))
    assert big > small > 0


def test_vignette_darkens_corners_only(rng):
    image = solid(200, 100, (200, 200, 200))
    out = apply_overlays(image, OverlayProfile(vignette=1.0), intensity=1.0, grain=0.0, rng=rng)
    assert out[50, 100].tolist() == [200, 200, 200]
    assert out[0, 0, 0] < 100


def test_light_leak_brightens_top_left(rng):
    image = solid(200, 100, (100, 100, 100))
    out = apply_overlays(image, OverlayProfile(light_leak=1.0), intensity=1.0, grain=0.0, rng=rng)
    assert out[0, 0, 0] > 100
    assert (out >= image).all()


def test_seeded_overlays_are_reproducible(gradient):
    profile = OVERLAY_PROFILES["vintage"]
    a = apply_overlays(gradient, profile, 1.0, 1.0, np.random.default_rng(42))
    b = apply_overlays(gradient, profile, 1.0, 1.0, np.random.default_rng(42))
    np.testing.assert_array_equal(a, b)
