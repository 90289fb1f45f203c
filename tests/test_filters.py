import numpy as np
import pytest

from photobooth.errors import UnknownFilter
from photobooth.pipeline.filters import (
    FilterTemplate,
    adjust_brightness,
    adjust_contrast,
    adjust_saturation,
    apply_filter,
    hue_rotation_matrix,
)
from photobooth.pipeline.presets import (
    FILTER_TEMPLATES,
    FilterKind,
    available_filters,
    resolve_filter,
)
from photobooth.pipeline.raster import luminance, solid


@pytest.mark.parametrize("name", sorted(FILTER_TEMPLATES))
def test_intensity_zero_is_bitwise_identity(name, gradient):
    out = apply_filter(gradient, FILTER_TEMPLATES[name], 0.0)
    assert out is not gradient
    np.testing.assert_array_equal(out, gradient)


def test_intensity_one_uses_template_constants():
    params = FILTER_TEMPLATES["vintage"].resolve(1.0)
    assert params.sepia == 0.35
    assert params.contrast == 0.90
    assert params.brightness == 0.95
    assert params.saturate == 0.70
    assert params.hue_rotate == -4


def test_fadedfilm_full_intensity_pixel():
    # sepia 0.2 -> (193.56, 109.88, 63.28)
    # brightness 1.1 -> (212.91, 120.87, 69.60)
    # contrast 0.8 -> (195.83, 122.20, 81.18)
    # saturate 0.6 around Y=139.54 -> (173.31, 129.13, 104.52)
    out = apply_filter(solid(2, 2, (200, 100, 50)), FILTER_TEMPLATES["fadedfilm"], 1.0)
    assert out[0, 0].tolist() == [173, 129, 105]


def test_brightness_runs_before_contrast():
    pixel = solid(1, 1, (200, 100, 50))
    out = apply_filter(pixel, FilterTemplate(brightness=1.2, contrast=1.3), 1.0)
    assert out[0, 0].tolist() == [255, 118, 40]

    swapped = adjust_brightness(adjust_contrast(pixel.astype(np.float32), 1.3), 1.2)
    assert np.rint(swapped)[0, 0].tolist() == [255, 110, 32]


def test_hue_rotation_keeps_luminance():
    pixel = solid(2, 2, (120, 100, 80))
    vintage = FILTER_TEMPLATES["vintage"]
    rotated = apply_filter(pixel, vintage, 1.0).astype(np.float32)
    unrotated = apply_filter(pixel, FilterTemplate(
        sepia=vintage.sepia,
        contrast=vintage.contrast,
        brightness=vintage.brightness,
        saturate=vintage.saturate,
    ), 1.0).astype(np.float32)
    assert luminance(rotated)[0, 0] == pytest.approx(luminance(unrotated)[0, 0], abs=1.0)


def test_intensity_zero_resolves_to_identity():
    for template in FILTER_TEMPLATES.values():
        assert template.resolve(0.0).is_identity


def test_half_intensity_blends_toward_identity():
    params = FILTER_TEMPLATES["retro"].resolve(0.5)
    assert params.contrast == pytest.approx(1.125)
    assert params.hue_rotate == pytest.approx(5.0)
    assert params.sepia == pytest.approx(0.09)


@pytest.mark.parametrize("intensity", [-0.1, 1.5])
def test_out_of_range_intensity_rejected(intensity):
    with pytest.raises(ValueError):
        FILTER_TEMPLATES["vintage"].resolve(intensity)


def test_contrast_maps_extremes_toward_middle():
    template = FilterTemplate(contrast=0.9)
    white = apply_filter(solid(4, 4, (255, 255, 255)), template, 1.0)
    black = apply_filter(solid(4, 4, (0, 0, 0)), template, 1.0)
    assert white[0, 0].tolist() == [242, 242, 242]
    assert black[0, 0].tolist() == [13, 13, 13]


def test_brightness_clamps_at_white():
    out = apply_filter(solid(2, 2, (250, 128, 10)), FilterTemplate(brightness=1.5), 1.0)
    assert out[0, 0].tolist() == [255, 192, 15]


def test_full_sepia_tints_gray_warm():
    out = apply_filter(solid(2, 2, (100, 100, 100)), FilterTemplate(sepia=1.0), 1.0)
    r, g, b = out[0, 0].tolist()
    assert r > g > b


def test_saturation_leaves_gray_untouched():
    gray = np.full((2, 2, 3), 77.0, dtype=np.float32)
    np.testing.assert_allclose(adjust_saturation(gray, 1.4), gray, atol=1e-3)


def test_zero_hue_rotation_is_identity_matrix():
    np.testing.assert_allclose(hue_rotation_matrix(0), np.eye(3), atol=1e-5)


def test_alpha_channel_passes_through(gradient):
    alpha = np.full(gradient.shape[:2], 90, dtype=np.uint8)
    rgba = np.dstack([gradient, alpha])
    out = apply_filter(rgba, FILTER_TEMPLATES["vintage"], 1.0)
    assert out.shape == rgba.shape
    np.testing.assert_array_equal(out[:, :, 3], alpha)


def test_bw_is_grayscale(gradient):
    out = resolve_filter("bw").grade(gradient, 1.0)
    np.testing.assert_array_equal(out[:, :, 0], out[:, :, 1])
    np.testing.assert_array_equal(out[:, :, 1], out[:, :, 2])


def test_bw_ignores_intensity(gradient):
    bw = resolve_filter("bw")
    np.testing.assert_array_equal(bw.grade(gradient, 0.0), bw.grade(gradient, 1.0))


def test_color_render_is_identity(gradient, rng):
    out = resolve_filter("color").render(gradient, 1.0, 1.0, rng)
    np.testing.assert_array_equal(out, gradient)


def test_names_resolve_once_into_variants():
    assert resolve_filter("Vintage").kind is FilterKind.GRADED
    assert resolve_filter("noir").kind is FilterKind.MONO
    assert resolve_filter(None).kind is FilterKind.COLOR
    assert resolve_filter("grayscale").name == "bw"
    assert resolve_filter("none").name == "color"


def test_unknown_filter():
    with pytest.raises(UnknownFilter) as err:
        resolve_filter("lomo")
    assert isinstance(err.value, ValueError)
    assert "vintage" in str(err.value)


def test_every_available_filter_resolves():
    names = available_filters()
    assert {"color", "bw", "vintage", "retro", "polaroid", "fadedfilm"} <= set(names)
    for name in names:
        assert resolve_filter(name).name == name
