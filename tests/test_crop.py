import numpy as np
import pytest

from photobooth.errors import MalformedBuffer
from photobooth.pipeline.crop import centered_crop_box, crop_and_resize


@pytest.mark.parametrize(
    "src_w, src_h",
    [(1920, 1080), (1080, 1920), (640, 480), (300, 225), (301, 226), (50, 40), (1000, 1000)],
)
def test_output_has_exact_target_size(src_w, src_h, rng):
    source = rng.integers(0, 256, size=(src_h, src_w, 3), dtype=np.uint8)
    out = crop_and_resize(source, 300, 225)
    assert out.shape == (225, 300, 3)
    assert out.dtype == np.uint8


def test_same_size_is_identity(gradient):
    h, w = gradient.shape[:2]
    out = crop_and_resize(gradient, w, h)
    assert out is not gradient
    np.testing.assert_array_equal(out, gradient)


def test_square_source_square_target_is_identity(rng):
    source = rng.integers(0, 256, size=(400, 400, 3), dtype=np.uint8)
    np.testing.assert_array_equal(crop_and_resize(source, 400, 400), source)


def test_wide_source_is_cropped_horizontally():
    assert centered_crop_box(1920, 1080, 300, 225) == (240, 0, 1440, 1080)


def test_tall_source_is_cropped_vertically():
    assert centered_crop_box(1000, 1000, 300, 225) == (0, 125, 1000, 750)


def test_no_letterboxing():
    # Left third red, rest blue: a 1:1 crop of a 3:1 image keeps only the middle
    source = np.zeros((100, 300, 3), dtype=np.uint8)
    source[:, :100] = (255, 0, 0)
    source[:, 100:] = (0, 0, 255)
    out = crop_and_resize(source, 100, 100)
    assert (out == (0, 0, 255)).all()


def test_solid_color_survives_resampling():
    source = np.empty((480, 640, 3), dtype=np.uint8)
    source[:, :] = (12, 200, 99)
    out = crop_and_resize(source, 300, 225)
    assert (out == (12, 200, 99)).all()


def test_invalid_target_rejected(gradient):
    with pytest.raises(ValueError):
        crop_and_resize(gradient, 0, 10)


def test_malformed_buffer_rejected():
    with pytest.raises(MalformedBuffer):
        crop_and_resize(np.zeros((10, 10), dtype=np.uint8), 5, 5)
    with pytest.raises(MalformedBuffer):
        crop_and_resize(np.zeros((10, 10, 3), dtype=np.float32), 5, 5)



def test_full_width_crop_does_not_share_memory(rng):
    source = rng.integers(0, 256, size=(300, 300, 3), dtype=np.uint8)
    out = crop_and_resize(source, 300, 225)
    assert out.shape == (225, 300, 3)
    assert not np.shares_memory(out, source)
    np.testing.assert_array_equal(out, source[37:262])
