"""Shared fixtures: deterministic camera, clock, images and configuration."""

import numpy as np
import pytest

from photobooth.camera.mock_camera import MockCamera
from photobooth.config import BoothConfig
from photobooth.fsm.clock import VirtualClock
from photobooth.pipeline.sink import encode_png

RED = (220, 30, 30)
GREEN = (30, 200, 40)
BLUE = (20, 40, 210)
YELLOW = (240, 220, 10)
STRIP_COLORS = [RED, GREEN, BLUE, YELLOW]


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def camera():
    cam = MockCamera(width=320, height=240, colors=STRIP_COLORS)
    cam.open()
    return cam


@pytest.fixture
def config(tmp_path):
    return BoothConfig(camera_backend="mock", output_dir=str(tmp_path / "out"), seed=7)


@pytest.fixture
def gradient():
    """120x160 RGB image covering a spread of hues and levels."""
    h, w = 120, 160
    ys, xs = np.mgrid[:h, :w]
    image = np.empty((h, w, 3), dtype=np.uint8)
    image[:, :, 0] = (xs * 255 // (w - 1)).astype(np.uint8)
    image[:, :, 1] = (ys * 255 // (h - 1)).astype(np.uint8)
    image[:, :, 2] = ((xs + ys) * 255 // (w + h - 2)).astype(np.uint8)
    return image


@pytest.fixture
def png_upload():
    """Build an ``(name, png bytes)`` upload of a solid color image."""
    def make(name, color, width=400, height=300):
        image = np.empty((height, width, 3), dtype=np.uint8)
        image[:, :] = color
        return name, encode_png(image)
    return make
