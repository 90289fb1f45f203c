"""
Color grading for photobooth frames.

A filter is described by a ``FilterTemplate`` holding up to five knobs
(sepia, brightness, contrast, saturate, hue_rotate). The template is scaled by
an intensity in [0, 1] into ``FilterParameters`` and applied per pixel in a
fixed order:

1. sepia blend toward a luminance-derived sepia tone
2. brightness
3. contrast
4. saturation (luminance recomputed on the adjusted pixel)
5. hue rotation in YIQ space

Each step clamps to [0, 255]. Steps whose resolved value is the identity are
skipped, so intensity 0 returns the input unchanged.
"""

import math
from dataclasses import dataclass

import numpy as np

from photobooth.pipeline.raster import luminance, merge_alpha, split_alpha

# Row sums of the W3C sepia matrix; a gray pixel Y maps to Y * SEPIA_TONE
SEPIA_TONE = np.array([1.351, 1.203, 0.937], dtype=np.float32)

RGB_TO_YIQ = np.array(
    [
        [0.299, 0.587, 0.114],
        [0.596, -0.274, -0.322],
        [0.211, -0.523, 0.312],
    ],
    dtype=np.float64,
)
YIQ_TO_RGB = np.linalg.inv(RGB_TO_YIQ)


def _check_unit(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")
    return value


@dataclass(frozen=True)
class FilterTemplate:
    """Declarative color-grading coefficients. Defaults are the identity."""
    sepia: float = 0.0
    contrast: float = 1.0
    brightness: float = 1.0
    saturate: float = 1.0
    hue_rotate: float = 0.0  # degrees

    def resolve(self, intensity: float, grain: float = 0.0) -> "FilterParameters":
        """Scale the template by ``intensity``; 0 gives identity, 1 gives the template."""
        i = _check_unit("intensity", intensity)
        g = _check_unit("grain", grain)
        return FilterParameters(
            sepia=self.sepia * i,
            brightness=self.brightness * i + (1 - i),
            contrast=self.contrast * i + (1 - i),
            saturate=self.saturate * i + (1 - i),
            hue_rotate=self.hue_rotate * i,
            intensity=i,
            grain=g,
        )


@dataclass(frozen=True)
class FilterParameters:
    """A template resolved at a given intensity (and grain for texture layers)."""
    sepia: float
    brightness: float
    contrast: float
    saturate: float
    hue_rotate: float
    intensity: float
    grain: float = 0.0

    @property
    def is_identity(self) -> bool:
        return (
            self.sepia == 0.0
            and self.brightness == 1.0
            and self.contrast == 1.0
            and self.saturate == 1.0
            and self.hue_rotate == 0.0
        )


# ----------------------------------------------------------------------
# Individual stages, all operating on float32 (h, w, 3) images
# ----------------------------------------------------------------------

def sepia_blend(rgb: np.ndarray, amount: float) -> np.ndarray:
    y = luminance(rgb)
    target = np.clip(y[:, :, None] * SEPIA_TONE, 0, 255)
    return np.clip(rgb + (target - rgb) * amount, 0, 255)


def adjust_brightness(rgb: np.ndarray, factor: float) -> np.ndarray:
    return np.clip(rgb * factor, 0, 255)


def adjust_contrast(rgb: np.ndarray, factor: float) -> np.ndarray:
    return np.clip(((rgb / 255.0 - 0.5) * factor + 0.5) * 255.0, 0, 255)


def adjust_saturation(rgb: np.ndarray, factor: float) -> np.ndarray:
    y = luminance(rgb)[:, :, None]
    return np.clip(y + (rgb - y) * factor, 0, 255)


def hue_rotation_matrix(degrees: float) -> np.ndarray:
    """RGB -> RGB matrix rotating chroma by ``degrees`` in YIQ space."""
    theta = math.radians(degrees)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    rotate = np.array(
        [
            [1.0, 0.0, 0.0],
            [0.0, cos_t, -sin_t],
            [0.0, sin_t, cos_t],
        ]
    )
    return (YIQ_TO_RGB @ rotate @ RGB_TO_YIQ).astype(np.float32)


def rotate_hue(rgb: np.ndarray, degrees: float) -> np.ndarray:
    matrix = hue_rotation_matrix(degrees)
    return np.clip(rgb @ matrix.T, 0, 255)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def apply_parameters(buffer: np.ndarray, params: FilterParameters) -> np.ndarray:
    """Apply already-resolved parameters. Returns a new buffer."""
    if params.is_identity:
        return buffer.copy()

    rgb, alpha = split_alpha(buffer)

    if params.sepia != 0.0:
        rgb = sepia_blend(rgb, params.sepia)
    if params.brightness != 1.0:
        rgb = adjust_brightness(rgb, params.brightness)
    if params.contrast != 1.0:
        rgb = adjust_contrast(rgb, params.contrast)
    if params.saturate != 1.0:
        rgb = adjust_saturation(rgb, params.saturate)
    if params.hue_rotate != 0.0:
        rgb = rotate_hue(rgb, params.hue_rotate)

    return merge_alpha(rgb, alpha)


def apply_filter(buffer: np.ndarray, template: FilterTemplate, intensity: float) -> np.ndarray:
    """Grade ``buffer`` with ``template`` scaled by ``intensity``."""
    return apply_parameters(buffer, template.resolve(intensity))


def apply_monochrome(buffer: np.ndarray, contrast: float = 1.1, brightness: float = 1.0) -> np.ndarray:
    """Luminance conversion followed by a fixed contrast (and optional brightness) boost."""
    rgb, alpha = split_alpha(buffer)
    gray = np.repeat(luminance(rgb)[:, :, None], 3, axis=2)
    if brightness != 1.0:
        gray = adjust_brightness(gray, brightness)
    gray = adjust_contrast(gray, contrast)
    return merge_alpha(gray, alpha)
