"""
Procedural film textures.

Four layers can be composited on a graded photo, always back-to-front in the
order light-leak -> grain -> dust -> vignette:

- light leak: warm radial glows at the corners/edge, screen blend
- grain: monochrome uniform noise, added equally to R, G and B
- dust: short scratches and specks, light ones add and dark ones subtract
- vignette: radial darkening, multiply blend

Which layers a filter uses and how strongly is described by an
``OverlayProfile``. All randomness comes from the ``numpy.random.Generator``
passed in by the caller.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from photobooth.pipeline.raster import merge_alpha, split_alpha

log = logging.getLogger("Textures")

LAYER_ORDER = ("light_leak", "grain", "dust", "vignette")

# Base opacities before the per-filter strength multiplier
VIGNETTE_OPACITY = 0.7
LIGHT_LEAK_OPACITY = 0.6
DUST_OPACITY = 0.3

VIGNETTE_INNER = 0.3  # fraction of the shorter side, fully transparent inside
VIGNETTE_OUTER = 0.8  # fraction of the shorter side, full darkness from here

# (anchor x, anchor y as fractions of w/h, radius as fraction of max(w, h), RGB)
LIGHT_LEAKS: Sequence[Tuple[float, float, float, Tuple[int, int, int]]] = (
    (0.0, 0.0, 0.55, (255, 140, 50)),
    (1.0, 0.45, 0.40, (255, 90, 70)),
    (1.0, 1.0, 0.45, (255, 200, 100)),
)

SCRATCH_AREA = 30000  # one scratch per this many pixels
DUST_AREA = 3000  # one speck per this many pixels


@dataclass(frozen=True)
class OverlayProfile:
    """Static per-filter texture settings. Zero disables a layer."""
    grain_amplitude: float = 0.0  # fraction of 255
    light_leak: float = 0.0
    dust: float = 0.0
    vignette: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not (self.grain_amplitude or self.light_leak or self.dust or self.vignette)


NO_OVERLAYS = OverlayProfile()


def overlay_opacities(profile: OverlayProfile, intensity: float, grain: float) -> Dict[str, float]:
    """
    Effective opacity of each layer for the given controls.
    Grain is reported as its noise amplitude (fraction of full scale).
    """
    return {
        "light_leak": LIGHT_LEAK_OPACITY * intensity * profile.light_leak,
        "grain": profile.grain_amplitude * grain,
        "dust": DUST_OPACITY * intensity * profile.dust,
        "vignette": VIGNETTE_OPACITY * intensity * profile.vignette,
    }


# ----------------------------------------------------------------------
# Layer synthesis
# ----------------------------------------------------------------------

def _radial_distance(width: int, height: int, cx: float, cy: float) -> np.ndarray:
    ys, xs = np.ogrid[:height, :width]
    return np.sqrt((xs + 0.5 - cx) ** 2 + (ys + 0.5 - cy) ** 2).astype(np.float32)


def vignette_mask(width: int, height: int) -> np.ndarray:
    """Darkness ramp in [0, 1]: 0 inside the inner radius, 1 beyond the outer radius."""
    short = min(width, height)
    inner = VIGNETTE_INNER * short
    outer = VIGNETTE_OUTER * short
    dist = _radial_distance(width, height, width / 2.0, height / 2.0)
    return np.clip((dist - inner) / (outer - inner), 0.0, 1.0)


def light_leak_layer(width: int, height: int) -> np.ndarray:
    """Warm glow layer, float32 (h, w, 3) in [0, 1]."""
    layer = np.zeros((height, width, 3), dtype=np.float32)
    reach = max(width, height)
    for fx, fy, fr, color in LIGHT_LEAKS:
        radius = fr * reach
        dist = _radial_distance(width, height, fx * width, fy * height)
        falloff = np.clip(1.0 - dist / radius, 0.0, 1.0) ** 2
        layer += falloff[:, :, None] * (np.array(color, dtype=np.float32) / 255.0)
    return np.clip(layer, 0.0, 1.0)


def grain_noise(width: int, height: int, amplitude: float, rng: np.random.Generator) -> np.ndarray:
    """Monochrome noise in [-amplitude*255, amplitude*255], shape (h, w)."""
    return rng.uniform(-1.0, 1.0, size=(height, width)).astype(np.float32) * (amplitude * 255.0)


def dust_layers(width: int, height: int, rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
    """
    Scratches and specks drawn as alternating light/dark strokes.
    Returns (light, dark) masks as float32 (h, w) in [0, 1].
    """
    light = np.zeros((height, width), dtype=np.uint8)
    dark = np.zeros((height, width), dtype=np.uint8)
    area = width * height
    short = min(width, height)

    n_scratches = max(1, area // SCRATCH_AREA)
    for i in range(n_scratches):
        target = light if i % 2 == 0 else dark
        x0 = int(rng.integers(0, width))
        y0 = int(rng.integers(0, height))
        length = rng.uniform(0.05, 0.2) * short
        angle = rng.uniform(0, np.pi)
        x1 = int(round(x0 + np.cos(angle) * length))
        y1 = int(round(y0 + np.sin(angle) * length))
        shade = int(rng.integers(140, 256))
        cv2.line(target, (x0, y0), (x1, y1), shade, 1, cv2.LINE_AA)

    n_specks = max(1, area // DUST_AREA)
    for i in range(n_specks):
        target = light if i % 2 == 0 else dark
        center = (int(rng.integers(0, width)), int(rng.integers(0, height)))
        radius = int(rng.integers(1, 3))
        shade = int(rng.integers(120, 256))
        cv2.circle(target, center, radius, shade, -1, cv2.LINE_AA)

    return light.astype(np.float32) / 255.0, dark.astype(np.float32) / 255.0


# ----------------------------------------------------------------------
# Compositing
# ----------------------------------------------------------------------

def screen(rgb: np.ndarray, layer: np.ndarray, opacity: float) -> np.ndarray:
    """Screen blend of a [0, 1] layer onto a 0-255 image."""
    base = rgb / 255.0
    blended = 1.0 - (1.0 - base) * (1.0 - layer * opacity)
    return blended * 255.0


def apply_overlays(
    buffer: np.ndarray,
    profile: OverlayProfile,
    intensity: float,
    grain: float,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Composite the profile's active layers onto ``buffer``. Returns a new buffer.
    """
    opacity = overlay_opacities(profile, intensity, grain)
    if not any(opacity.values()):
        return buffer.copy()

    rng = rng if rng is not None else np.random.default_rng()
    rgb, alpha = split_alpha(buffer)
    h, w = rgb.shape[:2]

    if opacity["light_leak"] > 0:
        rgb = screen(rgb, light_leak_layer(w, h), opacity["light_leak"])

    if opacity["grain"] > 0:
        noise = grain_noise(w, h, opacity["grain"], rng)
        rgb = np.clip(rgb + noise[:, :, None], 0, 255)

    if opacity["dust"] > 0:
        light, dark = dust_layers(w, h, rng)
        strength = opacity["dust"] * 255.0
        rgb = np.clip(rgb + (light - dark)[:, :, None] * strength, 0, 255)

    if opacity["vignette"] > 0:
        darkness = vignette_mask(w, h) * opacity["vignette"]
        rgb = rgb * (1.0 - darkness[:, :, None])

    log.debug("Overlays applied to %dx%d frame: %s", w, h, opacity)
    return merge_alpha(rgb, alpha)
