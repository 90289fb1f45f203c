"""
Named looks for the photobooth.

Each look pairs a color grade with a texture profile. Names are resolved once,
when a filter is selected, into a ``Filter`` value; the per-pixel code never
matches on names.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from photobooth.errors import UnknownFilter
from photobooth.pipeline.filters import FilterTemplate, apply_filter, apply_monochrome
from photobooth.pipeline.textures import NO_OVERLAYS, OverlayProfile, apply_overlays


class FilterKind(Enum):
    COLOR = "color"    # identity
    MONO = "mono"      # luminance + fixed contrast, no intensity knob
    GRADED = "graded"  # FilterTemplate scaled by intensity


# ============================================================================
# COLOR GRADES
# ============================================================================

FILTER_TEMPLATES: Dict[str, FilterTemplate] = {
    'vintage': FilterTemplate(sepia=0.35, contrast=0.90, brightness=0.95, saturate=0.70, hue_rotate=-4),
    'retro': FilterTemplate(contrast=1.25, brightness=0.90, saturate=1.40, sepia=0.18, hue_rotate=10),
    'polaroid': FilterTemplate(brightness=1.10, contrast=0.85, saturate=0.90, sepia=0.10, hue_rotate=-6),
    'fadedfilm': FilterTemplate(brightness=1.10, contrast=0.80, saturate=0.60, sepia=0.20, hue_rotate=0),
    'sepia': FilterTemplate(sepia=0.85, contrast=1.05, brightness=1.0, saturate=0.90, hue_rotate=0),
}

# (contrast, brightness) for the grayscale looks
MONO_GRADES = {
    'bw': (1.10, 1.0),
    'noir': (1.35, 0.95),
}

# ============================================================================
# TEXTURE TABLE
# ============================================================================

OVERLAY_PROFILES: Dict[str, OverlayProfile] = {
    'color': NO_OVERLAYS,
    'bw': OverlayProfile(grain_amplitude=0.08, vignette=0.6),
    'noir': OverlayProfile(grain_amplitude=0.10, vignette=1.0),
    'sepia': OverlayProfile(grain_amplitude=0.10, dust=0.6, vignette=0.8),
    'vintage': OverlayProfile(grain_amplitude=0.16, light_leak=1.0, dust=1.0, vignette=1.0),
    'retro': OverlayProfile(grain_amplitude=0.14, light_leak=0.8, dust=0.6, vignette=0.8),
    'polaroid': OverlayProfile(grain_amplitude=0.06, light_leak=0.5, vignette=0.5),
    'fadedfilm': OverlayProfile(grain_amplitude=0.12, light_leak=0.7, dust=0.5, vignette=0.6),
}

ALIASES = {'none': 'color', 'grayscale': 'bw', 'faded': 'fadedfilm'}


@dataclass(frozen=True)
class Filter:
    """A selected look: grading variant plus its texture profile."""
    name: str
    kind: FilterKind
    template: Optional[FilterTemplate] = None
    mono_contrast: float = 1.0
    mono_brightness: float = 1.0
    overlays: OverlayProfile = NO_OVERLAYS

    def grade(self, buffer: np.ndarray, intensity: float) -> np.ndarray:
        """Apply the color grade only."""
        if self.kind is FilterKind.GRADED:
            return apply_filter(buffer, self.template, intensity)
        if self.kind is FilterKind.MONO:
            return apply_monochrome(buffer, self.mono_contrast, self.mono_brightness)
        return buffer.copy()

    def render(
        self,
        buffer: np.ndarray,
        intensity: float,
        grain: float,
        rng: Optional[np.random.Generator] = None,
    ) -> np.ndarray:
        """Grade then composite textures."""
        graded = self.grade(buffer, intensity)
        if self.overlays.is_empty:
            return graded
        return apply_overlays(graded, self.overlays, intensity, grain, rng)


def available_filters() -> List[str]:
    return ['color', *MONO_GRADES.keys(), *FILTER_TEMPLATES.keys()]


def resolve_filter(name: Optional[str]) -> Filter:
    """Resolve a filter name (case-insensitive) into a ``Filter``."""
    key = (name or 'color').strip().lower()
    key = ALIASES.get(key, key)

    overlays = OVERLAY_PROFILES.get(key, NO_OVERLAYS)
    if key == 'color':
        return Filter(name='color', kind=FilterKind.COLOR)
    if key in MONO_GRADES:
        contrast, brightness = MONO_GRADES[key]
        return Filter(
            name=key,
            kind=FilterKind.MONO,
            mono_contrast=contrast,
            mono_brightness=brightness,
            overlays=overlays,
        )
    if key in FILTER_TEMPLATES:
        return Filter(name=key, kind=FilterKind.GRADED, template=FILTER_TEMPLATES[key], overlays=overlays)

    raise UnknownFilter(f"Unknown filter '{name}'. Available: {', '.join(available_filters())}")
