"""
Pipeline package for the photobooth.

This package contains the components responsible for:
- Cropping each frame to the strip slot (crop)
- Color grading (filters) and film textures (textures)
- The named looks built from both (presets)
- Laying photos out into a strip (layout)
- Timed multi-shot capture (session)
- Saving / sharing the result (sink)
- Driving the whole workflow (controller)
"""

from .controller import PipelineContext, PipelineController
from .crop import crop_and_resize
from .filters import FilterParameters, FilterTemplate, apply_filter, apply_monochrome
from .layout import StripCompositor, StripLayout, compose_strip, stamp_corner_date
from .presets import Filter, FilterKind, available_filters, resolve_filter
from .session import CaptureSession, EventKind, SessionEvent
from .sink import OutputSink, encode_png
from .textures import OverlayProfile, apply_overlays


__all__ = [
    "PipelineContext",
    "PipelineController",
    "crop_and_resize",
    "FilterParameters",
    "FilterTemplate",
    "apply_filter",
    "apply_monochrome",
    "StripCompositor",
    "StripLayout",
    "compose_strip",
    "stamp_corner_date",
    "Filter",
    "FilterKind",
    "available_filters",
    "resolve_filter",
    "CaptureSession",
    "EventKind",
    "SessionEvent",
    "OutputSink",
    "encode_png",
    "OverlayProfile",
    "apply_overlays",
]
