"""
Frame sources for the photobooth.

- WebcamSource: OpenCV ``VideoCapture`` device
- PiCameraSource: Raspberry Pi camera through Picamera2
- MockCamera: synthetic solid-color frames
- FileFrameLoader: uploaded image files
"""

from .base import FrameSource, mirror
from .mock_camera import MockCamera
from .picam import PiCameraSource
from .upload import FileFrameLoader
from .webcam import WebcamSource


def create_frame_source(config) -> FrameSource:
    """Build the frame source named by ``config.camera_backend``."""
    backend = config.camera_backend.lower()
    if backend == "webcam":
        return WebcamSource(config.camera_index, config.resolution, config.mirror)
    if backend in ("picamera", "picamera2", "rpi"):
        return PiCameraSource(config.resolution, config.mirror)
    if backend == "mock":
        width, height = config.resolution
        return MockCamera(width=width, height=height, seed=config.seed)
    raise ValueError(f"Unknown camera backend: {config.camera_backend}")


__all__ = [
    "FrameSource",
    "mirror",
    "MockCamera",
    "PiCameraSource",
    "FileFrameLoader",
    "WebcamSource",
    "create_frame_source",
]
