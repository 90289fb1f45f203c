"""
Frame source abstractions for the photobooth.

A frame source hands the capture session one RGB frame per call, already
mirrored horizontally so the photo matches what the subject saw on screen.

Implementations may talk to real hardware (OpenCV webcam, Raspberry Pi camera)
or synthesize frames for development and tests.
"""

from __future__ import annotations

import numpy as np


def mirror(frame: np.ndarray) -> np.ndarray:
    """Flip a frame left-right, returning a contiguous copy."""
    return np.ascontiguousarray(frame[:, ::-1])


class FrameSource:
    """Abstract base class for frame sources."""

    def open(self) -> None:
        """Acquire the device.

        Raises:
            DeviceUnavailable: if the device cannot be opened.
        """

    def close(self) -> None:
        """Release the device. Safe to call more than once."""

    def capture_frame(self) -> np.ndarray:
        """Return one mirrored RGB frame as a ``(h, w, 3)`` uint8 array.

        Raises:
            NotImplementedError: if not implemented by subclass.
        """
        raise NotImplementedError("capture_frame must be implemented by subclasses")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()
        return False
