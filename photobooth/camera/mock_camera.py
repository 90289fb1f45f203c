"""
Mock frame source for development and testing on machines without a camera.

Each frame is a solid color, either from a fixed palette cycled in order or
drawn from a random generator. A failure can be injected after a number of
frames to exercise the session's abort path.

Usage:

```python
from photobooth.camera.mock_camera import MockCamera
cam = MockCamera(width=640, height=480, colors=[(255, 0, 0), (0, 255, 0)])
frame = cam.capture_frame()
```
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from photobooth.camera.base import FrameSource
from photobooth.errors import CaptureFailed, DeviceUnavailable


class MockCamera(FrameSource):
    """Mock frame source that generates synthetic solid-color frames."""

    def __init__(
        self,
        width: int = 640,
        height: int = 480,
        colors: Optional[Sequence[Tuple[int, int, int]]] = None,
        seed: Optional[int] = None,
        fail_after: Optional[int] = None,
        available: bool = True,
    ) -> None:
        self.width = width
        self.height = height
        self.colors: List[Tuple[int, int, int]] = list(colors or [])
        self.rng = np.random.default_rng(seed)
        self.fail_after = fail_after
        self.available = available
        self.captured = 0
        self.is_open = False

    def open(self) -> None:
        if not self.available:
            raise DeviceUnavailable("Mock camera configured as unavailable")
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def capture_frame(self) -> np.ndarray:
        if self.fail_after is not None and self.captured >= self.fail_after:
            raise CaptureFailed(f"Mock camera failure after {self.captured} frames")

        if self.colors:
            color = self.colors[self.captured % len(self.colors)]
        else:
            color = tuple(int(c) for c in self.rng.integers(0, 256, size=3))

        frame = np.empty((self.height, self.width, 3), dtype=np.uint8)
        frame[:, :] = color
        self.captured += 1
        logger.debug("Mock frame {} color={}", self.captured, color)
        return frame
