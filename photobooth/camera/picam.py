"""Raspberry Pi camera frame source (Picamera2).

Configures a still capture stream at the requested resolution and returns
mirrored RGB frames. Picamera2 is only available on a Raspberry Pi; on other
machines constructing the source succeeds but ``open()`` raises
``DeviceUnavailable``.

Notes:
- Picamera2's "RGB888" format delivers pixels in B, G, R byte order, so frames
  are converted to RGB before they leave this module.
- ``DEFAULT_CONTROLS`` keeps automatic exposure and white balance enabled.
"""

from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

import numpy as np
from loguru import logger

from photobooth.camera.base import FrameSource, mirror
from photobooth.errors import CaptureFailed, DeviceUnavailable

try:
    from picamera2 import Picamera2
except Exception:
    Picamera2 = None

if TYPE_CHECKING:
    from picamera2 import Picamera2 as Picamera2Type
else:
    Picamera2Type = Any


DEFAULT_CONTROLS: Dict[str, Any] = {
    "AeEnable": True,
    "AwbEnable": True,
    "Brightness": 0.0,
    "Contrast": 1.0,
    "Sharpness": 1.0,
    "Saturation": 1.0,
}


class PiCameraSource(FrameSource):
    def __init__(self, resolution: Tuple[int, int] = (1920, 1080), mirrored: bool = True):
        self.resolution = resolution
        self.mirrored = mirrored
        self.picam: Optional[Picamera2Type] = None

    def _create_still_config(self):
        return self.picam.create_still_configuration(
            main={"size": self.resolution, "format": "RGB888"}
        )

    def open(self) -> None:
        if self.picam is not None:
            return
        if Picamera2 is None:
            raise DeviceUnavailable("Picamera2 not available on this system")

        try:
            self.picam = Picamera2()
            self.picam.configure(self._create_still_config())
            self.picam.start()
        except Exception as e:
            logger.opt(exception=True).error(f"Failed to configure and start camera: {e}")
            self.picam = None
            raise DeviceUnavailable(f"Pi camera could not be started: {e}") from e

        logger.info("Pi camera started at {}x{}", *self.resolution)
        self.apply_controls()

    def close(self) -> None:
        if self.picam:
            try:
                self.picam.stop()
            except Exception as e:
                logger.debug(f"Camera stop returned: {e} (may already be stopped)")
            self.picam = None
            logger.info("Camera stopped")

    def apply_controls(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """Apply camera controls, skipping any the sensor pipeline does not expose."""
        if not self.picam:
            logger.debug("apply_controls called before camera initialization")
            return

        controls: Dict[str, Any] = dict(DEFAULT_CONTROLS)
        if overrides:
            controls.update(overrides)

        available = set(getattr(self.picam, "camera_controls", {}) or {})
        if available:
            unsupported = sorted(k for k in controls if k not in available)
            controls = {k: v for k, v in controls.items() if k in available}
            if unsupported:
                logger.warning("Skipping unsupported controls: {}", ", ".join(unsupported))

        if not controls:
            logger.warning("No supported controls to apply")
            return

        try:
            self.picam.set_controls(controls)
            logger.info("Controls applied: {}", controls)
        except Exception as exc:
            logger.warning("Failed to apply controls: {}", exc)

    def capture_frame(self) -> np.ndarray:
        if not self.picam:
            raise CaptureFailed("Camera not initialized")

        try:
            frame = np.asarray(self.picam.capture_array())
        except Exception as e:
            raise CaptureFailed(f"Pi camera capture failed: {e}") from e

        rgb = np.ascontiguousarray(frame[:, :, 2::-1])
        return mirror(rgb) if self.mirrored else rgb
