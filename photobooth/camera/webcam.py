"""OpenCV webcam frame source.

Opens a ``cv2.VideoCapture`` device, asks for the configured resolution and
returns mirrored RGB frames. The device may deliver a different resolution than
requested; the actual size is logged after opening.
"""

from typing import Optional, Tuple

import cv2
import numpy as np
from loguru import logger

from photobooth.camera.base import FrameSource, mirror
from photobooth.errors import CaptureFailed, DeviceUnavailable


class WebcamSource(FrameSource):
    def __init__(self, index: int = 0, resolution: Tuple[int, int] = (1920, 1080), mirrored: bool = True):
        self.index = index
        self.resolution = resolution
        self.mirrored = mirrored
        self.cap: Optional[cv2.VideoCapture] = None

    def open(self) -> None:
        if self.cap is not None:
            logger.debug("Webcam {} already open", self.index)
            return

        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailable(f"Could not open camera device {self.index}")

        width, height = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        actual = (int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)), int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
        logger.info("Camera {} opened at {}x{} (requested {}x{})", self.index, actual[0], actual[1], width, height)
        self.cap = cap

    def close(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera {} released", self.index)

    def capture_frame(self) -> np.ndarray:
        if self.cap is None:
            raise CaptureFailed("Camera not opened")

        ok, frame = self.cap.read()
        if not ok or frame is None:
            raise CaptureFailed(f"Camera {self.index} returned no frame")

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return mirror(rgb) if self.mirrored else rgb
