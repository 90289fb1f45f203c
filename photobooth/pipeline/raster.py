"""Helpers shared by the pixel stages for handling RGB(A) raster buffers."""

from typing import Optional, Tuple

import numpy as np

from photobooth.errors import MalformedBuffer


def check_buffer(buffer: np.ndarray) -> np.ndarray:
    """Validate that ``buffer`` is an ``(h, w, 3|4)`` uint8 array and return it."""
    if not isinstance(buffer, np.ndarray):
        raise MalformedBuffer(f"Expected a numpy array, got {type(buffer).__name__}")
    if buffer.dtype != np.uint8:
        raise MalformedBuffer(f"Expected uint8 samples, got {buffer.dtype}")
    if buffer.ndim != 3 or buffer.shape[2] not in (3, 4):
        raise MalformedBuffer(f"Expected shape (h, w, 3|4), got {buffer.shape}")
    if buffer.shape[0] == 0 or buffer.shape[1] == 0:
        raise MalformedBuffer("Buffer has zero width or height")
    return buffer


def split_alpha(buffer: np.ndarray) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """Return (rgb as float32, alpha or None). Alpha passes through stages untouched."""
    check_buffer(buffer)
    if buffer.shape[2] == 4:
        return buffer[:, :, :3].astype(np.float32), buffer[:, :, 3].copy()
    return buffer.astype(np.float32), None


def merge_alpha(rgb: np.ndarray, alpha: Optional[np.ndarray]) -> np.ndarray:
    """Round a float RGB working image back to uint8, re-attaching alpha."""
    out = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    if alpha is not None:
        out = np.dstack([out, alpha])
    return out


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Rec. 601 luma of a float RGB image, shape (h, w)."""
    return 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]


def solid(width: int, height: int, color: Tuple[int, int, int]) -> np.ndarray:
    """Create a solid RGB buffer."""
    buf = np.empty((height, width, 3), dtype=np.uint8)
    buf[:, :] = color
    return buf
