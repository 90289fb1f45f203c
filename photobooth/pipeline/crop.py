import cv2
import numpy as np
from typing import Tuple

from photobooth.pipeline.raster import check_buffer


def centered_crop_box(src_w: int, src_h: int, target_w: int, target_h: int) -> Tuple[int, int, int, int]:
    """
    Largest rectangle of (src_w, src_h) with aspect target_w/target_h, centered.
    Returns (x, y, w, h).
    """
    if src_w * target_h > target_w * src_h:
        # Source is wider than target: crop horizontally
        crop_h = src_h
        crop_w = max(1, min(src_w, int(round(src_h * target_w / target_h))))
    else:
        # Taller or equal aspect: width-driven rule
        crop_w = src_w
        crop_h = max(1, min(src_h, int(round(src_w * target_h / target_w))))

    x = (src_w - crop_w) // 2
    y = (src_h - crop_h) // 2
    return x, y, crop_w, crop_h


def crop_and_resize(source: np.ndarray, target_w: int, target_h: int) -> np.ndarray:
    """
    Center-crop ``source`` to the target aspect ratio and resample to exactly
    ``target_w x target_h``. Never letterboxes.
    """
    check_buffer(source)
    if target_w <= 0 or target_h <= 0:
        raise ValueError(f"Invalid target size {target_w}x{target_h}")

    h, w = source.shape[:2]
    if (w, h) == (target_w, target_h):
        return source.copy()

    x, y, cw, ch = centered_crop_box(w, h, target_w, target_h)
    region = source[y:y + ch, x:x + cw]

    if (cw, ch) == (target_w, target_h):
        return region.copy()

    # INTER_AREA avoids moire when shrinking; bicubic when enlarging
    shrinking = target_w < cw or target_h < ch
    interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_CUBIC
    return cv2.resize(region, (target_w, target_h), interpolation=interpolation)

