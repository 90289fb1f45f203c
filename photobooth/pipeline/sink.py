import datetime
import logging
import re
from pathlib import Path
from typing import Callable, Optional

import cv2
import numpy as np

from photobooth.errors import OutputFailed
from photobooth.pipeline.raster import check_buffer

# Receives (png_bytes, filename); e.g. a platform share sheet or a network upload
ShareTarget = Callable[[bytes, str], None]

PNG_PARAMS = [int(cv2.IMWRITE_PNG_COMPRESSION), 9]


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGB(A) buffer as lossless PNG bytes."""
    check_buffer(image)
    code = cv2.COLOR_RGBA2BGRA if image.shape[2] == 4 else cv2.COLOR_RGB2BGR
    ok, buffer = cv2.imencode(".png", cv2.cvtColor(image, code), PNG_PARAMS)
    if not ok:
        raise OutputFailed("PNG encoding failed")
    return buffer.tobytes()


def output_filename(name_hint: str = "strip", now: Optional[datetime.datetime] = None) -> str:
    """Timestamped file name, e.g. photobooth-vintage-2026-10-18T09-53-01.png."""
    now = now or datetime.datetime.now()
    hint = re.sub(r"[^A-Za-z0-9_-]+", "-", name_hint).strip("-") or "strip"
    return f"photobooth-{hint}-{now.strftime('%Y-%m-%dT%H-%M-%S')}.png"


class OutputSink:
    """
    Delivers finished strips: saved as PNG to ``output_dir`` and/or handed to a
    share target. Each call site falls back to the other when it fails.
    """

    def __init__(self, output_dir: str, share_target: Optional[ShareTarget] = None, prefer_share: bool = False):
        self.log = logging.getLogger("OutputSink")
        self.output_dir = Path(output_dir)
        self.share_target = share_target
        self.prefer_share = prefer_share

    def save(self, image: np.ndarray, name_hint: str = "strip") -> Path:
        """Write ``image`` as PNG and return its path."""
        data = encode_png(image)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / output_filename(name_hint)
        # Same-second saves get a numeric suffix
        counter = 1
        while path.exists():
            path = path.with_name(f"{path.stem}-{counter}.png")
            counter += 1
        path.write_bytes(data)
        self.log.info(f"Saved strip to {path}")
        return path

    def share(self, image: np.ndarray, name_hint: str = "strip") -> str:
        """Hand PNG bytes to the share target and return the file name used."""
        if self.share_target is None:
            raise OutputFailed("No share target configured")
        filename = output_filename(name_hint)
        data = encode_png(image)
        try:
            self.share_target(data, filename)
        except Exception as e:
            raise OutputFailed(f"Share target rejected {filename}: {e}") from e
        self.log.info(f"Shared strip as {filename}")
        return filename

    def deliver(self, image: np.ndarray, name_hint: str = "strip") -> str:
        """
        Save (or share, if preferred), falling back to the other on failure.
        Returns the saved path or shared file name.
        """
        attempts = [self.share, self.save] if self.prefer_share else [self.save, self.share]
        errors = []
        for attempt in attempts:
            try:
                return str(attempt(image, name_hint))
            except (OSError, OutputFailed) as e:
                self.log.warning(f"Strip {attempt.__name__} failed: {e}")
                errors.append(f"{attempt.__name__}: {e}")
        raise OutputFailed("; ".join(errors))
