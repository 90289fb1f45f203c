"""Upload path: turn image files into RGB frames.

Uploads are identified by their magic bytes before decoding so that a text file
renamed to ``.jpg`` is reported as ``UnsupportedFormat`` rather than
``CorruptFile``. Decoding runs on a worker thread so a pathological file cannot
stall the booth for longer than ``timeout`` seconds.
"""

from concurrent import futures
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import cv2
import numpy as np
from loguru import logger

from photobooth.errors import CorruptFile, UnsupportedFormat, UploadTimeout

# (magic prefix, format name); WEBP is checked separately (RIFF....WEBP)
SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"BM", "bmp"),
    (b"II*\x00", "tiff"),
    (b"MM\x00*", "tiff"),
)

UploadSource = Union[str, Path, Tuple[str, bytes]]


def sniff_format(data: bytes) -> Optional[str]:
    for magic, name in SIGNATURES:
        if data.startswith(magic):
            return name
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


def _decode(data: bytes) -> Optional[np.ndarray]:
    return cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)


class FileFrameLoader:
    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._executor = futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="upload")

    def close(self):
        self._executor.shutdown(wait=False)

    def load_from_bytes(self, data: bytes, name: str = "<upload>") -> np.ndarray:
        """Decode an uploaded image into an RGB frame."""
        if not data:
            raise CorruptFile(f"{name} is empty")

        fmt = sniff_format(data)
        if fmt is None:
            raise UnsupportedFormat(f"{name} is not a supported image format")

        future = self._executor.submit(_decode, data)
        try:
            frame = future.result(timeout=self.timeout)
        except futures.TimeoutError:
            future.cancel()
            raise UploadTimeout(f"Decoding {name} took longer than {self.timeout:.1f}s")
        except cv2.error as e:
            raise CorruptFile(f"{name} could not be decoded: {e}") from e

        if frame is None or frame.size == 0:
            raise CorruptFile(f"{name} could not be decoded as {fmt}")

        logger.debug("Loaded {} ({}, {}x{})", name, fmt, frame.shape[1], frame.shape[0])
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def load_path(self, path: Union[str, Path]) -> np.ndarray:
        path = Path(path)
        return self.load_from_bytes(path.read_bytes(), name=path.name)

    def load_many(self, sources: Iterable[UploadSource]) -> Tuple[List[np.ndarray], List[Tuple[str, Exception]]]:
        """
        Load every source, collecting per-file failures instead of stopping.
        Returns (frames in input order, [(name, error), ...]).
        """
        frames: List[np.ndarray] = []
        errors: List[Tuple[str, Exception]] = []

        for source in sources:
            if isinstance(source, tuple):
                name, data = source
                loader = lambda: self.load_from_bytes(data, name=name)
            else:
                name = str(source)
                loader = lambda: self.load_path(source)

            try:
                frames.append(loader())
            except (UnsupportedFormat, CorruptFile, UploadTimeout, OSError) as e:
                logger.warning("Skipping upload {}: {}", name, e)
                errors.append((name, e))

        return frames, errors
