import datetime
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from photobooth.errors import InvalidPhotoCount
from photobooth.pipeline.crop import crop_and_resize
from photobooth.pipeline.raster import check_buffer, solid

PHOTOS_PER_STRIP = 4

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
CREAM = (250, 248, 245)       # #FAF8F5
DATE_INK = (155, 133, 121)    # #9B8579

STROKE_WIDTH = 2
FRAME_WIDTH = 2

# Strip background / edge stroke per look
STRIP_COLORS = {
    'bw': ((24, 24, 24), (235, 235, 235)),
    'noir': ((12, 12, 12), (200, 200, 200)),
}
DEFAULT_STRIP_COLORS = (WHITE, BLACK)

MAX_TILT_DEGREES = 2.0
SHADOW_ALPHA = 0.15
SHADOW_BLUR = 15
SHADOW_OFFSET = (3, 5)
CARD_MARGIN = 20  # room around a card for its shadow and rotated corners

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


@dataclass(frozen=True)
class PolaroidFrame:
    """White card margins around a Polaroid photo."""
    top: int = 25
    side: int = 25
    bottom: int = 80


@dataclass(frozen=True)
class StripLayout:
    """
    Geometry of a strip. ``border`` is the padding around the whole strip and
    ``gap`` the spacing between consecutive photos (or Polaroid cards).
    """
    photo_count: int = PHOTOS_PER_STRIP
    photo_width: int = 300
    photo_height: int = 225
    border: int = 15
    gap: int = 5
    polaroid: Optional[PolaroidFrame] = None

    @classmethod
    def for_filter(cls, filter_name: Optional[str], photo_count: int = PHOTOS_PER_STRIP) -> "StripLayout":
        if (filter_name or "").lower() == "polaroid":
            return cls(
                photo_count=photo_count,
                photo_width=400,
                photo_height=400,
                border=30,
                gap=20,
                polaroid=PolaroidFrame(),
            )
        return cls(photo_count=photo_count)

    @property
    def card_width(self) -> int:
        if self.polaroid:
            return self.photo_width + 2 * self.polaroid.side
        return self.photo_width

    @property
    def card_height(self) -> int:
        if self.polaroid:
            return self.photo_height + self.polaroid.top + self.polaroid.bottom
        return self.photo_height

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) of the finished strip."""
        n = self.photo_count
        width = self.card_width + 2 * self.border
        height = n * self.card_height + (n - 1) * self.gap + 2 * self.border
        return width, height

    def card_origin(self, index: int) -> Tuple[int, int]:
        return self.border, self.border + index * (self.card_height + self.gap)

    def photo_origin(self, index: int) -> Tuple[int, int]:
        x, y = self.card_origin(index)
        if self.polaroid:
            return x + self.polaroid.side, y + self.polaroid.top
        return x, y


def format_polaroid_date(day: datetime.date) -> str:
    """Classic Polaroid stamp, e.g. 'OCT 2026'."""
    return f"{MONTHS[day.month - 1]} {day.year}"


class StripCompositor:
    """
    Lays out already-filtered photos into a single strip image.

    The Polaroid variant tilts each card by a small random angle; pass a seeded
    ``numpy.random.Generator`` for reproducible output.
    """

    def __init__(self, layout: StripLayout = None, rng: Optional[np.random.Generator] = None):
        self.log = logging.getLogger("StripCompositor")
        self.layout = layout
        self.rng = rng if rng is not None else np.random.default_rng()

    def compose(
        self,
        photos: Sequence[np.ndarray],
        filter_name: str = "color",
        stamp_date: Optional[datetime.date] = None,
    ) -> np.ndarray:
        layout = self.layout or StripLayout.for_filter(filter_name)
        if len(photos) != layout.photo_count:
            raise InvalidPhotoCount(layout.photo_count, len(photos))

        photos = [self._fit(photo, layout) for photo in photos]
        width, height = layout.size
        self.log.info("Composing %d photos into %dx%d strip (%s)", len(photos), width, height, filter_name)

        if layout.polaroid:
            day = stamp_date or datetime.date.today()
            return self._compose_polaroid(photos, layout, format_polaroid_date(day))
        return self._compose_plain(photos, layout, filter_name)

    # ------------------------------------------------------------------
    # Plain strip
    # ------------------------------------------------------------------

    def _compose_plain(self, photos, layout: StripLayout, filter_name: str) -> np.ndarray:
        background, stroke = STRIP_COLORS.get((filter_name or "").lower(), DEFAULT_STRIP_COLORS)
        width, height = layout.size
        canvas = solid(width, height, background)
        _stroke_edges(canvas, stroke, STROKE_WIDTH)

        pw, ph = layout.photo_width, layout.photo_height
        f = FRAME_WIDTH
        for index, photo in enumerate(photos):
            x, y = layout.photo_origin(index)
            canvas[y - f:y + ph + f, x - f:x + pw + f] = BLACK
            canvas[y:y + ph, x:x + pw] = photo
        return canvas

    # ------------------------------------------------------------------
    # Polaroid strip
    # ------------------------------------------------------------------

    def _compose_polaroid(self, photos, layout: StripLayout, date_text: str) -> np.ndarray:
        width, height = layout.size
        canvas = solid(width, height, CREAM).astype(np.float32)

        for index, photo in enumerate(photos):
            card = self._polaroid_card(photo, layout, date_text)
            angle = float(self.rng.uniform(-MAX_TILT_DEGREES, MAX_TILT_DEGREES))
            x, y = layout.card_origin(index)
            self.log.debug("Card %d at (%d, %d) tilted %.2f deg", index, x, y, angle)
            _paste_card(canvas, card, x, y, angle)

        return np.clip(np.rint(canvas), 0, 255).astype(np.uint8)

    def _polaroid_card(self, photo: np.ndarray, layout: StripLayout, date_text: str) -> np.ndarray:
        frame = layout.polaroid
        card = solid(layout.card_width, layout.card_height, WHITE)
        card[frame.top:frame.top + layout.photo_height, frame.side:frame.side + layout.photo_width] = photo
        card = _paper_texture(card)

        font = cv2.FONT_HERSHEY_DUPLEX
        scale, thickness = 0.6, 1
        (text_w, text_h), _ = cv2.getTextSize(date_text, font, scale, thickness)
        cx = layout.card_width // 2
        cy = frame.top + layout.photo_height + int(frame.bottom * 0.6)
        origin = (cx - text_w // 2, cy + text_h // 2)
        cv2.putText(card, date_text, origin, font, scale, DATE_INK, thickness, cv2.LINE_AA)
        return card

    # ------------------------------------------------------------------

    def _fit(self, photo: np.ndarray, layout: StripLayout) -> np.ndarray:
        check_buffer(photo)
        if photo.shape[2] == 4:
            photo = photo[:, :, :3]
        return crop_and_resize(photo, layout.photo_width, layout.photo_height)


def compose_strip(
    photos: Sequence[np.ndarray],
    filter_name: str = "color",
    layout: Optional[StripLayout] = None,
    rng: Optional[np.random.Generator] = None,
    stamp_date: Optional[datetime.date] = None,
) -> np.ndarray:
    """Convenience wrapper around ``StripCompositor.compose``."""
    return StripCompositor(layout, rng).compose(photos, filter_name, stamp_date)


def _stroke_edges(canvas: np.ndarray, color, width: int) -> None:
    canvas[:width, :] = color
    canvas[-width:, :] = color
    canvas[:, :width] = color
    canvas[:, -width:] = color


def _paper_texture(card: np.ndarray) -> np.ndarray:
    """Faint vertical gradient: dark at the top, light in the middle, dark at the bottom."""
    h = card.shape[0]
    t = np.linspace(0.0, 1.0, h, dtype=np.float32)[:, None, None]
    alpha = np.where(t < 0.5, 0.01 + (0.02 - 0.01) * (t / 0.5), 0.02)
    shade = np.where(t < 0.5, 255.0 * (t / 0.5), 255.0 * (1.0 - (t - 0.5) / 0.5))
    out = card.astype(np.float32) * (1.0 - alpha) + shade * alpha
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def _paste_card(canvas: np.ndarray, card: np.ndarray, x: int, y: int, angle: float) -> None:
    """Alpha-composite a rotated card and its drop shadow onto a float canvas in place."""
    m = CARD_MARGIN
    ch, cw = card.shape[:2]
    tile_h, tile_w = ch + 2 * m, cw + 2 * m

    alpha = np.zeros((tile_h, tile_w), dtype=np.float32)
    alpha[m:m + ch, m:m + cw] = 1.0
    # colour premultiplied by coverage
    rgb = np.zeros((tile_h, tile_w, 3), dtype=np.float32)
    rgb[m:m + ch, m:m + cw] = card
    rgb *= alpha[:, :, None]

    dx, dy = SHADOW_OFFSET
    shadow = np.zeros_like(alpha)
    shadow[m + dy:m + dy + ch, m + dx:m + dx + cw] = 1.0
    shadow = cv2.GaussianBlur(shadow, (0, 0), SHADOW_BLUR / 2.0) * SHADOW_ALPHA

    rotation = cv2.getRotationMatrix2D((tile_w / 2.0, tile_h / 2.0), angle, 1.0)
    size = (tile_w, tile_h)
    rgb = cv2.warpAffine(rgb, rotation, size, flags=cv2.INTER_LINEAR, borderValue=0)
    alpha = cv2.warpAffine(alpha, rotation, size, flags=cv2.INTER_LINEAR, borderValue=0)
    shadow = cv2.warpAffine(shadow, rotation, size, flags=cv2.INTER_LINEAR, borderValue=0)

    # Clip the tile to the canvas
    top, left = y - m, x - m
    y0, x0 = max(0, top), max(0, left)
    y1 = min(canvas.shape[0], top + tile_h)
    x1 = min(canvas.shape[1], left + tile_w)
    if y0 >= y1 or x0 >= x1:
        return
    ty0, tx0 = y0 - top, x0 - left
    ty1, tx1 = ty0 + (y1 - y0), tx0 + (x1 - x0)

    region = canvas[y0:y1, x0:x1]
    s = shadow[ty0:ty1, tx0:tx1, None]
    a = alpha[ty0:ty1, tx0:tx1, None]
    region *= 1.0 - s
    region[:] = region * (1.0 - a) + rgb[ty0:ty1, tx0:tx1]


STAMP_INK = (255, 0, 0)


def format_corner_date(day: datetime.date) -> str:
    """Camera-style corner stamp, e.g. "18 10 '26"."""
    return f"{day.day:02d} {day.month:02d} '{day.year % 100:02d}"


def stamp_corner_date(image: np.ndarray, day: Optional[datetime.date] = None) -> np.ndarray:
    """Copy of ``image`` with a red date stamp in the bottom-left corner."""
    check_buffer(image)
    out = np.ascontiguousarray(image[:, :, :3]).copy()
    text = format_corner_date(day or datetime.date.today())
    h = out.shape[0]
    scale = max(0.4, h / 720.0 * 0.8)
    thickness = max(1, int(round(scale * 2)))
    cv2.putText(out, text, (10, h - 10), cv2.FONT_HERSHEY_SIMPLEX, scale, STAMP_INK, thickness, cv2.LINE_AA)
    return out
