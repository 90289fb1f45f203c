import datetime
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from photobooth.camera import FileFrameLoader, FrameSource, create_frame_source
from photobooth.config import BoothConfig
from photobooth.errors import AlreadyInProgress, InvalidPhotoCount, PhotoboothError, UploadFailed
from photobooth.pipeline.crop import crop_and_resize
from photobooth.pipeline.layout import StripCompositor, StripLayout, stamp_corner_date
from photobooth.pipeline.presets import Filter, resolve_filter
from photobooth.pipeline.session import CaptureSession, EventKind, SessionEvent
from photobooth.pipeline.sink import OutputSink


def _unit(name: str, value: float) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")
    return value


@dataclass
class PipelineContext:
    """Everything the renderer needs that the UI can change between sessions."""
    filter: Filter = field(default_factory=lambda: resolve_filter("color"))
    intensity: float = 1.0
    grain: float = 0.5
    rng: np.random.Generator = field(default_factory=np.random.default_rng)
    today: Callable[[], datetime.date] = datetime.date.today

    @classmethod
    def from_config(cls, config: BoothConfig) -> "PipelineContext":
        return cls(
            filter=resolve_filter(config.default_filter),
            intensity=config.intensity,
            grain=config.grain,
            rng=np.random.default_rng(config.seed),
        )

    def select_filter(self, name: str) -> Filter:
        self.filter = resolve_filter(name)
        return self.filter

    def set_intensity(self, value: float):
        self.intensity = _unit("intensity", value)

    def set_grain(self, value: float):
        self.grain = _unit("grain", value)


class PipelineController:
    """
    Orchestrates the photobooth workflow:
    - Holds the selected filter / intensity / grain
    - Runs capture sessions against the frame source
    - Crops, grades and textures each photo
    - Lays out the strip
    - Hands the result to the output sink
    - Fans session events out to listeners (UI, gRPC stream)
    """

    def __init__(
        self,
        frame_source: Optional[FrameSource] = None,
        config: Optional[BoothConfig] = None,
        sink: Optional[OutputSink] = None,
        clock=None,
        context: Optional[PipelineContext] = None,
        listeners: Iterable[Callable[[SessionEvent], None]] = (),
    ):
        self.log = logging.getLogger("PipelineController")

        self.config = config or BoothConfig()

        # --- Core components ---
        self.frame_source = frame_source or create_frame_source(self.config)
        self.sink = sink or OutputSink(self.config.output_dir, prefer_share=self.config.prefer_share)
        self.context = context or PipelineContext.from_config(self.config)
        self.loader = FileFrameLoader(timeout=self.config.upload_timeout)
        self.session = CaptureSession(
            self.frame_source,
            clock=clock,
            target_count=self.config.photos_per_strip,
            countdown_seconds=self.config.countdown_seconds,
            tick_interval=self.config.tick_interval,
            interstitial_delay=self.config.interstitial_delay,
            listener=self._publish,
        )

        # --- Outputs ---
        self.last_strip: Optional[np.ndarray] = None
        self.last_output: Optional[str] = None

        # --- Event fan-out ---
        self._listeners: List[Callable[[SessionEvent], None]] = list(listeners)
        self._subscribers: List[queue.Queue] = []
        self._sub_lock = threading.Lock()

        self._worker: Optional[threading.Thread] = None
        self._device_open = False

    # ----------------------------------------------------------------------
    # UI COMMANDS
    # ----------------------------------------------------------------------

    def select_filter(self, name: str) -> Filter:
        selected = self.context.select_filter(name)
        self.log.info(f"Filter selected: {selected.name}")
        return selected

    def set_intensity(self, value: float):
        self.context.set_intensity(value)
        self.log.debug("Intensity set to %.2f", self.context.intensity)

    def set_grain(self, value: float):
        self.context.set_grain(value)
        self.log.debug("Grain set to %.2f", self.context.grain)

    def start_session(
        self, background: bool = False, countdown_seconds: Optional[int] = None
    ) -> Optional[np.ndarray]:
        """
        Start a capture session. In the foreground this blocks until the strip
        is rendered and returns it (None if cancelled). In the background the
        session runs on a worker thread and this returns immediately.
        """
        if self._worker is not None and self._worker.is_alive():
            raise AlreadyInProgress("A session is still running or rendering")

        self.open_device()
        if countdown_seconds is None:
            countdown_seconds = self.config.countdown_seconds
        self.session.start(self.config.photos_per_strip, countdown_seconds)

        if background:
            self._worker = threading.Thread(target=self._run_in_background, name="capture-session", daemon=True)
            self._worker.start()
            return None
        return self._run_session()

    def cancel_session(self) -> bool:
        return self.session.cancel()

    def retake(self) -> bool:
        """Discard the last strip (and any completed frames) to shoot again."""
        self.last_strip = None
        self.last_output = None
        if self.session.state == "complete":
            return self.session.retake()
        return self.session.state == "idle"

    def current_state(self) -> str:
        return self.session.state

    def status(self) -> dict:
        return {
            "state": self.session.state,
            "frame_count": len(self.session.frames),
            "remaining": self.session.remaining if self.session.is_active else 0,
            "filter": self.context.filter.name,
            "intensity": self.context.intensity,
            "grain": self.context.grain,
            "outcome": self.session.outcome,
            "last_output": self.last_output,
        }

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for a background session to finish. Returns False on timeout."""
        if self._worker is None:
            return True
        self._worker.join(timeout)
        return not self._worker.is_alive()

    def shutdown(self):
        if self.session.is_active:
            self.session.cancel()
        self.wait(timeout=5.0)
        if self._device_open:
            self.frame_source.close()
            self._device_open = False
        self.loader.close()
        self.log.info("Controller shut down")

    # ----------------------------------------------------------------------
    # EVENTS
    # ----------------------------------------------------------------------

    def add_listener(self, listener: Callable[[SessionEvent], None]):
        self._listeners.append(listener)

    def subscribe(self) -> queue.Queue:
        """Queue receiving every subsequent session event."""
        q: queue.Queue = queue.Queue()
        with self._sub_lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue):
        with self._sub_lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    def _publish(self, event: SessionEvent):
        with self._sub_lock:
            subscribers = list(self._subscribers)
        for q in subscribers:
            q.put(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.log.exception(f"Listener failed on {event.kind.value} event: {e}")

    # ----------------------------------------------------------------------
    # RENDERING
    # ----------------------------------------------------------------------

    def layout(self) -> StripLayout:
        return StripLayout.for_filter(self.context.filter.name, self.config.photos_per_strip)

    def process_photo(self, frame: np.ndarray, layout: StripLayout) -> np.ndarray:
        """Crop to the slot, grade, and add textures."""
        ctx = self.context
        photo = crop_and_resize(frame, layout.photo_width, layout.photo_height)
        return ctx.filter.render(photo, ctx.intensity, ctx.grain, ctx.rng)

    def render_strip(self, frames: List[np.ndarray]) -> np.ndarray:
        layout = self.layout()
        if len(frames) != layout.photo_count:
            raise InvalidPhotoCount(layout.photo_count, len(frames))

        name = self.context.filter.name
        self.log.info(
            "Rendering %d photos with '%s' (intensity=%.2f, grain=%.2f)",
            len(frames), name, self.context.intensity, self.context.grain,
        )
        photos = [self.process_photo(frame, layout) for frame in frames]
        compositor = StripCompositor(layout, self.context.rng)
        return compositor.compose(photos, name, stamp_date=self.context.today())

    def render_uploads(self, sources) -> Tuple[np.ndarray, list]:
        """
        Build a strip from uploaded files. Failed files are reported and
        skipped; empty slots repeat the last good frame.
        Returns (strip, [(name, error), ...]).
        """
        count = self.config.photos_per_strip
        frames, errors = self.loader.load_many(sources)
        if not frames:
            raise UploadFailed(errors)

        if len(frames) < count:
            self.log.warning(
                "Only %d of %d photos loaded, repeating the last one", len(frames), count
            )
        while len(frames) < count:
            frames.append(frames[-1].copy())

        strip = self.render_strip(frames[:count])
        self.last_strip = strip
        return strip, errors

    def render_single(self, frame: np.ndarray) -> np.ndarray:
        """Full-frame single shot: grade, textures and a corner date stamp."""
        ctx = self.context
        photo = ctx.filter.render(frame, ctx.intensity, ctx.grain, ctx.rng)
        return stamp_corner_date(photo, ctx.today())

    def capture_single(self) -> np.ndarray:
        """Take one photo straight from the frame source and render it with a date stamp."""
        if self.session.is_active:
            raise AlreadyInProgress("Cannot take a single shot during a session")
        self.open_device()
        return self.render_single(self.frame_source.capture_frame())

    def deliver(self, strip: np.ndarray) -> str:
        self.last_output = self.sink.deliver(strip, self.context.filter.name)
        return self.last_output

    # ----------------------------------------------------------------------
    # SESSION DRIVING
    # ----------------------------------------------------------------------

    def open_device(self):
        if not self._device_open:
            self.frame_source.open()
            self._device_open = True
            self.log.info("Frame source opened")

    def _run_session(self) -> Optional[np.ndarray]:
        outcome = self.session.run()
        if outcome != "completed":
            self.log.info(f"Session ended without a strip ({outcome})")
            return None

        frames = self.session.take_frames()
        strip = self.render_strip(frames)
        self.last_strip = strip
        output = self.deliver(strip)
        self._publish(
            SessionEvent(
                kind=EventKind.READY,
                state=self.session.state,
                frame_count=len(frames),
                message=output,
                timestamp=self.session.clock.now(),
            )
        )
        return strip

    def _run_in_background(self):
        try:
            self._run_session()
        except PhotoboothError as e:
            self.log.error(f"Background session failed: {e}")
        except Exception as e:
            self.log.exception(f"Background session crashed: {e}")
