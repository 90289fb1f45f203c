import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from photobooth.camera.base import FrameSource
from photobooth.errors import AlreadyInProgress, CaptureFailed
from photobooth.fsm import CaptureFSM, WallClock


class EventKind(Enum):
    STATE = "state"
    COUNTDOWN = "countdown"
    FLASH = "flash"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"
    READY = "ready"  # strip rendered and delivered


@dataclass(frozen=True)
class SessionEvent:
    kind: EventKind
    state: str
    remaining: int = 0
    frame_index: int = -1
    frame_count: int = 0
    message: str = ""
    timestamp: float = 0.0


Listener = Callable[[SessionEvent], None]


class CaptureSession:
    """
    Timed multi-shot capture:

        countdown -> capture -> flash -> (pause -> countdown -> ...) -> complete

    The session advances one step per ``tick()``; ``run()`` drives the ticks
    with a clock. ``start``, ``tick`` and ``cancel`` share one lock, so a cancel
    lands between ticks and no frame is appended after it.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        clock=None,
        target_count: int = 4,
        countdown_seconds: int = 3,
        tick_interval: float = 1.0,
        interstitial_delay: float = 0.8,
        listener: Optional[Listener] = None,
    ):
        self.log = logging.getLogger("CaptureSession")

        self.frame_source = frame_source
        self.clock = clock or WallClock()
        self.target_count = target_count
        self.countdown_seconds = countdown_seconds
        self.tick_interval = tick_interval
        self.interstitial_delay = interstitial_delay

        # --- Session state ---
        self._frames: List[np.ndarray] = []
        self.remaining = 0
        self.outcome: Optional[str] = None  # completed | cancelled | failed
        self._pending: Optional[float] = None
        self._lock = threading.RLock()
        self._listeners: List[Listener] = [listener] if listener else []

        # --- FSM ---
        self.fsm = CaptureFSM(callbacks=self._fsm_callbacks())

    # ----------------------------------------------------------------------
    # FSM CALLBACKS
    # ----------------------------------------------------------------------

    def _fsm_callbacks(self):
        return {
            "on_enter_idle": self._on_enter_state,
            "on_enter_counting_down": self._on_enter_state,
            "on_enter_capturing": self._on_enter_state,
            "on_enter_interstitial": self._on_enter_state,
            "on_enter_complete": self._on_enter_state,
        }

    def _on_enter_state(self):
        self.log.debug("Entered state %s", self.fsm.state)
        self._emit(EventKind.STATE)

    # ----------------------------------------------------------------------
    # PUBLIC API
    # ----------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self.fsm.state

    @property
    def is_active(self) -> bool:
        return self.fsm.is_active()

    @property
    def frames(self) -> tuple:
        """Snapshot of the frames captured so far."""
        return tuple(self._frames)

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def start(self, target_count: Optional[int] = None, countdown_seconds: Optional[int] = None) -> Optional[float]:
        """
        Begin a new session. Returns the delay before the first tick.
        Raises AlreadyInProgress (without touching the running session) when active.
        """
        with self._lock:
            if self.fsm.is_active():
                raise AlreadyInProgress(f"Capture session already in progress (state: {self.fsm.state})")

            if target_count is not None and target_count < 1:
                raise ValueError("target_count must be at least 1")
            if target_count is not None:
                self.target_count = target_count
            if countdown_seconds is not None:
                self.countdown_seconds = countdown_seconds

            self._frames = []
            self.outcome = None
            self.fsm.reset_progress(self.target_count)
            self.clock.reset()

            self.log.info(
                "Starting session: %d photos, %ds countdown", self.target_count, self.countdown_seconds
            )
            self.fsm.start()
            return self._next(self._begin_countdown())

    def tick(self) -> Optional[float]:
        """
        Advance one scheduled step. Returns the delay until the next tick or
        None when the session has nothing more to do.
        """
        with self._lock:
            state = self.fsm.state

            if state == "counting_down":
                self.remaining -= 1
                if self.remaining > 0:
                    self._emit(EventKind.COUNTDOWN, remaining=self.remaining)
                    return self._next(self.tick_interval)
                return self._next(self._capture())

            if state == "interstitial":
                self.fsm.next_shot()
                if not self.fsm.is_active():
                    return self._next(None)
                return self._next(self._begin_countdown())

            return self._next(None)

    def run(self) -> Optional[str]:
        """Drive ticks until the session finishes. Returns the outcome."""
        delay = self._pending
        while delay is not None:
            self.clock.sleep(delay)
            delay = self.tick()
        return self.outcome

    def cancel(self) -> bool:
        """Abort an active session, discarding captured frames."""
        with self._lock:
            if not self.fsm.is_active():
                self.log.warning(f"Cannot cancel from state: {self.fsm.state}")
                return False

            discarded = len(self._frames)
            self._frames = []
            self.fsm.captured_count = 0
            self._pending = None
            self.outcome = "cancelled"
            self.fsm.cancel()
            self.log.info("Session cancelled, %d frame(s) discarded", discarded)
            self._emit(EventKind.CANCELLED, message=f"{discarded} frame(s) discarded")

        self.clock.wake()
        return True

    def take_frames(self) -> List[np.ndarray]:
        """Hand the completed frame list over and reset the session to idle."""
        with self._lock:
            if self.fsm.state != "complete":
                raise RuntimeError(f"No completed strip to hand over (state: {self.fsm.state})")
            frames, self._frames = self._frames, []
            self.fsm.captured_count = 0
            self.fsm.retake()
            return frames

    def retake(self) -> bool:
        """Drop a completed session's frames and return to idle."""
        with self._lock:
            if self.fsm.state != "complete":
                self.log.warning(f"Cannot retake from state: {self.fsm.state}")
                return False
            self._frames = []
            self.fsm.captured_count = 0
            self.fsm.retake()
            return True

    # ----------------------------------------------------------------------
    # STEPS
    # ----------------------------------------------------------------------

    def _begin_countdown(self) -> Optional[float]:
        self.remaining = self.countdown_seconds
        if self.remaining <= 0:
            return self._capture()
        self._emit(EventKind.COUNTDOWN, remaining=self.remaining)
        return self.tick_interval

    def _capture(self) -> Optional[float]:
        self.fsm.shutter()
        if not self.fsm.is_active():
            return None

        try:
            frame = self.frame_source.capture_frame()
        except CaptureFailed as e:
            self._abort(e)
            raise
        except Exception as e:
            error = CaptureFailed(f"Frame source error: {e}")
            self._abort(error)
            raise error from e

        if frame is None:
            error = CaptureFailed("Frame source returned no frame")
            self._abort(error)
            raise error

        self._frames.append(frame)
        self.fsm.captured_count = len(self._frames)
        index = len(self._frames) - 1
        self.log.info("Captured photo %d of %d", index + 1, self.target_count)
        self._emit(EventKind.FLASH, frame_index=index)
        if not self.fsm.is_active():
            return None

        self.fsm.shot_taken()
        if self.fsm.state == "complete":
            self.outcome = "completed"
            self._emit(EventKind.COMPLETE)
            return None
        return self.interstitial_delay

    def _abort(self, error: Exception):
        self.log.error(f"Capture failed, aborting session: {error}")
        self._frames = []
        self.fsm.captured_count = 0
        self.outcome = "failed"
        self.fsm.fail()
        self._emit(EventKind.FAILED, message=str(error))

    def _next(self, delay: Optional[float]) -> Optional[float]:
        self._pending = delay if self.fsm.is_active() else None
        return self._pending

    def _emit(self, kind: EventKind, remaining: int = 0, frame_index: int = -1, message: str = ""):
        event = SessionEvent(
            kind=kind,
            state=self.fsm.state,
            remaining=remaining,
            frame_index=frame_index,
            frame_count=len(self._frames),
            message=message,
            timestamp=self.clock.now(),
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.log.exception(f"Session listener failed on {kind.value} event: {e}")
