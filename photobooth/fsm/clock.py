"""
Tick sources for the capture session.

The session never calls ``time.sleep`` directly; it asks a clock to wait.
``WallClock`` waits in real time and can be woken early (cancellation).
``VirtualClock`` returns immediately and only advances a counter, so tests can
fast-forward through countdowns.
"""

import threading
import time
from typing import Callable, List, Optional


class WallClock:
    def __init__(self):
        self._wake = threading.Event()

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> bool:
        """Wait up to ``seconds``. Returns False if woken early."""
        woken = self._wake.wait(max(0.0, seconds))
        self._wake.clear()
        return not woken

    def wake(self) -> None:
        self._wake.set()

    def reset(self) -> None:
        """Forget a wake-up that arrived while nobody was waiting."""
        self._wake.clear()


class VirtualClock:
    def __init__(self, start: float = 0.0, on_sleep: Optional[Callable[[float], None]] = None):
        self.time = start
        self.sleeps: List[float] = []
        self.on_sleep = on_sleep

    def now(self) -> float:
        return self.time

    def sleep(self, seconds: float) -> bool:
        self.sleeps.append(seconds)
        self.time += seconds
        if self.on_sleep is not None:
            self.on_sleep(self.time)
        return True

    def wake(self) -> None:
        pass

    def reset(self) -> None:
        pass
