from .booth_fsm import ACTIVE_STATES, CaptureFSM
from .clock import VirtualClock, WallClock

__all__ = ["ACTIVE_STATES", "CaptureFSM", "VirtualClock", "WallClock"]
