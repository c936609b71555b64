"""
Frame-rate throttle for the detection lanes
"""
import time
from typing import Callable, Optional

from fretcoach.config.guitar_config import DETECTION_FPS


class RateLimiter:
    """Let through at most ``max_hz`` events per second; the rest are dropped"""

    def __init__(self, max_hz: float = DETECTION_FPS, clock: Callable[[], float] = time.monotonic):
        if max_hz <= 0:
            raise ValueError(f"max_hz must be positive, got {max_hz}")

        self.max_hz = max_hz
        self.min_interval = 1.0 / max_hz
        self._clock = clock
        self._last_time: Optional[float] = None

    def allow(self, now: Optional[float] = None) -> bool:
        """
        Check whether an event at ``now`` may be processed, and record it if so

        Args:
            now: Event timestamp in seconds (defaults to the clock)

        Returns:
            True if enough time passed since the last allowed event
        """
        if now is None:
            now = self._clock()

        if self._last_time is not None and now - self._last_time <= self.min_interval:
            return False

        self._last_time = now
        return True

    def reset(self):
        self._last_time = None
