import time
from typing import Callable, Optional

from .cancel import CancellationToken


class RateLimiter:
    """Waits out a domain's crawl delay, waking early on cancellation."""

    def __init__(self, now: Callable[[], float] | None = None):
        self._now = now or time.monotonic

    def remaining(self, last_time: Optional[float], delay_seconds: float) -> float:
        if last_time is None or delay_seconds <= 0:
            return 0.0
        return max(0.0, last_time + delay_seconds - self._now())

    def wait_turn(self, last_time: Optional[float], delay_seconds: float, cancel: CancellationToken) -> bool:
        """Returns False if cancellation was observed once the wait ended."""
        wait_for = self.remaining(last_time, delay_seconds)
        if wait_for > 0:
            cancel.wait(wait_for)
        return not cancel.cancelled
