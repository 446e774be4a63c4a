import threading
import time

import pytest

from politecrawl.cancel import CancellationToken
from politecrawl.rate import RateLimiter


class TimelineToken(CancellationToken):
    """Token whose waits advance a fake clock instead of blocking."""

    def __init__(self, timeline, cancel_after=None):
        super().__init__()
        self.timeline = timeline
        self.cancel_after = cancel_after
        self.waits = []

    def wait(self, timeout):
        self.waits.append(timeout)
        if self.cancel_after is not None and timeout > self.cancel_after:
            self.timeline[0] += self.cancel_after
            self.cancel()
            return True
        self.timeline[0] += timeout
        return self.cancelled


def test_rate_limiter_waits():
    timeline = [0.0]
    token = TimelineToken(timeline)
    rl = RateLimiter(now=lambda: timeline[0])

    assert rl.wait_turn(None, 0.5, token)
    assert token.waits == []  # never crawled: no wait
    last = timeline[0]
    timeline[0] += 0.1
    assert rl.wait_turn(last, 0.5, token)
    assert len(token.waits) == 1 and 0.39 <= token.waits[-1] <= 0.41
    assert timeline[0] == pytest.approx(last + 0.5)


def test_no_wait_once_delay_has_elapsed():
    timeline = [10.0]
    token = TimelineToken(timeline)
    rl = RateLimiter(now=lambda: timeline[0])
    assert rl.remaining(8.0, 1.0) == 0.0
    assert rl.wait_turn(8.0, 1.0, token)
    assert token.waits == []


def test_cancel_during_wait_is_reported():
    timeline = [0.0]
    token = TimelineToken(timeline, cancel_after=0.2)
    rl = RateLimiter(now=lambda: timeline[0])
    assert not rl.wait_turn(0.0, 5.0, token)
    assert timeline[0] == 0.2


def test_real_wait_wakes_early_on_cancel():
    token = CancellationToken()
    rl = RateLimiter()
    threading.Timer(0.05, token.cancel).start()
    t0 = time.monotonic()
    assert not rl.wait_turn(time.monotonic(), 10.0, token)
    assert time.monotonic() - t0 < 5.0
