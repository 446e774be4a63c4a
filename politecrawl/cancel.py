"""Cooperative cancellation with forced-exit escalation.

A crawl samples its token at fixed checkpoints. The first interrupt only sets
the flag; a second one inside ``escalation_window`` seconds terminates the
process without cleanup, for crawls stuck in a long wait or a hung request.
"""
import logging
import os
import signal
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional


logger = logging.getLogger(__name__)

ESCALATION_WINDOW_SECONDS = 3.0
FORCED_EXIT_STATUS = 1


class CancellationToken:
    def __init__(
        self,
        escalation_window: float = ESCALATION_WINDOW_SECONDS,
        clock: Callable[[], float] | None = None,
        exit_fn: Callable[[int], None] | None = None,
    ) -> None:
        self.escalation_window = escalation_window
        self._clock = clock or time.monotonic
        self._exit = exit_fn or os._exit
        self._event = threading.Event()
        self._lock = threading.Lock()
        self.interrupt_count = 0
        self.last_interrupt: Optional[float] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request a graceful stop. Idempotent."""
        self._event.set()

    def wait(self, timeout: float) -> bool:
        """Block for up to ``timeout`` seconds; returns True as soon as cancellation is requested."""
        if timeout <= 0:
            return self._event.is_set()
        return self._event.wait(timeout)

    def interrupt(self) -> None:
        with self._lock:
            now = self._clock()
            previous = self.last_interrupt
            self.interrupt_count += 1
            self.last_interrupt = now
            escalate = (
                self.interrupt_count >= 2
                and previous is not None
                and now - previous < self.escalation_window
            )
        if escalate:
            logger.warning("Second interrupt within %.1fs, exiting immediately", self.escalation_window)
            self._exit(FORCED_EXIT_STATUS)
            return
        logger.warning("Interrupt received, stopping after the current URL (interrupt again to force exit)")
        self.cancel()

    def reset(self) -> None:
        with self._lock:
            self._event.clear()
            self.interrupt_count = 0
            self.last_interrupt = None


@contextmanager
def handle_sigint(token: CancellationToken) -> Iterator[CancellationToken]:
    """Route SIGINT to ``token.interrupt`` for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread; SIGINT handler not installed")
        yield token
        return

    def _handler(signum, frame) -> None:
        token.interrupt()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
