import threading
import time
from dataclasses import dataclass


@dataclass
class Totals:
    crawled: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: int = 0
    bytes: int = 0
    fetch_ms_sum: float = 0.0

    @property
    def fetched(self) -> int:
        return self.crawled + self.failed


class Metrics:
    def __init__(self):
        self._totals = Totals()
        self._lock = threading.Lock()
        self._start = time.time()

    @property
    def start_time(self) -> float:
        return self._start

    def reset(self) -> None:
        with self._lock:
            self._totals = Totals()
            self._start = time.time()

    def record_fetch(self, ok: bool, bytes_read: int, fetch_ms: float) -> None:
        with self._lock:
            if ok:
                self._totals.crawled += 1
            else:
                self._totals.failed += 1
            self._totals.bytes += max(0, bytes_read)
            self._totals.fetch_ms_sum += fetch_ms

    def record_skip(self) -> None:
        with self._lock:
            self._totals.skipped += 1

    def record_cancel(self) -> None:
        with self._lock:
            self._totals.cancelled += 1

    def snapshot(self) -> tuple[Totals, float]:
        with self._lock:
            t = Totals(
                crawled=self._totals.crawled,
                failed=self._totals.failed,
                skipped=self._totals.skipped,
                cancelled=self._totals.cancelled,
                bytes=self._totals.bytes,
                fetch_ms_sum=self._totals.fetch_ms_sum,
            )
        elapsed = max(1e-6, time.time() - self._start)
        return t, elapsed


class StatsLogger(threading.Thread):
    daemon = True

    def __init__(self, metrics: Metrics, interval_s: float, log_fn):
        super().__init__(name="stats-logger")
        self._metrics = metrics
        self._interval = max(0.5, interval_s)
        self._log = log_fn
        self._stop = threading.Event()

    def run(self) -> None:
        while not self._stop.is_set():
            self._stop.wait(self._interval)
            if self._stop.is_set():
                break
            totals, elapsed = self._metrics.snapshot()
            self._log(
                "Perf: crawled=%d, failed=%d, skipped=%d, MB=%.2f, avg_fetch_ms=%.1f, urls/sec=%.2f",
                totals.crawled,
                totals.failed,
                totals.skipped,
                totals.bytes / (1024 * 1024),
                totals.fetch_ms_sum / max(1, totals.fetched),
                totals.fetched / elapsed,
            )

    def stop(self) -> None:
        self._stop.set()
