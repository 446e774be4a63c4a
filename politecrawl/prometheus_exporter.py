import logging
import threading
from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from .metrics import Metrics


logger = logging.getLogger(__name__)


class PrometheusExporter:
    def __init__(self, metrics: Metrics, port: int = 8000, registry: CollectorRegistry | None = None) -> None:
        self.metrics = metrics
        self.port = port
        self.registry = registry or CollectorRegistry()
        self._server_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        self.crawled_total = Counter('politecrawl_urls_crawled_total', 'URLs fetched successfully', registry=self.registry)
        self.failed_total = Counter('politecrawl_urls_failed_total', 'URLs whose fetch failed after retries', registry=self.registry)
        self.skipped_total = Counter('politecrawl_urls_skipped_total', 'URLs blocked by robots.txt', registry=self.registry)
        self.cancelled_total = Counter('politecrawl_urls_cancelled_total', 'URLs abandoned due to cancellation', registry=self.registry)
        self.bytes_total = Counter('politecrawl_bytes_total', 'Response body bytes received', registry=self.registry)
        self.avg_fetch_duration_seconds = Gauge(
            'politecrawl_avg_fetch_duration_seconds', 'Average fetch duration in seconds', registry=self.registry
        )

        self._last = {"crawled": 0, "failed": 0, "skipped": 0, "cancelled": 0, "bytes": 0}

    def start(self) -> None:
        start_http_server(self.port, registry=self.registry)
        logger.info("Prometheus metrics server started on port %d", self.port)

        self._server_thread = threading.Thread(
            target=self._update_metrics_loop,
            name="prometheus-updater",
            daemon=True
        )
        self._server_thread.start()

    def _update_metrics_loop(self) -> None:
        while not self._stop_event.is_set():
            self.update()
            self._stop_event.wait(5.0)

    def update(self) -> None:
        totals, _ = self.metrics.snapshot()
        counters = {
            "crawled": self.crawled_total,
            "failed": self.failed_total,
            "skipped": self.skipped_total,
            "cancelled": self.cancelled_total,
            "bytes": self.bytes_total,
        }
        for name, counter in counters.items():
            current = getattr(totals, name)
            # totals drop back to zero when the crawler starts a new run
            delta = current - self._last[name] if current >= self._last[name] else current
            if delta > 0:
                counter.inc(delta)
            self._last[name] = current

        if totals.fetched > 0:
            self.avg_fetch_duration_seconds.set(totals.fetch_ms_sum / totals.fetched / 1000.0)

    def stop(self) -> None:
        self._stop_event.set()
        if self._server_thread:
            self._server_thread.join(timeout=2.0)
        self.update()
