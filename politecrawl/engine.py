import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, Optional, Protocol

from .cancel import CancellationToken, handle_sigint
from .config import PAGE_RETRY, ROBOTS_RETRY, CrawlConfig, RetryConfig
from .domains import DomainRegistry
from .metrics import Metrics, StatsLogger, Totals
from .net import HttpClient, fetch_with_retry
from .parsing import UrlTools
from .rate import RateLimiter
from .types import BLOCKED_STATUS, CrawlResult, HttpResponse, HttpTransport, Outcome


logger = logging.getLogger(__name__)

BLOCKED_ERROR = "robots.txt disallow"


class ResultSink(Protocol):
    def write(self, result: CrawlResult) -> None: ...


@dataclass
class RunState:
    domains: DomainRegistry
    metrics: Metrics = field(default_factory=Metrics)
    current_index: int = 0
    start_time: float = 0.0


class Crawler:
    """Processes one worklist URL per ``next_result()`` call, strictly in order.

    Single-threaded: with one request in flight, per-domain crawl
    delays hold without any cross-thread coordination. The lock only guards
    ``RunState`` in case a host drives the same run from several threads.
    """

    def __init__(
        self,
        config: CrawlConfig,
        http_client: HttpTransport | None = None,
        token: CancellationToken | None = None,
        now: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
        wall_clock: Callable[[], datetime] | None = None,
    ):
        config.validate()
        self.config = config
        self._owns_http = http_client is None
        self.http = http_client or HttpClient(config.timeout_seconds)
        self.token = token or CancellationToken()
        self._now = now or time.monotonic
        self._sleep = sleep or time.sleep
        self._wall_clock = wall_clock or (lambda: datetime.now(timezone.utc))
        self.rate = RateLimiter(self._now)
        self._lock = threading.Lock()
        # shared across runs; start() resets it in place
        self._metrics = Metrics()
        self.last_outcome: Optional[Outcome] = None
        self.start()

    def start(self) -> None:
        """Begin a fresh run: new run state, cleared cancellation."""
        with self._lock:
            self._metrics.reset()
            self.state = RunState(
                domains=DomainRegistry(self.config, self._fetch_robots),
                metrics=self._metrics,
                start_time=self._now(),
            )
            self._finished = False
            self.last_outcome = None
        self.token.reset()

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def metrics(self) -> Metrics:
        return self.state.metrics

    def close(self) -> None:
        """Release the connection pools of a transport this crawler created itself."""
        if self._owns_http:
            self.http.close()

    def _fetch(self, url: str, retry: RetryConfig) -> HttpResponse:
        return fetch_with_retry(
            self.http,
            url,
            retry,
            user_agent=self.config.user_agent,
            compress=self.config.compress,
            timeout=self.config.timeout_seconds,
            sleep=self._sleep,
        )

    def _fetch_robots(self, url: str) -> HttpResponse:
        return self._fetch(url, ROBOTS_RETRY)

    def next_result(self) -> Optional[CrawlResult]:
        """Process the next URL. None means zero rows for this call; check ``finished``."""
        if self._finished or self.token.cancelled:
            self._finished = True
            return None
        with self._lock:
            state = self.state
            if state.current_index >= len(self.config.urls):
                self._finished = True
                return None
            url = self.config.urls[state.current_index]
            state.current_index += 1
            return self._process(url, state)

    def _process(self, url: str, state: RunState) -> Optional[CrawlResult]:
        domain, path = UrlTools.split(url)
        resolution = state.domains.resolve(domain, path)
        domain_state = state.domains.state_for(domain)

        if not resolution.allowed:
            domain_state.urls_skipped += 1
            state.metrics.record_skip()
            self.last_outcome = Outcome.BLOCKED
            logger.debug("Disallowed by robots.txt: %s", url)
            if not self.config.log_skipped:
                return None
            return CrawlResult(
                url=url,
                domain=domain,
                outcome=Outcome.BLOCKED,
                status=BLOCKED_STATUS,
                body=None,
                content_type=None,
                elapsed_ms=0,
                crawled_at=self._wall_clock(),
                error=BLOCKED_ERROR,
            )

        if not self.rate.wait_turn(domain_state.last_crawl_time, resolution.delay_seconds, self.token):
            state.metrics.record_cancel()
            self.last_outcome = Outcome.CANCELLED
            logger.info("Cancelled before fetching %s", url)
            return None

        t0 = self._now()
        response = self._fetch(url, PAGE_RETRY)
        t1 = self._now()
        domain_state.last_crawl_time = t1
        elapsed_ms = int((t1 - t0) * 1000.0)

        if response.success:
            domain_state.urls_crawled += 1
        else:
            domain_state.urls_failed += 1
        state.metrics.record_fetch(response.success, len(response.body.encode("utf-8")), elapsed_ms)
        self.last_outcome = Outcome.FETCHED

        return CrawlResult(
            url=url,
            domain=domain,
            outcome=Outcome.FETCHED,
            status=response.status_code,
            body=response.body or None,
            content_type=response.content_type or None,
            elapsed_ms=elapsed_ms,
            crawled_at=self._wall_clock(),
            error=response.error or None,
        )

    def _drain(self) -> Iterator[CrawlResult]:
        while not self._finished:
            result = self.next_result()
            if result is not None:
                yield result

    def iter_results(self) -> Iterator[CrawlResult]:
        self.start()
        yield from self._drain()

    __iter__ = iter_results

    def domain_stats(self) -> Dict[str, Dict]:
        stats: Dict[str, Dict] = {}
        for domain, ds in self.state.domains.items():
            stats[domain] = {
                "crawl_delay_seconds": ds.crawl_delay_seconds,
                "robots_fetched": ds.robots_fetched,
                "urls_crawled": ds.urls_crawled,
                "urls_failed": ds.urls_failed,
                "urls_skipped": ds.urls_skipped,
                "sitemaps": list(ds.sitemaps),
            }
        return stats

    def run(self, sink: ResultSink | None = None) -> Totals:
        self.start()
        logger.info(
            "Starting crawl: %d URLs, user agent %r, robots.txt %s",
            len(self.config.urls),
            self.config.user_agent,
            "respected" if self.config.respect_robots_txt else "ignored",
        )
        stats_thread: Optional[StatsLogger] = None
        if self.config.metrics_interval and self.config.metrics_interval > 0:
            stats_thread = StatsLogger(self.metrics, self.config.metrics_interval, logger.info)
            stats_thread.start()
        try:
            with handle_sigint(self.token):
                for result in self._drain():
                    if sink is not None:
                        sink.write(result)
        finally:
            if stats_thread:
                stats_thread.stop()
        totals, _ = self.metrics.snapshot()
        logger.info(
            "Finished in %.1fs: crawled=%d failed=%d skipped=%d cancelled=%d domains=%d%s",
            self._now() - self.state.start_time,
            totals.crawled,
            totals.failed,
            totals.skipped,
            totals.cancelled,
            len(self.state.domains),
            " (stopped early)" if self.token.cancelled else "",
        )
        return totals
