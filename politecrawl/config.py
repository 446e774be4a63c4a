from dataclasses import dataclass
from typing import List


DEFAULT_USER_AGENT = "politecrawl/1.0 (+https://example.com; contact: crawler@example.com)"


class ConfigError(ValueError):
    """Raised at setup time for configuration that cannot run."""


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 5
    initial_backoff_ms: int = 100
    backoff_multiplier: float = 2.0
    max_backoff_ms: int = 30000

    def validate(self) -> None:
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0")
        if self.initial_backoff_ms < 0:
            raise ConfigError("initial_backoff_ms must be >= 0")
        if self.backoff_multiplier < 1.0:
            raise ConfigError("backoff_multiplier must be >= 1.0")
        if self.max_backoff_ms < self.initial_backoff_ms:
            raise ConfigError("max_backoff_ms must be >= initial_backoff_ms")


ROBOTS_RETRY = RetryConfig(max_retries=2)
PAGE_RETRY = RetryConfig(max_retries=3)


@dataclass(frozen=True)
class CrawlConfig:
    urls: List[str]
    user_agent: str
    default_crawl_delay: float = 1.0
    min_crawl_delay: float = 0.0
    max_crawl_delay: float = 60.0
    timeout_seconds: float = 30.0
    respect_robots_txt: bool = True
    log_skipped: bool = True
    compress: bool = True
    metrics_interval: float = 0.0

    def validate(self) -> None:
        if not isinstance(self.user_agent, str) or not self.user_agent.strip():
            raise ConfigError("a non-empty user_agent is required")
        if isinstance(self.urls, (str, bytes)):
            raise ConfigError("urls must be a list of URL strings, not a single string")
        for i, url in enumerate(self.urls):
            if not isinstance(url, str) or not url.strip():
                raise ConfigError(f"urls[{i}] is not a non-empty string: {url!r}")
        for name in ("default_crawl_delay", "min_crawl_delay", "max_crawl_delay"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")
        if self.min_crawl_delay > self.max_crawl_delay:
            raise ConfigError("min_crawl_delay must not exceed max_crawl_delay")
        if self.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be > 0")
