"""Per-domain politeness state.

robots.txt is consulted at most once per domain per run. A failed fetch is
not an error: the domain is treated as unrestricted with the default delay,
and the decision sticks for the rest of the run.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, NamedTuple, Optional, Tuple

from .config import CrawlConfig
from .robots import is_allowed, parse_robots, rules_for_user_agent
from .types import HttpResponse, RobotsRules


logger = logging.getLogger(__name__)


def clamp_delay(delay: float, lo: float, hi: float) -> float:
    return max(lo, min(delay, hi))


def robots_url(domain: str) -> str:
    return f"https://{domain}/robots.txt"


@dataclass
class DomainState:
    crawl_delay_seconds: float
    last_crawl_time: Optional[float] = None
    rules: RobotsRules = field(default_factory=RobotsRules)
    sitemaps: Tuple[str, ...] = ()
    robots_fetched: bool = False
    urls_crawled: int = 0
    urls_failed: int = 0
    urls_skipped: int = 0


class Resolution(NamedTuple):
    delay_seconds: float
    allowed: bool
    resolved_now: bool


class DomainRegistry:
    def __init__(self, config: CrawlConfig, fetch_robots: Callable[[str], HttpResponse]):
        self.config = config
        self._fetch_robots = fetch_robots
        self._states: Dict[str, DomainState] = {}
        self.robots_fetches = 0

    def _default_delay(self) -> float:
        cfg = self.config
        return clamp_delay(cfg.default_crawl_delay, cfg.min_crawl_delay, cfg.max_crawl_delay)

    def state_for(self, domain: str) -> DomainState:
        state = self._states.get(domain)
        if state is None:
            state = DomainState(crawl_delay_seconds=self._default_delay())
            self._states[domain] = state
        return state

    def _load_robots(self, domain: str, state: DomainState) -> None:
        cfg = self.config
        url = robots_url(domain)
        self.robots_fetches += 1
        response = self._fetch_robots(url)
        if response.success:
            data = parse_robots(response.body)
            state.rules = rules_for_user_agent(data, cfg.user_agent)
            state.sitemaps = data.sitemaps
            declared = state.rules.crawl_delay
            delay = declared if declared is not None else cfg.default_crawl_delay
            state.crawl_delay_seconds = clamp_delay(delay, cfg.min_crawl_delay, cfg.max_crawl_delay)
            logger.info(
                "robots.txt for %s: delay=%.2fs disallow=%d allow=%d",
                domain,
                state.crawl_delay_seconds,
                len(state.rules.disallow),
                len(state.rules.allow),
            )
        else:
            state.rules = RobotsRules()
            state.crawl_delay_seconds = self._default_delay()
            logger.debug("No usable robots.txt for %s (%s); allowing all", domain, response.error)
        state.robots_fetched = True

    def resolve(self, domain: str, path: str) -> Resolution:
        state = self.state_for(domain)
        if not self.config.respect_robots_txt:
            return Resolution(state.crawl_delay_seconds, True, False)
        resolved_now = False
        if not state.robots_fetched:
            self._load_robots(domain, state)
            resolved_now = True
        return Resolution(state.crawl_delay_seconds, is_allowed(state.rules, path), resolved_now)

    def get(self, domain: str) -> Optional[DomainState]:
        return self._states.get(domain)

    def items(self) -> Iterator[Tuple[str, DomainState]]:
        return iter(self._states.items())

    def __contains__(self, domain: str) -> bool:
        return domain in self._states

    def __len__(self) -> int:
        return len(self._states)
