import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Protocol, Tuple


BLOCKED_STATUS = -1


@dataclass(frozen=True)
class RobotsRules:
    crawl_delay: Optional[float] = None
    disallow: Tuple[str, ...] = ()
    allow: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RobotsData:
    # keys are lowercase user-agent tokens
    user_agents: Dict[str, RobotsRules] = field(default_factory=dict)
    sitemaps: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TransportResponse:
    status: int
    headers: Mapping[str, str]
    data: bytes


class HttpTransport(Protocol):
    def request(self, url: str, headers: Mapping[str, str], timeout: Optional[float] = None) -> TransportResponse: ...


@dataclass
class HttpResponse:
    status_code: int = 0
    body: str = ""
    content_type: str = ""
    content_length: Optional[int] = None
    retry_after: str = ""
    server_date: str = ""
    etag: str = ""
    last_modified: str = ""
    error: str = ""
    success: bool = False
    attempts: int = 0
    backoffs_ms: List[float] = field(default_factory=list)


class Outcome(enum.Enum):
    FETCHED = "fetched"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CrawlResult:
    url: str
    domain: str
    outcome: Outcome
    status: int
    body: Optional[str]
    content_type: Optional[str]
    elapsed_ms: int
    crawled_at: datetime
    error: Optional[str]

    @property
    def http_status(self) -> int:
        if self.outcome is Outcome.BLOCKED:
            return BLOCKED_STATUS
        return self.status

    def to_row(self) -> Tuple:
        """Output columns: url, domain, http_status, body, content_type, elapsed_ms, crawled_at, error."""
        return (
            self.url,
            self.domain,
            self.http_status,
            self.body,
            self.content_type,
            self.elapsed_ms,
            self.crawled_at,
            self.error,
        )
