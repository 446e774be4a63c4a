import logging
import time
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import urllib3
from urllib3 import exceptions as urllib3_exc
from urllib3.util.retry import Retry

from .config import RetryConfig
from .types import HttpResponse, HttpTransport, TransportResponse


logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429})
MAX_REDIRECTS = 5

# only used for its Retry-After parser
_RETRY_AFTER_PARSER = Retry(total=0)


class HttpClient:
    """urllib3 transport. Retries are owned by fetch_with_retry, so urllib3 only follows redirects."""

    def __init__(self, timeout_seconds: float = 30.0, max_connections: int = 4):
        self.timeout_seconds = timeout_seconds
        self.retries = Retry(
            total=None,
            connect=0,
            read=0,
            status=0,
            other=0,
            redirect=MAX_REDIRECTS,
            raise_on_redirect=False,
            raise_on_status=False,
        )
        self.http = urllib3.PoolManager(num_pools=8, maxsize=max_connections, retries=self.retries)

    def request(self, url: str, headers: Mapping[str, str], timeout: Optional[float] = None) -> TransportResponse:
        response = self.http.request(
            "GET",
            url,
            headers=dict(headers),
            timeout=urllib3.Timeout(connect=5.0, read=timeout or self.timeout_seconds),
            preload_content=True,
            decode_content=True,
        )
        return TransportResponse(status=response.status, headers=dict(response.headers), data=response.data or b"")

    def close(self) -> None:
        self.http.clear()


def is_retryable(status: int) -> bool:
    return status in RETRYABLE_STATUSES or 500 <= status <= 599


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds to wait from a Retry-After value (delta-seconds or HTTP-date), None if unusable."""
    if not value or not value.strip():
        return None
    try:
        seconds = _RETRY_AFTER_PARSER.parse_retry_after(value.strip())
    except (urllib3_exc.InvalidHeader, ValueError, OverflowError):
        return None
    return max(0.0, float(seconds))


def compute_backoff_ms(retry: RetryConfig, attempt: int) -> float:
    """Backoff before retry number ``attempt + 1`` (attempt counts from 0)."""
    backoff = retry.initial_backoff_ms * (retry.backoff_multiplier ** attempt)
    return float(min(backoff, retry.max_backoff_ms))


def build_headers(
    user_agent: str = "",
    compress: bool = True,
    if_none_match: Optional[str] = None,
    if_modified_since: Optional[str] = None,
) -> Dict[str, str]:
    headers = {
        "Accept": "text/html,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate" if compress else "identity",
    }
    if user_agent:
        headers["User-Agent"] = user_agent
    if if_none_match:
        headers["If-None-Match"] = if_none_match
    if if_modified_since:
        headers["If-Modified-Since"] = if_modified_since
    return headers


def _decode_body(data: bytes, content_type: str) -> str:
    encoding = "utf-8"
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            encoding = value.strip().strip('"').lower()
    try:
        return data.decode(encoding, errors="ignore")
    except (LookupError, ValueError):
        # unknown or bytes-to-bytes codecs such as base64
        return data.decode("utf-8", errors="ignore")


def _content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length >= 0 else None


def _to_response(raw: TransportResponse) -> HttpResponse:
    headers = {k.lower(): v for k, v in raw.headers.items()}
    content_type = headers.get("content-type", "")
    res = HttpResponse(
        status_code=raw.status,
        body=_decode_body(raw.data, content_type) if raw.data else "",
        content_type=content_type,
        content_length=_content_length(headers.get("content-length")),
        retry_after=headers.get("retry-after", ""),
        server_date=headers.get("date", ""),
        etag=headers.get("etag", ""),
        last_modified=headers.get("last-modified", ""),
        success=raw.status < 400,
    )
    if not res.success:
        res.error = f"HTTP {raw.status}"
    return res


def _attempt(transport: HttpTransport, url: str, headers: Mapping[str, str], timeout: Optional[float]) -> Tuple[HttpResponse, bool]:
    try:
        raw = transport.request(url, headers, timeout)
    except urllib3_exc.HTTPError as exc:
        return HttpResponse(error=f"request failed: {exc}"), True
    res = _to_response(raw)
    return res, not res.success and is_retryable(res.status_code)


def fetch_with_retry(
    transport: HttpTransport,
    url: str,
    retry: RetryConfig,
    user_agent: str = "",
    compress: bool = True,
    if_none_match: Optional[str] = None,
    if_modified_since: Optional[str] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], None] | None = None,
) -> HttpResponse:
    """GET ``url``, retrying transient failures with exponential backoff.

    Network and HTTP failures never raise; they come back as ``success=False``
    with a readable ``error``. Only an invalid ``retry`` raises (ConfigError).
    """
    retry.validate()
    sleep = sleep or time.sleep
    headers = build_headers(user_agent, compress, if_none_match, if_modified_since)
    backoffs: List[float] = []
    res = HttpResponse()
    retryable = False

    for attempt in range(retry.max_retries + 1):
        res, retryable = _attempt(transport, url, headers, timeout)
        res.attempts = attempt + 1
        if res.success or not retryable or attempt == retry.max_retries:
            break
        delay_ms = compute_backoff_ms(retry, attempt)
        server_delay = parse_retry_after(res.retry_after)
        if server_delay is not None:
            delay_ms = min(server_delay * 1000.0, float(retry.max_backoff_ms))
        backoffs.append(delay_ms)
        logger.debug("Attempt %d for %s failed (%s); retrying in %.0f ms", res.attempts, url, res.error, delay_ms)
        sleep(delay_ms / 1000.0)

    res.backoffs_ms = backoffs
    if not res.success and retryable and res.attempts > 1:
        res.error = f"{res.error} (gave up after {res.attempts} attempts)"
        logger.info("Giving up on %s after %d attempts: %s", url, res.attempts, res.error)
    return res
