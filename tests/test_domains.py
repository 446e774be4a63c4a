import pytest

from politecrawl.config import CrawlConfig
from politecrawl.domains import DomainRegistry, clamp_delay, robots_url
from politecrawl.types import HttpResponse


def cfg(**kw):
    base = dict(urls=[], user_agent="GoodBot", default_crawl_delay=1.0, min_crawl_delay=0.0, max_crawl_delay=60.0)
    base.update(kw)
    return CrawlConfig(**base)


class RobotsStub:
    def __init__(self, body=None):
        self.body = body
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        if self.body is None:
            return HttpResponse(status_code=404, error="HTTP 404")
        return HttpResponse(status_code=200, body=self.body, success=True)


@pytest.mark.parametrize("d,lo,hi", [(10, 2, 5), (0.5, 2, 5), (3, 2, 5), (0, 0, 60)])
def test_clamp_delay(d, lo, hi):
    assert clamp_delay(d, lo, hi) == max(lo, min(d, hi))


def test_declared_delay_is_clamped_to_max():
    fetch = RobotsStub("User-agent: *\nCrawl-delay: 10\n")
    reg = DomainRegistry(cfg(min_crawl_delay=2, max_crawl_delay=5), fetch)
    res = reg.resolve("ex.com", "/a")
    assert res.delay_seconds == 5
    assert res.allowed
    assert res.resolved_now
    assert fetch.urls == [robots_url("ex.com")] == ["https://ex.com/robots.txt"]


def test_default_delay_used_when_robots_declares_none():
    reg = DomainRegistry(cfg(default_crawl_delay=3.0), RobotsStub("User-agent: *\nDisallow: /x\n"))
    assert reg.resolve("ex.com", "/a").delay_seconds == 3.0


def test_robots_resolved_once_per_domain():
    fetch = RobotsStub("User-agent: *\nDisallow: /b\n")
    reg = DomainRegistry(cfg(), fetch)
    first = reg.resolve("ex.com", "/a")
    second = reg.resolve("ex.com", "/b")
    assert first.allowed and first.resolved_now
    assert not second.allowed and not second.resolved_now
    reg.resolve("other.com", "/")
    assert fetch.urls == ["https://ex.com/robots.txt", "https://other.com/robots.txt"]
    assert reg.robots_fetches == 2
    assert len(reg) == 2 and "ex.com" in reg


def test_missing_robots_allows_all_with_default_delay():
    fetch = RobotsStub(None)
    reg = DomainRegistry(cfg(default_crawl_delay=1.5), fetch)
    res = reg.resolve("ex.com", "/private")
    assert res.allowed
    assert res.delay_seconds == 1.5
    state = reg.get("ex.com")
    assert state.robots_fetched
    reg.resolve("ex.com", "/again")
    assert len(fetch.urls) == 1


def test_user_agent_group_selected():
    body = "User-agent: *\nDisallow: /\n\nUser-agent: goodbot\nDisallow: /admin\nCrawl-delay: 4\n"
    reg = DomainRegistry(cfg(), RobotsStub(body))
    assert reg.resolve("ex.com", "/page").allowed
    assert not reg.resolve("ex.com", "/admin/x").allowed
    assert reg.get("ex.com").crawl_delay_seconds == 4


def test_sitemaps_are_kept_on_domain_state():
    reg = DomainRegistry(cfg(), RobotsStub("Sitemap: https://ex.com/s.xml\n"))
    reg.resolve("ex.com", "/")
    assert reg.get("ex.com").sitemaps == ("https://ex.com/s.xml",)


def test_robots_ignored_when_disabled():
    fetch = RobotsStub("User-agent: *\nDisallow: /\n")
    reg = DomainRegistry(cfg(respect_robots_txt=False, default_crawl_delay=0.2), fetch)
    res = reg.resolve("ex.com", "/anything")
    assert res.allowed
    assert res.delay_seconds == 0.2
    assert fetch.urls == []
    assert not reg.get("ex.com").robots_fetched
