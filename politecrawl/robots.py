"""robots.txt parsing and path matching.

Parsing never raises: anything that cannot be understood is dropped and the
remaining lines still contribute rules.
"""
import math
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .types import RobotsData, RobotsRules


def _lines(content: Union[str, bytes, None]) -> Iterator[Tuple[str, str]]:
    if not content:
        return
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="ignore")
    content = content.lstrip("\ufeff")
    for raw in content.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        directive, value = line.split(":", 1)
        yield directive.strip().lower(), value.strip()


def _parse_delay(value: str) -> Optional[float]:
    try:
        delay = float(value)
    except ValueError:
        return None
    if delay < 0 or not math.isfinite(delay):
        return None
    return delay


class _Group:
    __slots__ = ("crawl_delay", "disallow", "allow")

    def __init__(self) -> None:
        self.crawl_delay: Optional[float] = None
        self.disallow: List[str] = []
        self.allow: List[str] = []

    def freeze(self) -> RobotsRules:
        return RobotsRules(self.crawl_delay, tuple(self.disallow), tuple(self.allow))


def parse_robots(content: Union[str, bytes, None]) -> RobotsData:
    groups: Dict[str, _Group] = {}
    current: List[_Group] = []
    sitemaps: List[str] = []
    # True while consecutive User-agent lines are still being collected
    collecting_agents = False

    for directive, value in _lines(content):
        if directive == "user-agent":
            if not collecting_agents:
                current = []
                collecting_agents = True
            agent = value.lower()
            if not agent:
                continue
            group = groups.setdefault(agent, _Group())
            if group not in current:
                current.append(group)
            continue

        if directive == "sitemap":
            if value:
                sitemaps.append(value)
            continue

        collecting_agents = False
        if directive == "disallow":
            for group in current:
                group.disallow.append(value)
        elif directive == "allow":
            for group in current:
                group.allow.append(value)
        elif directive == "crawl-delay":
            delay = _parse_delay(value)
            if delay is not None:
                for group in current:
                    group.crawl_delay = delay

    return RobotsData(
        user_agents={agent: group.freeze() for agent, group in groups.items()},
        sitemaps=tuple(sitemaps),
    )


def rules_for_user_agent(data: RobotsData, user_agent: str) -> RobotsRules:
    """Exact (case-insensitive) group for ``user_agent``, else ``*``, else no rules."""
    agent = (user_agent or "").strip().lower()
    if agent in data.user_agents:
        return data.user_agents[agent]
    return data.user_agents.get("*", RobotsRules())


def is_allowed(rules: RobotsRules, path: str) -> bool:
    """Longest matching prefix decides; an allow wins a tie."""
    best_len = -1
    allowed = True
    for prefix in rules.disallow:
        if prefix and path.startswith(prefix) and len(prefix) > best_len:
            best_len = len(prefix)
            allowed = False
    for prefix in rules.allow:
        if prefix and path.startswith(prefix) and len(prefix) >= best_len:
            best_len = len(prefix)
            allowed = True
    return allowed


def sitemap_urls(content: Union[str, bytes, None]) -> List[str]:
    return list(parse_robots(content).sitemaps)
