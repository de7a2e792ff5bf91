"""Robots.txt cache: one fetch-and-parse per host, shared by a harvester and its clones."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from urllib import robotparser
from urllib.parse import urlsplit

import requests

from core.config import HarvestDefaults
from core.context import CancelScope
from core.errors import RobotsFetchError, RobotsParseError
from fetcher.logging import emit_event

PARSED = "parsed"
ALLOW_ALL = "allow_all"
DISALLOW_ALL = "disallow_all"


@dataclass(slots=True)
class RobotsCacheEntry:
    """Cached robots policy for a host."""

    mode: str
    fetched_at: float
    status_code: int
    parser: robotparser.RobotFileParser | None = None

    def allows(self, agent: str, url: str) -> bool:
        if self.mode == ALLOW_ALL:
            return True
        if self.mode == DISALLOW_ALL:
            return False
        return self.parser is not None and self.parser.can_fetch(agent, url)


def _parse_rules(robots_url: str, content: bytes) -> robotparser.RobotFileParser:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise RobotsParseError(f"robots.txt at {robots_url} is not valid UTF-8") from exc
    if "\x00" in text:
        raise RobotsParseError(f"robots.txt at {robots_url} contains binary data")

    parser = robotparser.RobotFileParser()
    parser.set_url(robots_url)
    parser.parse(text.splitlines())
    return parser


class RobotsCache:
    """
    Evaluate robots.txt rules for URLs with host-level caching.

    The map lock only guards reads and writes of the cache; the robots.txt
    fetch runs outside it so a slow host never blocks lookups for others.
    Two threads missing the same host may both fetch; the last write wins.
    """

    def __init__(
        self,
        session: requests.Session,
        robots_agent: str = HarvestDefaults.ROBOTS_AGENT,
        user_agent: str = HarvestDefaults.USER_AGENT,
        timeout_seconds: float = HarvestDefaults.ROBOTS_TIMEOUT_SECONDS,
        ignore: bool = False,
        log_events: bool = True,
        clock_fn: Callable[[], float] | None = None,
        event_logger: Callable[..., object] | None = None,
        scope: CancelScope | None = None,
    ) -> None:
        """
        Initialize the cache; nothing is fetched until the first lookup.

        robots.txt fetches run under `scope`, the same cancellation scope as
        page fetches.
        """
        self.robots_agent = robots_agent
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self.ignore = ignore
        self.log_events = log_events
        self._session = session
        self._clock = clock_fn or time.monotonic
        self._event_logger = event_logger or emit_event
        self._scope = scope if scope is not None else CancelScope.background()
        self._lock = threading.Lock()
        self._cache: dict[str, RobotsCacheEntry] = {}
        self._fetch_count = 0

    @property
    def fetch_count(self) -> int:
        """Number of robots.txt fetches issued so far."""
        with self._lock:
            return self._fetch_count

    def clear(self) -> None:
        """Drop every cached rule set."""
        with self._lock:
            self._cache.clear()

    def cached_entry(self, host: str) -> RobotsCacheEntry | None:
        with self._lock:
            return self._cache.get(host.lower())

    def permitted(self, url: str) -> bool:
        """
        Return whether `url` may be fetched by our agent.

        Raises the transport's exception when robots.txt cannot be fetched,
        RobotsFetchError for an uninterpretable status and RobotsParseError
        for an undecodable body. Nothing is cached on failure.
        """
        if self.ignore:
            return True

        parsed = urlsplit(url)
        host = parsed.netloc.lower()
        with self._lock:
            entry = self._cache.get(host)

        if entry is None:
            scheme = parsed.scheme or "https"
            entry = self._fetch_entry(f"{scheme}://{host}/robots.txt")
            with self._lock:
                self._cache[host] = entry

        return entry.allows(self.robots_agent, url)

    def _fetch_entry(self, robots_url: str) -> RobotsCacheEntry:
        self._scope.raise_if_cancelled()
        with self._lock:
            self._fetch_count += 1

        response = self._scope.call(
            self._session.get,
            robots_url,
            headers={"User-Agent": self.user_agent},
            allow_redirects=True,
            timeout=self.timeout_seconds,
        )
        try:
            status = response.status_code
            now = self._clock()
            if 200 <= status < 300:
                entry = RobotsCacheEntry(
                    mode=PARSED,
                    fetched_at=now,
                    status_code=status,
                    parser=_parse_rules(robots_url, response.content),
                )
            elif 400 <= status < 500:
                entry = RobotsCacheEntry(mode=ALLOW_ALL, fetched_at=now, status_code=status)
            elif 500 <= status < 600:
                # Server trouble: stay off the host entirely
                entry = RobotsCacheEntry(mode=DISALLOW_ALL, fetched_at=now, status_code=status)
            else:
                raise RobotsFetchError(robots_url, status)
        finally:
            response.close()

        if self.log_events:
            self._event_logger(
                "robots_fetched",
                robots_url=robots_url,
                robots_mode=entry.mode,
                status_code=entry.status_code,
            )
        return entry
