"""The Harvester facade: configuration, shared caches and hook registries."""

from __future__ import annotations

from typing import Any

import requests

from core.config import HarvesterConfig
from core.context import CancelScope
from core.hooks import ElementCallback, HookRegistry, RequestHook, ResponseHook
from fetcher.http import FetchPipeline
from fetcher.robots import RobotsCache
from storage.visited import InMemoryVisitedStore, VisitedStore


class Harvester:
    """
    Fetch pages through robots, policy and depth gates, dispatching hooks.

    Example:

        harvester = Harvester(allowed_urls=["https://example.com"], depth_limit=2)

        def follow(element):
            link = element.request.get_absolute_url(element.attribute("href"))
            try:
                element.request.visit(link)  # one level deeper
            except HarvestError:
                pass

        harvester.html_do("a[href]", follow)
        harvester.visit("https://example.com/")

    Recursion happens synchronously inside hooks. `visit` always starts at
    depth 0; `Request.visit` carries depth + 1, so only the latter is
    bounded by `depth_limit`.
    """

    def __init__(
        self,
        config: HarvesterConfig | None = None,
        *,
        session: requests.Session | None = None,
        context: CancelScope | None = None,
        store: VisitedStore | None = None,
        **overrides: Any,
    ) -> None:
        """Build a harvester; keyword overrides are validated into the config."""
        base = config if config is not None else HarvesterConfig()
        self._config = base.with_overrides(**overrides)
        self._session = session if session is not None else requests.Session()
        self._context = context if context is not None else CancelScope.background()
        # Empty stores are falsy (__len__), so compare against None
        self._store = store if store is not None else InMemoryVisitedStore()
        self._robots = RobotsCache(
            session=self._session,
            robots_agent=self._config.robots_agent,
            user_agent=self._config.user_agent,
            timeout_seconds=self._config.timeout_seconds,
            ignore=self._config.ignore_robots,
            log_events=self._config.log_fetches,
            scope=self._context,
        )
        self._hooks = HookRegistry()
        self._pipeline = self._build_pipeline()

    def _build_pipeline(self) -> FetchPipeline:
        return FetchPipeline(
            config=self._config,
            session=self._session,
            scope=self._context,
            store=self._store,
            robots=self._robots,
        )

    @property
    def config(self) -> HarvesterConfig:
        return self._config

    @property
    def session(self) -> requests.Session:
        return self._session

    @property
    def context(self) -> CancelScope:
        return self._context

    @property
    def store(self) -> VisitedStore:
        return self._store

    @property
    def robots(self) -> RobotsCache:
        return self._robots

    def clone(self) -> "Harvester":
        """
        Return a harvester sharing configuration, session, cancellation scope,
        visited store and robots cache, with empty hook registries.
        """
        clone = Harvester.__new__(Harvester)
        clone._config = self._config
        clone._session = self._session
        clone._context = self._context
        clone._store = self._store
        clone._robots = self._robots
        clone._hooks = HookRegistry()
        clone._pipeline = clone._build_pipeline()
        return clone

    # ------------------------------------------------------------------
    # Hook registration (append-only)
    # ------------------------------------------------------------------

    def request_do(self, hook: RequestHook) -> None:
        """Run `hook` on every Request before it is sent; it may edit headers."""
        self._hooks.add_request_hook(hook)

    def response_do(self, hook: ResponseHook) -> None:
        """Run `hook` on every buffered Response."""
        self._hooks.add_response_hook(hook)

    def html_do(self, selector: str, callback: ElementCallback) -> None:
        """Run `callback` once per element matching the CSS `selector`."""
        self._hooks.add_element_hook(selector, callback)

    # ------------------------------------------------------------------
    # Visiting
    # ------------------------------------------------------------------

    def visit(self, url: str) -> None:
        """
        Fetch `url` at depth 0 and run every hook.

        Raises:
            InvalidURLError: URL is not an absolute http(s) URL
            RobotsDisallowedError: robots.txt forbids the URL
            ForbiddenURLError / AlreadyVisitedError / DepthLimitExceededError
            requests.RequestException: transport failure or cancellation
        """
        self._visit(url, 0)

    def _visit(self, url: str, depth: int) -> None:
        self._pipeline.fetch(url, depth, self._hooks, self)
