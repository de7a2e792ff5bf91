"""
Shared pytest fixtures and fakes for harvester tests.

No test touches the network: RoutedSession stands in for requests.Session
and serves canned pages keyed by URL.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Union
from urllib.parse import urldefrag

import pytest
from requests.structures import CaseInsensitiveDict

from harvester.core import Harvester


BASE = "http://example.test"
HELLO_BYTES = b"Hello, client\n"

FAQ_HTML = b"""<!DOCTYPE html>
<html>
<head><title>FAQ</title></head>
<body>
  <h1>Frequently Asked Questions</h1>
  <p>Welcome to the FAQ page. Here are some useful links:</p>
  <ul>
    <li><a href="/">Home</a></li>
    <li><a href="/about">About Us</a></li>
    <li><a href="/contact">Contact</a></li>
    <li><a href="/faq#section2">FAQ Section 2</a></li>
    <li><a href="https://external.com/resource">External Resource</a></li>
  </ul>
</body>
</html>
"""

RELATIVE_LINKS_HTML = b"""<!DOCTYPE html>
<html>
<head><title>Relative Links</title></head>
<body>
  <h1>Relative Links Page</h1>
  <ul>
    <li><a href="/page1">Page 1</a></li>
    <li><a href="../page2">Page 2</a></li>
    <li><a href="./page3">Page 3</a></li>
    <li><a href="/path/to/page4">Nested Page 4</a></li>
    <li><a href="/path/to/page5#section1">Nested Page 5 with Anchor</a></li>
    <li><a href="#top">Back to top</a></li>
    <li><a href="mailto:team@example.test">Mail us</a></li>
  </ul>
</body>
</html>
"""


# ============================================================================
# Fakes: HTTP transport
# ============================================================================

class DummyResponse:
    """Minimal response object for exercising pipeline logic."""

    def __init__(
        self,
        status_code: int,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self._body = body
        self.url = url
        self.history: list[object] = []
        self.closed = False

    @property
    def content(self) -> bytes:
        return self._body

    @property
    def text(self) -> str:
        return self._body.decode("utf-8", errors="replace")

    def iter_content(self, chunk_size: int = 8192):
        for index in range(0, len(self._body), chunk_size):
            yield self._body[index : index + chunk_size]

    def close(self) -> None:
        self.closed = True


Route = Union[DummyResponse, Exception, Callable[..., DummyResponse]]


class RoutedSession:
    """URL-keyed session; unknown URLs answer 404."""

    def __init__(self, routes: dict[str, Route] | None = None) -> None:
        self.routes: dict[str, Route] = dict(routes or {})
        self.calls: list[tuple[str, str, dict[str, object]]] = []

    def add(self, url: str, route: Route) -> None:
        self.routes[url] = route

    def request(self, method: str, url: str, **kwargs: object):
        self.calls.append((method, url, kwargs))
        # requests never sends the fragment
        route = self.routes.get(urldefrag(url)[0])
        if route is None:
            return DummyResponse(404, body=b"404 page not found\n", url=url)
        if isinstance(route, Exception):
            raise route
        if callable(route) and not isinstance(route, DummyResponse):
            return route(url, **kwargs)
        return route

    def get(self, url: str, **kwargs: object):
        return self.request("GET", url, **kwargs)

    def urls(self) -> list[str]:
        return [url for _, url, _ in self.calls]

    def page_urls(self) -> list[str]:
        """Requested URLs excluding robots.txt lookups."""
        return [url for url in self.urls() if not url.endswith("/robots.txt")]


def _echo_user_agent(url: str, **kwargs: object) -> DummyResponse:
    headers = kwargs.get("headers") or {}
    agent = CaseInsensitiveDict(headers).get("User-Agent", "")
    return DummyResponse(200, body=agent.encode("utf-8"), url=url)


def build_site() -> RoutedSession:
    """The canned test site used across integration tests."""
    html = {"content-type": "text/html; charset=utf-8"}
    return RoutedSession(
        {
            f"{BASE}/": DummyResponse(200, body=HELLO_BYTES),
            f"{BASE}/redirect": DummyResponse(303, headers={"location": "/"}),
            f"{BASE}/error": DummyResponse(500, body=b"Internal server error\n"),
            f"{BASE}/allowed": DummyResponse(200, body=b"Allowed"),
            f"{BASE}/disallowed": DummyResponse(200, body=b"Disallowed"),
            f"{BASE}/robots.txt": DummyResponse(
                200, body=b"User-agent: *\nDisallow: /disallowed"
            ),
            f"{BASE}/user_agent": _echo_user_agent,
            f"{BASE}/faq": DummyResponse(200, headers=html, body=FAQ_HTML),
            f"{BASE}/relative_links": DummyResponse(200, headers=html, body=RELATIVE_LINKS_HTML),
        }
    )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def site() -> RoutedSession:
    """Fresh canned site per test."""
    return build_site()


@pytest.fixture
def make_harvester(site: RoutedSession) -> Callable[..., Harvester]:
    """Factory building harvesters on the canned site with fetch logs off."""

    def _make(**overrides: object) -> Harvester:
        overrides.setdefault("log_fetches", False)
        session = overrides.pop("session", site)
        return Harvester(session=session, **overrides)

    return _make


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "contract: configuration and API contract tests")
    config.addinivalue_line("markers", "integration: end-to-end pipeline tests")
    config.addinivalue_line("markers", "unit: unit tests")
