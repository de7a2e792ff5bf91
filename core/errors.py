"""Exception taxonomy raised by the fetch pipeline.

Transport failures (DNS, connect, timeout) are not wrapped: they surface as
the HTTP client's own exceptions.
"""

from __future__ import annotations


class HarvestError(Exception):
    """Base class for every error raised by the harvester itself."""


class InvalidURLError(HarvestError, ValueError):
    """Raised when a URL cannot be parsed or is not an absolute http(s) URL."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"URL {url!r} is invalid: {reason}")
        self.url = url
        self.reason = reason


# ============================================================================
# Policy rejections (expected, never logged as failures)
# ============================================================================

class PolicyRejection(HarvestError):
    """A URL was rejected by the allow/deny, visited or depth gate."""


class ForbiddenURLError(PolicyRejection):
    """Raised when a URL matches a deny prefix or misses every allow prefix."""

    def __init__(self, url: str) -> None:
        super().__init__(f"URL {url} is forbidden")
        self.url = url


class AlreadyVisitedError(PolicyRejection):
    """Raised when a URL was already fetched and revisits are not allowed."""

    def __init__(self, url: str) -> None:
        super().__init__(f"URL {url} has already been visited")
        self.url = url


class DepthLimitExceededError(PolicyRejection):
    """Raised when a request depth reaches the configured limit."""

    def __init__(self, depth: int, limit: int) -> None:
        super().__init__(f"depth limit exceeded: {depth} >= {limit}")
        self.depth = depth
        self.limit = limit


class RobotsDisallowedError(HarvestError):
    """Raised when robots.txt disallows the URL for our agent."""

    def __init__(self, url: str) -> None:
        super().__init__(f"URL {url} is disallowed by robots.txt")
        self.url = url


# ============================================================================
# Parse and fetch failures
# ============================================================================

class ParseFailure(HarvestError):
    """Base class for malformed robots.txt or HTML content."""


class RobotsFetchError(ParseFailure):
    """Raised when robots.txt came back with a status we cannot interpret."""

    def __init__(self, robots_url: str, status_code: int) -> None:
        super().__init__(f"unexpected status {status_code} for {robots_url}")
        self.robots_url = robots_url
        self.status_code = status_code


class RobotsParseError(ParseFailure):
    """Raised when a robots.txt body cannot be decoded into rules."""


class HtmlParseError(ParseFailure):
    """Raised when a body cannot be parsed or a selector is invalid."""


class BodyLimitExceeded(HarvestError):
    """Raised when a response body exceeds the configured byte limit."""

    def __init__(self, url: str, max_bytes: int) -> None:
        super().__init__(f"response for {url} exceeds {max_bytes} bytes")
        self.url = url
        self.max_bytes = max_bytes
