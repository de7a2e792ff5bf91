"""URL policy: allow/deny prefixes, visited check and depth limit."""

from __future__ import annotations

from typing import Sequence

from core.errors import AlreadyVisitedError, DepthLimitExceededError, ForbiddenURLError
from storage.visited import VisitedStore


class UrlPolicy:
    """Gate evaluated for every URL before any network I/O."""

    def __init__(
        self,
        allowed_urls: Sequence[str] = (),
        disallowed_urls: Sequence[str] = (),
        depth_limit: int = 0,
    ) -> None:
        if depth_limit < 0:
            raise ValueError("depth_limit must be >= 0")
        self.allowed_urls = tuple(allowed_urls)
        self.disallowed_urls = tuple(disallowed_urls)
        self.depth_limit = depth_limit

    def is_allowed(self, url: str) -> bool:
        """Deny prefixes win; an empty allow list allows everything else."""
        if any(url.startswith(prefix) for prefix in self.disallowed_urls):
            return False
        if not self.allowed_urls:
            return True
        return any(url.startswith(prefix) for prefix in self.allowed_urls)

    def check_depth(self, depth: int) -> None:
        if self.depth_limit != 0 and depth >= self.depth_limit:
            raise DepthLimitExceededError(depth, self.depth_limit)

    def check(self, url: str, store: VisitedStore, allow_revisit: bool = False) -> None:
        """Raise AlreadyVisitedError or ForbiddenURLError for a rejected URL."""
        if not allow_revisit and store.visited(url):
            raise AlreadyVisitedError(url)
        if not self.is_allowed(url):
            raise ForbiddenURLError(url)
