"""Link resolution against a page's base URL."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urljoin, urlsplit

from core.config import HarvestDefaults


def resolve_link(base_url: str, href: str) -> str:
    """
    Resolve `href` found on `base_url` into an absolute URL.

    Rules:
    - Fragment-only references ("#top") resolve to ""
    - Relative paths, "..", "./" and protocol-relative links are resolved
    - Anything that does not end up http(s) (mailto:, javascript:) is ""
    - A fragment on a real path is kept as written
    """
    href = href.strip()
    if not href or href.startswith("#"):
        return ""

    try:
        absolute = urljoin(base_url, href)
        parsed = urlsplit(absolute)
    except ValueError:
        return ""

    if parsed.scheme.lower() not in HarvestDefaults.ALLOWED_PROTOCOLS:
        return ""
    if not parsed.netloc:
        return ""
    return absolute


def unique_links(base_url: str, hrefs: Iterable[str]) -> list[str]:
    """Resolve hrefs, dropping unusable and repeated ones while keeping order."""
    seen: set[str] = set()
    links: list[str] = []
    for href in hrefs:
        absolute = resolve_link(base_url, href)
        if absolute and absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links
