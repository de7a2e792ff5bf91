"""HTML query layer: parse buffered bytes into a selector-queryable tree."""

from __future__ import annotations

import re
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag
from soupsieve import SelectorSyntaxError

from core.errors import HtmlParseError

# Stdlib-backed tree builder; no compiled parser needed
_TREE_BUILDER = "html.parser"

_CHARSET_RE = re.compile(r"charset=[\"']?([a-zA-Z0-9._-]+)")


def decode_body(content: bytes, content_type: str | None = None) -> str:
    """Decode body bytes using response charset hints with safe fallback."""
    if not content:
        return ""

    encodings: list[str] = []
    charset_match = _CHARSET_RE.search(content_type or "")
    if charset_match:
        encodings.append(charset_match.group(1))
    encodings.extend(["utf-8", "latin-1"])

    for encoding in encodings:
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue

    return content.decode("utf-8", errors="replace")


def select_tags(root: BeautifulSoup | Tag, selector: str) -> List[Tag]:
    """Return tags under `root` matching a CSS selector, in document order."""
    try:
        return list(root.select(selector))
    except (SelectorSyntaxError, ValueError, NotImplementedError) as exc:
        raise HtmlParseError(f"invalid selector {selector!r}: {exc}") from exc


class HtmlDocument:
    """A parsed HTML document supporting CSS selection."""

    def __init__(self, soup: BeautifulSoup) -> None:
        self._soup = soup

    @classmethod
    def parse(cls, content: bytes, content_type: Optional[str] = None) -> "HtmlDocument":
        """Parse raw bytes; charset comes from the content-type header when present."""
        html_text = decode_body(content, content_type)
        try:
            soup = BeautifulSoup(html_text, _TREE_BUILDER)
        except Exception as exc:
            raise HtmlParseError(f"could not parse HTML: {exc}") from exc
        return cls(soup)

    @property
    def soup(self) -> BeautifulSoup:
        return self._soup

    def select(self, selector: str) -> List[Tag]:
        """Matching element handles in document order."""
        return select_tags(self._soup, selector)
