"""
Data models passed through the fetch pipeline.

Design principles:
- Request/Response/Element are per-fetch objects handed to hooks; they are
  plain dataclasses because hooks mutate them (headers) and they hold live
  references (owning harvester, parsed tags)
- FetchLog is a validated pydantic record, serialized to structured logs
- The response body is buffered once; every reader gets its own cursor
"""

from __future__ import annotations

import io
import weakref
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from urllib.parse import urlsplit
from uuid import uuid4

from bs4.element import Tag
from pydantic import BaseModel, Field
from requests.structures import CaseInsensitiveDict

from parser.html import decode_body, select_tags
from parser.links import resolve_link

if TYPE_CHECKING:
    from harvester.core import Harvester


# ============================================================================
# Enums
# ============================================================================

class FetchErrorCode(str, Enum):
    """Why did a network round trip fail?"""
    TIMEOUT = "TIMEOUT"
    FETCH_ERROR = "FETCH_ERROR"  # Connect/DNS/protocol error
    CANCELLED = "CANCELLED"  # CancelScope cancelled mid-call
    BLOCKED_BY_ROBOTS = "BLOCKED_BY_ROBOTS"
    BODY_TOO_LARGE = "BODY_TOO_LARGE"


# ============================================================================
# Request
# ============================================================================

@dataclass(slots=True, eq=False)
class Request:
    """
    An outgoing request, handed to request hooks before dispatch.

    Hooks may mutate `headers`; the last mutation wins. `depth` is the
    recursion distance from the seed visit.
    """

    url: str
    method: str = "GET"
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: Optional[bytes] = None
    depth: int = 0
    _harvester_ref: Optional[weakref.ReferenceType] = field(default=None, repr=False)

    @property
    def host(self) -> str:
        return urlsplit(self.url).netloc

    def bind(self, harvester: "Harvester") -> None:
        """Attach the owning harvester (held weakly) for depth-carrying revisits."""
        self._harvester_ref = weakref.ref(harvester)

    def visit(self, url: str) -> None:
        """
        Visit `url` one level deeper than this request.

        Unlike Harvester.visit, which always starts again at depth 0, this
        carries depth forward so the harvester's depth limit applies.
        """
        harvester = self._harvester_ref() if self._harvester_ref is not None else None
        if harvester is None:
            raise RuntimeError("request is not bound to a live harvester")
        harvester._visit(url, self.depth + 1)

    def get_absolute_url(self, href: str) -> str:
        """Resolve a link found on this page; empty string when unusable."""
        return resolve_link(self.url, href)


# ============================================================================
# Response
# ============================================================================

@dataclass(slots=True, eq=False)
class Response:
    """
    A completed response with its body fully buffered.

    `body` returns a fresh reader positioned at the start on every access,
    so response hooks and the HTML layer each see the full byte sequence.
    """

    status_code: int
    headers: CaseInsensitiveDict
    content: bytes
    request: Request
    url: str = ""

    @property
    def body(self) -> io.BytesIO:
        return io.BytesIO(self.content)

    @property
    def text(self) -> str:
        return decode_body(self.content, self.headers.get("content-type"))


# ============================================================================
# Element
# ============================================================================

@dataclass(slots=True, eq=False)
class Element:
    """One HTML node matched by a selector during an element-hook pass."""

    attributes: Dict[str, str]
    text: str
    request: Request
    response: Response
    selection: Tag = field(repr=False)

    @classmethod
    def from_tag(cls, tag: Tag, response: Response) -> "Element":
        attributes: Dict[str, str] = {}
        for name, value in tag.attrs.items():
            # bs4 hands multi-valued attributes (class, rel) back as lists
            attributes[name] = " ".join(value) if isinstance(value, list) else str(value)
        return cls(
            attributes=attributes,
            text=tag.get_text(),
            request=response.request,
            response=response,
            selection=tag,
        )

    @property
    def name(self) -> str:
        return self.selection.name

    def attribute(self, name: str) -> str:
        """Return the attribute value, or an empty string when absent."""
        return self.attributes.get(name, "")

    def select(self, selector: str) -> List["Element"]:
        """Select descendants of this element, bound to the same response."""
        return [Element.from_tag(tag, self.response) for tag in select_tags(self.selection, selector)]


# ============================================================================
# Fetch / Network Logging
# ============================================================================

class FetchLog(BaseModel):
    """
    Log entry for a single network round trip.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    url: str
    method: str = "GET"
    depth: int = 0

    status_code: Optional[int] = None  # HTTP status
    latency_ms: Optional[int] = None  # Time to full body
    bytes_received: Optional[int] = None

    error_code: Optional[FetchErrorCode] = None
    error: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_log_payload(self) -> Dict[str, Any]:
        """JSON-safe dictionary for structured logs."""
        payload = self.model_dump(mode="json")
        payload["timestamp"] = payload.pop("created_at")
        return payload
