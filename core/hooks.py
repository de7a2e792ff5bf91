"""
Hook registries for the fetch pipeline.

Three dispatch points, each an ordered, append-only list:

  request hooks  → called with the mutable Request before dispatch
  response hooks → called with the buffered Response
  element hooks  → called once per Element matching the hook's selector

Rules:
- Hooks run in registration order, every hook runs (no short-circuit)
- Registration takes the registry lock; running hooks does not, so a hook
  may register further hooks without deadlocking
- Hooks have no return channel; an exception raised by a hook propagates
  to the visit caller and aborts the rest of that fetch
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List

if TYPE_CHECKING:
    from core.models import Element, Request, Response

RequestHook = Callable[["Request"], None]
ResponseHook = Callable[["Response"], None]
ElementCallback = Callable[["Element"], None]


@dataclass(frozen=True, slots=True)
class ElementHook:
    """A selector bound to the callback run for each matching element."""

    selector: str
    callback: ElementCallback


class HookRegistry:
    """The three ordered hook lists owned by one harvester."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._request_hooks: List[RequestHook] = []
        self._response_hooks: List[ResponseHook] = []
        self._element_hooks: List[ElementHook] = []

    def add_request_hook(self, hook: RequestHook) -> None:
        with self._lock:
            self._request_hooks.append(hook)

    def add_response_hook(self, hook: ResponseHook) -> None:
        with self._lock:
            self._response_hooks.append(hook)

    def add_element_hook(self, selector: str, callback: ElementCallback) -> None:
        if not selector.strip():
            raise ValueError("selector must not be blank")
        with self._lock:
            self._element_hooks.append(ElementHook(selector=selector, callback=callback))

    # Snapshots: a hook registered mid-run is picked up by the next fetch.

    def request_hooks(self) -> List[RequestHook]:
        return list(self._request_hooks)

    def response_hooks(self) -> List[ResponseHook]:
        return list(self._response_hooks)

    def element_hooks(self) -> List[ElementHook]:
        return list(self._element_hooks)

    def run_request_hooks(self, request: "Request") -> None:
        for hook in self.request_hooks():
            hook(request)

    def run_response_hooks(self, response: "Response") -> None:
        for hook in self.response_hooks():
            hook(response)
