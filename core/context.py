"""Cancellation scope shared by every HTTP call a harvester issues."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, TypeVar

import requests

from core.config import HarvestDefaults

T = TypeVar("T")


class RequestCancelled(requests.RequestException):
    """Raised when the owning CancelScope is cancelled before a call completes."""


class _PendingCall:
    """Result slot for one transport call running on a helper thread."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: BaseException | None = None
        self._lock = threading.Lock()
        self._abandoned = False

    def run(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:  # re-raised on the caller's thread
            with self._lock:
                self.error = exc
            self.done.set()
            return

        with self._lock:
            self.result = result
            abandoned = self._abandoned
        if abandoned:
            _close_quietly(result)
        self.done.set()

    def abandon(self) -> None:
        """Close the result if it arrives after the caller gave up on it."""
        with self._lock:
            self._abandoned = True
            result = self.result
        if result is not None:
            _close_quietly(result)


def _close_quietly(result: Any) -> None:
    close = getattr(result, "close", None)
    if callable(close):
        close()


class CancelScope:
    """
    Cancellation scope for HTTP calls.

    One scope is bound to a harvester at construction and shared by its
    clones. Cancelling it aborts the in-flight call with RequestCancelled;
    hooks already running for a completed fetch are not interrupted.
    """

    def __init__(
        self,
        timeout: float | None = None,
        clock_fn: Callable[[], float] | None = None,
    ) -> None:
        """Create a cancellable scope, optionally with a deadline in seconds."""
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")
        self._clock = clock_fn or time.monotonic
        self._event = threading.Event()
        self._deadline = None if timeout is None else self._clock() + timeout
        self._cancellable = True
        self._reason = "scope cancelled"

    @classmethod
    def background(cls) -> "CancelScope":
        """Return a scope that is never cancelled and runs calls inline."""
        scope = cls()
        scope._cancellable = False
        return scope

    @property
    def cancellable(self) -> bool:
        return self._cancellable

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._reason = "scope deadline exceeded"
            self._event.set()
            return True
        return False

    def cancel(self) -> None:
        """Cancel the scope; idempotent."""
        if not self._cancellable:
            raise RuntimeError("a background scope cannot be cancelled")
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled(self._reason)

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run fn, abandoning it with RequestCancelled if the scope is cancelled."""
        self.raise_if_cancelled()
        if not self._cancellable:
            return fn(*args, **kwargs)

        pending = _PendingCall()
        worker = threading.Thread(
            target=pending.run,
            args=(fn, args, kwargs),
            name="harvester-http-call",
            daemon=True,
        )
        worker.start()

        while not pending.done.wait(HarvestDefaults.CANCEL_POLL_SECONDS):
            if self.cancelled:
                pending.abandon()
                raise RequestCancelled(self._reason)

        if pending.error is not None:
            raise pending.error
        return pending.result
