"""CancelScope: inline background calls, cancellation and deadlines."""

from __future__ import annotations

import threading

import pytest

from conftest import BASE, DummyResponse
from core.context import CancelScope, RequestCancelled


@pytest.mark.unit
def test_background_scope_runs_inline_and_cannot_cancel():
    scope = CancelScope.background()
    caller = threading.current_thread()

    assert scope.call(lambda: threading.current_thread()) is caller
    assert scope.cancellable is False
    with pytest.raises(RuntimeError):
        scope.cancel()
    assert scope.cancelled is False


@pytest.mark.unit
def test_cancellable_scope_returns_result_and_reraises_errors():
    scope = CancelScope()

    assert scope.call(lambda a, b=0: a + b, 2, b=3) == 5
    with pytest.raises(KeyError):
        scope.call(lambda: {}["missing"])


@pytest.mark.unit
def test_cancel_interrupts_blocked_call_and_closes_late_result():
    scope = CancelScope()
    release = threading.Event()
    late = DummyResponse(200)

    def blocked():
        release.wait(timeout=5)
        return late

    timer = threading.Timer(0.1, scope.cancel)
    timer.start()
    try:
        with pytest.raises(RequestCancelled, match="scope cancelled"):
            scope.call(blocked)
    finally:
        timer.cancel()

    release.set()
    for thread in threading.enumerate():
        if thread.name == "harvester-http-call":
            thread.join(timeout=5)

    assert late.closed is True
    assert scope.cancelled is True


@pytest.mark.unit
def test_cancelled_scope_rejects_new_calls():
    scope = CancelScope()
    scope.cancel()
    scope.cancel()
    calls: list[bool] = []

    with pytest.raises(RequestCancelled):
        scope.call(lambda: calls.append(True))
    assert calls == []


@pytest.mark.unit
def test_deadline_expires_with_clock():
    now = [100.0]
    scope = CancelScope(timeout=5, clock_fn=lambda: now[0])

    assert scope.cancelled is False
    now[0] = 105.0
    assert scope.cancelled is True
    with pytest.raises(RequestCancelled, match="deadline"):
        scope.raise_if_cancelled()


@pytest.mark.unit
@pytest.mark.parametrize("timeout", [0, -1.5])
def test_non_positive_timeout_rejected(timeout):
    with pytest.raises(ValueError):
        CancelScope(timeout=timeout)


@pytest.mark.integration
def test_deadline_scope_aborts_slow_fetch(make_harvester, site):
    release = threading.Event()

    def slow(url, **_):
        release.wait(timeout=5)
        return DummyResponse(200, body=b"late", url=url)

    site.add(f"{BASE}/slow", slow)
    harvester = make_harvester(context=CancelScope(timeout=0.2), ignore_robots=True)
    try:
        with pytest.raises(RequestCancelled):
            harvester.visit(f"{BASE}/slow")
    finally:
        release.set()

    # The deadline also blocks every later call on the shared scope
    with pytest.raises(RequestCancelled):
        harvester.clone().visit(f"{BASE}/")
