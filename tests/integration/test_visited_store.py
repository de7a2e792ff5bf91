"""Visited stores: in-memory default, SQLite persistence and custom stores."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

import pytest

from conftest import BASE, DummyResponse
from core.errors import AlreadyVisitedError
from storage.visited import InMemoryVisitedStore, SQLiteVisitedStore, VisitedStore


class RecordingStore(VisitedStore):
    """Custom store that records every call."""

    def __init__(self) -> None:
        self.marked: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def visited(self, url: str) -> bool:
        self.calls.append(("visited", url))
        return url in self.marked

    def visit(self, url: str) -> None:
        self.calls.append(("visit", url))
        self.marked.add(url)


@pytest.mark.unit
def test_in_memory_store_marks_idempotently():
    store = InMemoryVisitedStore()

    assert store.visited("https://example.test/") is False
    store.visit("https://example.test/")
    store.visit("https://example.test/")

    assert store.visited("https://example.test/") is True
    assert len(store) == 1


@pytest.mark.unit
def test_in_memory_store_is_thread_safe():
    store = InMemoryVisitedStore()
    urls = [f"https://example.test/{index}" for index in range(200)]

    def mark(chunk: list[str]) -> None:
        for url in chunk:
            store.visit(url)

    threads = [threading.Thread(target=mark, args=(urls[i::4],)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 200
    assert all(store.visited(url) for url in urls)


@pytest.mark.unit
def test_sqlite_store_persists_across_instances(tmp_path: Path):
    db_path = tmp_path / "state" / "visited.db"
    first = SQLiteVisitedStore(db_path)
    first.visit("https://example.test/a")
    first.visit("https://example.test/a")

    second = SQLiteVisitedStore(db_path)

    assert second.visited("https://example.test/a") is True
    assert second.visited("https://example.test/b") is False
    assert second.count() == 1


class FailingStore(RecordingStore):
    """Store whose writes fail, as a locked SQLite database would."""

    def visit(self, url: str) -> None:
        self.calls.append(("visit", url))
        raise sqlite3.OperationalError("database is locked")


@pytest.mark.integration
def test_empty_store_is_used_not_replaced(make_harvester):
    store = InMemoryVisitedStore()
    assert len(store) == 0
    harvester = make_harvester(store=store, ignore_robots=True)

    harvester.visit(f"{BASE}/")

    assert harvester.store is store
    assert store.visited(f"{BASE}/") is True


@pytest.mark.integration
def test_harvesters_sharing_a_store_do_not_refetch(make_harvester, site):
    store = InMemoryVisitedStore()
    first = make_harvester(store=store, ignore_robots=True)
    second = make_harvester(store=store, ignore_robots=True)

    first.visit(f"{BASE}/")
    with pytest.raises(AlreadyVisitedError):
        second.visit(f"{BASE}/")

    assert site.page_urls() == [f"{BASE}/"]


@pytest.mark.integration
def test_store_failure_still_closes_response(make_harvester, site):
    response = DummyResponse(200, body=b"hello")
    site.add(f"{BASE}/locked", response)
    harvester = make_harvester(store=FailingStore(), ignore_robots=True)
    seen: list[int] = []
    harvester.response_do(lambda resp: seen.append(resp.status_code))

    with pytest.raises(sqlite3.OperationalError):
        harvester.visit(f"{BASE}/locked")

    assert response.closed is True
    assert seen == []


@pytest.mark.integration
def test_custom_store_is_consulted_and_marked(make_harvester):
    store = RecordingStore()
    harvester = make_harvester(store=store, ignore_robots=True)

    harvester.visit(f"{BASE}/")

    assert store.calls == [("visited", f"{BASE}/"), ("visit", f"{BASE}/")]


@pytest.mark.integration
def test_allow_revisit_skips_visited_lookup(make_harvester):
    store = RecordingStore()
    harvester = make_harvester(store=store, ignore_robots=True, allow_revisit=True)

    harvester.visit(f"{BASE}/")

    assert store.calls == [("visit", f"{BASE}/")]


@pytest.mark.integration
def test_sqlite_store_resumes_a_crawl(make_harvester, tmp_path: Path):
    db_path = tmp_path / "visited.db"
    make_harvester(store=SQLiteVisitedStore(db_path), ignore_robots=True).visit(f"{BASE}/")

    resumed = make_harvester(store=SQLiteVisitedStore(db_path), ignore_robots=True)

    with pytest.raises(AlreadyVisitedError):
        resumed.visit(f"{BASE}/")
    resumed.visit(f"{BASE}/allowed")
