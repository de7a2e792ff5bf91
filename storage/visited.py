"""Visited-URL stores: in-memory default and a persistent SQLite variant.

`visited()` and `visit()` are separate, separately-locked operations. The
pipeline checks before fetching and marks after a successful round trip, so
two concurrent first visits of one URL may both fetch it. Callers that need
exactly-once fetching across threads must serialize visits themselves.
"""

from __future__ import annotations

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterator


class VisitedStore(ABC):
    """Records which absolute URLs have been fetched."""

    @abstractmethod
    def visited(self, url: str) -> bool:
        """Return True if `url` has been marked visited."""

    @abstractmethod
    def visit(self, url: str) -> None:
        """Mark `url` visited (idempotent)."""


class InMemoryVisitedStore(VisitedStore):
    """Process-local set guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._visited: set[str] = set()

    def visited(self, url: str) -> bool:
        with self._lock:
            return url in self._visited

    def visit(self, url: str) -> None:
        with self._lock:
            self._visited.add(url)

    def __len__(self) -> int:
        with self._lock:
            return len(self._visited)


class SQLiteVisitedStore(VisitedStore):
    """Persist visited URLs to SQLite so a crawl can resume across runs."""

    def __init__(self, db_path: str | Path) -> None:
        """Open (and create if needed) the visited_urls table."""
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self.initialize_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        connection = sqlite3.connect(self.db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def initialize_schema(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock, self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS visited_urls (
                    url TEXT PRIMARY KEY,
                    visited_at TEXT NOT NULL
                )
                """
            )

    def visited(self, url: str) -> bool:
        with self._lock, self._connect() as connection:
            row = connection.execute(
                "SELECT 1 FROM visited_urls WHERE url = ?",
                (url,),
            ).fetchone()
        return row is not None

    def visit(self, url: str) -> None:
        with self._lock, self._connect() as connection:
            connection.execute(
                "INSERT OR IGNORE INTO visited_urls (url, visited_at) VALUES (?, ?)",
                (url, datetime.now(UTC).isoformat()),
            )

    def count(self) -> int:
        with self._lock, self._connect() as connection:
            (total,) = connection.execute("SELECT COUNT(*) FROM visited_urls").fetchone()
        return int(total)
