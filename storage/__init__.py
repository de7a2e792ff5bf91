"""Storage module."""

from storage.visited import InMemoryVisitedStore, SQLiteVisitedStore, VisitedStore

__all__ = ["VisitedStore", "InMemoryVisitedStore", "SQLiteVisitedStore"]
