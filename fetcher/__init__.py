"""Fetcher subsystem: URL policy, robots cache and the fetch pipeline."""

from fetcher.http import FetchPipeline, normalize_url
from fetcher.logging import emit_event, emit_fetch_log
from fetcher.policy import UrlPolicy
from fetcher.robots import RobotsCache, RobotsCacheEntry

__all__ = [
    "FetchPipeline",
    "normalize_url",
    "emit_event",
    "emit_fetch_log",
    "UrlPolicy",
    "RobotsCache",
    "RobotsCacheEntry",
]
