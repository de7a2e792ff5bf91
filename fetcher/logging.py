"""Structured JSON event lines for fetches, robots lookups and the CLI."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from core.models import FetchLog


def emit_json_event(
    event_type: str,
    *,
    component: str,
    level: str = "info",
    **payload: Any,
) -> str:
    """
    Print one JSON event line to stdout and return it for testability.

    Every line carries event_type, level, timestamp and the emitting
    component; payload keys are merged on top.
    """
    event: dict[str, Any] = {
        "event_type": event_type,
        "level": level,
        "timestamp": datetime.now(UTC).isoformat(),
        "component": component,
    }
    event.update(payload)
    line = json.dumps(event, ensure_ascii=True, sort_keys=True, default=str)
    print(line)
    return line


def emit_event(event_type: str, level: str = "info", **payload: object) -> str:
    """Fetcher-scoped event."""
    return emit_json_event(event_type, component="fetcher", level=level, **payload)


def emit_fetch_log(fetch_log: FetchLog) -> str:
    """Emit one fetch_log line; failed round trips are logged at warning level."""
    level = "warning" if fetch_log.error_code else "info"
    return emit_event("fetch_log", level=level, **fetch_log.to_log_payload())
