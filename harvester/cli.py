"""Minimal CLI entrypoint: crawl a site from a seed URL."""

from __future__ import annotations

import argparse
from typing import Any, Sequence

import requests

from core.errors import HarvestError, PolicyRejection
from core.models import Element, Response
from fetcher.logging import emit_json_event
from harvester.core import Harvester


def _emit_cli_event(event_type: str, level: str = "info", **payload: Any) -> str:
    """Emit one structured CLI event line with standard fields."""
    return emit_json_event(event_type, component="cli", level=level, **payload)


def _build_harvester(args: argparse.Namespace) -> Harvester:
    return Harvester(
        allowed_urls=args.allow or [],
        disallowed_urls=args.deny or [],
        depth_limit=args.depth,
        ignore_robots=args.ignore_robots,
        log_fetches=args.log_fetches,
    )


def _register_hooks(harvester: Harvester, selector: str | None) -> dict[str, int]:
    stats = {"pages": 0, "elements": 0, "skipped": 0, "errors": 0}

    def on_response(response: Response) -> None:
        stats["pages"] += 1
        _emit_cli_event(
            "crawl_page",
            url=response.request.url,
            depth=response.request.depth,
            status_code=response.status_code,
            bytes_received=len(response.content),
        )

    def on_link(element: Element) -> None:
        link = element.request.get_absolute_url(element.attribute("href"))
        if not link:
            return
        try:
            element.request.visit(link)
        except PolicyRejection:
            stats["skipped"] += 1
        except (HarvestError, requests.RequestException) as exc:
            stats["errors"] += 1
            _emit_cli_event(
                "crawl_error",
                level="warning",
                url=link,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def on_element(element: Element) -> None:
        stats["elements"] += 1
        _emit_cli_event(
            "crawl_element",
            url=element.request.url,
            selector=selector,
            tag=element.name,
            text=" ".join(element.text.split()),
            attributes=element.attributes,
        )

    harvester.response_do(on_response)
    if selector:
        harvester.html_do(selector, on_element)
    harvester.html_do("a[href]", on_link)
    return stats


def build_parser() -> argparse.ArgumentParser:
    """Create argument parser for the harvester CLI."""
    parser = argparse.ArgumentParser(
        prog="harvester-crawl",
        description="Crawl a site from a seed URL, honouring robots.txt and URL policy",
    )
    parser.add_argument("--version", action="version", version="harvester-engine 0.1.0")
    parser.add_argument("url", help="Seed URL")
    parser.add_argument("--allow", action="append", help="Allowed URL prefix (repeatable)")
    parser.add_argument("--deny", action="append", help="Disallowed URL prefix (repeatable)")
    parser.add_argument("--depth", type=int, default=2, help="Depth limit, 0 for unlimited")
    parser.add_argument("--ignore-robots", action="store_true", help="Skip robots.txt checks")
    parser.add_argument("--selector", help="CSS selector whose matches are printed")
    parser.add_argument(
        "--log-fetches",
        action="store_true",
        help="Also emit one fetch_log line per HTTP round trip",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Execute CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        harvester = _build_harvester(args)
    except ValueError as exc:
        parser.error(str(exc))

    stats = _register_hooks(harvester, args.selector)
    try:
        harvester.visit(args.url)
    except (HarvestError, requests.RequestException) as exc:
        _emit_cli_event(
            "crawl_error",
            level="error",
            url=args.url,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return 1

    _emit_cli_event("crawl_completed", url=args.url, **stats)
    return 0


def cli() -> None:
    """Console-script entrypoint."""
    raise SystemExit(main())


if __name__ == "__main__":
    raise SystemExit(main())
