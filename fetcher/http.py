"""Fetch pipeline: one policy-gated, hook-driven fetch of a single URL."""

from __future__ import annotations

import time
from collections.abc import Callable
from urllib.parse import urlsplit, urlunsplit

import requests
from requests.structures import CaseInsensitiveDict

from core.config import HarvestDefaults, HarvesterConfig
from core.context import CancelScope, RequestCancelled
from core.errors import BodyLimitExceeded, InvalidURLError, RobotsDisallowedError
from core.hooks import HookRegistry
from core.models import Element, FetchErrorCode, FetchLog, Request, Response
from fetcher.logging import emit_event, emit_fetch_log
from fetcher.policy import UrlPolicy
from fetcher.robots import RobotsCache
from parser.html import HtmlDocument
from storage.visited import VisitedStore


def normalize_url(url: str) -> str:
    """
    Parse and re-serialize an absolute http(s) URL.

    Raises InvalidURLError for unparsable URLs, other schemes and a missing
    host. The result is the key used for policy and visited checks.
    """
    try:
        parsed = urlsplit(url.strip())
        _ = parsed.port  # out-of-range ports only surface here
    except ValueError as exc:
        raise InvalidURLError(url, str(exc)) from exc

    if parsed.scheme.lower() not in HarvestDefaults.ALLOWED_PROTOCOLS:
        raise InvalidURLError(url, f"unsupported scheme {parsed.scheme!r}")
    if not parsed.netloc:
        raise InvalidURLError(url, "missing host")
    return urlunsplit(parsed)


def _read_body(
    response: requests.Response,
    url: str,
    max_bytes: int,
    scope: CancelScope,
) -> bytes:
    """Buffer the full body, honouring the byte limit and cancellation."""
    chunks: list[bytes] = []
    total = 0
    for chunk in response.iter_content(chunk_size=HarvestDefaults.BODY_CHUNK_BYTES):
        scope.raise_if_cancelled()
        if not chunk:
            continue
        total += len(chunk)
        if max_bytes and total > max_bytes:
            raise BodyLimitExceeded(url, max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


def _error_code_for(exc: BaseException) -> FetchErrorCode:
    if isinstance(exc, RequestCancelled):
        return FetchErrorCode.CANCELLED
    if isinstance(exc, requests.Timeout):
        return FetchErrorCode.TIMEOUT
    if isinstance(exc, BodyLimitExceeded):
        return FetchErrorCode.BODY_TOO_LARGE
    return FetchErrorCode.FETCH_ERROR


class FetchPipeline:
    """
    Compose robots, policy, visited store, transport and hooks for one fetch.

    Steps, each raising to the immediate caller:
      resolve URL → robots → visited/allow/deny → depth → request hooks →
      HTTP call → mark visited → buffer body → response hooks → element hooks
    """

    def __init__(
        self,
        config: HarvesterConfig,
        session: requests.Session,
        scope: CancelScope,
        store: VisitedStore,
        robots: RobotsCache,
        event_logger: Callable[..., object] | None = None,
    ) -> None:
        self.config = config
        self.session = session
        self.scope = scope
        self.store = store
        self.robots = robots
        self.policy = UrlPolicy(
            allowed_urls=config.allowed_urls,
            disallowed_urls=config.disallowed_urls,
            depth_limit=config.depth_limit,
        )
        self._event_logger = event_logger or emit_event

    def fetch(self, url: str, depth: int, hooks: HookRegistry, owner: object) -> None:
        """
        Execute one fetch of `url` at `depth`.

        `owner` is the harvester the Request is bound to, so hooks can
        re-enter through Request.visit with the depth carried forward.
        """
        absolute = self.admit(url, depth)

        request = Request(
            url=absolute,
            method="GET",
            headers=CaseInsensitiveDict({"User-Agent": self.config.user_agent}),
            depth=depth,
        )
        request.bind(owner)
        hooks.run_request_hooks(request)

        start = time.monotonic()
        try:
            raw = self.scope.call(
                self.session.request,
                request.method,
                request.url,
                headers=dict(request.headers),
                data=request.body,
                timeout=self.config.timeout_seconds,
                allow_redirects=self.config.follow_redirects,
                stream=True,
            )
        except requests.RequestException as exc:
            self._log_round_trip(request, start, error=exc)
            raise

        try:
            # Visited as soon as the round trip succeeds, before the body is read
            self.store.visit(request.url)
            content = _read_body(raw, request.url, self.config.max_body_bytes, self.scope)
        except (requests.RequestException, BodyLimitExceeded) as exc:
            self._log_round_trip(request, start, status_code=raw.status_code, error=exc)
            raise
        finally:
            self._close(raw, request.url)

        response = Response(
            status_code=raw.status_code,
            headers=CaseInsensitiveDict(raw.headers),
            content=content,
            request=request,
            url=getattr(raw, "url", None) or request.url,
        )
        self._log_round_trip(request, start, status_code=response.status_code, size=len(content))

        hooks.run_response_hooks(response)
        self._run_element_hooks(hooks, response)

    def admit(self, url: str, depth: int) -> str:
        """Run every pre-network gate in order; return the normalized URL."""
        absolute = normalize_url(url)

        if not self.robots.permitted(absolute):
            if self.config.log_fetches:
                emit_fetch_log(
                    FetchLog(url=absolute, depth=depth, error_code=FetchErrorCode.BLOCKED_BY_ROBOTS)
                )
            raise RobotsDisallowedError(absolute)

        self.policy.check(absolute, self.store, allow_revisit=self.config.allow_revisit)
        self.policy.check_depth(depth)
        return absolute

    def _run_element_hooks(self, hooks: HookRegistry, response: Response) -> None:
        element_hooks = hooks.element_hooks()
        if not element_hooks:
            return

        document = HtmlDocument.parse(response.content, response.headers.get("content-type"))
        for hook in element_hooks:
            for tag in document.select(hook.selector):
                hook.callback(Element.from_tag(tag, response))

    def _close(self, raw: requests.Response, url: str) -> None:
        try:
            raw.close()
        except Exception as exc:
            self._event_logger(
                "body_close_error",
                level="warning",
                url=url,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def _log_round_trip(
        self,
        request: Request,
        start: float,
        status_code: int | None = None,
        size: int | None = None,
        error: BaseException | None = None,
    ) -> None:
        if not self.config.log_fetches:
            return
        emit_fetch_log(
            FetchLog(
                url=request.url,
                method=request.method,
                depth=request.depth,
                status_code=status_code,
                latency_ms=int((time.monotonic() - start) * 1000),
                bytes_received=size,
                error_code=_error_code_for(error) if error is not None else None,
                error=str(error) if error is not None else None,
            )
        )
