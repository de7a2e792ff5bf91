"""
Configuration for the harvester engine.

Two layers:
- HarvestDefaults: module-level constants (agent names, timeouts) validated
  once at import time.
- HarvesterConfig: the validated, immutable per-harvester settings. Runtime
  collaborators (HTTP session, cancellation scope, visited store) are not
  configuration and are handed to the Harvester constructor directly.
"""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HarvestDefaults:
    """
    Default settings shared by every harvester.
    """

    # ========================================================================
    # Identity
    # ========================================================================

    # Sent as the User-Agent header unless a request hook overrides it
    USER_AGENT: str = "harvester-engine/0.1 (+https://github.com/harvester-engine/harvester-engine)"
    """User-Agent header (must be descriptive)."""

    # Agent token matched against robots.txt User-agent groups
    ROBOTS_AGENT: str = "Harvester"
    """Agent name used when evaluating robots.txt rules."""

    # ========================================================================
    # Transport
    # ========================================================================

    ALLOWED_PROTOCOLS: Tuple[str, ...] = ("http", "https")
    """Only HTTP(S) URLs are fetched or produced by link resolution."""

    FETCH_TIMEOUT_SECONDS: float = 30.0
    """Maximum time to wait for a single HTTP call (seconds)."""

    ROBOTS_TIMEOUT_SECONDS: float = 30.0
    """Maximum time to wait for a robots.txt fetch (seconds)."""

    BODY_CHUNK_BYTES: int = 8192
    """Chunk size used while buffering response bodies."""

    # Poll interval while waiting on a cancellable transport call
    CANCEL_POLL_SECONDS: float = 0.05

    @classmethod
    def validate(cls) -> None:
        """
        Validate defaults at startup.

        Raises:
            ValueError: If any constraint is violated.
        """
        if not cls.USER_AGENT.strip():
            raise ValueError("USER_AGENT must not be blank")
        if not cls.ROBOTS_AGENT.strip():
            raise ValueError("ROBOTS_AGENT must not be blank")
        if cls.FETCH_TIMEOUT_SECONDS <= 0 or cls.ROBOTS_TIMEOUT_SECONDS <= 0:
            raise ValueError("timeouts must be > 0")
        if cls.BODY_CHUNK_BYTES < 1:
            raise ValueError("BODY_CHUNK_BYTES must be >= 1")
        if cls.CANCEL_POLL_SECONDS <= 0:
            raise ValueError("CANCEL_POLL_SECONDS must be > 0")


# Validate at module import time
HarvestDefaults.validate()


class HarvesterConfig(BaseModel):
    """
    Immutable settings for one Harvester (shared by its clones).

    Design:
    - allowed_urls / disallowed_urls are plain string prefixes matched against
      the absolute URL, so "https://example.com" scopes a whole site
    - depth_limit == 0 means unlimited; depth_limit == N rejects depth >= N
    - max_body_bytes == 0 means unlimited
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_urls: Tuple[str, ...] = ()
    disallowed_urls: Tuple[str, ...] = ()
    depth_limit: int = Field(default=0, ge=0)
    allow_revisit: bool = False
    ignore_robots: bool = False
    user_agent: str = HarvestDefaults.USER_AGENT
    robots_agent: str = HarvestDefaults.ROBOTS_AGENT
    timeout_seconds: float = Field(default=HarvestDefaults.FETCH_TIMEOUT_SECONDS, gt=0)
    follow_redirects: bool = True
    max_body_bytes: int = Field(default=0, ge=0)
    log_fetches: bool = True

    @field_validator("allowed_urls", "disallowed_urls")
    @classmethod
    def _prefixes_not_blank(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        """Blank prefixes would match every URL."""
        for prefix in value:
            if not prefix.strip():
                raise ValueError("URL prefixes must not be blank")
        return tuple(value)

    @field_validator("user_agent", "robots_agent")
    @classmethod
    def _agent_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("agent strings must not be blank")
        return value

    def with_overrides(self, **overrides: object) -> "HarvesterConfig":
        """Return a validated copy with the given fields replaced."""
        if not overrides:
            return self
        data = self.model_dump()
        data.update(overrides)
        return HarvesterConfig(**data)
