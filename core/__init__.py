"""Core module for the harvester engine.

Only leaf modules are re-exported here; import core.models and core.hooks
directly (they depend on the parser package, which depends on core).
"""

from core.config import HarvestDefaults, HarvesterConfig
from core.context import CancelScope, RequestCancelled
from core.errors import (
    AlreadyVisitedError,
    BodyLimitExceeded,
    DepthLimitExceededError,
    ForbiddenURLError,
    HarvestError,
    HtmlParseError,
    InvalidURLError,
    ParseFailure,
    PolicyRejection,
    RobotsDisallowedError,
    RobotsFetchError,
    RobotsParseError,
)

__all__ = [
    "HarvestDefaults",
    "HarvesterConfig",
    "CancelScope",
    "RequestCancelled",
    "HarvestError",
    "InvalidURLError",
    "PolicyRejection",
    "ForbiddenURLError",
    "AlreadyVisitedError",
    "DepthLimitExceededError",
    "RobotsDisallowedError",
    "ParseFailure",
    "RobotsFetchError",
    "RobotsParseError",
    "HtmlParseError",
    "BodyLimitExceeded",
]
