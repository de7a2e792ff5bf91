"""Policy-gated, hook-driven fetch-and-traverse engine."""

from harvester.core import Harvester

__all__ = ["Harvester"]
