"""State store implementations."""

from locksmith.nm.state.base import StateStore

__all__ = ["StateStore"]
