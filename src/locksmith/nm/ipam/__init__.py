"""Addresser implementations."""

from locksmith.nm.ipam.base import Addresser

__all__ = ["Addresser"]
