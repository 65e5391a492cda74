"""Interface driver implementations."""

from locksmith.nm.driver.base import Driver

__all__ = ["Driver"]
