"""
Enumeration types for Locksmith.

This module defines the enumeration types used for admission policy and
configuration options.
"""

from enum import Enum


# =============================================================================
# Admission Policy Enums
# =============================================================================


class PeerMode(str, Enum):
    """
    Admission policy for one lifecycle step of an overlay.

    Used for both approval and activation:
        - AUTO: the step happens immediately after the preceding one
        - MANUAL: the step waits for an explicit operator call
    """

    AUTO = "AUTO"
    MANUAL = "MANUAL"

    @classmethod
    def parse(cls, value: "str | PeerMode") -> "PeerMode":
        """Parse a mode string case-insensitively."""
        if isinstance(value, PeerMode):
            return value
        return cls(str(value).strip().upper())


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """
    Logging verbosity levels.

    Levels (from most to least verbose):
        - FULL: Complete trace with detailed stack information
        - DEBUG: Debug messages and above
        - INFO: Informational messages and above
        - WARNING: Only warnings and errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
