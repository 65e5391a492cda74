"""
Logging setup for Locksmith.

All modules obtain their logger through get_logger(__name__), which returns
a loguru logger bound to the module name. configure_logging() installs the
sinks once at process startup.

Usage:
    from locksmith.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Network 'office' has staged peer 'abc='")
"""

import sys
import traceback

from loguru import logger as _logger

from locksmith.models.enums import LogLevel

# =============================================================================
# Format
# =============================================================================

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

_LEVEL_MAP = {
    LogLevel.FULL: "TRACE",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO",
    LogLevel.WARNING: "WARNING",
}

# Default "name" so records logged through the bare logger still format.
_logger.configure(extra={"name": "locksmith"})


# =============================================================================
# Public API
# =============================================================================


def get_logger(name: str):
    """Return a logger bound to the given module name."""
    return _logger.bind(name=name)


def configure_logging(level: LogLevel = LogLevel.INFO, log_file: str = "") -> None:
    """
    Replace the default loguru sink with Locksmith's formatting.

    Args:
        level: Verbosity level.
        log_file: Optional file path; when set, logs are also written there
            with rotation.
    """
    loguru_level = _LEVEL_MAP.get(level, "INFO")

    _logger.remove()
    _logger.add(
        sys.stderr,
        level=loguru_level,
        format=LOG_FORMAT,
        backtrace=level == LogLevel.FULL,
        diagnose=level == LogLevel.FULL,
    )
    if log_file:
        _logger.add(
            log_file,
            level=loguru_level,
            format=LOG_FORMAT,
            rotation="10 MB",
            retention=5,
            enqueue=True,
        )


def format_traceback(exc: BaseException) -> str:
    """Render an exception with its traceback as a single string."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
