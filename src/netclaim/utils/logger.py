"""
Logging utilities for netclaim.

All modules log through loguru. Each module asks for a logger bound to its
own name so records can be filtered per component:

    from netclaim.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("hello")

configure_logging() must run once at process start (CLI / controller entry).
"""

import sys
import traceback

from loguru import logger as _logger

from netclaim.models.enums import LogLevel

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(level: LogLevel = LogLevel.INFO, log_file: str = "") -> None:
    """
    Configure the global loguru sink.

    Args:
        level: Verbosity. FULL adds loguru's backtrace/diagnose output.
        log_file: Optional file path; logs are also written there with rotation.
    """
    match level:
        case LogLevel.FULL:
            loguru_level = "TRACE"
        case LogLevel.DEBUG:
            loguru_level = "DEBUG"
        case LogLevel.INFO:
            loguru_level = "INFO"
        case LogLevel.WARNING:
            loguru_level = "WARNING"
        case _:
            loguru_level = "INFO"

    full = level == LogLevel.FULL

    _logger.remove()
    _logger.configure(extra={"name": "netclaim"})
    _logger.add(
        sys.stderr,
        level=loguru_level,
        format=LOG_FORMAT,
        backtrace=full,
        diagnose=full,
    )
    if log_file:
        _logger.add(
            log_file,
            level=loguru_level,
            format=LOG_FORMAT,
            rotation="10 MB",
            retention=5,
        )


def get_logger(name: str):
    """Return the shared loguru logger bound to a component name."""
    return _logger.bind(name=name)


def format_traceback(exc: BaseException) -> str:
    """Render an exception with its traceback for debug logging."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
