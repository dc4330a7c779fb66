"""
Logging setup for HakuDHCP.

All modules log through loguru. Standard library loggers (uvicorn, peewee,
fastapi) are intercepted and forwarded so there is a single output format.

Usage:
    from kohakudhcp.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Pool created")
"""

import inspect
import logging
import sys
import traceback

from loguru import logger as _logger

from kohakudhcp.models.enums import LogLevel

# Map HakuDHCP levels to loguru levels. FULL also enables backtraces.
_LEVEL_MAP = {
    LogLevel.FULL: "TRACE",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO",
    LogLevel.WARNING: "WARNING",
}

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"module": "kohakudhcp"})


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        _logger.bind(module=record.name).opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


def get_logger(name: str):
    """Get a loguru logger bound to a module name."""
    return _logger.bind(module=name)


def configure_logging(
    level: LogLevel | str = LogLevel.INFO, log_file: str | None = None
) -> None:
    """
    Configure loguru sinks and intercept standard library logging.

    Must be called before uvicorn starts so its loggers are captured.

    Args:
        level: HakuDHCP log level.
        log_file: Optional file path for an additional rotating sink.
    """
    level = LogLevel(level)
    loguru_level = _LEVEL_MAP.get(level, "INFO")
    full = level == LogLevel.FULL

    _logger.remove()
    _logger.add(
        sys.stderr,
        level=loguru_level,
        format=_FORMAT,
        backtrace=full,
        diagnose=full,
    )
    if log_file:
        _logger.add(
            log_file,
            level=loguru_level,
            format=_FORMAT,
            rotation="10 MB",
            retention=5,
            backtrace=full,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "peewee"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    # peewee logs every query at DEBUG; only show that in FULL mode
    logging.getLogger("peewee").setLevel(logging.DEBUG if full else logging.INFO)


def format_traceback(exc: BaseException) -> str:
    """Format an exception with its traceback as a single string."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
