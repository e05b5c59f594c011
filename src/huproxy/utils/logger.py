"""
Logging setup for huproxy.

All huproxy modules log through loguru. Records emitted by libraries through
the standard ``logging`` module (uvicorn, websockets, asyncio) are routed into
the same sink by ``InterceptHandler``.

Usage:
    from huproxy.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Listening")
"""

import logging
import sys
import traceback

from loguru import logger as _logger

from huproxy.models.enums import LogLevel

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)

# huproxy level -> loguru level name
LEVEL_MAP = {
    LogLevel.FULL: "TRACE",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO",
    LogLevel.WARNING: "WARNING",
    LogLevel.WARN: "WARNING",
    LogLevel.ERROR: "ERROR",
}

# Libraries that log through the standard logging module
INTERCEPTED_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "websockets",
    "asyncio",
)

_logger.configure(extra={"name": "huproxy"})


class InterceptHandler(logging.Handler):
    """Route standard library logging records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        _logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(level: LogLevel = LogLevel.INFO, log_file: str = "stdout"):
    """
    Configure the loguru sink and intercept standard library logging.

    Must be called before the server starts so uvicorn's records are routed
    through loguru.

    Args:
        level: huproxy log level.
        log_file: "stdout", "stderr", or a path opened in append mode.
    """
    loguru_level = LEVEL_MAP[LogLevel(level)]

    match log_file:
        case "stdout":
            sink = sys.stdout
        case "stderr":
            sink = sys.stderr
        case _:
            sink = log_file

    _logger.remove()
    if isinstance(sink, str):
        _logger.add(
            sink, format=LOG_FORMAT, level=loguru_level, colorize=False, mode="a"
        )
    else:
        _logger.add(sink, format=LOG_FORMAT, level=loguru_level)

    intercept_handler = InterceptHandler()
    logging.basicConfig(handlers=[intercept_handler], level=logging.INFO, force=True)
    for name in INTERCEPTED_LOGGERS:
        lib_logger = logging.getLogger(name)
        lib_logger.handlers = [intercept_handler]
        lib_logger.propagate = False

    # uvicorn.access logs one line per request; keep it out of info output
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str):
    """Get a logger bound to a module name."""
    return _logger.bind(name=name)


def format_traceback(exc: BaseException) -> str:
    """Format an exception with its traceback for debug logs."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
