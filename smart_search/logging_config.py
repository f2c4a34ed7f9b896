"""Configure logging for the smart search application."""

import sys
import os
import logging
from datetime import datetime
from typing import Optional

from loguru import logger

from smart_search.settings import settings

# Third-party namespaces whose chatter never reaches our sinks
NOISY_LOGGERS = ["sqlalchemy", "asyncio", "aiohttp.access", "httpx", "urllib3"]


def _is_noisy(name: str) -> bool:
    return any(noisy in name for noisy in NOISY_LOGGERS)


def configure_loguru(
    sink=sys.stdout,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    rotation: str = "20 MB",
    retention: str = "1 week",
    format_string: Optional[str] = None,
    serialize: bool = False,
) -> None:
    """
    Configure Loguru logger with given parameters.

    :param sink: Output sink (default: stdout)
    :param level: Log level (default: from settings)
    :param log_file: Optional file path to write logs to
    :param rotation: When to rotate logs (size or time)
    :param retention: How long to keep logs
    :param format_string: Log format string
    :param serialize: Whether to serialize logs as JSON
    """
    # Remove default handlers
    logger.remove()

    if level is None:
        level = settings.log_level.value

    if format_string is None:
        format_string = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

    def filter_noisy_loggers(record):
        return not _is_noisy(record["name"])

    logger.add(
        sink=sink,
        level=level,
        format=format_string,
        colorize=True,
        backtrace=True,
        diagnose=True,
        filter=filter_noisy_loggers,
    )

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        logger.add(
            sink=log_file,
            level=level,
            format=format_string,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=serialize,
            backtrace=True,
            diagnose=True,
            filter=filter_noisy_loggers,
        )

    logger.debug(f"Configured Loguru with level: {level}")


def configure_logging():
    """Configures the application logging."""
    # Python's logging system must not write anything on its own
    logging.basicConfig(handlers=[logging.NullHandler()])

    for logger_name in NOISY_LOGGERS:
        module_logger = logging.getLogger(logger_name)
        module_logger.setLevel(logging.CRITICAL + 10)  # Higher than CRITICAL
        module_logger.propagate = False

    level = settings.log_level.value

    log_file = None
    if settings.enable_file_logging:
        logs_dir = settings.logs_dir or "logs"
        os.makedirs(logs_dir, exist_ok=True)
        date_str = datetime.now().strftime("%Y-%m-%d")
        log_file = os.path.join(logs_dir, f"smart_search_{date_str}.log")

    configure_loguru(
        level=level,
        log_file=log_file,
        serialize=settings.structured_logging,
    )

    # Everything that still uses the standard library goes through loguru
    intercept_handler = InterceptHandler()
    intercept_handler.intercept_all_loggers()

    logger.info(f"Logging configured with level {level}")
    if log_file:
        logger.info(f"Logging to file: {log_file}")


class InterceptHandler(logging.Handler):
    """
    Intercepts standard library logging and redirects to loguru.

    This handler is needed to capture logs from libraries that use
    the standard logging module (uvicorn, aiohttp, sqlalchemy).
    """

    def __init__(self):
        super().__init__()
        self.handled_loggers = set()

    def intercept_all_loggers(self):
        """Intercept all existing loggers."""
        root_logger = logging.getLogger()

        for handler in root_logger.handlers[:]:
            if not isinstance(handler, logging.NullHandler):
                root_logger.removeHandler(handler)

        root_logger.addHandler(self)
        root_logger.setLevel(logging.WARNING)

        for logger_name in list(logging.root.manager.loggerDict):
            if _is_noisy(logger_name):
                continue
            self._intercept_logger(logger_name)

        for logger_name in ("uvicorn", "uvicorn.access"):
            ulogger = logging.getLogger(logger_name)
            for handler in ulogger.handlers[:]:
                ulogger.removeHandler(handler)
            ulogger.addHandler(self)
            if logger_name == "uvicorn.access":
                ulogger.setLevel(logging.CRITICAL)
            else:
                ulogger.setLevel(logging.WARNING)

        logger.debug("Intercepted all standard library loggers")

    def _intercept_logger(self, logger_name: str):
        """Intercept a specific logger."""
        if logger_name in self.handled_loggers:
            return

        log = logging.getLogger(logger_name)
        for handler in log.handlers[:]:
            log.removeHandler(handler)
        log.addHandler(self)
        log.propagate = False
        self.handled_loggers.add(logger_name)

    def emit(self, record):
        """
        Emit a record - standard logging Handler interface.

        Translates the stdlib record into a loguru call at the right depth.
        """
        if _is_noisy(record.name.lower()):
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        if (
            any(prefix in record.name for prefix in ["uvicorn", "fastapi"])
            and record.levelno < logging.WARNING
        ):
            return

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
