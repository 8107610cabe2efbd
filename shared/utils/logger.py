"""
Logging configuration for the export pipeline.

Console output for the person running the export, plus a file channel
(logs/app.log) holding full details and tracebacks for developers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .config import settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Setup a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__ of the module)
        level: Override for settings.LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        log_level = level or settings.LOG_LEVEL
        logger.setLevel(log_level)
        formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if settings.LOG_FILE and not settings.DEBUG:
            log_path = Path(settings.LOG_FILE)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            # The developer channel always records DEBUG detail
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
            logger.setLevel(logging.DEBUG)

    return logger


def log_degraded(logger: logging.Logger, stage: str, subject: str, reason: object) -> None:
    """
    Log an expected, non-fatal failure.

    Degraded events never reach the user; they only leave a trace here.

    Args:
        logger: Logger instance
        stage: Pipeline stage the event happened in
        subject: What was skipped (field name, photo, lookup)
        reason: Exception or message describing the cause
    """
    if isinstance(reason, BaseException):
        reason = f"{type(reason).__name__}: {reason}"
    logger.warning(f"[{stage}] skipped {subject}: {reason}")


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """
    Log a fatal error with context and traceback.

    Must be called from inside the ``except`` block handling ``error``.

    Args:
        logger: Logger instance
        error: Exception that occurred
        context: Additional context about where the error occurred
    """
    if context:
        logger.error(f"{context}: {type(error).__name__}: {str(error)}")
    else:
        logger.error(f"{type(error).__name__}: {str(error)}")

    logger.debug("Full traceback:", exc_info=error)
