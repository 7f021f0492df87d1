"""Logging configuration and logger factory for intuit-cad.

This module provides centralized logging configuration with support for:
- Console and file handlers with different log levels
- Log rotation to prevent unbounded file growth
- Secret redaction via custom formatters
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .formatters import SecretRedactingFormatter

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = Path("logs") / "intuit-cad.log"
MAX_LOG_FILE_SIZE = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5

_logging_configured = False

logger = logging.getLogger(__name__)


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure logging for intuit-cad.

    Sets up a console handler at ``level`` and a rotating file handler at
    DEBUG. Safe to call more than once: handlers installed by a previous call
    are replaced.

    Args:
        level: Log level for console output (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               File handler always uses DEBUG level.
        log_file: Path to log file. If None, uses INTUIT_CAD_LOG_FILE or
                 DEFAULT_LOG_FILE.
        redact_secrets: Whether to mask tokens, assertions and credentials

    Raises:
        ValueError: If invalid log level is provided
        RuntimeError: If log directory cannot be created

    Example:
        >>> configure_logging(level="DEBUG")
        >>> configure_logging(level="INFO", log_file=Path("custom/app.log"))
    """
    global _logging_configured

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )

    if log_file is None:
        env_log_file = os.environ.get("INTUIT_CAD_LOG_FILE")
        log_file = Path(env_log_file) if env_log_file else DEFAULT_LOG_FILE

    log_dir = log_file.parent
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RuntimeError(
            f"Failed to create log directory: {log_dir}. "
            f"Ensure write permissions are available. Error: {e}"
        ) from e

    root_logger = logging.getLogger()

    # Replace handlers from a previous call; leave foreign handlers alone
    if _logging_configured:
        for handler in list(root_logger.handlers):
            if isinstance(handler.formatter, SecretRedactingFormatter):
                root_logger.removeHandler(handler)
                handler.close()

    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        SecretRedactingFormatter(fmt=DEFAULT_LOG_FORMAT, redact_secrets=redact_secrets)
    )
    root_logger.addHandler(console_handler)

    try:
        file_handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            SecretRedactingFormatter(fmt=DEFAULT_LOG_FORMAT, redact_secrets=redact_secrets)
        )
        root_logger.addHandler(file_handler)
    except OSError as e:
        root_logger.warning(
            f"Failed to create file handler for {log_file}: {e}. "
            f"Logging to console only."
        )

    # urllib3 logs full request lines at DEBUG, query strings included
    logging.getLogger("urllib3").setLevel(logging.INFO)

    _logging_configured = True
    logger.debug(f"Logging configured: console={level.upper()}, file={log_file}")


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger for the specified module.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Processing started")
    """
    return logging.getLogger(module_name)
