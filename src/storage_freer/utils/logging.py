"""Structured logging infrastructure with scan ID tracking.

This module provides logging setup for storage-freer: a ContextVar-based
scan ID attached to every record (so log lines from measurement worker
threads can be tied to the scan that spawned them), console output, and
optional rotating-file and syslog handlers.
"""

import contextvars
import logging
import logging.handlers
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Final, override

# Scan ID context variable; copied onto worker threads by the aggregation engine
scan_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_id",
    default=None,
)

# Log format constants
DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(scan_id)s] - %(message)s"

SYSLOG_LOG_FORMAT: Final[str] = "storage-freer[%(process)d]: %(levelname)s - [%(scan_id)s] - %(name)s - %(message)s"

DEFAULT_SYSLOG_ADDRESS: Final[str] = "/dev/log"

LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT: Final[int] = 3


class ScanIdFilter(logging.Filter):
    """Logging filter that adds the scan ID to log records.

    Retrieves the scan ID from the ContextVar and adds it to each log record.
    Records emitted outside any scan get ``"-"``.
    """

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        """Add scan ID to log record from ContextVar.

        Args:
            record: Log record to enhance with the scan ID

        Returns:
            True to allow the record to be logged
        """
        scan_id = scan_id_var.get()
        record.scan_id = scan_id if scan_id is not None else "-"
        return True


def configure_logging(
    *,
    log_level: str = "WARNING",
    enable_console: bool = True,
    log_file: Path | None = None,
    enable_syslog: bool = False,
    syslog_address: str = DEFAULT_SYSLOG_ADDRESS,
) -> None:
    """Configure application logging.

    Sets up logging infrastructure with:
    - Scan ID tracking via ContextVar
    - Console output on stderr (stdout is reserved for scan results)
    - Optional rotating log file
    - Optional syslog integration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Enable console output handler
        log_file: Path of a rotating log file, None to disable
        enable_syslog: Enable syslog handler
        syslog_address: Syslog socket address
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.WARNING)
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    scan_id_filter = ScanIdFilter()
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(scan_id_filter)
        root_logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(scan_id_filter)
        root_logger.addHandler(file_handler)

    if enable_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=syslog_address,
                facility=logging.handlers.SysLogHandler.LOG_USER,
            )
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_LOG_FORMAT))
            syslog_handler.addFilter(scan_id_filter)
            root_logger.addHandler(syslog_handler)
        except OSError as exc:
            # Syslog not available (e.g., development environment)
            print(
                f"Warning: Could not connect to syslog at {syslog_address}: {exc}",
                file=sys.stderr,
            )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the specified module."""
    return logging.getLogger(name)


def set_scan_id(scan_id: str) -> contextvars.Token[str | None]:
    """Set the scan ID for the current context.

    Args:
        scan_id: Identifier of the scan being run

    Returns:
        Token that restores the previous value via ``reset_scan_id``
    """
    return scan_id_var.set(scan_id)


def reset_scan_id(token: contextvars.Token[str | None]) -> None:
    scan_id_var.reset(token)


def get_scan_id() -> str | None:
    return scan_id_var.get()


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    extra: Mapping[str, object] | None = None,
) -> None:
    """Log a message with additional context fields and the current scan ID.

    Args:
        logger: Logger instance to use
        level: Logging level (e.g., logging.INFO)
        message: Log message
        extra: Additional context fields to include in log
    """
    context = dict(extra) if extra else {}
    scan_id = get_scan_id()
    if scan_id:
        context["scan_id"] = scan_id
    logger.log(level, message, extra=context)
