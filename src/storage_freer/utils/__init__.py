"""Shared utility modules for common operations.

This package provides pure, stateless formatting helpers and the logging
setup used by the command-line consumer.
"""

from storage_freer.utils.formatting import (
    ACCESS_DENIED_LABEL,
    format_bytes,
    format_duration,
)

__all__ = [
    "ACCESS_DENIED_LABEL",
    "format_bytes",
    "format_duration",
]
