"""Pure formatting utilities for human-readable output.

This module provides stateless formatting functions for converting raw byte
counts and durations into display strings. All functions are pure with no
side effects.
"""

from typing import Final

# Binary unit suffixes (1024-based)
_UNITS: Final[tuple[str, ...]] = ("B", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")
_STEP: Final[int] = 1024

ACCESS_DENIED_LABEL: Final[str] = "Access Denied"

# Time unit constants
_MINUTE = 60
_HOUR = _MINUTE * 60  # 3,600
_DAY = _HOUR * 24  # 86,400


def format_bytes(size: int) -> str:
    """Convert a byte count to a human-readable size.

    Uses binary units (1024-based) and two decimal places. Negative values
    are the access-denied sentinel and render as a fixed label.

    Args:
        size: Number of bytes, or a negative sentinel

    Returns:
        Human-readable string representation of the size

    Examples:
        >>> format_bytes(0)
        '0 B'
        >>> format_bytes(512)
        '512.00 B'
        >>> format_bytes(1536)
        '1.50 KB'
        >>> format_bytes(-5)
        'Access Denied'
    """
    if size < 0:
        return ACCESS_DENIED_LABEL
    if size == 0:
        return "0 B"

    # Unit index from the bit length avoids float log rounding at boundaries
    exponent = min((size.bit_length() - 1) // 10, len(_UNITS) - 1)
    return f"{size / _STEP**exponent:.2f} {_UNITS[exponent]}"


def format_duration(seconds: float) -> str:
    """Convert seconds to human-readable duration format.

    Shows the two most significant units for values over one minute and
    sub-second precision for short durations.

    Args:
        seconds: Duration in seconds (must be non-negative)

    Returns:
        Human-readable duration string with adaptive granularity

    Examples:
        >>> format_duration(0.25)
        '0.25s'
        >>> format_duration(90)
        '1m 30s'
        >>> format_duration(3665)
        '1h 1m'
        >>> format_duration(90000)
        '1d 1h'
    """
    if seconds < 0:
        msg = "seconds must be non-negative"
        raise ValueError(msg)

    if seconds < _MINUTE:
        if seconds < 10:
            return f"{seconds:.2f}s"
        return f"{int(seconds)}s"

    total_seconds = int(seconds)

    if total_seconds >= _DAY:
        days, remaining = divmod(total_seconds, _DAY)
        hours = remaining // _HOUR
        return f"{days}d {hours}h" if hours else f"{days}d"

    if total_seconds >= _HOUR:
        hours, remaining = divmod(total_seconds, _HOUR)
        minutes = remaining // _MINUTE
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"

    minutes, secs = divmod(total_seconds, _MINUTE)
    return f"{minutes}m {secs}s" if secs else f"{minutes}m"
