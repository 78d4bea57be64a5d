"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols for capabilities the
scanning engine consumes from its environment without depending on a
concrete implementation.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from storage_freer.types.models import MeasuredSize


@runtime_checkable
class AccessProvider(Protocol):
    """Capability for checking and requesting broad filesystem access.

    Platforms that gate directory access behind user consent (for example
    "Full Disk Access") plug their own implementation in here; the engine
    only asks questions and never persists grants itself.
    """

    def has_full_access(self) -> bool:
        """Report whether the process can read protected locations.

        Returns:
            True if a representative protected location can be listed
        """
        ...

    def request_access(self, path: Path) -> bool:
        """Ask for access to ``path``.

        Args:
            path: Directory the user should grant access to

        Returns:
            True if access was granted
        """
        ...


class SizeMeasurer(Protocol):
    """Anything that can measure a path the way SizeCalculator does."""

    def measure(self, path: Path) -> MeasuredSize:
        """Measure ``path`` without raising."""
        ...
