"""Error taxonomy for filesystem scanning.

None of these errors are fatal to a scan. The engine catches them at the
unit that was requested (a top-level entry, an expanded directory or the
scan root) and degrades to the access-denied sentinel, an empty listing or a
permission flag.
"""

from __future__ import annotations

import errno
from enum import Enum
from pathlib import Path


class ListFailure(str, Enum):
    """Why a directory could not be listed."""

    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    OTHER = "other"


class ScanError(Exception):
    """Base exception for all scanning errors."""

    def __init__(self, message: str, path: Path, cause: OSError | None = None) -> None:
        """Initialize ScanError.

        Args:
            message: Error message
            path: Path the failure relates to
            cause: Underlying OS error, if any
        """
        super().__init__(message)
        self.path: Path = path
        self.cause: OSError | None = cause


class ListingError(ScanError):
    """A directory could not be opened for listing."""

    def __init__(
        self,
        message: str,
        path: Path,
        reason: ListFailure = ListFailure.OTHER,
        cause: OSError | None = None,
    ) -> None:
        """Initialize ListingError.

        Args:
            message: Error message
            path: Directory that failed to open
            reason: Classified failure reason
            cause: Underlying OS error, if any
        """
        super().__init__(message, path, cause)
        self.reason: ListFailure = reason

    @property
    def is_permission_denied(self) -> bool:
        return self.reason is ListFailure.PERMISSION_DENIED

    @classmethod
    def from_os_error(cls, path: Path, exc: OSError) -> ListingError:
        """Classify an OS error raised while opening ``path``."""
        if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
            reason = ListFailure.PERMISSION_DENIED
        elif isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
            reason = ListFailure.NOT_FOUND
        else:
            reason = ListFailure.OTHER
        return cls(f"Cannot list {path}: {exc.strerror or exc}", path, reason, exc)


class StatError(ScanError):
    """Metadata for a single node could not be read."""


class SubtreeAccessError(ScanError):
    """An entire subtree could not be enumerated."""


class ExpansionError(ScanError):
    """Lazy expansion was requested for an entry that cannot be expanded."""
