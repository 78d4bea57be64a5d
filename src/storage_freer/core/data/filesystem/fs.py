"""Filesystem primitives consumed by the scanning engine.

Listing and stat calls go through a LocalFileSystem instance so callers can
substitute a double that injects failures or counts calls.
"""

from __future__ import annotations

import os
from pathlib import Path


class LocalFileSystem:
    """Thin wrapper over the ``os`` listing and stat calls."""

    def list_names(self, path: Path) -> list[str]:
        """Return the names of the immediate children of ``path``, sorted.

        Raises:
            OSError: If the directory cannot be opened
        """
        return sorted(os.listdir(path))

    def stat(self, path: Path, *, follow_symlinks: bool = False) -> os.stat_result:
        """Read metadata for ``path``.

        Raises:
            OSError: If the metadata cannot be read
        """
        return os.stat(path, follow_symlinks=follow_symlinks)

    def realpath(self, path: Path) -> str:
        return os.path.realpath(path)


DEFAULT_FILESYSTEM = LocalFileSystem()
