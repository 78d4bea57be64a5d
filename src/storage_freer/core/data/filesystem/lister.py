"""Listing of a directory's immediate children."""

from __future__ import annotations

import logging
import stat
from pathlib import Path

from storage_freer.core.errors import ListingError
from storage_freer.types.models import ListedEntry

from .exclusions import ExclusionFilter
from .fs import DEFAULT_FILESYSTEM, LocalFileSystem

logger = logging.getLogger(__name__)


class EntryLister:
    """Lists the immediate children of a directory, classified file or directory.

    Classification is best effort: a child whose metadata cannot be read is
    still returned, as a file. If it later measures like a directory the
    size calculator handles it as one.
    """

    def __init__(
        self,
        exclusion_filter: ExclusionFilter | None = None,
        follow_symlinks: bool = False,
        filesystem: LocalFileSystem | None = None,
    ) -> None:
        """Initialize the lister.

        Args:
            exclusion_filter: Filter shared with recursive measurement
            follow_symlinks: Classify symlinks by their target
            filesystem: Listing and stat primitives
        """
        self.exclusion_filter: ExclusionFilter = exclusion_filter or ExclusionFilter()
        self.follow_symlinks: bool = follow_symlinks
        self.filesystem: LocalFileSystem = filesystem or DEFAULT_FILESYSTEM

    def list(self, directory: Path, *, directories_only: bool = False) -> list[ListedEntry]:
        """List the immediate children of ``directory`` in name order.

        Args:
            directory: Directory to list
            directories_only: Drop children classified as files

        Returns:
            Listed children

        Raises:
            ListingError: If the directory itself cannot be opened
        """
        try:
            names = self.filesystem.list_names(directory)
        except OSError as exc:
            error = ListingError.from_os_error(directory, exc)
            logger.warning(
                "Cannot list directory",
                extra={"path": str(directory), "reason": error.reason.value, "error": str(exc)},
            )
            raise error from exc

        entries: list[ListedEntry] = []
        for name in names:
            if self.exclusion_filter.should_exclude(name):
                continue
            path = directory / name
            is_directory = self._classify(path)
            if directories_only and not is_directory:
                continue
            entries.append(ListedEntry(path=path, is_directory=is_directory))

        logger.debug(
            "Listed directory",
            extra={"path": str(directory), "entries": len(entries), "skipped": len(names) - len(entries)},
        )
        return entries

    def _classify(self, path: Path) -> bool:
        try:
            st = self.filesystem.stat(path, follow_symlinks=self.follow_symlinks)
        except OSError as exc:
            logger.debug(
                "Cannot read entry type, treating as file",
                extra={"path": str(path), "error": str(exc)},
            )
            return False
        return stat.S_ISDIR(st.st_mode)
