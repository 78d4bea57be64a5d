"""Recursive directory enumeration that keeps going past per-node errors."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from storage_freer.core.errors import ScanError, StatError, SubtreeAccessError

from .exclusions import ExclusionFilter
from .fs import DEFAULT_FILESYSTEM, LocalFileSystem

logger = logging.getLogger(__name__)

type ErrorCallback = Callable[[ScanError], None]
type PruneCallback = Callable[[Path], bool]


@dataclass(slots=True, frozen=True)
class WalkEntry:
    """One descendant produced by DirectoryScanner.walk.

    ``depth`` is 1 for immediate children of the walk root.
    """

    path: Path
    stat: os.stat_result
    depth: int
    is_directory: bool


class DirectoryScanner:
    """Scanner for traversing directory trees with configurable exclusions.

    Provides depth-first traversal with support for:
    - Exclusion filtering shared with directory listing
    - Depth limiting
    - A continue-on-error callback for unreadable nodes
    - A prune hook to skip descending into already-measured directories
    - Optional symlink following with loop detection
    """

    def __init__(
        self,
        exclusion_filter: ExclusionFilter | None = None,
        max_depth: int | None = None,
        follow_symlinks: bool = False,
        filesystem: LocalFileSystem | None = None,
    ) -> None:
        """Initialize the directory scanner.

        Args:
            exclusion_filter: Filter deciding which entries are skipped
            max_depth: Maximum depth to descend (None for unlimited)
            follow_symlinks: Whether to follow symbolic links
            filesystem: Listing and stat primitives
        """
        self.exclusion_filter: ExclusionFilter = exclusion_filter or ExclusionFilter()
        self.max_depth: int | None = max_depth
        self.follow_symlinks: bool = follow_symlinks
        self.filesystem: LocalFileSystem = filesystem or DEFAULT_FILESYSTEM

    def walk(
        self,
        root: Path,
        *,
        on_error: ErrorCallback | None = None,
        prune: PruneCallback | None = None,
    ) -> Iterator[WalkEntry]:
        """Yield every descendant of ``root`` in depth-first pre-order.

        A directory is yielded before its own descendants, so consumers can
        track the open directory chain from the depth of each entry.

        Args:
            root: Directory to enumerate
            on_error: Called with a StatError for a node whose metadata cannot
                be read, or a SubtreeAccessError for a descendant directory
                that cannot be opened; traversal continues afterwards
            prune: Called for each yielded directory; returning True skips
                its descendants

        Yields:
            WalkEntry for each descendant that is not excluded

        Raises:
            SubtreeAccessError: If ``root`` itself cannot be opened
        """
        try:
            root_names = self.filesystem.list_names(root)
        except OSError as exc:
            raise SubtreeAccessError(f"Cannot enumerate {root}: {exc.strerror or exc}", root, exc) from exc

        visited: set[str] = set()
        if self.follow_symlinks:
            visited.add(self.filesystem.realpath(root))

        stack: list[tuple[Path, Iterator[str], int]] = [(root, iter(root_names), 1)]
        while stack:
            parent, names, depth = stack[-1]
            name = next(names, None)
            if name is None:
                _ = stack.pop()
                continue

            if self.exclusion_filter.should_exclude(name):
                continue

            path = parent / name
            try:
                st = self.filesystem.stat(path, follow_symlinks=self.follow_symlinks)
            except FileNotFoundError:
                # Removed between listing and stat, or a dangling link
                continue
            except OSError as exc:
                self._report(on_error, StatError(f"Cannot stat {path}: {exc.strerror or exc}", path, exc))
                continue

            is_directory = stat.S_ISDIR(st.st_mode)
            if is_directory and self.follow_symlinks and not self._should_descend(path, visited):
                continue

            yield WalkEntry(path=path, stat=st, depth=depth, is_directory=is_directory)

            if not is_directory:
                continue
            if self.max_depth is not None and depth >= self.max_depth:
                continue
            if prune is not None and prune(path):
                continue

            try:
                child_names = self.filesystem.list_names(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                self._report(
                    on_error,
                    SubtreeAccessError(f"Cannot enumerate {path}: {exc.strerror or exc}", path, exc),
                )
                continue
            stack.append((path, iter(child_names), depth + 1))

    def _should_descend(self, path: Path, visited: set[str]) -> bool:
        """Check whether a directory reached through symlinks is new.

        Args:
            path: Directory path to check
            visited: Real paths already descended

        Returns:
            True if the directory has not been visited yet
        """
        try:
            resolved = self.filesystem.realpath(path)
        except (OSError, RuntimeError):
            return False
        if resolved in visited:
            logger.debug("Skipping already visited directory", extra={"path": str(path), "resolved": resolved})
            return False
        visited.add(resolved)
        return True

    @staticmethod
    def _report(on_error: ErrorCallback | None, error: ScanError) -> None:
        logger.debug("Continuing past unreadable node", extra={"path": str(error.path), "error": str(error)})
        if on_error is not None:
            on_error(error)
