"""Size calculation for files and directory trees with shared caching."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from storage_freer.core.errors import ScanError, SubtreeAccessError
from storage_freer.types.models import ACCESS_DENIED, MeasuredSize

from .cache import PathSizeCache
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


class SizeMode(str, Enum):
    """Enumeration for size calculation modes."""

    APPARENT = "apparent"  # Apparent size (file content size)
    DISK_USAGE = "disk_usage"  # Actual disk usage (considering filesystem blocks)


@dataclass(slots=True)
class _DirectoryFrame:
    """Running total for one directory that is still being walked."""

    path: Path
    depth: int
    total: int = 0
    partial: bool = False
    denied: bool = False


class SizeCalculator:
    """Calculator for file and directory sizes with shared caching.

    Provides size calculation with:
    - A PathSizeCache shared by every worker and every batch of a session
    - Per-descendant error tolerance: an unreadable descendant counts as
      zero bytes and marks the result partial instead of failing it
    - Caching of every subdirectory total met during a walk, so later
      expansion of that subdirectory is served from the cache
    - Support for apparent size and allocated disk usage

    Hard links are counted once per link, so trees containing them are
    over-counted relative to the space they really occupy.
    """

    def __init__(
        self,
        scanner: DirectoryScanner | None = None,
        mode: SizeMode = SizeMode.APPARENT,
        cache: PathSizeCache | None = None,
    ) -> None:
        """Initialize the size calculator.

        Args:
            scanner: Directory scanner used for recursive enumeration
            mode: Size calculation mode (apparent size vs disk usage)
            cache: Cache shared with other calculators of the same session
        """
        self.scanner: DirectoryScanner = scanner or DirectoryScanner()
        self.mode: SizeMode = mode
        self.cache: PathSizeCache = cache if cache is not None else PathSizeCache()

    def size(self, path: Path) -> int:
        """Calculate the total size of a file or directory.

        Never raises; a path that cannot be measured at all yields the
        access-denied sentinel.

        Args:
            path: Absolute path to measure

        Returns:
            Size in bytes, or -1 if access was denied
        """
        return self.measure(path).size

    def measure(self, path: Path) -> MeasuredSize:
        """Measure ``path`` and report whether any descendant was skipped.

        Args:
            path: Absolute path to measure

        Returns:
            Size (or sentinel) with the partial-failure flag
        """
        cached = self.cache.get(path)
        if cached is not None:
            return MeasuredSize(cached, partial=self.cache.is_partial(path))

        try:
            st = self.scanner.filesystem.stat(path, follow_symlinks=self.scanner.follow_symlinks)
        except FileNotFoundError:
            # Vanished between listing and measuring
            logger.debug("Path disappeared before measuring", extra={"path": str(path)})
            return MeasuredSize(0)
        except OSError as exc:
            logger.debug("Cannot stat path", extra={"path": str(path), "error": str(exc)})
            self.cache.put(path, ACCESS_DENIED)
            return MeasuredSize(ACCESS_DENIED)

        if not stat.S_ISDIR(st.st_mode):
            size = self._size_from_stat(st)
            self.cache.put(path, size)
            return MeasuredSize(size)

        return self._measure_directory(path)

    def _measure_directory(self, root: Path) -> MeasuredSize:
        """Sum every descendant of ``root``, caching subdirectory totals.

        Args:
            root: Directory path

        Returns:
            Total directory size, or the sentinel if ``root`` cannot be opened
        """
        frames: list[_DirectoryFrame] = [_DirectoryFrame(root, depth=0)]

        def find_frame(path: Path) -> _DirectoryFrame | None:
            for frame in reversed(frames):
                if frame.path == path:
                    return frame
            return None

        def on_error(error: ScanError) -> None:
            if isinstance(error, SubtreeAccessError):
                frame = find_frame(error.path)
                if frame is not None:
                    frame.denied = True
                    return
            owner = find_frame(error.path.parent)
            (owner or frames[-1]).partial = True

        def close_frames(depth: int) -> None:
            while len(frames) > 1 and frames[-1].depth >= depth:
                self._finish_frame(frames.pop(), frames[-1])

        def already_counted(path: Path) -> bool:
            # Descend only into the directory whose frame was just opened
            return frames[-1].path != path

        try:
            for entry in self.scanner.walk(root, on_error=on_error, prune=already_counted):
                close_frames(entry.depth)
                parent = frames[-1]
                if not entry.is_directory:
                    parent.total += self._size_from_stat(entry.stat)
                    continue

                cached = self.cache.get(entry.path)
                if cached is None:
                    frames.append(_DirectoryFrame(entry.path, depth=entry.depth))
                elif cached < 0:
                    parent.partial = True
                else:
                    parent.total += cached
                    parent.partial = parent.partial or self.cache.is_partial(entry.path)
        except SubtreeAccessError as exc:
            logger.debug("Cannot enumerate directory", extra={"path": str(root), "error": str(exc)})
            self.cache.put(root, ACCESS_DENIED)
            return MeasuredSize(ACCESS_DENIED)

        close_frames(1)
        result = frames[0]
        self.cache.put(root, result.total, partial=result.partial)
        if result.partial:
            logger.debug(
                "Directory measured with unreadable descendants",
                extra={"path": str(root), "size": result.total},
            )
        return MeasuredSize(result.total, partial=result.partial)

    def _finish_frame(self, frame: _DirectoryFrame, parent: _DirectoryFrame) -> None:
        """Cache a completed subdirectory and fold it into its parent."""
        if frame.denied:
            self.cache.put(frame.path, ACCESS_DENIED)
            parent.partial = True
            return
        self.cache.put(frame.path, frame.total, partial=frame.partial)
        parent.total += frame.total
        parent.partial = parent.partial or frame.partial

    def _size_from_stat(self, st: os.stat_result) -> int:
        """Calculate file size from stat result.

        Args:
            st: os.stat_result object

        Returns:
            File size in bytes
        """
        if self.mode == SizeMode.APPARENT:
            return st.st_size
        # st_blocks is in 512-byte units where the platform provides it
        blocks: int | None = getattr(st, "st_blocks", None)
        return blocks * 512 if blocks is not None else st.st_size
