"""Thread-safe memo of computed path sizes."""

from __future__ import annotations

import threading
from pathlib import Path


class PathSizeCache:
    """Size memo keyed by absolute path, shared by all measurement workers.

    Values are plain ints, including the access-denied sentinel. Entries are
    never evicted; the cache lives as long as the scan session that owns it.
    A lock guards every access so the cache stays correct on free-threaded
    builds where dict operations are not serialized by a global lock.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._sizes: dict[Path, int] = {}
        self._partial: set[Path] = set()
        self._lock: threading.Lock = threading.Lock()
        self._hits: int = 0
        self._misses: int = 0

    def get(self, path: Path) -> int | None:
        """Return the cached size for ``path`` or None.

        Args:
            path: Absolute path

        Returns:
            Cached size in bytes (or the sentinel), None on a miss
        """
        with self._lock:
            value = self._sizes.get(path)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def put(self, path: Path, value: int, *, partial: bool = False) -> None:
        """Insert or replace the size for ``path``.

        Args:
            path: Absolute path
            value: Size in bytes or the sentinel
            partial: Whether some descendants were skipped while measuring
        """
        with self._lock:
            self._sizes[path] = value
            if partial:
                self._partial.add(path)
            else:
                self._partial.discard(path)

    def is_partial(self, path: Path) -> bool:
        with self._lock:
            return path in self._partial

    def clear(self) -> None:
        """Drop every cached size."""
        with self._lock:
            self._sizes.clear()
            self._partial.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with entry, partial, hit and miss counts
        """
        with self._lock:
            return {
                "entries": len(self._sizes),
                "partial_entries": len(self._partial),
                "hits": self._hits,
                "misses": self._misses,
            }

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._sizes

    def __len__(self) -> int:
        with self._lock:
            return len(self._sizes)
