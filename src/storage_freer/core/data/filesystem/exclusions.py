"""Exclusion rules shared by directory listing and recursive measurement.

The same ExclusionFilter instance is handed to the EntryLister and to the
DirectoryScanner used by SizeCalculator, so an entry skipped at listing time
is also skipped when an ancestor's total is computed.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from pathlib import Path
from typing import override


def is_hidden(name: str) -> bool:
    """Dot-prefixed names are hidden; ``.`` and ``..`` never reach here."""
    return name.startswith(".")


class ExclusionFilter:
    """Decides which directory entries the engine ignores.

    Hidden entries are controlled by ``include_hidden``; everything else is
    driven by glob patterns matched against the entry name.
    """

    def __init__(self, include_hidden: bool = True) -> None:
        """Initialize the exclusion filter.

        Args:
            include_hidden: Whether dot-prefixed entries are listed and measured
        """
        self.include_hidden: bool = include_hidden
        self._patterns: list[str] = []

    @classmethod
    def from_settings(cls, *, include_hidden: bool, patterns: Iterable[str] = ()) -> ExclusionFilter:
        """Build a filter from configuration values."""
        exclusion_filter = cls(include_hidden=include_hidden)
        exclusion_filter.add_patterns(patterns)
        return exclusion_filter

    def add_patterns(self, patterns: Iterable[str]) -> None:
        self._patterns.extend(patterns)

    def should_exclude(self, path: Path | str) -> bool:
        """Check if an entry should be skipped.

        Args:
            path: Entry path or bare name

        Returns:
            True if the entry should be excluded, False otherwise
        """
        name = path.name if isinstance(path, Path) else path
        if not self.include_hidden and is_hidden(name):
            return True
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self._patterns)

    @property
    def pattern_count(self) -> int:
        return len(self._patterns)

    @override
    def __repr__(self) -> str:
        return f"ExclusionFilter(include_hidden={self.include_hidden}, patterns={self._patterns!r})"
