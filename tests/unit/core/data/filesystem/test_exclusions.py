"""Tests for hidden-entry and pattern exclusion."""

from __future__ import annotations

from pathlib import Path

import pytest

from storage_freer.core.data.filesystem.exclusions import ExclusionFilter, is_hidden


class TestIsHidden:
    """Test hidden-name detection."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            (".git", True),
            (".DS_Store", True),
            ("visible", False),
            ("file.txt", False),
        ],
    )
    def test_dot_prefix(self, name: str, expected: bool) -> None:
        """Only dot-prefixed names are hidden."""
        assert is_hidden(name) is expected


class TestExclusionFilter:
    """Test ExclusionFilter decisions."""

    def test_default_excludes_nothing(self) -> None:
        """A default filter keeps hidden and regular entries."""
        exclusion_filter = ExclusionFilter()

        assert not exclusion_filter.should_exclude(".hidden")
        assert not exclusion_filter.should_exclude("regular")
        assert exclusion_filter.pattern_count == 0

    def test_hidden_excluded_when_disabled(self) -> None:
        """include_hidden=False drops dot-prefixed names only."""
        exclusion_filter = ExclusionFilter(include_hidden=False)

        assert exclusion_filter.should_exclude(".cache")
        assert not exclusion_filter.should_exclude("cache")

    def test_accepts_paths_and_names(self) -> None:
        """Paths are matched on their last component."""
        exclusion_filter = ExclusionFilter.from_settings(include_hidden=True, patterns=["*.tmp"])

        assert exclusion_filter.should_exclude(Path("/data/scratch.tmp"))
        assert exclusion_filter.should_exclude("scratch.tmp")
        assert not exclusion_filter.should_exclude(Path("/data.tmp/keep.txt"))

    @pytest.mark.parametrize(
        ("pattern", "name", "expected"),
        [
            ("node_modules", "node_modules", True),
            ("*.log", "app.log", True),
            ("*.log", "app.txt", False),
            ("cache-[0-9]*", "cache-12", True),
            ("cache-[0-9]*", "cache-x", False),
            ("*.ISO", "image.iso", False),
        ],
    )
    def test_glob_patterns(self, pattern: str, name: str, expected: bool) -> None:
        """Globs match the whole entry name, case-sensitively."""
        exclusion_filter = ExclusionFilter.from_settings(include_hidden=True, patterns=[pattern])

        assert exclusion_filter.should_exclude(name) is expected
        assert exclusion_filter.pattern_count == 1

    def test_patterns_apply_alongside_hidden_policy(self) -> None:
        """Hidden names and pattern matches are both excluded."""
        exclusion_filter = ExclusionFilter.from_settings(include_hidden=False, patterns=["*.tmp"])

        assert exclusion_filter.should_exclude(".cache")
        assert exclusion_filter.should_exclude("build.tmp")
        assert not exclusion_filter.should_exclude("build.log")
