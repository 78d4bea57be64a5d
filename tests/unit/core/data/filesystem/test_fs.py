"""Tests for the local filesystem primitives."""

from __future__ import annotations

from pathlib import Path

import pytest

from storage_freer.core.data.filesystem.fs import LocalFileSystem


class TestLocalFileSystem:
    """Test LocalFileSystem listing and stat."""

    def test_list_names_sorted(self, tmp_path: Path) -> None:
        """Names come back sorted regardless of creation order."""
        for name in ("zeta", "alpha", "mid"):
            _ = (tmp_path / name).write_text("x")

        assert LocalFileSystem().list_names(tmp_path) == ["alpha", "mid", "zeta"]

    def test_list_missing_directory_raises(self, tmp_path: Path) -> None:
        """Listing a missing directory raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            _ = LocalFileSystem().list_names(tmp_path / "missing")

    def test_stat_does_not_follow_links_by_default(self, tmp_path: Path) -> None:
        """A symlink is described by its own lstat unless asked otherwise."""
        target = tmp_path / "target"
        _ = target.write_bytes(b"x" * 1000)
        link = tmp_path / "link"
        link.symlink_to(target)
        fs = LocalFileSystem()

        assert fs.stat(link).st_size != 1000
        assert fs.stat(link, follow_symlinks=True).st_size == 1000
        assert fs.realpath(link) == str(target.resolve())
