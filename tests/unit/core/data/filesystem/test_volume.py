"""Tests for volume capacity lookup."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from storage_freer.core.data.filesystem.volume import volume_usage


class TestVolumeUsage:
    """Test volume_usage."""

    def test_reports_capacity(self, tmp_path: Path) -> None:
        """Figures for an existing path are consistent."""
        usage = volume_usage(tmp_path)

        assert usage is not None
        assert usage.path == tmp_path
        assert usage.total > 0
        assert usage.used <= usage.total
        assert 0.0 <= usage.percent <= 100.0

    def test_missing_path_returns_none(self, tmp_path: Path) -> None:
        """psutil errors degrade to None."""
        assert volume_usage(tmp_path / "missing") is None

    def test_os_error_returns_none(self, tmp_path: Path) -> None:
        """Any OSError from psutil is swallowed into None."""
        with patch("storage_freer.core.data.filesystem.volume.psutil.disk_usage", side_effect=PermissionError):
            assert volume_usage(tmp_path) is None
