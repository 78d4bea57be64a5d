"""Tests for the command-line interface."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from helpers import TreeLayout
from storage_freer.app.cli import cli


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Keep the CLI from reconfiguring the test process's root logger."""
    with patch("storage_freer.app.runner.configure_logging"):
        yield


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestFormatBytesCommand:
    """Test the format-bytes command."""

    def test_formats_size(self, runner: CliRunner) -> None:
        """Sizes are printed in binary units."""
        result = runner.invoke(cli, ["format-bytes", "1536"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "1.50 KB"

    def test_negative_size(self, runner: CliRunner) -> None:
        """Negative values print the access-denied label."""
        result = runner.invoke(cli, ["format-bytes", "--", "-1"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "Access Denied"


class TestScanCommand:
    """Test the scan command."""

    def test_json_report(self, runner: CliRunner, make_tree: Callable[[TreeLayout], Path]) -> None:
        """--json prints a machine-readable snapshot ordered by size."""
        root = make_tree({"small": 2, "big": {"f": 200}})

        result = runner.invoke(cli, ["scan", str(root), "--json", "--workers", "2"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["root"] == str(root)
        assert report["root_total_size"] == 202
        assert report["phase"] == "READY"
        assert [entry["name"] for entry in report["entries"]] == ["big", "small"]
        assert report["expanded"] == {}

    def test_text_report_with_expansion(self, runner: CliRunner, make_tree: Callable[[TreeLayout], Path]) -> None:
        """--expand shows the expanded directory's children indented below it."""
        root = make_tree({"dir": {"inner": {"leaf": 30}, "note": 1}})

        result = runner.invoke(cli, ["scan", str(root), "--expand", str(root / "dir" / "inner")])

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == f"{root}  31.00 B"
        assert lines[1].strip() == "31.00 B  dir/"
        assert lines[2].strip() == "30.00 B  inner/"
        assert lines[3].strip() == "30.00 B  leaf"
        assert lines[2].startswith("        ")

    def test_expand_outside_root_reported(self, runner: CliRunner, make_tree: Callable[[TreeLayout], Path]) -> None:
        """Expanding a path outside the scan root is reported on stderr."""
        root = make_tree({"f": 1})

        result = runner.invoke(cli, ["scan", str(root), "--expand", "/definitely/elsewhere"])

        assert result.exit_code == 0
        assert "not under" in result.stderr

    def test_hidden_and_exclude_options(self, runner: CliRunner, make_tree: Callable[[TreeLayout], Path]) -> None:
        """--no-hidden and --exclude apply to listing and measurement alike."""
        root = make_tree({".cache": 100, "app.log": 50, "data": {"x.log": 7, "y": 3}})

        result = runner.invoke(cli, ["scan", str(root), "--no-hidden", "--exclude", "*.log", "--json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert [entry["name"] for entry in report["entries"]] == ["data"]
        assert report["root_total_size"] == 3

    def test_show_updates_on_stderr(self, runner: CliRunner, make_tree: Callable[[TreeLayout], Path]) -> None:
        """--show-updates streams each measured entry to stderr."""
        root = make_tree({"a": 1, "b": 2})

        result = runner.invoke(cli, ["scan", str(root), "--show-updates"])

        assert result.exit_code == 0, result.output
        assert str(root / "a") in result.stderr
        assert str(root / "b") in result.stderr

    def test_config_file_applied(
        self, runner: CliRunner, make_tree: Callable[[TreeLayout], Path], tmp_path: Path
    ) -> None:
        """Settings from --config shape the scan."""
        root = make_tree({".hidden": 9, "shown": 1})
        config_file = tmp_path / "config.yaml"
        _ = config_file.write_text("scan:\n  include_hidden: false\n")

        result = runner.invoke(cli, ["scan", str(root), "--config", str(config_file), "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["root_total_size"] == 1

    def test_invalid_config_exits_1(self, runner: CliRunner, tmp_path: Path) -> None:
        """Configuration errors are reported with exit code 1."""
        config_file = tmp_path / "config.yaml"
        _ = config_file.write_text("scan:\n  max_workers: 0\n")

        result = runner.invoke(cli, ["scan", str(tmp_path), "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_config_extension_validated(self, runner: CliRunner, tmp_path: Path) -> None:
        """Only YAML configuration files are accepted."""
        result = runner.invoke(cli, ["scan", str(tmp_path), "--config", str(tmp_path / "config.toml")])

        assert result.exit_code == 2

    def test_invalid_log_level(self, runner: CliRunner, tmp_path: Path) -> None:
        """Unknown log levels are rejected by the option callback."""
        result = runner.invoke(cli, ["scan", str(tmp_path), "--log-level", "chatty"])

        assert result.exit_code == 2
        assert "Invalid log level" in result.output

    def test_permission_summary(self, runner: CliRunner, tmp_path: Path) -> None:
        """A root that cannot be listed still exits cleanly with a notice."""
        with patch("storage_freer.core.data.filesystem.fs.os.listdir", side_effect=PermissionError(13, "denied")):
            result = runner.invoke(cli, ["scan", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "could not be read" in result.stdout


class TestVersion:
    """Test --version."""

    def test_version_option(self, runner: CliRunner) -> None:
        """The version option prints the program name."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "storage-freer" in result.stdout
