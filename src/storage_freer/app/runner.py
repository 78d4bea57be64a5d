"""Application runner for the storage-freer command line."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import click

from storage_freer.core.config import MainConfig, load_config_or_default
from storage_freer.core.data.filesystem import SizeMode, volume_usage
from storage_freer.core.errors import ExpansionError
from storage_freer.core.session import ENTRY_UPDATED, Event, ScanSession
from storage_freer.types.models import FileSystemEntry, ScanSnapshot, VolumeUsage
from storage_freer.utils.formatting import format_bytes, format_duration
from storage_freer.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

INDENT = "    "


@dataclass(slots=True)
class ScanOptions:
    """Command-line overrides; None leaves the configured value in place."""

    root: Path | None = None
    expand_paths: Sequence[Path] = ()
    config_path: Path | None = None
    log_level: str | None = None
    max_workers: int | None = None
    include_hidden: bool | None = None
    exclude_patterns: Sequence[str] = field(default_factory=tuple)
    size_mode: SizeMode | None = None
    follow_symlinks: bool | None = None
    json_output: bool = False
    show_updates: bool = False


class ApplicationRunner:
    """Loads configuration, runs one scan and prints the result."""

    def __init__(self, options: ScanOptions) -> None:
        """Initialize the application runner.

        Args:
            options: Parsed command-line options
        """
        self.options: ScanOptions = options

    def load_config(self) -> MainConfig:
        """Load the configuration file and apply command-line overrides.

        Raises:
            ConfigurationError: If the configuration is invalid
            EnvironmentVariableError: If a referenced environment variable is missing
        """
        options = self.options
        config = load_config_or_default(options.config_path)
        scan = config.scan

        if options.log_level is not None:
            config.application.log_level = options.log_level
        if options.max_workers is not None:
            scan.max_workers = options.max_workers
        if options.include_hidden is not None:
            scan.include_hidden = options.include_hidden
        if options.exclude_patterns:
            scan.exclude_patterns = (*scan.exclude_patterns, *options.exclude_patterns)
        if options.size_mode is not None:
            scan.size_mode = options.size_mode
        if options.follow_symlinks is not None:
            scan.follow_symlinks = options.follow_symlinks
        return config

    def run(self) -> None:
        """Run the application."""
        config = self.load_config()
        configure_logging(
            log_level=config.application.log_level,
            log_file=config.application.log_file,
            enable_syslog=config.application.syslog_enabled,
        )
        logger.info("storage-freer starting", extra={"root": str(self.options.root)})
        asyncio.run(self.run_async(config))

    async def run_async(self, config: MainConfig) -> ScanSnapshot:
        """Scan, expand the requested paths and print the report."""
        async with ScanSession(config.scan) as session:
            if self.options.show_updates:
                _ = session.subscribe(ENTRY_UPDATED, _echo_update)

            snapshot = await session.scan(self.options.root)
            for target in self.options.expand_paths:
                await self._expand_path(session, target)

            usage = await asyncio.to_thread(volume_usage, snapshot.root) if snapshot.root else None
            if self.options.json_output:
                click.echo(json.dumps(_report_dict(session, snapshot, usage), indent=2))
            else:
                for line in _report_lines(session, snapshot, usage):
                    click.echo(line)
            return snapshot

    async def _expand_path(self, session: ScanSession, target: Path) -> None:
        """Expand ``target`` and every directory between it and the scan root."""
        root = session.root
        target = target.absolute()
        if root is None:
            return
        try:
            relative = target.relative_to(root)
        except ValueError:
            click.echo(f"Cannot expand {target}: not under {root}", err=True)
            return

        current = root
        for part in relative.parts:
            current = current / part
            try:
                _ = await session.expand(current)
            except ExpansionError as exc:
                click.echo(f"Cannot expand {target}: {exc}", err=True)
                return


def _echo_update(event: Event) -> None:
    entry = event.data.get("entry")
    if isinstance(entry, dict):
        size = entry.get("size")
        label = format_bytes(size) if isinstance(size, int) else "?"
        click.echo(f"{label:>14}  {entry.get('path')}", err=True)


def _report_lines(session: ScanSession, snapshot: ScanSnapshot, usage: VolumeUsage | None) -> list[str]:
    lines = [f"{snapshot.root}  {format_bytes(snapshot.root_total_size)}"]
    lines.extend(_entry_lines(session, list(snapshot.entries), depth=1))
    if snapshot.elapsed_seconds is not None:
        lines.append(f"Scanned {len(snapshot.entries)} entries in {format_duration(snapshot.elapsed_seconds)}")
    if snapshot.has_permission_issues:
        lines.append("Some entries could not be read; totals exclude them.")
    if snapshot.show_permission_prompt:
        lines.append("Grant this process broader filesystem access to measure everything.")
    if usage is not None:
        lines.append(
            f"Volume: {format_bytes(usage.used)} used of {format_bytes(usage.total)} "
            f"({usage.percent:.1f}%), {format_bytes(usage.free)} free"
        )
    return lines


def _entry_lines(session: ScanSession, entries: list[FileSystemEntry], depth: int) -> list[str]:
    lines: list[str] = []
    for entry in entries:
        size = format_bytes(entry.size) if entry.size is not None else "-"
        suffix = "/" if entry.is_directory else ""
        lines.append(f"{INDENT * depth}{size:>14}  {entry.name}{suffix}")
        children = session.children(entry.path)
        if children is not None:
            lines.extend(_entry_lines(session, children, depth + 1))
    return lines


def _report_dict(session: ScanSession, snapshot: ScanSnapshot, usage: VolumeUsage | None) -> dict[str, object]:
    report = snapshot.to_dict()
    expanded: dict[str, list[dict[str, object]]] = {}
    pending = list(snapshot.entries)
    while pending:
        entry = pending.pop()
        children = session.children(entry.path)
        if children is None:
            continue
        expanded[str(entry.path)] = [child.to_dict() for child in children]
        pending.extend(children)
    report["expanded"] = expanded
    report["volume"] = (
        {"total": usage.total, "used": usage.used, "free": usage.free, "percent": usage.percent}
        if usage is not None
        else None
    )
    return report
