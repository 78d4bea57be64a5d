"""Command-line application for storage-freer."""

from __future__ import annotations

from storage_freer.app.cli import cli
from storage_freer.app.runner import ApplicationRunner, ScanOptions

__all__ = [
    "cli",
    "ApplicationRunner",
    "ScanOptions",
]
