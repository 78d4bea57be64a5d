"""Filesystem primitives, directory listing and size calculation."""

from __future__ import annotations

from .cache import PathSizeCache
from .exclusions import ExclusionFilter
from .fs import LocalFileSystem
from .lister import EntryLister
from .scanner import DirectoryScanner, WalkEntry
from .size_calculator import SizeCalculator, SizeMode
from .volume import volume_usage

__all__ = [
    "DirectoryScanner",
    "EntryLister",
    "ExclusionFilter",
    "LocalFileSystem",
    "PathSizeCache",
    "SizeCalculator",
    "SizeMode",
    "WalkEntry",
    "volume_usage",
]
