"""Test doubles and tree builders shared across the suite."""

from __future__ import annotations

import errno
import os
import threading
from collections import Counter
from collections.abc import Iterable, Mapping
from pathlib import Path

from storage_freer.core.data.filesystem.fs import LocalFileSystem
from storage_freer.types.models import MeasuredSize

# A tree layout: int values are files of that many bytes, mappings are directories
type TreeLayout = Mapping[str, int | TreeLayout]


def build_tree(base: Path, layout: TreeLayout) -> Path:
    """Create ``layout`` under ``base`` and return ``base``."""
    base.mkdir(parents=True, exist_ok=True)
    for name, node in layout.items():
        path = base / name
        if isinstance(node, int):
            _ = path.write_bytes(b"x" * node)
        else:
            _ = build_tree(path, node)
    return base


class FaultyFileSystem(LocalFileSystem):
    """Real filesystem that denies chosen paths and counts calls.

    Tests often run as root, where chmod cannot make a directory unreadable,
    so permission failures are injected here instead.
    """

    def __init__(self, deny_list: Iterable[Path] = (), deny_stat: Iterable[Path] = ()) -> None:
        self.deny_list: set[Path] = set(deny_list)
        self.deny_stat: set[Path] = set(deny_stat)
        self.list_calls: Counter[Path] = Counter()
        self.stat_calls: Counter[Path] = Counter()
        self._lock: threading.Lock = threading.Lock()

    def list_names(self, path: Path) -> list[str]:
        with self._lock:
            self.list_calls[path] += 1
        if path in self.deny_list:
            raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), str(path))
        return super().list_names(path)

    def stat(self, path: Path, *, follow_symlinks: bool = False) -> os.stat_result:
        with self._lock:
            self.stat_calls[path] += 1
        if path in self.deny_stat:
            raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), str(path))
        return super().stat(path, follow_symlinks=follow_symlinks)


class GatedMeasurer:
    """Measurer returning fixed sizes, blocking chosen paths until released."""

    def __init__(self, sizes: Mapping[str, int], gated: Iterable[str] = ()) -> None:
        self.sizes: dict[str, int] = dict(sizes)
        self.gated: set[str] = set(gated)
        self.gate: threading.Event = threading.Event()
        self.started: threading.Event = threading.Event()
        self.calls: list[Path] = []
        self._lock: threading.Lock = threading.Lock()

    def measure(self, path: Path) -> MeasuredSize:
        with self._lock:
            self.calls.append(path)
        if path.name in self.gated:
            self.started.set()
            _ = self.gate.wait(timeout=10)
        return MeasuredSize(self.sizes.get(path.name, 0))
