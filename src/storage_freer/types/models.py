"""Data models for storage-freer.

This module defines the dataclasses passed between the scanning engine and
its observers. Entries are keyed by absolute path; tree structure is kept as
lists of child paths into the session's entry arena rather than as owning
references between parent and child objects.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Final, override

# Size sentinel meaning "could not be measured" (as opposed to measured as zero)
ACCESS_DENIED: Final[int] = -1

PERMISSION_DENIED_MESSAGE: Final[str] = "Permission Denied"


class ScanPhase(Enum):
    """Lifecycle phases of a scan session."""

    IDLE = auto()
    SCANNING = auto()
    READY = auto()


@dataclass(slots=True, eq=False)
class FileSystemEntry:
    """One filesystem node known to the engine.

    Equality and hashing use the absolute path only, so the same node listed
    twice compares equal and can be used as a cache or arena key.
    """

    path: Path
    is_directory: bool
    size: int | None = None
    is_calculating: bool = False
    error: str | None = None
    children: list[Path] | None = None

    @property
    def name(self) -> str:
        """Display name derived from the last path component."""
        return self.path.name or str(self.path)

    @property
    def is_expanded(self) -> bool:
        return self.children is not None

    @property
    def is_denied(self) -> bool:
        return self.size is not None and self.size < 0

    def sort_key(self) -> int:
        """Rank used for descending-size ordering; unset and denied sort last."""
        if self.size is None or self.size < 0:
            return ACCESS_DENIED
        return self.size

    def to_dict(self) -> dict[str, object]:
        return {
            "path": str(self.path),
            "name": self.name,
            "is_directory": self.is_directory,
            "size": self.size,
            "is_calculating": self.is_calculating,
            "error": self.error,
            "children": [str(child) for child in self.children] if self.children is not None else None,
        }

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileSystemEntry):
            return NotImplemented
        return self.path == other.path

    @override
    def __hash__(self) -> int:
        return hash(self.path)


@dataclass(slots=True, frozen=True)
class ListedEntry:
    """Immediate child produced by a directory listing."""

    path: Path
    is_directory: bool


@dataclass(slots=True, frozen=True)
class MeasuredSize:
    """Result of measuring one path.

    ``partial`` is set when some descendants could not be read and were
    counted as zero bytes.
    """

    size: int
    partial: bool = False

    @property
    def denied(self) -> bool:
        return self.size < 0

    @property
    def has_permission_issues(self) -> bool:
        return self.denied or self.partial


@dataclass(slots=True)
class ScanState:
    """Mutable per-session state, owned and mutated by ScanSession only."""

    root: Path | None = None
    items: list[Path] = field(default_factory=list)
    total_size: int = 0
    root_total_size: int = 0
    is_calculating: bool = False
    has_permission_issues: bool = False
    show_permission_prompt: bool = False
    phase: ScanPhase = ScanPhase.IDLE
    generation: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def reset(self, root: Path, generation: int) -> None:
        """Clear results for a fresh scan of ``root``."""
        self.root = root
        self.items = []
        self.total_size = 0
        self.root_total_size = 0
        self.is_calculating = True
        self.has_permission_issues = False
        self.show_permission_prompt = False
        self.generation = generation
        self.started_at = datetime.now()
        self.finished_at = None


@dataclass(slots=True, frozen=True)
class ScanSnapshot:
    """Immutable copy of a session's observable state."""

    root: Path | None
    entries: tuple[FileSystemEntry, ...]
    total_size: int
    root_total_size: int
    is_calculating: bool
    has_permission_issues: bool
    show_permission_prompt: bool
    phase: ScanPhase
    generation: int
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def elapsed_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, object]:
        return {
            "root": str(self.root) if self.root is not None else None,
            "entries": [entry.to_dict() for entry in self.entries],
            "total_size": self.total_size,
            "root_total_size": self.root_total_size,
            "is_calculating": self.is_calculating,
            "has_permission_issues": self.has_permission_issues,
            "show_permission_prompt": self.show_permission_prompt,
            "phase": self.phase.name,
            "generation": self.generation,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass(slots=True, frozen=True)
class BatchSummary:
    """Final result of one aggregation batch.

    ``entries`` are ordered by descending size with unset and denied sizes
    last. ``completed`` is False when the batch was superseded and stopped
    consuming completions early.
    """

    total_size: int
    has_permission_issues: bool
    entries: tuple[FileSystemEntry, ...]
    completed: bool = True
    elapsed_seconds: float = 0.0


@dataclass(slots=True, frozen=True)
class VolumeUsage:
    """Capacity figures for the filesystem holding a path."""

    path: Path
    total: int
    used: int
    free: int
    percent: float
