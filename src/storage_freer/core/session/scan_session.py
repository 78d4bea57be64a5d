"""Scan session orchestrating listing, measurement and lazy expansion.

A session is bound to one current root at a time. It owns the observable
ScanState and an arena of every FileSystemEntry it has listed, keyed by
absolute path. All state mutation happens on the event loop that awaits the
session's coroutines; blocking filesystem work runs on the session's thread
pool.
"""

from __future__ import annotations

import asyncio
import contextvars
import dataclasses
import functools
import logging
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Final, Self

from storage_freer.core.access import ProbeAccessProvider
from storage_freer.core.aggregation import AggregationEngine
from storage_freer.core.config import ScanConfig
from storage_freer.core.data.filesystem import (
    DirectoryScanner,
    EntryLister,
    ExclusionFilter,
    LocalFileSystem,
    PathSizeCache,
    SizeCalculator,
)
from storage_freer.core.errors import ExpansionError, ListFailure, ListingError
from storage_freer.types.aliases import EventData
from storage_freer.types.models import (
    PERMISSION_DENIED_MESSAGE,
    FileSystemEntry,
    ListedEntry,
    ScanPhase,
    ScanSnapshot,
    ScanState,
)
from storage_freer.types.protocols import AccessProvider, SizeMeasurer
from storage_freer.utils.logging import log_with_context, reset_scan_id, set_scan_id

from .event_bus import EventBus, EventHandler
from .state_machine import ScanStateMachine

logger = logging.getLogger(__name__)

# Event topics
SCAN_STARTED: Final[str] = "scan.started"
SCAN_LISTED: Final[str] = "scan.listed"
ENTRY_UPDATED: Final[str] = "entry.updated"
BATCH_COMPLETED: Final[str] = "batch.completed"
SCAN_COMPLETED: Final[str] = "scan.completed"
EXPAND_COMPLETED: Final[str] = "expand.completed"
STATE_CHANGED: Final[str] = "state.changed"


def filesystem_root() -> Path:
    """Root of the filesystem holding the working directory."""
    return Path(Path.cwd().anchor)


class ScanSession:
    """Computes disk usage for one root and exposes it incrementally.

    Re-scanning cancels and restarts: every ``scan`` bumps the generation, and
    work belonging to an older generation is discarded as it completes. The
    size cache is shared by every generation unless a scan asks for a
    refresh.

    Example:
        >>> async with ScanSession() as session:
        ...     snapshot = await session.scan(Path("/var"))
        ...     children = await session.expand(snapshot.entries[0])
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        *,
        filesystem: LocalFileSystem | None = None,
        access: AccessProvider | None = None,
        executor: Executor | None = None,
        cache: PathSizeCache | None = None,
        calculator: SizeMeasurer | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            config: Scan configuration, defaults when omitted
            filesystem: Listing and stat primitives
            access: Full-access capability consulted for permission prompts
            executor: Externally owned executor for blocking work
            cache: Size cache to share with other sessions
            calculator: Measurer to use instead of a SizeCalculator
        """
        self.config: ScanConfig = config or ScanConfig()
        exclusion_filter = ExclusionFilter.from_settings(
            include_hidden=self.config.include_hidden,
            patterns=self.config.exclude_patterns,
        )
        scanner = DirectoryScanner(
            exclusion_filter=exclusion_filter,
            follow_symlinks=self.config.follow_symlinks,
            filesystem=filesystem,
        )
        self.cache: PathSizeCache = cache if cache is not None else PathSizeCache()
        self.lister: EntryLister = EntryLister(
            exclusion_filter=exclusion_filter,
            follow_symlinks=self.config.follow_symlinks,
            filesystem=scanner.filesystem,
        )
        self.calculator: SizeMeasurer = calculator or SizeCalculator(
            scanner=scanner,
            mode=self.config.size_mode,
            cache=self.cache,
        )
        self.access: AccessProvider = access or ProbeAccessProvider(
            self.config.full_access_probe,
            filesystem=scanner.filesystem,
        )

        self._owns_executor: bool = executor is None
        self.executor: Executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="scan-worker",
        )
        self.engine: AggregationEngine = AggregationEngine(self.calculator, executor=self.executor)
        self.events: EventBus = EventBus()
        self.state_machine: ScanStateMachine = ScanStateMachine()

        self._state: ScanState = ScanState()
        self._arena: dict[Path, FileSystemEntry] = {}
        self._generation: int = 0
        # Set and replaced whenever a scan supersedes the current generation
        self._superseded: asyncio.Event = asyncio.Event()
        self._scan_id: str | None = None
        self._expansions: dict[Path, asyncio.Task[list[FileSystemEntry]]] = {}
        self._tasks: set[asyncio.Task[ScanSnapshot]] = set()
        self._closed: bool = False

    # Observable state

    @property
    def state(self) -> ScanState:
        """Live session state; treat as read-only."""
        return self._state

    @property
    def root(self) -> Path | None:
        return self._state.root

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def phase(self) -> ScanPhase:
        return self.state_machine.current_state

    def entries(self) -> list[FileSystemEntry]:
        """Top-level entries of the current root in display order."""
        return [self._arena[path] for path in self._state.items if path in self._arena]

    def entry(self, path: Path | str) -> FileSystemEntry | None:
        return self._arena.get(Path(path))

    def children(self, path: Path | str) -> list[FileSystemEntry] | None:
        """Children of an expanded directory, or None if it was never expanded."""
        entry = self._arena.get(Path(path))
        if entry is None or entry.children is None:
            return None
        return [self._arena[child] for child in entry.children if child in self._arena]

    def snapshot(self) -> ScanSnapshot:
        """Immutable copy of the current state and top-level entries."""
        state = self._state
        return ScanSnapshot(
            root=state.root,
            entries=tuple(_copy_entry(entry) for entry in self.entries()),
            total_size=state.total_size,
            root_total_size=state.root_total_size,
            is_calculating=state.is_calculating,
            has_permission_issues=state.has_permission_issues,
            show_permission_prompt=state.show_permission_prompt,
            phase=state.phase,
            generation=state.generation,
            started_at=state.started_at,
            finished_at=state.finished_at,
        )

    # Observers

    def subscribe(self, topic_pattern: str, handler: EventHandler) -> str:
        """Register an observer; see the module's topic constants."""
        return self.events.subscribe(topic_pattern, handler)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self.events.unsubscribe(subscription_id)

    # Scanning

    def start_scan(self, root: Path | str | None = None, *, refresh: bool = False) -> asyncio.Task[ScanSnapshot]:
        """Start a scan in the background and return its task.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self.scan(root, refresh=refresh))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def scan(self, root: Path | str | None = None, *, refresh: bool = False) -> ScanSnapshot:
        """List ``root`` and measure every top-level entry in parallel.

        Args:
            root: Directory to scan; the filesystem root when None
            refresh: Drop every cached size before scanning

        Returns:
            Snapshot taken when this scan finished, or when it noticed it was
            superseded by a newer scan
        """
        self._ensure_open()
        root_path = Path(root).absolute() if root is not None else filesystem_root()

        self._generation += 1
        generation = self._generation
        self._superseded.set()
        self._superseded = asyncio.Event()
        self._scan_id = f"{generation}-{uuid.uuid4().hex[:8]}"
        token = set_scan_id(self._scan_id)
        try:
            return await self._run_scan(root_path, generation, refresh, self._superseded)
        finally:
            reset_scan_id(token)

    async def _run_scan(self, root: Path, generation: int, refresh: bool, stop: asyncio.Event) -> ScanSnapshot:
        if refresh:
            self.cache.clear()
        self._arena.clear()
        self._expansions.clear()
        self._state.reset(root, generation)
        self._transition(ScanPhase.SCANNING)
        logger.info("Scan started", extra={"root": str(root), "generation": generation})
        self._publish(SCAN_STARTED, {"root": str(root), "generation": generation})

        try:
            listed = await self._list(root, directories_only=False)
        except ListingError as exc:
            if self._is_stale(generation):
                return self.snapshot()
            logger.warning(
                "Scan root cannot be listed",
                extra={"root": str(root), "reason": exc.reason.value},
            )
            self._state.has_permission_issues = True
            await self._update_permission_prompt(generation)
            return self._complete_scan(generation)

        if self._is_stale(generation):
            return self.snapshot()

        batch = self._adopt(listed)
        self._state.items = [entry.path for entry in batch]
        self._publish(SCAN_LISTED, {"root": str(root), "generation": generation, "entries": len(batch)})

        def on_update(entry: FileSystemEntry) -> None:
            if entry.size is not None and entry.size >= 0:
                self._state.total_size += entry.size
            elif entry.is_denied:
                self._state.has_permission_issues = True
            self._publish_entry(entry, generation)

        summary = await self.engine.run(
            batch,
            on_update=on_update,
            is_stale=lambda: self._is_stale(generation),
            stop=stop,
        )
        if not summary.completed or self._is_stale(generation):
            return self.snapshot()

        self._state.items = [entry.path for entry in summary.entries]
        self._state.total_size = summary.total_size
        self._state.root_total_size = summary.total_size
        self._state.has_permission_issues = self._state.has_permission_issues or summary.has_permission_issues
        self._publish(
            BATCH_COMPLETED,
            {
                "parent": str(root),
                "generation": generation,
                "total_size": summary.total_size,
                "has_permission_issues": summary.has_permission_issues,
                "entries": len(summary.entries),
                "elapsed_seconds": summary.elapsed_seconds,
            },
        )

        await self._update_permission_prompt(generation)
        if self._is_stale(generation):
            return self.snapshot()
        return self._complete_scan(generation)

    def _complete_scan(self, generation: int) -> ScanSnapshot:
        self._state.is_calculating = False
        self._state.finished_at = datetime.now()
        self._transition(ScanPhase.READY)
        snapshot = self.snapshot()
        log_with_context(
            logger,
            logging.INFO,
            "Scan complete",
            extra={
                "root": str(self._state.root),
                "generation": generation,
                "total_size": self._state.total_size,
                "permission_issues": self._state.has_permission_issues,
                "elapsed_seconds": snapshot.elapsed_seconds,
            },
        )
        self._publish(SCAN_COMPLETED, snapshot.to_dict())
        return snapshot

    # Lazy expansion

    async def expand(
        self,
        entry_or_path: FileSystemEntry | Path | str,
        *,
        directories_only: bool | None = None,
    ) -> list[FileSystemEntry]:
        """List a directory entry's children and measure them.

        An entry that is already expanded returns its existing children
        without relisting. Concurrent calls for the same entry share one
        expansion.

        Args:
            entry_or_path: Entry of the current scan, or its path
            directories_only: Attach only subdirectories; the configured
                default when None

        Returns:
            Children sorted by size descending, empty if the directory could
            not be listed or the scan was superseded meanwhile

        Raises:
            ExpansionError: If the entry is unknown or not a directory
        """
        self._ensure_open()
        path = entry_or_path.path if isinstance(entry_or_path, FileSystemEntry) else Path(entry_or_path).absolute()
        entry = self._arena.get(path)
        if entry is None:
            raise ExpansionError(f"Entry is not part of the current scan: {path}", path)
        if not entry.is_directory:
            raise ExpansionError(f"Only directories can be expanded: {path}", path)
        if entry.children is not None and path not in self._expansions:
            return self.children(path) or []

        pending = self._expansions.get(path)
        if pending is None:
            only_dirs = self.config.expand_directories_only if directories_only is None else directories_only
            pending = asyncio.create_task(self._expand(entry, only_dirs, self._generation, self._superseded))
            self._expansions[path] = pending
            pending.add_done_callback(functools.partial(self._forget_expansion, path))
        return await pending

    def _forget_expansion(self, path: Path, task: asyncio.Task[list[FileSystemEntry]]) -> None:
        if self._expansions.get(path) is task:
            del self._expansions[path]

    async def _expand(
        self,
        entry: FileSystemEntry,
        directories_only: bool,
        generation: int,
        stop: asyncio.Event,
    ) -> list[FileSystemEntry]:
        token = set_scan_id(self._scan_id) if self._scan_id is not None else None
        try:
            return await self._run_expand(entry, directories_only, generation, stop)
        finally:
            if token is not None:
                reset_scan_id(token)

    async def _run_expand(
        self,
        entry: FileSystemEntry,
        directories_only: bool,
        generation: int,
        stop: asyncio.Event,
    ) -> list[FileSystemEntry]:
        try:
            listed = await self._list(entry.path, directories_only=directories_only)
        except ListingError as exc:
            if self._is_stale(generation):
                return []
            entry.children = []
            if exc.reason is ListFailure.NOT_FOUND:
                logger.info("Directory vanished before expansion", extra={"path": str(entry.path)})
                self._publish_expansion(entry, generation, total_size=0, has_permission_issues=False)
                return []
            entry.error = PERMISSION_DENIED_MESSAGE
            self._state.has_permission_issues = True
            self._publish_expansion(entry, generation, total_size=0, has_permission_issues=True)
            await self._update_permission_prompt(generation)
            return []

        if self._is_stale(generation):
            return []

        batch = self._adopt(listed)
        entry.children = [child.path for child in batch]

        summary = await self.engine.run(
            batch,
            on_update=lambda child: self._publish_entry(child, generation),
            is_stale=lambda: self._is_stale(generation),
            stop=stop,
        )
        if not summary.completed or self._is_stale(generation):
            return []

        entry.children = [child.path for child in summary.entries]
        if summary.has_permission_issues:
            self._state.has_permission_issues = True
        self._publish(
            BATCH_COMPLETED,
            {
                "parent": str(entry.path),
                "generation": generation,
                "total_size": summary.total_size,
                "has_permission_issues": summary.has_permission_issues,
                "entries": len(summary.entries),
                "elapsed_seconds": summary.elapsed_seconds,
            },
        )
        self._publish_expansion(
            entry,
            generation,
            total_size=summary.total_size,
            has_permission_issues=summary.has_permission_issues,
        )
        await self._update_permission_prompt(generation)
        return list(summary.entries)

    # Access

    async def request_access(self, path: Path | str | None = None) -> bool:
        """Ask the access capability for access to ``path`` (the scan root by default).

        A grant dismisses the permission prompt; callers rescan to pick up
        the newly readable entries.

        Returns:
            True if access was granted
        """
        self._ensure_open()
        target = Path(path) if path is not None else self._state.root
        if target is None:
            return False
        loop = asyncio.get_running_loop()
        granted = await loop.run_in_executor(self.executor, self.access.request_access, target)
        if granted:
            self._state.show_permission_prompt = False
        logger.info("Access request finished", extra={"path": str(target), "granted": granted})
        return granted

    # Helpers

    async def _list(self, directory: Path, *, directories_only: bool) -> list[ListedEntry]:
        """Run a blocking listing on the executor in a copy of the current context."""
        loop = asyncio.get_running_loop()
        context = contextvars.copy_context()
        call = functools.partial(self.lister.list, directory, directories_only=directories_only)
        return await loop.run_in_executor(self.executor, context.run, call)

    def _adopt(self, listed: list[ListedEntry]) -> list[FileSystemEntry]:
        """Create arena entries for freshly listed children."""
        batch: list[FileSystemEntry] = []
        for item in listed:
            entry = FileSystemEntry(path=item.path, is_directory=item.is_directory)
            self._arena[item.path] = entry
            batch.append(entry)
        return batch

    async def _update_permission_prompt(self, generation: int) -> None:
        """Ask the access capability whether a permission prompt would help."""
        if not self._state.has_permission_issues or self._state.show_permission_prompt:
            return
        loop = asyncio.get_running_loop()
        full_access = await loop.run_in_executor(self.executor, self.access.has_full_access)
        if self._is_stale(generation):
            return
        if not full_access:
            self._state.show_permission_prompt = True
            logger.info("Permission prompt required", extra={"root": str(self._state.root)})

    def _transition(self, to_state: ScanPhase) -> None:
        from_state = self.state_machine.transition_to(to_state)
        self._state.phase = to_state
        self._publish(
            STATE_CHANGED,
            {"from": from_state.name, "to": to_state.name, "generation": self._generation},
        )

    def _publish_entry(self, entry: FileSystemEntry, generation: int) -> None:
        self._publish(
            ENTRY_UPDATED,
            {
                "generation": generation,
                "entry": entry.to_dict(),
                "total_size": self._state.total_size,
            },
        )

    def _publish_expansion(
        self,
        entry: FileSystemEntry,
        generation: int,
        *,
        total_size: int,
        has_permission_issues: bool,
    ) -> None:
        self._publish(
            EXPAND_COMPLETED,
            {
                "parent": str(entry.path),
                "generation": generation,
                "children": [str(child) for child in entry.children or []],
                "total_size": total_size,
                "has_permission_issues": has_permission_issues,
                "error": entry.error,
            },
        )

    def _publish(self, topic: str, data: EventData) -> None:
        _ = self.events.publish(topic, data)

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._generation

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "ScanSession is closed"
            raise RuntimeError(msg)

    # Lifecycle

    def close(self) -> None:
        """Supersede in-flight work and shut down the owned executor."""
        if self._closed:
            return
        self._closed = True
        self._superseded.set()
        for task in [*self._tasks, *self._expansions.values()]:
            _ = task.cancel()
        if self._owns_executor:
            self.executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Scan session closed", extra={"generation": self._generation})

    async def aclose(self) -> None:
        """Close and wait for background tasks to unwind."""
        pending = [*self._tasks, *self._expansions.values()]
        self.close()
        if pending:
            _ = await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _copy_entry(entry: FileSystemEntry) -> FileSystemEntry:
    children = list(entry.children) if entry.children is not None else None
    return dataclasses.replace(entry, children=children)
