"""Parallel size aggregation over a batch of sibling entries.

Blocking measurement runs on a bounded thread pool. Completions are applied
to their entries on the event loop one at a time, as they arrive, so
observers can render partial progress; the batch summary is built only after
every entry has completed.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
import threading
import time
from collections.abc import Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Literal, cast

from storage_freer.types.aliases import StaleCheck, UpdateCallback
from storage_freer.types.models import (
    ACCESS_DENIED,
    PERMISSION_DENIED_MESSAGE,
    BatchSummary,
    FileSystemEntry,
    MeasuredSize,
)
from storage_freer.types.protocols import SizeMeasurer

logger = logging.getLogger(__name__)


class _BatchTotals:
    """Running total and permission flag shared by the workers of one batch."""

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._total: int = 0
        self._has_permission_issues: bool = False

    def fold(self, measured: MeasuredSize) -> None:
        with self._lock:
            if measured.size >= 0:
                self._total += measured.size
            if measured.has_permission_issues:
                self._has_permission_issues = True

    def read(self) -> tuple[int, bool]:
        with self._lock:
            return self._total, self._has_permission_issues


def sort_by_size(entries: Sequence[FileSystemEntry]) -> list[FileSystemEntry]:
    """Order entries by size descending; unset and denied sizes go last.

    The sort is stable, so entries of equal rank keep their listing order.
    """
    return sorted(entries, key=FileSystemEntry.sort_key, reverse=True)


class AggregationEngine:
    """Fans size measurement for a batch out over a bounded worker pool."""

    def __init__(
        self,
        calculator: SizeMeasurer,
        *,
        max_workers: int = 8,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            calculator: Measures one path without raising
            max_workers: Worker count for the engine's own pool
            executor: Externally owned executor to use instead of creating one
        """
        self.calculator: SizeMeasurer = calculator
        self._owns_executor: bool = executor is None
        self.executor: Executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="size-worker",
        )

    async def run(
        self,
        batch: Sequence[FileSystemEntry],
        *,
        on_update: UpdateCallback | None = None,
        is_stale: StaleCheck | None = None,
        stop: asyncio.Event | None = None,
    ) -> BatchSummary:
        """Measure every entry of ``batch`` in parallel.

        Args:
            batch: Sibling entries to measure
            on_update: Called on the event loop right after each entry's
                result has been written onto it
            is_stale: Checked before each completion is applied; once it
                returns True the engine stops consuming completions
            stop: Set when the batch is superseded; work still queued on
                the executor is cancelled at once instead of waiting for the
                next completion

        Returns:
            Summary with the batch total, permission flag and sorted entries
        """
        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        totals = _BatchTotals()

        futures: dict[asyncio.Future[MeasuredSize], FileSystemEntry] = {}
        for entry in batch:
            entry.is_calculating = True
            # Each worker runs in a copy of the caller's context so the scan ID follows it
            context = contextvars.copy_context()
            future = loop.run_in_executor(self.executor, context.run, self._measure, entry.path, totals)
            futures[future] = entry

        stopper: asyncio.Task[Literal[True]] | None = asyncio.ensure_future(stop.wait()) if stop is not None else None
        pending: set[asyncio.Future[MeasuredSize]] = set(futures)
        completed = True
        try:
            while pending and completed:
                waiting: set[asyncio.Future[MeasuredSize] | asyncio.Task[Literal[True]]] = set(pending)
                if stopper is not None:
                    waiting.add(stopper)
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                if stopper is not None and stopper in done:
                    completed = False
                    break
                for finished in done:
                    future = cast(asyncio.Future[MeasuredSize], finished)
                    pending.discard(future)
                    if is_stale is not None and is_stale():
                        completed = False
                        break
                    entry = futures[future]
                    self._apply(entry, future.result())
                    if on_update is not None:
                        on_update(entry)
        finally:
            for future in pending:
                _ = future.cancel()
            if stopper is not None:
                _ = stopper.cancel()

        elapsed = time.perf_counter() - started
        if not completed:
            logger.info(
                "Batch superseded, remaining completions discarded",
                extra={"entries": len(batch), "pending": len(pending)},
            )
            return BatchSummary(
                total_size=0,
                has_permission_issues=False,
                entries=tuple(batch),
                completed=False,
                elapsed_seconds=elapsed,
            )

        total, has_permission_issues = totals.read()
        logger.info(
            "Batch complete",
            extra={
                "entries": len(batch),
                "total_size": total,
                "permission_issues": has_permission_issues,
                "elapsed_seconds": round(elapsed, 3),
            },
        )
        return BatchSummary(
            total_size=total,
            has_permission_issues=has_permission_issues,
            entries=tuple(sort_by_size(batch)),
            completed=True,
            elapsed_seconds=elapsed,
        )

    def _measure(self, path: Path, totals: _BatchTotals) -> MeasuredSize:
        """Worker body: measure one path and fold it into the batch totals."""
        try:
            measured = self.calculator.measure(path)
        except Exception:
            logger.exception("Unexpected error measuring path", extra={"path": str(path)})
            measured = MeasuredSize(ACCESS_DENIED)
        totals.fold(measured)
        return measured

    @staticmethod
    def _apply(entry: FileSystemEntry, measured: MeasuredSize) -> None:
        entry.size = measured.size
        entry.is_calculating = False
        entry.error = PERMISSION_DENIED_MESSAGE if measured.denied else None

    def close(self) -> None:
        """Shut down the worker pool if the engine created it."""
        if self._owns_executor:
            self.executor.shutdown(wait=False, cancel_futures=True)
