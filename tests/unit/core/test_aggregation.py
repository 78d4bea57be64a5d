"""Tests for the parallel aggregation engine."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import Mock

import pytest

from helpers import GatedMeasurer
from storage_freer.core.aggregation import AggregationEngine, sort_by_size
from storage_freer.types.models import (
    ACCESS_DENIED,
    PERMISSION_DENIED_MESSAGE,
    FileSystemEntry,
    MeasuredSize,
)


def entries(*names: str, is_directory: bool = True) -> list[FileSystemEntry]:
    return [FileSystemEntry(path=Path("/root") / name, is_directory=is_directory) for name in names]


class TestSortBySize:
    """Test the descending-size ordering."""

    def test_descending_with_unset_and_denied_last(self) -> None:
        """Known sizes sort descending; None and -1 trail in listing order."""
        batch = entries("a", "b", "c", "d", "e")
        for entry, size in zip(batch, [10, None, 30, ACCESS_DENIED, 20], strict=True):
            entry.size = size

        ordered = sort_by_size(batch)

        assert [entry.name for entry in ordered] == ["c", "e", "a", "b", "d"]

    def test_stable_for_equal_sizes(self) -> None:
        """Ties keep their original relative order."""
        batch = entries("x", "y", "z")
        for entry in batch:
            entry.size = 5

        assert [entry.name for entry in sort_by_size(batch)] == ["x", "y", "z"]


class TestAggregationEngine:
    """Test AggregationEngine.run."""

    @pytest.mark.asyncio
    async def test_totals_and_flags(self) -> None:
        """Non-negative sizes add up; denied and partial results set the flag."""
        sizes = {
            "/root/a": MeasuredSize(100),
            "/root/b": MeasuredSize(ACCESS_DENIED),
            "/root/c": MeasuredSize(50, partial=True),
        }
        calculator = Mock()
        calculator.measure.side_effect = lambda path: sizes[str(path)]
        engine = AggregationEngine(calculator, max_workers=4)
        batch = entries("a", "b", "c")

        try:
            summary = await engine.run(batch)
        finally:
            engine.close()

        assert summary.completed
        assert summary.total_size == 150
        assert summary.has_permission_issues
        assert [entry.name for entry in summary.entries] == ["a", "c", "b"]
        assert calculator.measure.call_count == 3

    @pytest.mark.asyncio
    async def test_entries_updated_in_place(self) -> None:
        """Each entry gets its size, loses the busy flag and gains an error if denied."""
        calculator = Mock()
        calculator.measure.side_effect = lambda path: MeasuredSize(ACCESS_DENIED if path.name == "b" else 7)
        engine = AggregationEngine(calculator, max_workers=2)
        a, b = entries("a", "b")

        try:
            _ = await engine.run([a, b])
        finally:
            engine.close()

        assert (a.size, a.is_calculating, a.error) == (7, False, None)
        assert (b.size, b.is_calculating, b.error) == (ACCESS_DENIED, False, PERMISSION_DENIED_MESSAGE)

    @pytest.mark.asyncio
    async def test_on_update_called_once_per_entry(self) -> None:
        """Observers see every entry exactly once, already updated."""
        calculator = Mock()
        calculator.measure.return_value = MeasuredSize(1)
        engine = AggregationEngine(calculator, max_workers=3)
        seen: list[tuple[str, int | None, bool]] = []

        try:
            summary = await engine.run(
                entries("a", "b", "c", "d"),
                on_update=lambda entry: seen.append((entry.name, entry.size, entry.is_calculating)),
            )
        finally:
            engine.close()

        assert sorted(seen) == [("a", 1, False), ("b", 1, False), ("c", 1, False), ("d", 1, False)]
        assert summary.total_size == 4

    @pytest.mark.asyncio
    async def test_worker_exception_becomes_sentinel(self) -> None:
        """An unexpected measurer failure is contained as access denied."""
        calculator = Mock()
        calculator.measure.side_effect = RuntimeError("boom")
        engine = AggregationEngine(calculator, max_workers=1)
        (entry,) = entries("a")

        try:
            summary = await engine.run([entry])
        finally:
            engine.close()

        assert entry.size == ACCESS_DENIED
        assert summary.has_permission_issues
        assert summary.total_size == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self) -> None:
        """An empty batch completes immediately with zero."""
        engine = AggregationEngine(Mock(), max_workers=1)
        try:
            summary = await engine.run([])
        finally:
            engine.close()

        assert summary.completed
        assert summary.total_size == 0
        assert summary.entries == ()

    @pytest.mark.asyncio
    async def test_stale_batch_stops_consuming(self) -> None:
        """Once is_stale turns true, remaining completions are not applied."""
        measurer = GatedMeasurer({"fast": 10, "slow": 20}, gated=["slow"])
        engine = AggregationEngine(measurer, max_workers=2)
        fast, slow = entries("fast", "slow")
        stale = False
        updates: list[str] = []

        def on_update(entry: FileSystemEntry) -> None:
            nonlocal stale
            updates.append(entry.name)
            stale = True

        try:
            task = asyncio.create_task(engine.run([fast, slow], on_update=on_update, is_stale=lambda: stale))
            await asyncio.sleep(0)
            _ = await asyncio.to_thread(measurer.started.wait, 5)
            # Let the fast completion be applied, then release the slow one
            while not updates:
                await asyncio.sleep(0.01)
            measurer.gate.set()
            summary = await task
        finally:
            measurer.gate.set()
            engine.close()

        assert not summary.completed
        assert summary.total_size == 0
        assert updates == ["fast"]
        assert slow.size is None
        assert slow.is_calculating

    @pytest.mark.asyncio
    async def test_stop_event_cancels_queued_work(self) -> None:
        """Setting stop ends the batch at once and frees queued executor slots."""
        measurer = GatedMeasurer({"slow": 1, "queued1": 2, "queued2": 3}, gated=["slow"])
        executor = ThreadPoolExecutor(max_workers=1)
        engine = AggregationEngine(measurer, executor=executor)
        batch = entries("slow", "queued1", "queued2")
        stop = asyncio.Event()

        try:
            task = asyncio.create_task(engine.run(batch, stop=stop))
            _ = await asyncio.to_thread(measurer.started.wait, 5)
            stop.set()
            # Returns while the running measurement is still blocked
            summary = await asyncio.wait_for(task, timeout=5)
            await asyncio.sleep(0)
        finally:
            measurer.gate.set()
            executor.shutdown(wait=True)

        assert not summary.completed
        assert [path.name for path in measurer.calls] == ["slow"]
        assert all(entry.size is None for entry in batch)

    @pytest.mark.asyncio
    async def test_external_executor_not_shut_down(self) -> None:
        """close leaves an injected executor running."""
        with ThreadPoolExecutor(max_workers=1) as executor:
            calculator = Mock()
            calculator.measure.return_value = MeasuredSize(3)
            engine = AggregationEngine(calculator, executor=executor)
            engine.close()

            assert executor.submit(lambda: 1).result() == 1
