# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for the worker pool and its context."""

import pytest

from gdfmt.config import FormatterConfig
from gdfmt.thread_safe_metrics import ThreadSafeMetrics
from gdfmt.worker_context import FileResult, WorkerContext, WorkItem
from gdfmt.worker_pool import WorkerPool, format_files

from tests.conftest import FailingEngine, IdentityEngine


def make_context(engine=None, write_enabled=False, **options):
    return WorkerContext(
        metrics=ThreadSafeMetrics(),
        config=FormatterConfig(**options),
        engine=engine or IdentityEngine(),
        write_enabled=write_enabled,
    )


def items_for(paths_and_contents):
    return [
        WorkItem(path=path, content=content, index=index)
        for index, (path, content) in enumerate(paths_and_contents)
    ]


class TestWorkerPool:
    """Test WorkerPool class."""

    def test_initialization_default_workers(self):
        pool = WorkerPool()
        assert pool.num_workers == 1
        assert pool.queue.maxsize == 10
        assert not pool._running

    def test_initialization_custom_workers(self):
        pool = WorkerPool(num_workers=3, queue_size=5)
        assert pool.num_workers == 3
        assert pool.queue.maxsize == 5

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            WorkerPool(num_workers=0)

    @pytest.mark.asyncio
    async def test_start_creates_workers(self):
        pool = WorkerPool(num_workers=2)

        await pool.start(make_context())
        try:
            assert pool._running
            assert len(pool.workers) == 2
        finally:
            await pool.shutdown()

        assert not pool._running
        assert pool.workers == []

    @pytest.mark.asyncio
    async def test_start_twice_fails(self):
        pool = WorkerPool()
        await pool.start(make_context())
        try:
            with pytest.raises(RuntimeError):
                await pool.start(make_context())
        finally:
            await pool.shutdown()

    @pytest.mark.asyncio
    async def test_submit_before_start_fails(self, tmp_path):
        pool = WorkerPool()
        with pytest.raises(RuntimeError):
            await pool.submit(WorkItem(tmp_path / "a.gd", "", 0))


class TestFormatFiles:
    """Test formatting batches of files."""

    @pytest.mark.asyncio
    async def test_results_in_index_order(self, tmp_path):
        contents = [(tmp_path / f"f{i}.gd", f"var v{i} = {i};\n") for i in range(8)]
        context = make_context()

        results = await format_files(items_for(contents), context, num_workers=3)

        assert [r.index for r in results] == list(range(8))
        assert [r.formatted for r in results] == [f"var v{i} = {i}\n" for i in range(8)]
        assert all(r.changed for r in results)

    @pytest.mark.asyncio
    async def test_writes_changed_files_only(self, gd_file):
        changed = gd_file("changed.gd", "func a():\n\tpass;\n")
        unchanged = gd_file("unchanged.gd", "var a = 1\n")
        before = unchanged.stat().st_mtime_ns
        context = make_context(write_enabled=True)

        results = await format_files(
            items_for([(changed, changed.read_text()), (unchanged, unchanged.read_text())]),
            context,
            num_workers=2,
        )

        assert changed.read_text() == "func a():\n\tpass\n"
        assert unchanged.stat().st_mtime_ns == before
        assert [r.status for r in results] == ["changed", "unchanged"]

        snapshot = await context.metrics.get_snapshot()
        assert snapshot['changed'] == 1
        assert snapshot['unchanged'] == 1
        assert snapshot['failed'] == 0
        assert snapshot['rule_changes']['dangling_semicolons'] == 1

    @pytest.mark.asyncio
    async def test_no_write_when_disabled(self, gd_file):
        path = gd_file("a.gd", "pass;\n")

        await format_files(items_for([(path, "pass;\n")]), make_context(), num_workers=1)

        assert path.read_text() == "pass;\n"

    @pytest.mark.asyncio
    async def test_failures_reported_per_file(self, tmp_path):
        context = make_context(engine=FailingEngine())

        results = await format_files(
            items_for([(tmp_path / "a.gd", "func (\n"), (tmp_path / "b.gd", "x\n")]),
            context,
            num_workers=2,
        )

        assert all(isinstance(r, FileResult) and r.failed for r in results)
        assert "a.gd" in results[0].error.message
        assert results[0].error.inner_error.exit_code == 1
        assert (await context.metrics.get_snapshot())['failed'] == 2

    @pytest.mark.asyncio
    async def test_warnings_carried(self, tmp_path):
        context = make_context(reorder_code=True)

        results = await format_files(items_for([(tmp_path / "a.gd", "var a = 1\n")]), context)

        assert results[0].status == "unchanged"
        assert results[0].warnings

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await format_files([], make_context(), num_workers=4) == []
