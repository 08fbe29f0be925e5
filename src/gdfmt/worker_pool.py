# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Worker pool for formatting many files in parallel."""

import asyncio
import time
from typing import List, Optional, Sequence

from returns.result import Failure

from .async_file_io import atomic_write_async_safe
from .errors import GdfmtError, WorkerError
from .formatter import Formatter
from .worker_context import FileResult, WorkerContext, WorkItem


class WorkerPool:
    """Manages a pool of async workers for parallel file formatting.

    Each worker owns one Formatter and runs the (blocking) pipeline in a
    thread, so no parser or tree is ever touched by two files at once.
    """

    def __init__(
        self,
        num_workers: Optional[int] = None,
        queue_size: int = 10
    ):
        """Initialize worker pool.

        Args:
            num_workers: Number of worker tasks (default: 1)
            queue_size: Maximum items in queue (default: 10)
        """
        if num_workers is None:
            num_workers = 1
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")

        self.num_workers = num_workers
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.workers: List[asyncio.Task] = []
        self.context: Optional[WorkerContext] = None
        self._running = False

    async def start(self, context: WorkerContext) -> None:
        """Build one formatter per worker and start the workers.

        Raises:
            RuntimeError: If the pool is already running
        """
        if self._running:
            raise RuntimeError("Worker pool already running")

        self.context = context

        # Grammar loading and query compilation happen here, before any work
        formatters = [
            await asyncio.to_thread(context.create_formatter)
            for _ in range(self.num_workers)
        ]

        self._running = True
        for i, formatter in enumerate(formatters):
            worker_id = i + 1
            self.workers.append(asyncio.create_task(
                self._worker(worker_id, formatter),
                name=f"worker-{worker_id}"
            ))

        if context.logger:
            context.logger.write({
                'ev': 'worker_pool_started',
                'num_workers': self.num_workers,
                'queue_size': self.queue.maxsize
            })

    async def submit(self, item: WorkItem) -> None:
        """Submit a work item to the pool.

        Raises:
            RuntimeError: If pool not started
        """
        if not self._running:
            raise RuntimeError("Worker pool not started")
        await self.queue.put(item)

    async def wait_for_completion(self) -> None:
        """Wait for all submitted items to complete."""
        await self.queue.join()

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Stop the workers once they have drained the queue."""
        if not self._running:
            return

        # Sentinels wake up idle workers
        for _ in range(self.num_workers):
            await self.queue.put(None)

        try:
            await asyncio.wait_for(
                asyncio.gather(*self.workers, return_exceptions=True),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            for worker in self.workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(*self.workers, return_exceptions=True)

        self._running = False
        self.workers.clear()

        if self.context.logger:
            self.context.logger.write({
                'ev': 'worker_pool_shutdown',
                'timeout_used': timeout
            })

    async def _worker(self, worker_id: int, formatter: Formatter) -> None:
        """Worker coroutine that processes items from the queue."""
        while True:
            item = await self.queue.get()
            try:
                if item is None:
                    break
                try:
                    await self._process_item(item, formatter, worker_id)
                except Exception as e:
                    # A bug in one file must not leave the queue undrained
                    await self._fail(item, worker_id, GdfmtError(message=f"{type(e).__name__}: {e}"))
            finally:
                self.queue.task_done()

        await self.context.metrics.register_worker(worker_id)

    async def _process_item(
        self,
        item: WorkItem,
        formatter: Formatter,
        worker_id: int
    ) -> None:
        context = self.context

        start_time = time.time()
        result = await asyncio.to_thread(formatter.format, item.content)
        format_time = time.time() - start_time

        if isinstance(result, Failure):
            await self._fail(item, worker_id, result.failure(), format_time)
            return

        outcome = result.unwrap()
        changed = outcome.text != item.content

        io_time = 0.0
        if context.write_enabled and changed:
            write_start = time.time()
            written = await atomic_write_async_safe(item.path, outcome.text)
            io_time = time.time() - write_start
            if isinstance(written, Failure):
                await self._fail(item, worker_id, written.failure(), format_time, io_time)
                return

        status = "changed" if changed else "unchanged"
        await context.metrics.record_file(
            worker_id,
            status,
            format_time=format_time,
            io_time=io_time,
            changes=outcome.changes
        )

        await context.report_completion(FileResult(
            path=item.path,
            index=item.index,
            status=status,
            original=item.content,
            formatted=outcome.text,
            warnings=outcome.warnings,
        ), worker_id)

    async def _fail(
        self,
        item: WorkItem,
        worker_id: int,
        inner: GdfmtError,
        format_time: float = 0.0,
        io_time: float = 0.0
    ) -> None:
        context = self.context
        error = WorkerError(
            message=f"Failed to format {item.path}: {inner.message}",
            worker_id=worker_id,
            path=item.path,
            inner_error=inner
        )
        await context.report_error(error)
        await context.metrics.record_failure(worker_id, error.message, format_time, io_time)
        await context.report_completion(FileResult(
            path=item.path,
            index=item.index,
            status="failed",
            original=item.content,
            error=error,
        ), worker_id)


async def format_files(
    items: Sequence[WorkItem],
    context: WorkerContext,
    num_workers: int = 1
) -> List[FileResult]:
    """Format `items` with a temporary pool.

    Returns:
        List[FileResult]: One result per item, in item index order
    """
    pool = WorkerPool(num_workers=min(num_workers, max(len(items), 1)))
    await pool.start(context)
    try:
        for item in items:
            await pool.submit(item)
        await pool.wait_for_completion()
    finally:
        await pool.shutdown()
    return context.ordered_results()
