# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Run statistics shared by the workers of one formatting run."""

import asyncio
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Mapping, Optional

FileStatus = Literal["changed", "unchanged", "failed"]
FILE_STATUSES = ("changed", "unchanged", "failed")


@dataclass
class WorkerMetrics:
    """Totals of the files one worker handled."""
    worker_id: int
    files: Counter = field(default_factory=Counter)
    format_time: float = 0.0
    io_time: float = 0.0

    @property
    def files_processed(self) -> int:
        return sum(self.files.values())


class ThreadSafeMetrics:
    """Statistics of one run, updated by concurrent workers.

    Files are counted by status. Time spent in the formatting pipeline and
    on writes is summed per worker, and the per-rule change counts of every
    FormatOutcome are added up. Every method takes an asyncio.Lock.
    """

    MAX_ERROR_MESSAGES = 100

    def __init__(self):
        self._lock = asyncio.Lock()
        self._statuses: Counter = Counter()
        self._rule_changes: Counter = Counter()
        self._workers: Dict[int, WorkerMetrics] = {}
        self._error_messages: List[str] = []
        self._started = time.monotonic()

    def _worker(self, worker_id: int) -> WorkerMetrics:
        return self._workers.setdefault(worker_id, WorkerMetrics(worker_id))

    async def register_worker(self, worker_id: int) -> None:
        """Make a worker appear in snapshots even if it handled no file."""
        async with self._lock:
            self._worker(worker_id)

    async def record_file(
        self,
        worker_id: Optional[int],
        status: FileStatus,
        format_time: float = 0.0,
        io_time: float = 0.0,
        changes: Optional[Mapping[str, int]] = None,
    ) -> None:
        """Count one processed file.

        Args:
            worker_id: Worker that handled the file, None for files that
                never reached a worker
            status: 'changed', 'unchanged' or 'failed'
            format_time: Seconds spent in the formatting pipeline
            io_time: Seconds spent writing the result
            changes: Edits per post-processing step, from FormatOutcome.changes
        """
        async with self._lock:
            self._statuses[status] += 1
            if changes:
                self._rule_changes.update(changes)

            if worker_id is None:
                return
            worker = self._worker(worker_id)
            worker.files[status] += 1
            worker.format_time += format_time
            worker.io_time += io_time

    async def record_failure(
        self,
        worker_id: Optional[int],
        message: str,
        format_time: float = 0.0,
        io_time: float = 0.0,
    ) -> None:
        """Count a failed file and keep its message."""
        await self.record_file(worker_id, "failed", format_time, io_time)
        async with self._lock:
            # Bounded so a tree full of broken files cannot grow this without limit
            if len(self._error_messages) < self.MAX_ERROR_MESSAGES:
                self._error_messages.append(message)

    async def get_snapshot(self) -> Dict:
        """Get a read-only snapshot of all metrics."""
        async with self._lock:
            workers = list(self._workers.values())
            snapshot = {status: self._statuses[status] for status in FILE_STATUSES}
            snapshot.update({
                'format_time': sum(w.format_time for w in workers),
                'io_time': sum(w.io_time for w in workers),
                'elapsed_time': time.monotonic() - self._started,
                'rule_changes': dict(self._rule_changes),
                'worker_metrics': {
                    w.worker_id: {
                        'files_processed': w.files_processed,
                        'failed': w.files['failed'],
                        'format_time': w.format_time,
                        'io_time': w.io_time,
                    }
                    for w in workers
                },
                'error_messages': list(self._error_messages),
            })
            return snapshot

    async def get_total_processed(self) -> int:
        async with self._lock:
            return sum(self._statuses.values())
