# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Shared context for worker pool operations."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .cache import FormatterCache
from .config import FormatterConfig
from .engine import FormattingEngine, ReorderPass
from .errors import GdfmtError, WorkerError
from .formatter import Formatter
from .logging_jsonl import JsonlLogger
from .thread_safe_metrics import FileStatus, ThreadSafeMetrics


@dataclass
class WorkItem:
    """Item queued for worker processing."""
    path: Path
    content: str
    index: int


@dataclass(frozen=True)
class FileResult:
    """Outcome of one file, reported back under its original index."""
    path: Path
    index: int
    status: FileStatus
    original: str
    formatted: Optional[str] = None
    warnings: Tuple[str, ...] = ()
    error: Optional[GdfmtError] = None

    @property
    def changed(self) -> bool:
        return self.status == "changed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"


@dataclass
class WorkerContext:
    """Shared context for all workers in the pool.

    Formatters are not shared: each worker calls `create_formatter` once and
    keeps its own parser and compiled queries.
    """

    metrics: ThreadSafeMetrics
    config: FormatterConfig
    engine: FormattingEngine
    reorder: Optional[ReorderPass] = None
    logger: Optional[JsonlLogger] = None

    # Write formatted content back to the files
    write_enabled: bool = False

    results: Dict[int, FileResult] = field(default_factory=dict)

    def create_formatter(self) -> Formatter:
        """Build a formatter with a cache of its own."""
        return Formatter(
            config=self.config,
            cache=FormatterCache.create(),
            engine=self.engine,
            reorder=self.reorder,
            logger=self.logger,
        )

    async def report_completion(self, result: FileResult, worker_id: Optional[int] = None) -> None:
        """Record the result of a file under its index."""
        self.results[result.index] = result
        if self.logger:
            self.logger.write({
                'ev': 'file_processed',
                'path': str(result.path),
                'index': result.index,
                'status': result.status,
                'warnings': list(result.warnings),
                'worker_id': worker_id
            })

    async def report_error(self, error: WorkerError) -> None:
        """Log a failed file; the pool counts it in the metrics."""
        if self.logger:
            self.logger.write({
                'ev': 'worker_error',
                'worker_id': error.worker_id,
                'path': str(error.path),
                'error': error.message,
                'error_type': type(error.inner_error).__name__ if error.inner_error else None
            })

    def ordered_results(self) -> List[FileResult]:
        """Results sorted back into submission order."""
        return [self.results[index] for index in sorted(self.results)]
