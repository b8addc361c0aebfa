"""Batch rewrite orchestrator.

A fixed pool of asyncio workers drains one shared cursor of runnable row
indices. Each claimed row goes ``processing`` and then ``completed`` or
``error``; a failed row never stops the others. Cancellation is cooperative:
the flag is checked before every claim, calls already in flight run to the
end and their results are still written back.

The row list is read by the Streamlit script thread while the batch runs on
its own event loop thread, so updates go through a lock, one row index at a
time.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Awaitable, Callable, Iterator, List, Optional, Sequence

from caption_rewriter.config import DEFAULT_CONCURRENCY
from caption_rewriter.models import CaptionRow, ProcessingStats
from caption_rewriter.providers.base import RewriteResult
from caption_rewriter.state import (
    compute_stats,
    mark_completed,
    mark_failed,
    mark_processing,
    replace_row,
    runnable_indices,
)

logger = logging.getLogger(__name__)

Transform = Callable[[CaptionRow], Awaitable[RewriteResult]]
UpdateCallback = Callable[[int, CaptionRow], None]


class BatchProcessor:
    def __init__(
        self,
        rows: Sequence[CaptionRow],
        transform: Transform,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        on_update: Optional[UpdateCallback] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._rows: List[CaptionRow] = list(rows)
        self._transform = transform
        self._on_update = on_update
        self.concurrency = concurrency
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._queue = runnable_indices(self._rows)
        self._cursor: Iterator[int] = iter(self._queue)
        self.dispatched = 0

    # ------------------------------------------------------------------
    @property
    def queued(self) -> int:
        """Number of rows this run was started with."""
        return len(self._queue)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self) -> None:
        """Stop claiming new rows; in-flight calls still finish."""
        if not self._cancel.is_set():
            logger.info("Stop requested after %d/%d rows dispatched", self.dispatched, self.queued)
        self._cancel.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def snapshot(self) -> List[CaptionRow]:
        with self._lock:
            return list(self._rows)

    def stats(self) -> ProcessingStats:
        return compute_stats(self.snapshot())

    # ------------------------------------------------------------------
    async def run(self) -> List[CaptionRow]:
        logger.info("Batch started: %d runnable rows, %d workers", self.queued, self.concurrency)
        try:
            workers = [self._worker(n) for n in range(self.concurrency)]
            await asyncio.gather(*workers)
        finally:
            self._done.set()
        stats = self.stats()
        logger.info(
            "Batch finished: %d completed, %d failed, %d total%s",
            stats.completed,
            stats.failed,
            stats.total,
            " (stopped)" if self.cancelled else "",
        )
        return self.snapshot()

    async def _worker(self, worker_id: int) -> None:
        while not self._cancel.is_set():
            index = next(self._cursor, None)
            if index is None:
                return
            self.dispatched += 1
            row = self._update(index, mark_processing)
            try:
                result = await self._transform(row)
                completed = mark_completed(row, result)
            except Exception as exc:
                logger.warning("Worker %d: row %s failed: %s", worker_id, row.id, exc)
                message = str(exc) or exc.__class__.__name__
                self._update(index, lambda r: mark_failed(r, message))
            else:
                self._update(index, lambda r: completed)

    def _update(self, index: int, transition: Callable[[CaptionRow], CaptionRow]) -> CaptionRow:
        with self._lock:
            row = transition(self._rows[index])
            self._rows = replace_row(self._rows, index, row)
        if self._on_update is not None:
            self._on_update(index, row)
        return row


def run_in_background(processor: BatchProcessor) -> threading.Thread:
    """Run the batch on a daemon thread with its own event loop."""

    def _target() -> None:
        try:
            asyncio.run(processor.run())
        except Exception:
            logger.exception("Batch runner crashed")

    thread = threading.Thread(target=_target, name="caption-batch", daemon=True)
    thread.start()
    return thread

