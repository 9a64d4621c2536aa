# media_scout/scheduler.py
"""
Bounded-concurrency scheduler for site scans.

Requests are drawn from a FIFO queue and started as asyncio tasks, each in
the lowest free slot.  Whenever a scan finishes its slot is freed and the
next queued request is admitted.  A failing scan never stops the others.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, Iterable, Optional, Set

from media_scout.models import ScanRequest

logger = logging.getLogger("MediaScout")

ScanRunner = Callable[[ScanRequest, int], Awaitable[None]]


class ScanScheduler:
    """Runs at most ``max_concurrent`` scans at a time until the queue drains."""

    def __init__(self, max_concurrent: int, runner: ScanRunner) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self._runner = runner
        self._queue: Deque[ScanRequest] = deque()
        self._running: Dict[int, asyncio.Task[None]] = {}
        self._cancelled = asyncio.Event()
        self.peak_active = 0
        self.started = 0
        self.completed = 0
        self.failed = 0

    @property
    def active(self) -> int:
        return len(self._running)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _free_slot(self) -> Optional[int]:
        for slot in range(self.max_concurrent):
            if slot not in self._running:
                return slot
        return None

    def _admit(self) -> None:
        while self._queue and not self.cancelled:
            slot = self._free_slot()
            if slot is None:
                return
            request = self._queue.popleft()
            task = asyncio.create_task(self._runner(request, slot), name=f"scan[{slot}] {request.url}")
            task.add_done_callback(lambda t, r=request: self._on_done(t, r))
            self._running[slot] = task
            self.started += 1
            self.peak_active = max(self.peak_active, len(self._running))
            logger.debug("[slot %d] admitted %s", slot, request.url)

    def _on_done(self, task: asyncio.Task[None], request: ScanRequest) -> None:
        self.completed += 1
        if task.cancelled():
            logger.debug("Scan cancelled: %s", request.url)
            return
        exc = task.exception()
        if exc is not None:
            self.failed += 1
            logger.error("Error scanning %s: %s", request.url, exc)

    def _reap(self, done: Set[asyncio.Task[None]]) -> None:
        for slot, task in list(self._running.items()):
            if task in done:
                del self._running[slot]

    async def run(self, requests: Iterable[ScanRequest]) -> None:
        """Process every request exactly once, honouring the concurrency bound."""
        self._queue.extend(requests)
        self._admit()
        while self._running:
            done, _ = await asyncio.wait(
                set(self._running.values()), return_when=asyncio.FIRST_COMPLETED
            )
            self._reap(done)
            self._admit()
        if self.cancelled and self._queue:
            logger.warning("Scan interrupted, %d site(s) not scanned", len(self._queue))

    def cancel(self) -> None:
        """Stop admitting new scans and cancel the ones in flight.

        In-flight scans receive :class:`asyncio.CancelledError` and run their
        own cleanup; :meth:`run` returns once all of them have finished.
        """
        if self.cancelled:
            return
        self._cancelled.set()
        logger.warning("Cancelling %d running scan(s)", len(self._running))
        for task in self._running.values():
            task.cancel()

    @property
    def pending(self) -> int:
        return len(self._queue)


__all__ = ["ScanScheduler", "ScanRunner"]
