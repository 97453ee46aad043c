"""
Enrichment Queue.

An ordered queue of record ids drained by a single in-process loop.
Only one enrichment task runs at a time; a fixed polite delay separates
consecutive tasks whatever their outcome.

Usage:
    queue = EnrichmentQueue(enrichment_service.enrich_startup)
    queue.enqueue(record_id)          # fire-and-forget
    await queue.wait_for_idle(1.0)    # block until drained
"""
import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional

from scout.core.config import settings

logger = logging.getLogger(__name__)


class EnrichmentQueue:
    def __init__(
        self,
        enrich: Callable[[int], Awaitable[Any]],
        delay_seconds: Optional[float] = None,
    ):
        self._enrich = enrich
        self.delay_seconds = settings.enrichment_delay_seconds if delay_seconds is None else delay_seconds
        self._queue: Deque[int] = deque()
        self._busy = False
        self._drain_task: Optional[asyncio.Task] = None
        self.in_flight: Optional[int] = None
        self.processed = 0
        self.failed = 0

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        return not self._queue and not self._busy

    def enqueue(self, record_id: int) -> None:
        """Add an id and start draining if nothing is running. Returns immediately."""
        self._queue.append(record_id)
        logger.debug(f"Enqueued record {record_id} for enrichment ({len(self._queue)} waiting)")
        self._start_drain()

    def _start_drain(self) -> None:
        if self._busy or not self._queue:
            return
        self._busy = True
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._queue:
                record_id = self._queue.popleft()
                self.in_flight = record_id
                try:
                    await self._enrich(record_id)
                    self.processed += 1
                except Exception as e:
                    self.failed += 1
                    logger.error(f"Enrichment failed for record {record_id}: {e}")
                finally:
                    self.in_flight = None
                await asyncio.sleep(self.delay_seconds)
        finally:
            self._busy = False
            self._drain_task = None

    async def wait_for_idle(self, poll_interval: Optional[float] = None) -> None:
        """Poll until the queue is empty and no task is in flight."""
        interval = settings.enrichment_poll_interval_seconds if poll_interval is None else poll_interval
        while not self.is_idle:
            await asyncio.sleep(interval)
