"""Bounded fulfillment work queue drained by a fixed pool of workers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .models import QueueStats

logger = logging.getLogger(__name__)

# returns True when some item is still retryable
Processor = Callable[[str], Awaitable[bool]]


@dataclass(slots=True, frozen=True)
class FulfillmentJob:
    reference: str
    attempt: int = 1


class FulfillmentQueue:
    """Order references in, dispatch attempts out.

    A full queue rejects the submission; the order stays CONFIRMED and the
    periodic sweep submits it again later.
    """

    def __init__(
        self,
        processor: Processor,
        *,
        workers: int = 4,
        maxsize: int = 1000,
        max_attempts: int = 3,
        retry_base_delay: float = 2.0,
    ) -> None:
        self._processor = processor
        self._worker_count = max(1, workers)
        self._maxsize = maxsize
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay
        self._queue: asyncio.Queue[FulfillmentJob] = asyncio.Queue(maxsize=maxsize)
        self._workers: list[asyncio.Task[None]] = []
        self._retries: set[asyncio.Task[None]] = set()
        self._in_flight = 0
        self._processed = 0
        self._failed = 0
        self._retried = 0
        self._dropped = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def submit(self, reference: str, *, attempt: int = 1) -> bool:
        try:
            self._queue.put_nowait(FulfillmentJob(reference, attempt))
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning("Fulfillment queue full; %s left for the sweep", reference)
            return False
        return True

    def stats(self) -> QueueStats:
        return QueueStats(
            queued=self._queue.qsize(),
            in_flight=self._in_flight,
            processed=self._processed,
            failed=self._failed,
            retried=self._retried,
            dropped=self._dropped,
            workers=len(self._workers),
            capacity=self._maxsize,
        )

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._work(index), name=f"fulfillment-worker-{index}")
            for index in range(self._worker_count)
        ]
        logger.info("Fulfillment queue started with %s worker(s)", self._worker_count)

    async def stop(self) -> None:
        tasks = [*self._workers, *self._retries]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workers.clear()
        self._retries.clear()
        logger.info("Fulfillment queue stopped")

    async def join(self) -> None:
        """Wait until queued jobs and scheduled retries have all been processed."""
        while True:
            await self._queue.join()
            if not self._retries:
                return
            await asyncio.gather(*list(self._retries), return_exceptions=True)

    async def _work(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            self._in_flight += 1
            try:
                needs_retry = await self._processor(job.reference)
            except asyncio.CancelledError:
                raise
            except Exception:
                self._failed += 1
                logger.exception("Worker %s failed processing %s", index, job.reference)
            else:
                self._processed += 1
                if needs_retry:
                    self._schedule_retry(job)
            finally:
                self._in_flight -= 1
                self._queue.task_done()

    def _schedule_retry(self, job: FulfillmentJob) -> None:
        if job.attempt >= self._max_attempts:
            logger.warning("Order %s still has retryable items after %s attempts", job.reference, job.attempt)
            return
        delay = self._retry_base_delay * (2 ** (job.attempt - 1))
        task = asyncio.create_task(self._retry_later(job, delay))
        self._retries.add(task)
        task.add_done_callback(self._retries.discard)

    async def _retry_later(self, job: FulfillmentJob, delay: float) -> None:
        await asyncio.sleep(delay)
        self._retried += 1
        logger.info("Retrying fulfillment of %s (attempt %s)", job.reference, job.attempt + 1)
        self.submit(job.reference, attempt=job.attempt + 1)
