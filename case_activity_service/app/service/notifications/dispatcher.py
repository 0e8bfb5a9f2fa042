# Detached notification dispatch: a bounded queue drained by a fixed pool of worker tasks
import asyncio
import logging
from typing import List

from case_activity_service.app.observability import notification_queue_dropped_counter
from case_activity_service.app.service.notifications.pipeline import NotificationPipeline, NotificationRequest

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, pipeline: NotificationPipeline, workers: int = 4, queue_size: int = 1000):
        self.pipeline = pipeline
        self.worker_count = workers
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._workers: List[asyncio.Task] = []
        self._cancelled = False

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def submit(self, request: NotificationRequest) -> bool:
        """Enqueues without waiting. Returns False when the request had to be dropped."""
        if self._cancelled:
            logger.warning(f"Dispatcher is stopped. Dropping {request.activity} notification for case {request.case_id}.")
            notification_queue_dropped_counter.add(1, {"reason": "stopped"})
            return False
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            logger.warning(f"Notification queue full. Dropping {request.activity} notification for case {request.case_id}.")
            notification_queue_dropped_counter.add(1, {"reason": "queue_full"})
            return False
        return True

    async def _worker(self, index: int):
        while True:
            request = await self._queue.get()
            try:
                await self.pipeline.dispatch(request)
            except Exception as e:
                logger.error(
                    f"Notification worker {index} failed on {request.activity} for case {request.case_id}: {e}",
                    exc_info=True
                )
            finally:
                self._queue.task_done()

    async def start(self):
        if self.is_running:
            return
        self._cancelled = False
        self._workers = [asyncio.create_task(self._worker(i)) for i in range(self.worker_count)]
        logger.info(f"Notification dispatcher started with {self.worker_count} workers.")

    async def drain(self):
        """Waits until every queued request has been processed."""
        await self._queue.join()

    async def stop(self, timeout: float = 10.0):
        self._cancelled = True
        if self._workers:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Notification queue not drained within {timeout}s. {self.queue_depth} requests abandoned.")
            for task in self._workers:
                task.cancel()
            await asyncio.gather(*self._workers, return_exceptions=True)
            self._workers = []
        logger.info("Notification dispatcher stopped.")
