import asyncio
import contextlib

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
)

from model_translation.core.config import settings
from model_translation.core.logging import get_logger
from model_translation.core.tasks import AsyncTaskQueue, TaskHandler, create_safe_task
from model_translation.translations.models import SyncTask

logger = get_logger(__name__)


class SyncWorker:
    """Background consumer applying queued SyncTasks to the language-model map.

    Handlers do blocking disk I/O, so each task runs in a worker thread.
    A failing task is retried up to max_attempts times, then logged and
    skipped; the worker itself keeps running. Retrying is safe because
    sync tasks recompute from current state.
    """

    def __init__(
        self,
        queue: AsyncTaskQueue,
        handler: TaskHandler,
        *,
        max_attempts: int | None = None,
        concurrency: int = 1,
        retry_wait: float = 0.1,
    ) -> None:
        self.queue = queue
        self.handler = handler
        self.max_attempts = max_attempts or settings.SYNC_MAX_ATTEMPTS
        self.concurrency = max(1, concurrency)
        self.retry_wait = retry_wait
        self._consumers: list[asyncio.Task] = []
        self._running = False
        self._processed_count = 0
        self._failed_count = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def processed_count(self) -> int:
        return self._processed_count

    @property
    def failed_count(self) -> int:
        return self._failed_count

    async def start(self) -> None:
        """Bind the queue to the running loop and start consuming."""
        if self._running:
            return

        self.queue.bind()
        self._running = True
        self._consumers = [
            create_safe_task(self._consume(), task_name=f"sync_worker_{i}")
            for i in range(self.concurrency)
        ]
        logger.info("sync_worker_started", concurrency=self.concurrency)

    async def stop(self, *, drain: bool = True) -> None:
        """Stop consuming. Remaining tasks are processed first unless drain=False."""
        if not self._running:
            return
        if drain:
            await self.queue.join()
        self._running = False

        for consumer in self._consumers:
            consumer.cancel()
        for consumer in self._consumers:
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
        self._consumers = []
        self.queue.unbind()

        logger.info(
            "sync_worker_stopped",
            processed=self._processed_count,
            failed=self._failed_count,
            pending=self.queue.qsize(),
        )

    async def join(self) -> None:
        """Wait until every queued task has been processed."""
        await self.queue.join()

    async def __aenter__(self) -> "SyncWorker":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def _consume(self) -> None:
        while self._running:
            task = await self.queue.get()
            try:
                await self._process(task)
            finally:
                self.queue.task_done()

    async def _process(self, task: SyncTask) -> bool:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.retry_wait, max=5),
                before_sleep=self._log_retry(task),
                reraise=True,
            ):
                with attempt:
                    await asyncio.to_thread(self.handler, task)
        except Exception as e:
            self._failed_count += 1
            logger.exception(
                "sync_task_failed",
                entity_type=task.entity_type,
                entity_id=task.entity_id,
                language=task.language,
                attempts=self.max_attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        self._processed_count += 1
        return True

    @staticmethod
    def _log_retry(task: SyncTask):
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "sync_task_retry",
                entity_type=task.entity_type,
                entity_id=task.entity_id,
                language=task.language,
                attempt=retry_state.attempt_number,
                error=str(error),
            )

        return before_sleep
