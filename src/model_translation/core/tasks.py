"""Task queues carrying SyncTasks from writers to the index synchronizer.

Writers push and return immediately; what happens next depends on the
queue:
- InlineTaskQueue runs the handler right away (the "sync" connection)
- AsyncTaskQueue hands tasks to a background asyncio worker
- DeferredTaskQueue buffers tasks until flushed explicitly
- NullTaskQueue drops them

Also provides create_safe_task for background coroutines whose failures
must be logged rather than silently lost.
"""

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Callable, Coroutine
import threading
from typing import Any, TypeVar

from model_translation.core.config import settings
from model_translation.core.logging import get_logger
from model_translation.translations.models import SyncTask

logger = get_logger(__name__)

T = TypeVar("T")

TaskHandler = Callable[[SyncTask], Any]


class TaskQueue(ABC):
    """Producer side of the synchronization queue."""

    @abstractmethod
    def push(self, task: SyncTask) -> None:
        """Enqueue a task without waiting for it to be processed."""


class InlineTaskQueue(TaskQueue):
    """Runs every task immediately in the caller's thread."""

    def __init__(self, handler: TaskHandler):
        self.handler = handler

    def push(self, task: SyncTask) -> None:
        self.handler(task)


class NullTaskQueue(TaskQueue):
    """Discards tasks. The language-model map is left untouched."""

    def push(self, task: SyncTask) -> None:
        logger.debug(
            "sync_task_discarded",
            entity_type=task.entity_type,
            entity_id=task.entity_id,
            language=task.language,
        )


class DeferredTaskQueue(TaskQueue):
    """Buffers tasks until flush() is called."""

    def __init__(self) -> None:
        self._pending: list[SyncTask] = []
        self._lock = threading.Lock()

    @property
    def pending(self) -> list[SyncTask]:
        with self._lock:
            return list(self._pending)

    def push(self, task: SyncTask) -> None:
        with self._lock:
            self._pending.append(task)

    def flush(self, handler: TaskHandler) -> int:
        """Run every buffered task through handler. Returns the count run."""
        with self._lock:
            tasks, self._pending = self._pending, []
        for task in tasks:
            handler(task)
        return len(tasks)

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()


class AsyncTaskQueue(TaskQueue):
    """Thread-safe producer into an asyncio.Queue consumed by SyncWorker.

    Tasks pushed before the queue is bound to an event loop are kept in a
    backlog and moved into the queue on bind(). When the queue is full the
    task is dropped and counted; the affected entity stays stale in the
    language-model map until it is written again or the map is rebuilt.
    """

    def __init__(self, max_size: int | None = None) -> None:
        self.max_size = max_size if max_size is not None else settings.QUEUE_MAX_SIZE
        self._queue: asyncio.Queue[SyncTask] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._backlog: list[SyncTask] = []
        self._lock = threading.Lock()
        self._dropped_count = 0

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def bound(self) -> bool:
        return self._queue is not None

    def bind(self) -> None:
        """Attach the queue to the running event loop."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._loop is loop:
                return
            self._loop = loop
            self._queue = asyncio.Queue(maxsize=self.max_size)
            backlog, self._backlog = self._backlog, []
        for task in backlog:
            self._put(task)

    def unbind(self) -> None:
        """Detach from the loop. Unconsumed tasks go back to the backlog."""
        with self._lock:
            queue, self._queue, self._loop = self._queue, None, None
            while queue is not None and not queue.empty():
                self._backlog.append(queue.get_nowait())

    def push(self, task: SyncTask) -> None:
        with self._lock:
            loop = self._loop
            if loop is None:
                self._backlog.append(task)
                return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._put(task)
        else:
            loop.call_soon_threadsafe(self._put, task)

    def _put(self, task: SyncTask) -> None:
        if self._queue is None:
            with self._lock:
                self._backlog.append(task)
            return
        try:
            self._queue.put_nowait(task)
        except asyncio.QueueFull:
            self._dropped_count += 1
            logger.error(
                "sync_task_dropped",
                reason="queue_full",
                entity_type=task.entity_type,
                entity_id=task.entity_id,
                language=task.language,
                total_dropped=self._dropped_count,
            )

    async def get(self) -> SyncTask:
        if self._queue is None:
            raise RuntimeError("AsyncTaskQueue is not bound to an event loop")
        return await self._queue.get()

    def task_done(self) -> None:
        if self._queue is not None:
            self._queue.task_done()

    async def join(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    def qsize(self) -> int:
        with self._lock:
            backlog = len(self._backlog)
        return backlog + (self._queue.qsize() if self._queue is not None else 0)

    def empty(self) -> bool:
        return self.qsize() == 0


def create_safe_task(
    coro: Coroutine[Any, Any, T],
    task_name: str,
    on_error: Callable[[Exception], None] | None = None,
) -> asyncio.Task[T | None]:
    """Create a background task whose failure is logged, never lost.

    Args:
        coro: The coroutine to run
        task_name: Descriptive name for logging and debugging
        on_error: Optional callback with the exception on failure

    Returns:
        The created asyncio.Task
    """

    async def wrapped() -> T | None:
        try:
            result = await coro
        except asyncio.CancelledError:
            logger.info("background_task_cancelled", task=task_name)
            raise
        except Exception as e:
            logger.exception(
                "background_task_failed",
                task=task_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            if on_error:
                try:
                    on_error(e)
                except Exception as callback_error:
                    logger.warning(
                        "background_task_error_callback_failed",
                        task=task_name,
                        original_error=str(e),
                        callback_error=str(callback_error),
                    )
            return None
        else:
            logger.debug("background_task_completed", task=task_name)
            return result

    task = asyncio.create_task(wrapped(), name=task_name)
    logger.debug("background_task_created", task=task_name)
    return task
