import asyncio
import threading

from conftest import ARTICLE, Article
import pytest

from model_translation.core.tasks import AsyncTaskQueue, create_safe_task
from model_translation.drivers.json_driver import JSONTranslationDriver
from model_translation.sync.worker import SyncWorker
from model_translation.translations.models import SyncTask


def _task(entity_id: int, language: str = "en") -> SyncTask:
    return SyncTask.for_entity(Article(entity_id), language)


@pytest.mark.asyncio
async def test_worker_drains_queue_into_map(disk):
    queue = AsyncTaskQueue(max_size=100)
    driver = JSONTranslationDriver(disk, queue, use_index=True)

    async with SyncWorker(queue, driver.synchronizer.handle, concurrency=2) as worker:
        driver.store_translations(Article(1), "en", {"title": "One"})
        driver.store_translations(Article(2), "en", {"title": "Two"})
        await worker.join()

        assert sorted(driver.get_models_available_in_language(ARTICLE, "en")) == [
            "1",
            "2",
        ]
        assert worker.processed_count == 2


@pytest.mark.asyncio
async def test_tasks_pushed_before_start_are_processed():
    queue = AsyncTaskQueue(max_size=10)
    handled: list[SyncTask] = []
    queue.push(_task(1))

    worker = SyncWorker(queue, handled.append)
    await worker.start()
    await worker.stop()

    assert handled == [_task(1)]
    assert not worker.running


@pytest.mark.asyncio
async def test_failing_task_is_retried_then_skipped():
    queue = AsyncTaskQueue(max_size=10)
    attempts: list[SyncTask] = []

    def flaky(task: SyncTask) -> None:
        attempts.append(task)
        if task.entity_id == "1":
            raise OSError("disk unavailable")

    worker = SyncWorker(queue, flaky, max_attempts=3, retry_wait=0)
    await worker.start()
    queue.push(_task(1))
    queue.push(_task(2))
    await worker.stop()

    assert [t.entity_id for t in attempts] == ["1", "1", "1", "2"]
    assert worker.failed_count == 1
    assert worker.processed_count == 1


@pytest.mark.asyncio
async def test_push_from_another_thread():
    queue = AsyncTaskQueue(max_size=10)
    handled: list[SyncTask] = []
    worker = SyncWorker(queue, handled.append)
    await worker.start()

    thread = threading.Thread(target=queue.push, args=(_task(5),))
    thread.start()
    thread.join()
    # Let the loop run the threadsafe callback
    await asyncio.sleep(0)
    await worker.stop()

    assert handled == [_task(5)]


@pytest.mark.asyncio
async def test_full_queue_drops_and_counts():
    queue = AsyncTaskQueue(max_size=1)
    queue.bind()

    queue.push(_task(1))
    queue.push(_task(2))

    assert queue.dropped_count == 1
    assert queue.qsize() == 1
    queue.unbind()


@pytest.mark.asyncio
async def test_stop_without_drain_keeps_backlog():
    queue = AsyncTaskQueue(max_size=10)
    release = threading.Event()
    handled: list[SyncTask] = []

    def slow(task: SyncTask) -> None:
        release.wait(timeout=5)
        handled.append(task)

    worker = SyncWorker(queue, slow)
    await worker.start()
    queue.push(_task(1))
    queue.push(_task(2))
    await asyncio.sleep(0.05)

    release.set()
    await worker.stop(drain=False)

    # The task in flight may or may not finish; the queued one is kept
    assert queue.qsize() + len(handled) >= 1
    assert not queue.bound


@pytest.mark.asyncio
async def test_create_safe_task_logs_and_reports_failures():
    errors: list[Exception] = []

    async def boom() -> None:
        raise RuntimeError("boom")

    result = await create_safe_task(boom(), "boom", on_error=errors.append)

    assert result is None
    assert [str(e) for e in errors] == ["boom"]
