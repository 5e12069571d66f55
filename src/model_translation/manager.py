"""Driver registry resolving translation drivers by name.

Built-in drivers:
- json: blobs on the configured disk plus a language-model map
- sql (alias mysql): one row per translated attribute
- array: in-memory, for tests

Usage:
    manager = translation_manager()
    manager.extend("redis", lambda: RedisTranslationDriver(client))
    driver = manager.driver()          # default driver
    driver = manager.driver("sql")     # named driver
"""

from collections.abc import Callable
from functools import lru_cache
from typing import cast

from model_translation.core.config import settings
from model_translation.core.exceptions import (
    InvalidTranslationDriverError,
    NoDefaultDriverError,
    UnknownDriverError,
)
from model_translation.core.logging import get_logger
from model_translation.core.storage import Disk, create_disk
from model_translation.core.tasks import (
    AsyncTaskQueue,
    DeferredTaskQueue,
    InlineTaskQueue,
    NullTaskQueue,
    TaskQueue,
)
from model_translation.drivers.array_driver import ArrayTranslationDriver
from model_translation.drivers.base import TranslationDriver, missing_operations
from model_translation.drivers.json_driver import JSONTranslationDriver
from model_translation.drivers.sql_driver import SQLTranslationDriver
from model_translation.sync.worker import SyncWorker

logger = get_logger(__name__)

DriverCreator = Callable[[], object]


def create_json_driver(
    disk: Disk | None = None, queue_kind: str | None = None
) -> JSONTranslationDriver:
    """Build the JSON driver with the configured disk and sync queue."""
    driver = JSONTranslationDriver(disk or create_disk())
    kind = queue_kind or settings.QUEUE
    queue: TaskQueue
    if kind == "sync":
        queue = InlineTaskQueue(driver.synchronizer.handle)
    elif kind == "async":
        queue = AsyncTaskQueue()
    elif kind == "deferred":
        queue = DeferredTaskQueue()
    elif kind == "null":
        queue = NullTaskQueue()
    else:
        raise ValueError(f"Unknown sync queue: {kind}")
    driver.queue = queue
    return driver


class TranslationManager:
    """Creates, validates and caches translation drivers by name."""

    def __init__(self) -> None:
        self._creators: dict[str, DriverCreator] = {
            "json": create_json_driver,
            "sql": SQLTranslationDriver,
            "mysql": SQLTranslationDriver,
            "array": ArrayTranslationDriver,
        }
        self._custom_creators: dict[str, DriverCreator] = {}
        self._drivers: dict[str, TranslationDriver] = {}
        self._default: str | None = None

    def driver(self, name: str | None = None) -> TranslationDriver:
        """Resolve a driver, creating it on first use."""
        name = name or self.get_default_driver()
        if name not in self._drivers:
            self._drivers[name] = self._resolve(name)
        return self._drivers[name]

    def extend(self, name: str, creator: DriverCreator) -> "TranslationManager":
        """Register a custom driver creator, overriding any built-in of that name."""
        self._custom_creators[name] = creator
        self._drivers.pop(name, None)
        logger.debug("translation_driver_registered", driver=name)
        return self

    def get_default_driver(self) -> str:
        name = self._default or settings.DRIVER
        if not name:
            raise NoDefaultDriverError()
        return name

    def set_default_driver(self, name: str) -> None:
        self._default = name

    def get_available_drivers(self) -> list[str]:
        return list(dict.fromkeys([*self._creators, *self._custom_creators]))

    def get_registered_extension_names(self) -> list[str]:
        return list(self._custom_creators)

    def fake(self) -> ArrayTranslationDriver:
        """Swap the default driver for a fresh in-memory one."""
        self._drivers.pop("array", None)
        self.set_default_driver("array")
        return cast(ArrayTranslationDriver, self.driver("array"))

    def forget_drivers(self) -> None:
        """Drop cached driver instances; the next lookup recreates them."""
        self._drivers.clear()

    def sync_worker(self, name: str = "json", **kwargs) -> SyncWorker:
        """Build a SyncWorker consuming the named JSON driver's async queue."""
        driver = self.driver(name)
        if not isinstance(driver, JSONTranslationDriver) or not isinstance(
            driver.queue, AsyncTaskQueue
        ):
            raise ValueError(f"Translation driver [{name}] has no async sync queue")
        return SyncWorker(driver.queue, driver.synchronizer.handle, **kwargs)

    def _resolve(self, name: str) -> TranslationDriver:
        creator = self._custom_creators.get(name) or self._creators.get(name)
        if creator is None:
            raise UnknownDriverError(name)

        driver = creator()
        if not isinstance(driver, TranslationDriver):
            raise InvalidTranslationDriverError(name, missing_operations(driver))
        missing = missing_operations(driver)
        if missing:
            raise InvalidTranslationDriverError(name, missing)

        logger.info(
            "translation_driver_resolved", driver=name, driver_class=type(driver).__name__
        )
        return driver


@lru_cache(maxsize=1)
def translation_manager() -> TranslationManager:
    """Process-wide manager instance."""
    return TranslationManager()
