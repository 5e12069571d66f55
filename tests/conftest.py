import os

# Settings are read once at import time, so test defaults must be in place first
os.environ.setdefault("TRANSLATION_ENVIRONMENT", "local")
os.environ.setdefault("TRANSLATION_JSON_DISK", "memory")
os.environ.setdefault("TRANSLATION_DATABASE_URI", "sqlite://")
os.environ.setdefault("TRANSLATION_QUEUE", "sync")

from dataclasses import dataclass  # noqa: E402

import pytest  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from model_translation.core.db import create_db_engine, create_tables  # noqa: E402
from model_translation.core.storage import MemoryDisk  # noqa: E402
from model_translation.drivers.blob_store import BlobStore  # noqa: E402
from model_translation.drivers.json_driver import JSONTranslationDriver  # noqa: E402
from model_translation.drivers.language_index import LanguageIndex  # noqa: E402
from model_translation.drivers.sql_driver import SQLTranslationDriver  # noqa: E402
from model_translation.sync.synchronizer import IndexSynchronizer  # noqa: E402

ARTICLE = "App\\Models\\Article"
PAGE = "App\\Models\\Page"


@dataclass
class Article:
    """Stand-in for an application model."""

    id: int

    @property
    def entity_type(self) -> str:
        return ARTICLE

    @property
    def entity_id(self) -> int:
        return self.id


@pytest.fixture
def disk() -> MemoryDisk:
    return MemoryDisk()


@pytest.fixture
def blob_store(disk: MemoryDisk) -> BlobStore:
    return BlobStore(disk)


@pytest.fixture
def index(disk: MemoryDisk) -> LanguageIndex:
    return LanguageIndex(disk)


@pytest.fixture
def synchronizer(blob_store: BlobStore, index: LanguageIndex) -> IndexSynchronizer:
    return IndexSynchronizer(blob_store, index)


@pytest.fixture
def json_driver(disk: MemoryDisk) -> JSONTranslationDriver:
    return JSONTranslationDriver(disk, use_index=True)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    create_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def sql_driver(engine) -> SQLTranslationDriver:
    return SQLTranslationDriver(engine)
