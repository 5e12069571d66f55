from functools import lru_cache

from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from model_translation.core.config import settings


def create_db_engine(uri: str | None = None) -> Engine:
    """Create an engine for the relational driver.

    SQLite URIs get thread-agnostic connections; an in-memory SQLite
    database shares a single connection so every session sees the same data.
    """
    uri = uri or settings.DATABASE_URI
    kwargs: dict = {"echo": settings.DEBUG and settings.ENVIRONMENT == "local"}

    if uri.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if uri in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True, pool_recycle=3600)

    return create_engine(uri, **kwargs)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


def create_tables(engine: Engine | None = None) -> None:
    # Registers the translations table on SQLModel.metadata
    from model_translation.translations.models import Translation  # noqa: F401

    SQLModel.metadata.create_all(engine or get_engine())
