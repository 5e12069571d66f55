"""Unit of Work pattern for atomic database operations.

Provides transaction management with automatic commit/rollback, so the
relational driver's multi-row writes (replace, merge, delete) succeed or
fail together.

Based on patterns from Cosmic Python:
https://www.cosmicpython.com/book/chapter_06_uow.html
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlmodel import Session

from model_translation.core.logging import get_logger

logger = get_logger(__name__)


class UnitOfWork:
    """Manages a database transaction.

    Wraps a SQLModel session and provides explicit commit/rollback control.
    Use with the `atomic()` context manager for automatic handling.
    """

    def __init__(self, session: Session):
        self._session = session
        self._committed = False

    @property
    def session(self) -> Session:
        return self._session

    def commit(self) -> None:
        """Commit the transaction. Subsequent calls are no-ops."""
        if not self._committed:
            self._session.commit()
            self._committed = True
            logger.debug("uow_committed")

    def rollback(self) -> None:
        """Rollback the transaction. Safe to call multiple times or after commit."""
        if not self._committed:
            self._session.rollback()
            logger.debug("uow_rolled_back")


@contextmanager
def atomic(engine: Engine) -> Generator[UnitOfWork, None, None]:
    """Run the block in one transaction, committed on success.

    Usage:
        with atomic(engine) as uow:
            for row in rows:
                uow.session.add(row)
    """
    session = Session(engine)
    uow = UnitOfWork(session)

    try:
        yield uow
        uow.commit()
    except Exception:
        uow.rollback()
        raise
    finally:
        session.close()


@contextmanager
def read_only(engine: Engine) -> Generator[Session, None, None]:
    """Session for queries that never commit."""
    session = Session(engine)
    try:
        yield session
    finally:
        session.rollback()
        session.close()
