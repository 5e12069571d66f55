"""Base models and mixins for SQLModel tables.

Usage:
    class Translation(TranslationBase, TimestampedTable, table=True):
        ...
"""

from datetime import UTC, datetime
import uuid

from sqlmodel import Field, SQLModel


class UUIDPrimaryKeyMixin(SQLModel):
    """Standard UUID primary key for all tables."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)


class TimestampMixin(SQLModel):
    """Created/updated timestamps for audit trail."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TimestampedTable(UUIDPrimaryKeyMixin, TimestampMixin):
    """Base for tables with timestamps."""

    pass
