from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from model_translation.core.base_models import TimestampedTable
from model_translation.core.config import settings

# Attribute name -> translated value for one entity in one language
Translations = dict[str, str | None]


@runtime_checkable
class Translatable(Protocol):
    """Anything the storage engine can key translations by.

    entity_type is a stable type discriminator (e.g. "app.models.Article"),
    entity_id the instance's primary key.
    """

    @property
    def entity_type(self) -> str: ...

    @property
    def entity_id(self) -> Any: ...


@dataclass(frozen=True)
class EntityReference:
    """Immutable (type, id) pair identifying a translatable object."""

    entity_type: str
    entity_id: str

    def __post_init__(self) -> None:
        if not self.entity_type:
            raise ValueError("entity_type must not be empty")
        # Ids are always compared and stored as strings
        object.__setattr__(self, "entity_id", str(self.entity_id))

    @classmethod
    def of(cls, entity: Translatable) -> "EntityReference":
        if isinstance(entity, EntityReference):
            return entity
        return cls(entity.entity_type, str(entity.entity_id))

    def __str__(self) -> str:
        return f"{self.entity_type}#{self.entity_id}"


class SyncTask(BaseModel):
    """Request to reconcile the language-model map for one (entity, language).

    On the wire the task is {"entityType", "entityId", "language"}.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    entity_type: str
    entity_id: str
    language: str

    @field_validator("entity_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)

    @classmethod
    def for_entity(cls, entity: Translatable, language: str) -> "SyncTask":
        ref = EntityReference.of(entity)
        return cls(
            entity_type=ref.entity_type, entity_id=ref.entity_id, language=language
        )

    @property
    def entity(self) -> EntityReference:
        return EntityReference(self.entity_type, self.entity_id)

    def to_message(self) -> str:
        """Serialize the task for an external queue."""
        return self.model_dump_json(by_alias=True)


class TranslationBase(SQLModel):
    translatable_type: str = Field(max_length=255)
    translatable_id: str = Field(max_length=255)
    language: str = Field(max_length=16)
    name: str = Field(max_length=255)
    value: str | None = Field(default=None)


class Translation(TranslationBase, TimestampedTable, table=True):
    """One translated attribute of one entity in one language."""

    __tablename__ = settings.SQL_TABLE
    __table_args__ = (
        Index(
            f"ix_{settings.SQL_TABLE}_translatable_language",
            "translatable_type",
            "translatable_id",
            "language",
        ),
    )
