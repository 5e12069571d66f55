from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from model_translation.core.db import create_tables, get_engine
from model_translation.core.logging import get_logger
from model_translation.core.uow import atomic, read_only
from model_translation.drivers.base import TranslationDriver
from model_translation.drivers.blob_store import natural_id_key
from model_translation.translations.models import (
    EntityReference,
    Translatable,
    Translation,
    Translations,
)

logger = get_logger(__name__)


def _stringify(value: Any) -> str | None:
    return None if value is None else str(value)


class SQLTranslationDriver(TranslationDriver):
    """Stores one row per (type, id, language, attribute).

    Reverse lookups query the table directly, so there is no index to keep
    in sync.
    """

    def __init__(self, engine: Engine | None = None):
        self.engine = engine or get_engine()

    def create_tables(self) -> None:
        create_tables(self.engine)

    def _rows(
        self,
        session: Session,
        ref: EntityReference,
        languages: Iterable[str] | None = None,
        names: Iterable[str] | None = None,
    ) -> list[Translation]:
        statement = select(Translation).where(
            Translation.translatable_type == ref.entity_type,
            Translation.translatable_id == ref.entity_id,
        )
        if languages is not None:
            statement = statement.where(col(Translation.language).in_(list(languages)))
        if names is not None:
            statement = statement.where(col(Translation.name).in_(list(names)))
        return list(session.exec(statement).all())

    def store_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        ref = EntityReference.of(entity)
        try:
            with atomic(self.engine) as uow:
                for row in self._rows(uow.session, ref, [language]):
                    uow.session.delete(row)
                for name, value in translations.items():
                    uow.session.add(
                        Translation(
                            translatable_type=ref.entity_type,
                            translatable_id=ref.entity_id,
                            language=language,
                            name=name,
                            value=_stringify(value),
                        )
                    )
        except SQLAlchemyError as e:
            return self._failed("translations_store_failed", ref, e, language=language)

        logger.debug(
            "translations_stored",
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            language=language,
            count=len(translations),
        )
        return True

    def get_translations(self, entity: Translatable, language: str) -> Translations:
        ref = EntityReference.of(entity)
        with read_only(self.engine) as session:
            return {
                row.name: row.value for row in self._rows(session, ref, [language])
            }

    def get_translations_for_models(
        self, entities: Iterable[Translatable], language: str
    ) -> dict[str, Translations]:
        refs = [EntityReference.of(entity) for entity in entities]
        result: dict[str, Translations] = {ref.entity_id: {} for ref in refs}
        if not refs:
            return result

        by_type: dict[str, list[str]] = {}
        for ref in refs:
            by_type.setdefault(ref.entity_type, []).append(ref.entity_id)

        with read_only(self.engine) as session:
            for entity_type, ids in by_type.items():
                statement = select(Translation).where(
                    Translation.translatable_type == entity_type,
                    col(Translation.translatable_id).in_(ids),
                    Translation.language == language,
                )
                for row in session.exec(statement).all():
                    result[row.translatable_id][row.name] = row.value
        return result

    def get_available_languages(self, entity: Translatable) -> list[str]:
        ref = EntityReference.of(entity)
        statement = (
            select(Translation.language)
            .where(
                Translation.translatable_type == ref.entity_type,
                Translation.translatable_id == ref.entity_id,
            )
            .distinct()
        )
        with read_only(self.engine) as session:
            return sorted(session.exec(statement).all())

    def get_models_available_in_language(
        self, entity_type: str, language: str
    ) -> list[str]:
        statement = (
            select(Translation.translatable_id)
            .where(
                Translation.translatable_type == entity_type,
                Translation.language == language,
            )
            .distinct()
        )
        with read_only(self.engine) as session:
            return sorted(session.exec(statement).all(), key=natural_id_key)

    def put_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        return self.store_translations(entity, language, translations)

    def patch_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        ref = EntityReference.of(entity)
        try:
            with atomic(self.engine) as uow:
                existing = {
                    row.name: row
                    for row in self._rows(uow.session, ref, [language], translations)
                }
                for name, value in translations.items():
                    row = existing.get(name)
                    if row is None:
                        row = Translation(
                            translatable_type=ref.entity_type,
                            translatable_id=ref.entity_id,
                            language=language,
                            name=name,
                        )
                    row.value = _stringify(value)
                    row.updated_at = datetime.now(UTC)
                    uow.session.add(row)
        except SQLAlchemyError as e:
            return self._failed("translations_patch_failed", ref, e, language=language)
        return True

    def delete_all_translations(self, entity: Translatable) -> bool:
        return self._delete(EntityReference.of(entity), "translations_delete_all_failed")

    def delete_languages(self, entity: Translatable, languages: Iterable[str]) -> bool:
        return self._delete(
            EntityReference.of(entity),
            "translations_delete_language_failed",
            languages=list(languages),
        )

    def delete_attributes(
        self,
        entity: Translatable,
        attributes: Iterable[str],
        language: str | None = None,
    ) -> bool:
        return self._delete(
            EntityReference.of(entity),
            "translations_delete_attributes_failed",
            languages=[language] if language is not None else None,
            names=list(attributes),
        )

    def _delete(
        self,
        ref: EntityReference,
        event: str,
        languages: list[str] | None = None,
        names: list[str] | None = None,
    ) -> bool:
        try:
            with atomic(self.engine) as uow:
                rows = self._rows(uow.session, ref, languages, names)
                for row in rows:
                    uow.session.delete(row)
        except SQLAlchemyError as e:
            return self._failed(event, ref, e, languages=languages)

        logger.debug(
            "translations_deleted",
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            rows=len(rows),
        )
        return True

    def _failed(
        self, event: str, ref: EntityReference, error: SQLAlchemyError, **context: Any
    ) -> bool:
        logger.exception(
            event,
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            error=str(error),
            **context,
        )
        return False
