from collections.abc import Iterable, Mapping
from typing import Any

from model_translation.core.config import settings
from model_translation.core.exceptions import StorageError
from model_translation.core.logging import get_logger
from model_translation.core.storage import Disk
from model_translation.core.tasks import InlineTaskQueue, TaskQueue
from model_translation.drivers.base import TranslationDriver
from model_translation.drivers.blob_store import BlobStore
from model_translation.drivers.language_index import LanguageIndex, LanguageMap
from model_translation.sync.synchronizer import IndexSynchronizer
from model_translation.translations.models import (
    EntityReference,
    SyncTask,
    Translatable,
    Translations,
)

logger = get_logger(__name__)


class JSONTranslationDriver(TranslationDriver):
    """Stores translations as JSON blobs and keeps a language-model map.

    Every write goes to the blob store and returns; for each (entity,
    language) pair it touched, one SyncTask is pushed to the queue so the
    language-model map catches up. With the default InlineTaskQueue the map
    is updated before the write returns.

    Reverse lookups read the map (indexed mode) or scan the blobs (scan
    mode, use_index=False).
    """

    def __init__(
        self,
        disk: Disk,
        queue: TaskQueue | None = None,
        *,
        use_index: bool | None = None,
    ):
        self.disk = disk
        self.blobs = BlobStore(disk)
        self.index = LanguageIndex(disk)
        self.synchronizer = IndexSynchronizer(self.blobs, self.index)
        self.queue = queue if queue is not None else InlineTaskQueue(self.synchronizer.handle)
        self.use_index = settings.JSON_CACHE if use_index is None else use_index

    def store_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        try:
            self.blobs.store(entity, language, translations)
        except StorageError as e:
            return self._failed("translations_store_failed", entity, e, language=language)

        self._dispatch(entity, language)
        return True

    def get_translations(self, entity: Translatable, language: str) -> Translations:
        return self.blobs.get(entity, language)

    def get_translations_for_models(
        self, entities: Iterable[Translatable], language: str
    ) -> dict[str, Translations]:
        return self.blobs.get_many(entities, language)

    def get_available_languages(self, entity: Translatable) -> list[str]:
        return self.blobs.available_languages(entity)

    def get_models_available_in_language(
        self, entity_type: str, language: str
    ) -> list[str]:
        if self.use_index:
            return self.index.get_entities_in_language(entity_type, language)
        return self.blobs.entities_in_language(entity_type, language)

    def put_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        return self.store_translations(entity, language, translations)

    def patch_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        try:
            self.blobs.patch(entity, language, translations)
        except StorageError as e:
            return self._failed("translations_patch_failed", entity, e, language=language)

        self._dispatch(entity, language)
        return True

    def delete_all_translations(self, entity: Translatable) -> bool:
        try:
            languages = self.blobs.delete_all(entity)
        except StorageError as e:
            return self._failed("translations_delete_all_failed", entity, e)

        for language in languages:
            self._dispatch(entity, language)
        return True

    def delete_languages(self, entity: Translatable, languages: Iterable[str]) -> bool:
        for language in languages:
            try:
                self.blobs.delete_languages(entity, [language])
            except StorageError as e:
                return self._failed(
                    "translations_delete_language_failed", entity, e, language=language
                )
            self._dispatch(entity, language)
        return True

    def delete_attributes(
        self,
        entity: Translatable,
        attributes: Iterable[str],
        language: str | None = None,
    ) -> bool:
        try:
            languages = self.blobs.delete_attributes(entity, attributes, language)
        except StorageError as e:
            return self._failed(
                "translations_delete_attributes_failed", entity, e, language=language
            )

        for lang in languages:
            self._dispatch(entity, lang)
        return True

    def sync_models_for_language(self, language: str, entity: Translatable) -> bool:
        """Reconcile the map for one pair right now, bypassing the queue."""
        return self.synchronizer.sync(entity, language)

    def remove_model_from_all_languages(self, entity: Translatable) -> list[str]:
        """Drop the entity from every language record of the map."""
        return self.synchronizer.remove_from_all_languages(entity)

    def get_language_model_map(self, language: str) -> LanguageMap:
        return self.index.get_map(language)

    def rebuild_index(
        self, entity_types: Iterable[str] | None = None, *, dry_run: bool = False
    ) -> dict[str, LanguageMap]:
        return self.synchronizer.rebuild(entity_types, dry_run=dry_run)

    def _dispatch(self, entity: Translatable, language: str) -> None:
        task = SyncTask.for_entity(entity, language)
        try:
            self.queue.push(task)
        except StorageError as e:
            # The blob write already succeeded; the map converges on the next sync
            logger.warning(
                "sync_task_failed",
                entity_type=task.entity_type,
                entity_id=task.entity_id,
                language=language,
                error=str(e),
            )

    def _failed(
        self, event: str, entity: Translatable, error: StorageError, **context: Any
    ) -> bool:
        ref = EntityReference.of(entity)
        logger.exception(
            event,
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            error=str(error),
            **context,
        )
        return False
