"""Reconciles the language-model map with the stored blobs.

sync() never applies a delta: it looks at what the blob store holds right
now for one (entity, language) pair and makes the map agree. Running a task
twice, or running stale tasks out of order, therefore always converges to
the blob store's current state.
"""

from collections.abc import Iterable

from model_translation.core.logging import get_logger
from model_translation.drivers.blob_store import BlobStore, normalize_model_identifier
from model_translation.drivers.language_index import LanguageIndex, LanguageMap
from model_translation.translations.models import (
    EntityReference,
    SyncTask,
    Translatable,
)

logger = get_logger(__name__)


class IndexSynchronizer:
    def __init__(self, blob_store: BlobStore, index: LanguageIndex):
        self.blob_store = blob_store
        self.index = index

    def sync(self, entity: Translatable, language: str) -> bool:
        """Make the map reflect whether the entity has a blob in language.

        Returns True when the entity is listed under language afterwards.
        """
        ref = EntityReference.of(entity)
        # Presence check and map update are one step per language
        with self.index.lock_for(language):
            present = self.blob_store.has_blob(ref, language)
            if present:
                changed = self.index.add_entity(ref, language)
            else:
                changed = self.index.remove_entity(ref, language)

        logger.debug(
            "language_map_synced",
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            language=language,
            present=present,
            changed=changed,
        )
        return present

    def handle(self, task: SyncTask) -> bool:
        return self.sync(task.entity, task.language)

    def handle_message(self, message: str | bytes) -> bool:
        """Entry point for raw queue messages ({"entityType", "entityId", "language"})."""
        return self.handle(SyncTask.model_validate_json(message))

    def remove_from_all_languages(self, entity: Translatable) -> list[str]:
        """Unlist an entity whose blobs are already gone from every language."""
        ref = EntityReference.of(entity)
        changed = self.index.remove_entity_from_all_languages(ref)
        logger.info(
            "language_map_entity_purged",
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            languages=changed,
        )
        return changed

    def sync_all_languages(self, entity: Translatable) -> list[str]:
        """Sync every language the map or the blob store knows for the entity.

        Returns the languages the entity is listed under afterwards.
        """
        ref = EntityReference.of(entity)
        languages = dict.fromkeys(self.index.languages())
        languages.update(dict.fromkeys(self.blob_store.available_languages(ref)))
        return [language for language in languages if self.sync(ref, language)]

    def rebuild(
        self,
        entity_types: Iterable[str] | None = None,
        *,
        dry_run: bool = False,
    ) -> dict[str, LanguageMap]:
        """Reconstruct the map from a full scan of the blob store.

        Type names cannot be recovered from their storage slugs, so only the
        given types are scanned; by default those already known to the map.
        When types are given explicitly, other types' entries are kept.
        """
        explicit = entity_types is not None
        types = list(entity_types) if entity_types is not None else self.index.entity_types()

        known_slugs = {normalize_model_identifier(t) for t in types}
        unknown = [d for d in self.blob_store.entity_types() if d not in known_slugs]
        if unknown and not explicit:
            logger.warning("rebuild_unindexed_type_directories", directories=unknown)

        rebuilt: dict[str, LanguageMap] = {}
        for entity_type in types:
            for entity_id in self.blob_store.entity_ids(entity_type):
                ref = EntityReference(entity_type, entity_id)
                for language in self.blob_store.available_languages(ref):
                    rebuilt.setdefault(language, {}).setdefault(entity_type, []).append(
                        entity_id
                    )

        if dry_run:
            logger.info("language_map_rebuild_dry_run", languages=sorted(rebuilt))
            return rebuilt

        for language in dict.fromkeys([*self.index.languages(), *rebuilt]):
            self.index.replace(
                language,
                rebuilt.get(language, {}),
                entity_types=types if explicit else None,
            )

        logger.info(
            "language_map_rebuilt",
            languages=sorted(rebuilt),
            entity_types=types,
            entries=sum(len(ids) for m in rebuilt.values() for ids in m.values()),
        )
        return rebuilt
