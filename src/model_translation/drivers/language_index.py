"""The language-model map: a reverse index from language to translated entities.

Each language owns one record, "meta/<language>.json", mapping entity type
to the ordered, duplicate-free list of entity ids that have a blob in that
language. Empty type lists are pruned, and a language whose map becomes
empty has its record deleted.

Read-modify-write cycles on one language record are serialised with a
per-language re-entrant lock; different languages never contend.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
import json
import threading

from model_translation.core.exceptions import StorageError
from model_translation.core.logging import get_logger
from model_translation.core.storage import Disk
from model_translation.drivers.blob_store import (
    BLOB_SUFFIX,
    META_DIRECTORY,
    validate_key_component,
)
from model_translation.translations.models import EntityReference, Translatable

logger = get_logger(__name__)

LanguageMap = dict[str, list[str]]


class LanguageIndex:
    def __init__(self, disk: Disk):
        self.disk = disk
        self._locks: defaultdict[str, threading.RLock] = defaultdict(
            threading.RLock
        )
        self._locks_guard = threading.Lock()

    def record_path(self, language: str) -> str:
        validate_key_component(language, "language")
        return f"{META_DIRECTORY}/{language}{BLOB_SUFFIX}"

    def lock_for(self, language: str) -> threading.RLock:
        """Re-entrant lock guarding the language's record."""
        with self._locks_guard:
            return self._locks[language]

    def languages(self) -> list[str]:
        """Languages that currently have a record."""
        return [
            key.rsplit("/", 1)[-1][: -len(BLOB_SUFFIX)]
            for key in self.disk.list_keys(META_DIRECTORY)
            if key.endswith(BLOB_SUFFIX)
        ]

    def get_map(self, language: str) -> LanguageMap:
        path = self.record_path(language)
        data = self.disk.read(path)
        if not data:
            return {}
        try:
            decoded = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Corrupt language map at {path}: {e}", key=path) from e
        return {
            entity_type: [str(entity_id) for entity_id in ids]
            for entity_type, ids in decoded.items()
        }

    def save_map(self, language: str, mapping: Mapping[str, Iterable[str]]) -> None:
        """Persist a language's map, pruning empty types and empty records."""
        pruned = {
            entity_type: _unique(ids)
            for entity_type, ids in mapping.items()
        }
        pruned = {entity_type: ids for entity_type, ids in pruned.items() if ids}

        path = self.record_path(language)
        if not pruned:
            if self.disk.delete(path):
                logger.debug("language_map_removed", language=language)
            return
        self.disk.write(path, json.dumps(pruned, ensure_ascii=False).encode("utf-8"))

    def get_entities_in_language(self, entity_type: str, language: str) -> list[str]:
        return self.get_map(language).get(entity_type, [])

    def contains(self, entity: Translatable, language: str) -> bool:
        ref = EntityReference.of(entity)
        return ref.entity_id in self.get_entities_in_language(ref.entity_type, language)

    def add_entity(self, entity: Translatable, language: str) -> bool:
        """Add the entity under language. Returns False if it was already there."""
        ref = EntityReference.of(entity)
        with self.lock_for(language):
            mapping = self.get_map(language)
            ids = mapping.setdefault(ref.entity_type, [])
            if ref.entity_id in ids:
                return False
            ids.append(ref.entity_id)
            self.save_map(language, mapping)

        logger.debug(
            "language_map_entity_added",
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            language=language,
        )
        return True

    def remove_entity(self, entity: Translatable, language: str) -> bool:
        """Remove the entity from language. Returns False if it was not there."""
        ref = EntityReference.of(entity)
        with self.lock_for(language):
            mapping = self.get_map(language)
            ids = mapping.get(ref.entity_type, [])
            if ref.entity_id not in ids:
                return False
            mapping[ref.entity_type] = [i for i in ids if i != ref.entity_id]
            self.save_map(language, mapping)

        logger.debug(
            "language_map_entity_removed",
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
            language=language,
        )
        return True

    def remove_entity_from_all_languages(
        self, entity: Translatable, languages: Iterable[str] | None = None
    ) -> list[str]:
        """Remove the entity from every language referencing it.

        Languages are discovered from the map's own records unless given.
        Returns the languages that actually changed.
        """
        candidates = list(languages) if languages is not None else self.languages()
        return [
            language for language in candidates if self.remove_entity(entity, language)
        ]

    def replace(
        self,
        language: str,
        mapping: Mapping[str, Iterable[str]],
        entity_types: Iterable[str] | None = None,
    ) -> None:
        """Replace a language's whole map, or only the given types' entries."""
        with self.lock_for(language):
            if entity_types is None:
                self.save_map(language, mapping)
                return
            merged: dict[str, Iterable[str]] = dict(self.get_map(language))
            for entity_type in entity_types:
                merged[entity_type] = mapping.get(entity_type, [])
            self.save_map(language, merged)

    def entity_types(self) -> list[str]:
        """Every entity type referenced by any language record."""
        seen: dict[str, None] = {}
        for language in self.languages():
            for entity_type in self.get_map(language):
                seen.setdefault(entity_type, None)
        return list(seen)


def _unique(ids: Iterable[str]) -> list[str]:
    # dict keeps first-insertion order
    return list(dict.fromkeys(str(i) for i in ids))
