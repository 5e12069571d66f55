"""JSON blob storage: one attribute map per (entity type, entity id, language).

Blobs live at "<type-slug>/<entity id>/<language>.json" on a Disk. This
layer knows nothing about the language-model map or sync tasks; the JSON
driver layers those on top.
"""

from collections.abc import Iterable, Mapping
import json
import re
from typing import Any
import unicodedata

from model_translation.core.exceptions import StorageError
from model_translation.core.logging import get_logger
from model_translation.core.storage import Disk
from model_translation.translations.models import (
    EntityReference,
    Translatable,
    Translations,
)

logger = get_logger(__name__)

BLOB_SUFFIX = ".json"

# Reserved top-level namespace holding the language-model map records
META_DIRECTORY = "meta"


def normalize_model_identifier(entity_type: str) -> str:
    """Turn an entity type name into a key-safe slug.

    "App\\Models\\Article" -> "app-models-article"
    """
    # Namespace separators become word separators
    identifier = re.sub(r"[\\/.]", "_", entity_type)

    identifier = (
        unicodedata.normalize("NFKD", identifier)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    identifier = identifier.lower()
    # Collapse everything that is not a letter or digit into a single dash
    identifier = re.sub(r"[^a-z0-9]+", "-", identifier).strip("-")

    if not identifier:
        raise ValueError(f"Entity type {entity_type!r} has no key-safe characters")
    return identifier


def validate_key_component(value: str, name: str) -> str:
    """Reject values that would address another namespace on the disk."""
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"Invalid {name} for a storage key: {value!r}")
    return value


def natural_id_key(entity_id: str) -> tuple[int, int, str]:
    """Sort numeric ids numerically, then everything else lexically."""
    if entity_id.isdigit():
        return (0, int(entity_id), "")
    return (1, 0, entity_id)


def encode_blob(attributes: Mapping[str, Any]) -> bytes:
    return json.dumps(dict(attributes), ensure_ascii=False).encode("utf-8")


def decode_blob(data: bytes | None, key: str = "") -> Translations:
    if not data or not data.strip():
        return {}
    try:
        decoded = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageError(f"Corrupt translation blob at {key}: {e}", key=key) from e
    if not isinstance(decoded, dict):
        raise StorageError(f"Translation blob at {key} is not an object", key=key)
    return decoded


class BlobStore:
    """Reads and writes translation blobs on a disk."""

    def __init__(self, disk: Disk):
        self.disk = disk

    def type_directory(self, entity_type: str) -> str:
        directory = normalize_model_identifier(entity_type)
        if directory == META_DIRECTORY:
            raise ValueError(f"Entity type {entity_type!r} collides with the map records")
        return directory

    def path_for(self, entity: Translatable, language: str | None = None) -> str:
        ref = EntityReference.of(entity)
        entity_id = validate_key_component(ref.entity_id, "entity id")
        path = f"{self.type_directory(ref.entity_type)}/{entity_id}"
        if language is not None:
            validate_key_component(language, "language")
            path += f"/{language}{BLOB_SUFFIX}"
        return path

    def store(
        self, entity: Translatable, language: str, attributes: Mapping[str, Any]
    ) -> None:
        """Overwrite the blob. An empty mapping removes the blob instead."""
        path = self.path_for(entity, language)
        if not attributes:
            self.disk.delete(path)
            logger.debug("blob_removed_empty", path=path)
            return
        self.disk.write(path, encode_blob(attributes))
        logger.debug("blob_stored", path=path, attributes=len(attributes))

    def get(self, entity: Translatable, language: str) -> Translations:
        path = self.path_for(entity, language)
        return decode_blob(self.disk.read(path), path)

    def get_many(
        self, entities: Iterable[Translatable], language: str
    ) -> dict[str, Translations]:
        return {
            EntityReference.of(entity).entity_id: self.get(entity, language)
            for entity in entities
        }

    def patch(
        self, entity: Translatable, language: str, attributes: Mapping[str, Any]
    ) -> Translations:
        merged = {**self.get(entity, language), **attributes}
        self.store(entity, language, merged)
        return merged

    def stored_languages(self, entity: Translatable) -> list[str]:
        """Languages with a blob file, judged by key names alone."""
        languages = []
        for key in self.disk.list_keys(self.path_for(entity)):
            language = self._language_from_key(key)
            if language is not None:
                languages.append(language)
        return languages

    def available_languages(self, entity: Translatable) -> list[str]:
        return [
            language
            for language in self.stored_languages(entity)
            if self.has_blob(entity, language)
        ]

    def has_blob(self, entity: Translatable, language: str) -> bool:
        """True for non-empty blobs. Unreadable blobs count as present."""
        path = self.path_for(entity, language)
        data = self.disk.read(path)
        try:
            return bool(decode_blob(data, path))
        except StorageError as e:
            logger.warning("blob_unreadable", path=path, error=str(e))
            return True

    def delete_all(self, entity: Translatable) -> list[str]:
        """Remove every blob of the entity. Returns the languages it had."""
        languages = self.stored_languages(entity)
        self.disk.delete_prefix(self.path_for(entity))
        return languages

    def delete_languages(self, entity: Translatable, languages: Iterable[str]) -> None:
        for language in languages:
            self.disk.delete(self.path_for(entity, language))

    def delete_attributes(
        self,
        entity: Translatable,
        attribute_names: Iterable[str],
        language: str | None = None,
    ) -> list[str]:
        """Strip attributes from one or every language of the entity.

        Blobs left empty are deleted. Returns the languages processed.
        """
        names = set(attribute_names)
        languages = (
            [language] if language is not None else self.available_languages(entity)
        )

        processed = []
        for lang in languages:
            path = self.path_for(entity, lang)
            data = self.disk.read(path)
            if data is None:
                continue
            try:
                current = decode_blob(data, path)
            except StorageError as e:
                logger.warning("blob_unreadable", path=path, error=str(e))
                continue
            remaining = {k: v for k, v in current.items() if k not in names}
            self.store(entity, lang, remaining)
            processed.append(lang)
        return processed

    def entity_types(self) -> list[str]:
        """Type directories present on the disk (slugs, not original names)."""
        return [
            key
            for key in self.disk.list_dirs("")
            if key != META_DIRECTORY
        ]

    def entity_ids(self, entity_type: str) -> list[str]:
        directory = self.type_directory(entity_type)
        ids = [key.rsplit("/", 1)[-1] for key in self.disk.list_dirs(directory)]
        return sorted(ids, key=natural_id_key)

    def entities_in_language(self, entity_type: str, language: str) -> list[str]:
        """Scan the type's namespace for instances with a blob in language."""
        return [
            entity_id
            for entity_id in self.entity_ids(entity_type)
            if self.has_blob(EntityReference(entity_type, entity_id), language)
        ]

    @staticmethod
    def _language_from_key(key: str) -> str | None:
        name = key.rsplit("/", 1)[-1]
        if not name.endswith(BLOB_SUFFIX):
            return None
        return name[: -len(BLOB_SUFFIX)]
