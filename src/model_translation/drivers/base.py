"""The storage contract every translation driver implements.

Mutating operations return False when the underlying storage fails; they
never raise for I/O problems. Missing data is never an error: readers get
{} or [].
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from model_translation.translations.models import Translatable, Translations


class TranslationDriver(ABC):
    @abstractmethod
    def store_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        """Write the entity's translations for language, replacing any existing."""

    @abstractmethod
    def get_translations(self, entity: Translatable, language: str) -> Translations:
        """Return the entity's translations for language, {} if there are none."""

    @abstractmethod
    def get_translations_for_models(
        self, entities: Iterable[Translatable], language: str
    ) -> dict[str, Translations]:
        """Batched get_translations keyed by entity id. Every entity is present."""

    @abstractmethod
    def get_available_languages(self, entity: Translatable) -> list[str]:
        """Languages the entity has translations in."""

    @abstractmethod
    def get_models_available_in_language(
        self, entity_type: str, language: str
    ) -> list[str]:
        """Ids of every entity of entity_type translated into language."""

    @abstractmethod
    def put_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        """Replace the entity's translations for language."""

    @abstractmethod
    def patch_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        """Merge translations over the existing ones; untouched attributes survive."""

    @abstractmethod
    def delete_all_translations(self, entity: Translatable) -> bool:
        """Delete the entity's translations in every language."""

    @abstractmethod
    def delete_languages(self, entity: Translatable, languages: Iterable[str]) -> bool:
        """Delete the entity's translations in the given languages."""

    @abstractmethod
    def delete_attributes(
        self,
        entity: Translatable,
        attributes: Iterable[str],
        language: str | None = None,
    ) -> bool:
        """Delete attributes in one language, or in every language when omitted."""


DRIVER_CONTRACT: tuple[str, ...] = tuple(sorted(TranslationDriver.__abstractmethods__))


def missing_operations(driver: object) -> list[str]:
    """Contract operations the driver does not provide as callables."""
    return [
        name for name in DRIVER_CONTRACT if not callable(getattr(driver, name, None))
    ]
