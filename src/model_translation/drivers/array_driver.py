from collections.abc import Iterable, Mapping
from typing import Any

from model_translation.drivers.base import TranslationDriver
from model_translation.translations.models import (
    EntityReference,
    Translatable,
    Translations,
)


class ArrayTranslationDriver(TranslationDriver):
    """In-memory driver for tests.

    Translations live in a nested dict: type -> id -> language -> attributes.
    Empty attribute maps are pruned just like the JSON driver prunes blobs,
    so reverse lookups are always exact.
    """

    def __init__(self) -> None:
        self._translations: dict[str, dict[str, dict[str, Translations]]] = {}

    def _languages(self, entity: Translatable) -> dict[str, Translations]:
        ref = EntityReference.of(entity)
        return self._translations.get(ref.entity_type, {}).get(ref.entity_id, {})

    def _set(self, entity: Translatable, language: str, translations: Translations) -> None:
        ref = EntityReference.of(entity)
        if translations:
            instances = self._translations.setdefault(ref.entity_type, {})
            instances.setdefault(ref.entity_id, {})[language] = translations
            return

        instances = self._translations.get(ref.entity_type, {})
        languages = instances.get(ref.entity_id, {})
        languages.pop(language, None)
        if not languages:
            instances.pop(ref.entity_id, None)
        if not instances:
            self._translations.pop(ref.entity_type, None)

    def store_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        self._set(entity, language, dict(translations))
        return True

    def get_translations(self, entity: Translatable, language: str) -> Translations:
        return dict(self._languages(entity).get(language, {}))

    def get_translations_for_models(
        self, entities: Iterable[Translatable], language: str
    ) -> dict[str, Translations]:
        return {
            EntityReference.of(entity).entity_id: self.get_translations(entity, language)
            for entity in entities
        }

    def get_available_languages(self, entity: Translatable) -> list[str]:
        return list(self._languages(entity))

    def get_models_available_in_language(
        self, entity_type: str, language: str
    ) -> list[str]:
        instances = self._translations.get(entity_type, {})
        return [
            entity_id
            for entity_id, languages in instances.items()
            if language in languages
        ]

    def put_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        return self.store_translations(entity, language, translations)

    def patch_translations(
        self, entity: Translatable, language: str, translations: Mapping[str, Any]
    ) -> bool:
        merged = {**self.get_translations(entity, language), **translations}
        self._set(entity, language, merged)
        return True

    def delete_all_translations(self, entity: Translatable) -> bool:
        for language in self.get_available_languages(entity):
            self._set(entity, language, {})
        return True

    def delete_languages(self, entity: Translatable, languages: Iterable[str]) -> bool:
        for language in languages:
            self._set(entity, language, {})
        return True

    def delete_attributes(
        self,
        entity: Translatable,
        attributes: Iterable[str],
        language: str | None = None,
    ) -> bool:
        names = set(attributes)
        languages = (
            [language] if language is not None else self.get_available_languages(entity)
        )
        for lang in languages:
            remaining = {
                k: v for k, v in self.get_translations(entity, lang).items() if k not in names
            }
            self._set(entity, lang, remaining)
        return True

    def assert_has_translation(
        self, entity: Translatable, attribute: str, language: str
    ) -> None:
        """Assert that the entity's attribute is translated into language."""
        if not self._translation_exists(entity, attribute, language):
            raise AssertionError(
                f"Provided model's {attribute} was not translated to {language}"
            )

    def assert_not_has_translation(
        self, entity: Translatable, attribute: str, language: str
    ) -> None:
        """Assert that the entity's attribute is not translated into language."""
        if self._translation_exists(entity, attribute, language):
            raise AssertionError(
                f"The provided model has {attribute} translated to {language}"
            )

    def assert_translation(
        self, entity: Translatable, attribute: str, language: str, expected: Any
    ) -> None:
        """Assert the translated value of the entity's attribute in language."""
        if not self._translation_exists(entity, attribute, language):
            raise ValueError("The requested translation does not exist.")

        translation = self._languages(entity)[language][attribute]
        if translation != expected:
            raise AssertionError(
                f"The provided model's {attribute} was translated as {translation} "
                f"instead of the expected {expected}."
            )

    def _translation_exists(
        self, entity: Translatable, attribute: str, language: str
    ) -> bool:
        return attribute in self._languages(entity).get(language, {})
