"""Per-entity, per-language translation storage with a language-model map."""

from model_translation.drivers import (
    ArrayTranslationDriver,
    JSONTranslationDriver,
    SQLTranslationDriver,
    TranslationDriver,
)
from model_translation.manager import TranslationManager, translation_manager
from model_translation.translations.loader import load_translations
from model_translation.translations.models import EntityReference, SyncTask

__all__ = [
    "ArrayTranslationDriver",
    "EntityReference",
    "JSONTranslationDriver",
    "SQLTranslationDriver",
    "SyncTask",
    "TranslationDriver",
    "TranslationManager",
    "load_translations",
    "translation_manager",
]
