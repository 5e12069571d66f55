from model_translation.translations.models import (
    EntityReference,
    SyncTask,
    Translatable,
    Translation,
    Translations,
)

__all__ = [
    "EntityReference",
    "SyncTask",
    "Translatable",
    "Translation",
    "Translations",
]
