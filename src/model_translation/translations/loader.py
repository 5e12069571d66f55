from collections.abc import Iterable

from model_translation.drivers.base import TranslationDriver
from model_translation.translations.models import Translatable, Translations


def load_translations(
    entities: Iterable[Translatable],
    language: str,
    driver: TranslationDriver | None = None,
) -> dict[str, Translations]:
    """Fetch translations for a whole collection in one driver call.

    Returns a mapping of entity id -> attributes; entities without
    translations map to {}.
    """
    if driver is None:
        from model_translation.manager import translation_manager

        driver = translation_manager().driver()
    return driver.get_translations_for_models(list(entities), language)
