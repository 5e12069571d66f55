from model_translation.drivers.array_driver import ArrayTranslationDriver
from model_translation.drivers.base import TranslationDriver
from model_translation.drivers.json_driver import JSONTranslationDriver
from model_translation.drivers.sql_driver import SQLTranslationDriver

__all__ = [
    "ArrayTranslationDriver",
    "JSONTranslationDriver",
    "SQLTranslationDriver",
    "TranslationDriver",
]
