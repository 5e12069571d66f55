from conftest import ARTICLE, Article
import pytest

from model_translation.drivers.array_driver import ArrayTranslationDriver


@pytest.fixture
def driver() -> ArrayTranslationDriver:
    return ArrayTranslationDriver()


def test_contract_behaviour(driver: ArrayTranslationDriver):
    driver.store_translations(Article(1), "en", {"title": "Hello", "body": "Text"})
    driver.patch_translations(Article(1), "en", {"title": "Hi"})
    driver.store_translations(Article(2), "en", {"title": "Two"})
    driver.store_translations(Article(2), "fr", {"title": "Deux"})

    assert driver.get_translations(Article(1), "en") == {"title": "Hi", "body": "Text"}
    assert driver.get_models_available_in_language(ARTICLE, "en") == ["1", "2"]
    assert driver.get_available_languages(Article(2)) == ["en", "fr"]

    driver.delete_attributes(Article(2), ["title"], "fr")
    assert driver.get_available_languages(Article(2)) == ["en"]

    driver.delete_all_translations(Article(2))
    assert driver.get_models_available_in_language(ARTICLE, "en") == ["1"]


def test_returned_mappings_are_copies(driver: ArrayTranslationDriver):
    driver.store_translations(Article(1), "en", {"title": "Hello"})

    driver.get_translations(Article(1), "en")["title"] = "Changed"

    assert driver.get_translations(Article(1), "en") == {"title": "Hello"}


def test_assert_has_translation(driver: ArrayTranslationDriver):
    driver.store_translations(Article(1), "en", {"title": "Hello"})

    driver.assert_has_translation(Article(1), "title", "en")
    with pytest.raises(AssertionError, match="was not translated to fr"):
        driver.assert_has_translation(Article(1), "title", "fr")


def test_assert_not_has_translation(driver: ArrayTranslationDriver):
    driver.store_translations(Article(1), "en", {"title": "Hello"})

    driver.assert_not_has_translation(Article(1), "title", "fr")
    with pytest.raises(AssertionError, match="has title translated to en"):
        driver.assert_not_has_translation(Article(1), "title", "en")


def test_assert_translation(driver: ArrayTranslationDriver):
    driver.store_translations(Article(1), "en", {"title": "Hello"})

    driver.assert_translation(Article(1), "title", "en", "Hello")
    with pytest.raises(AssertionError, match="instead of the expected Hi"):
        driver.assert_translation(Article(1), "title", "en", "Hi")
    with pytest.raises(ValueError):
        driver.assert_translation(Article(1), "body", "en", "Text")
