from conftest import ARTICLE, Article
import pytest

from model_translation.cli import build_parser, main
from model_translation.core.storage import MemoryDisk
from model_translation.core.tasks import NullTaskQueue
from model_translation.drivers.array_driver import ArrayTranslationDriver
from model_translation.drivers.json_driver import JSONTranslationDriver
from model_translation.manager import TranslationManager


@pytest.fixture
def manager() -> TranslationManager:
    manager = TranslationManager()
    driver = JSONTranslationDriver(MemoryDisk(), NullTaskQueue(), use_index=True)
    manager.extend("json", lambda: driver)
    return manager


def test_rebuild_index(manager: TranslationManager, capsys):
    driver = manager.driver("json")
    driver.store_translations(Article(1), "en", {"title": "Hello"})

    assert main(["rebuild-index", "--type", ARTICLE], manager) == 0

    assert driver.get_models_available_in_language(ARTICLE, "en") == ["1"]
    assert "REBUILD COMPLETE" in capsys.readouterr().out


def test_rebuild_index_dry_run(manager: TranslationManager, capsys):
    driver = manager.driver("json")
    driver.store_translations(Article(1), "en", {"title": "Hello"})

    assert main(["rebuild-index", "--type", ARTICLE, "--dry-run"], manager) == 0

    assert driver.get_models_available_in_language(ARTICLE, "en") == []
    out = capsys.readouterr().out
    assert "DRY RUN SUMMARY" in out
    assert f"en  {ARTICLE}: 1 entities" in out


def test_rebuild_index_needs_json_driver(manager: TranslationManager):
    assert main(["rebuild-index", "--driver", "array"], manager) == 1


def test_check_drivers_reports_failures(manager: TranslationManager, capsys):
    manager.extend("broken", object)

    assert main(["check-drivers", "array", "broken", "missing"], manager) == 1

    out = capsys.readouterr().out
    assert "OK    array: ArrayTranslationDriver" in out
    assert "FAIL  broken" in out
    assert "FAIL  missing" in out


def test_check_drivers_defaults_to_extensions(manager: TranslationManager, capsys):
    manager.extend("memory", ArrayTranslationDriver)

    assert main(["check-drivers"], manager) == 0

    out = capsys.readouterr().out
    assert "OK    json" in out
    assert "OK    memory" in out


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
