"""Maintenance commands for translation storage.

Usage:
    model-translation rebuild-index [--type App.Models.Article ...] [--dry-run]
    model-translation check-drivers [json sql ...]
"""

import argparse
from collections.abc import Sequence

from model_translation.core.config import settings
from model_translation.core.exceptions import TranslationError
from model_translation.core.logging import get_logger, setup_logging
from model_translation.drivers.json_driver import JSONTranslationDriver
from model_translation.manager import TranslationManager, translation_manager

logger = get_logger(__name__)


def rebuild_index(
    manager: TranslationManager,
    entity_types: list[str] | None = None,
    dry_run: bool = False,
    driver_name: str = "json",
) -> int:
    driver = manager.driver(driver_name)
    if not isinstance(driver, JSONTranslationDriver):
        print(f"Driver [{driver_name}] does not keep a language-model map")
        return 1

    rebuilt = driver.rebuild_index(entity_types, dry_run=dry_run)

    print("\n" + "=" * 60)
    print("DRY RUN SUMMARY" if dry_run else "REBUILD COMPLETE")
    print("=" * 60)
    for language in sorted(rebuilt):
        for entity_type, ids in sorted(rebuilt[language].items()):
            print(f"{language}  {entity_type}: {len(ids)} entities")
    print(f"Languages: {len(rebuilt)}")
    if dry_run:
        print("\nRun without --dry-run to write the language-model map")
    return 0


def check_drivers(manager: TranslationManager, names: Sequence[str] = ()) -> int:
    names = list(names) or manager.get_registered_extension_names()
    names = names or manager.get_available_drivers()

    failures = 0
    for name in names:
        try:
            driver = manager.driver(name)
        except TranslationError as e:
            failures += 1
            logger.error("translation_driver_check_failed", driver=name, **e.to_dict())
            print(f"FAIL  {name}: {e.message}")
        else:
            print(f"OK    {name}: {type(driver).__name__}")
    return 1 if failures else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="model-translation", description=f"{settings.PROJECT_NAME} maintenance"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    rebuild = subparsers.add_parser(
        "rebuild-index", help="Rebuild the language-model map from stored blobs"
    )
    rebuild.add_argument(
        "--type",
        dest="types",
        action="append",
        metavar="ENTITY_TYPE",
        help="Entity type to rescan (repeatable, default: every indexed type)",
    )
    rebuild.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be indexed without writing the map",
    )
    rebuild.add_argument("--driver", default="json", help="JSON driver name")

    check = subparsers.add_parser(
        "check-drivers", help="Resolve drivers and report contract violations"
    )
    check.add_argument("names", nargs="*", help="Driver names (default: extensions)")
    return parser


def main(argv: Sequence[str] | None = None, manager: TranslationManager | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    manager = manager or translation_manager()

    if args.command == "rebuild-index":
        return rebuild_index(manager, args.types, args.dry_run, args.driver)
    return check_drivers(manager, args.names)
