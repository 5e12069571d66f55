import logging
import sys
from typing import Any

import structlog

from model_translation.core.config import settings

_configured = False


def setup_logging(*, json_logs: bool | None = None, force: bool = False) -> None:
    """Configure structlog on top of the stdlib logging module.

    Library code never calls this; applications and the CLI do, once.
    Console output is used for the local environment unless json_logs
    overrides it.
    """
    global _configured

    if _configured and not force:
        return

    log_level = logging.DEBUG if settings.DEBUG else logging.INFO
    if json_logs is None:
        json_logs = settings.ENVIRONMENT != "local"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=force,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    processors: list[Any]
    if json_logs:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
