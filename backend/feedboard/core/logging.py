"""
Structured logging configuration.

All modules log through structlog with snake_case event names and keyword
context, for example::

    logger = get_logger(__name__)
    logger.info("content_created", content_id=content.id, type_name="Graphic")

stdlib loggers (uvicorn, sqlalchemy, celery) are routed through the same
processor chain so every line comes out in one format.
"""

import logging
from typing import IO, Any, cast

import structlog
from structlog import dev, processors, stdlib
from structlog.stdlib import BoundLogger

from feedboard.core.config import settings


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        stdlib.add_logger_name,
        stdlib.add_log_level,
        stdlib.PositionalArgumentsFormatter(),
        processors.TimeStamper(fmt="iso", utc=True),
        processors.StackInfoRenderer(),
        processors.dict_tracebacks,
    ]


def setup_logging(json_output: bool | None = None, stream: IO[str] | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        json_output: Force JSON (True) or console (False) rendering. Defaults to
            JSON everywhere except development with LOG_FORMAT=text.
        stream: Where the root handler writes. Defaults to stderr.
    """
    if json_output is None:
        json_output = settings.LOG_FORMAT == "json" or not settings.is_development

    level = logging.getLevelName(settings.LOG_LEVEL)
    shared = _shared_processors()

    structlog.configure(
        processors=[
            stdlib.filter_by_level,
            *shared,
            stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=stdlib.LoggerFactory(),
        wrapper_class=stdlib.BoundLogger,
        # Cached loggers ignore later reconfiguration (structlog.testing.capture_logs)
        cache_logger_on_first_use=not settings.is_testing,
    )

    renderer = processors.JSONRenderer() if json_output else dev.ConsoleRenderer()
    formatter = stdlib.ProcessorFormatter(
        processors=[stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=shared,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Clear existing handlers to prevent duplicates on re-configuration
    root_logger.handlers = [handler]
    root_logger.setLevel(level)


def get_logger(name: str | None = None) -> BoundLogger:
    """Get a structured logger, optionally named after the calling module."""
    return cast(BoundLogger, structlog.get_logger(name))
