"""
Structured logging configuration for Monthly Zen.

structlog renders both its own events (the quota store logs key/value
events such as ``quota_rollover``) and records from stdlib loggers, so
every line shares one format: console output in dev mode, one JSON object
per line otherwise.

Usage:
    from src.lib.logging import setup_logging

    setup_logging(settings)  # once, from create_app()
"""

import logging
import sys

import structlog

from src.config.settings import ZenSettings

# Emit per-statement/per-command chatter at INFO; keep them at WARNING.
QUIET_LOGGERS = ("sqlalchemy.engine", "redis", "httpx", "httpcore")


def _renderer(dev_mode: bool) -> structlog.types.Processor:
    if dev_mode:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(settings: ZenSettings) -> None:
    """
    Route structlog and stdlib logging through one ProcessorFormatter.

    The level comes from ``settings.log_level``. Stdlib records pass
    through the same timestamp/level chain as structlog events, and in
    JSON mode exceptions are rendered into the ``exception`` field.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if not settings.dev_mode:
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(settings.dev_mode),
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["QUIET_LOGGERS", "setup_logging"]
