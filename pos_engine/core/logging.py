"""structlog setup shared by the app and the services."""

import logging

import structlog

from pos_engine.core.config import settings

_configured = False


def configure_logging(level: str | None = None) -> None:
    global _configured
    lvl = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(lvl, int):
        lvl = logging.INFO
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(lvl),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    if not _configured:
        configure_logging()
    if name:
        # proxy perezoso: resuelve stdout y nivel en cada llamada
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()
