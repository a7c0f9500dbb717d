"""
Logging Setup

Everything, including uvicorn and library loggers, goes through one stdout
handler whose formatter runs the structlog processor chain. Deployed
environments get one JSON object per line; local runs get the coloured
console renderer.
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import ProcessorFormatter, add_log_level

from backoffice.config.settings import Settings, get_settings

# Loggers that attach their own handlers unless told otherwise
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "gunicorn.error")

# Chatty at INFO: one line per SQL statement / per auth provider call
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")


def _pre_chain() -> List:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _build_handler(settings: Settings, level: int) -> logging.Handler:
    if settings.monitoring.log_format == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=_pre_chain()))
    return handler


def configure_logging(log_level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    """
    Route stdlib and structlog output through a single handler.

    Args:
        log_level: Level name overriding ``LOG_LEVEL``
        settings: Settings to read the level and format from
    """
    settings = settings or get_settings()
    level_name = (log_level or settings.monitoring.log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=_pre_chain() + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = _build_handler(settings, level)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False
        server_logger.setLevel(level)

    quiet_level = max(level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level_name,
        format=settings.monitoring.log_format,
        environment=settings.app_env,
    )
