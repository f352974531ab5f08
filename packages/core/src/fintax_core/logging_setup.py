"""structlog configuration for applications embedding the engine.

Library modules only call ``structlog.get_logger()``; the host application
calls ``configure_logging`` once at startup.
"""

import logging
from typing import Optional

import structlog

from .config import EngineSettings, LogFormat


def configure_logging(settings: Optional[EngineSettings] = None) -> None:
    """Configure structlog level filtering, timestamps and rendering."""
    settings = settings or EngineSettings()
    level = logging.getLevelName(settings.log_level)

    if settings.log_format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
