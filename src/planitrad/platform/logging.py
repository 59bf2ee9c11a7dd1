"""
PlaniTrad Structured Logging

Configures structured JSON logging using structlog.
"""

import logging
import sys

import structlog

from planitrad.platform.config import settings


def configure_logging(level: str | None = None) -> None:
    """
    Configure structured logging for the application.

    ``level`` overrides LOG_LEVEL. In DEBUG mode the engines' per-day traces
    are kept, so the level drops to DEBUG.
    """
    if level is None:
        level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
            if settings.APP_ENV == "production"
            else structlog.dev.ConsoleRenderer(colors=settings.DEBUG),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    logging.getLogger("planitrad").setLevel(log_level)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance, configuring logging on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)
