"""Structured logging for analysis runs.

Service-level events (one per analyzed symbol or batch) go through structlog
as JSON lines; the indicator and pattern modules use plain ``logging``.
"""
import logging
import sys

import structlog

from ta_engine.core.config import get_settings


def configure_structured_logging(log_level: str | None = None) -> None:
    """Configure structlog and the root ``logging`` handler.

    Args:
        log_level: Minimum level name; defaults to ``TA_LOG_LEVEL`` from settings
    """
    level = logging.getLevelName((log_level or get_settings().log_level).upper())

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a lazy structlog logger whose events carry ``logger_name``."""
    return structlog.get_logger(name, logger_name=name)
