"""
Structured logging configuration.

Call ``configure_structlog`` once at startup; modules then log through
``structlog.get_logger()``:

    log = structlog.get_logger()
    log.info("region_retrieved", region="osiris", position=3)

Production renders one JSON object per line, development renders
coloured console output. The level comes from the LOG_LEVEL environment
variable (default INFO).
"""

import logging
import os
from typing import List

import structlog
from structlog.typing import Processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _get_log_level() -> int:
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_structlog(environment: str = "production") -> None:
    """Configure structlog for 'production' (JSON) or 'development' (console)."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
