import logging
import os
import sys
from typing import Optional

import structlog

LOG_LEVEL_ENV = "DYNAMIC_ARRAY_LOG_LEVEL"


def setup_logging(log_level: Optional[str] = None, log_format: str = "console") -> None:
    """Configure structlog on top of the standard logging module.

    The level defaults to $DYNAMIC_ARRAY_LOG_LEVEL, then WARNING.
    `log_format` is "console" or "json".
    """
    if log_level is None:
        log_level = os.getenv(LOG_LEVEL_ENV, "WARNING")
    level = getattr(logging, log_level.upper(), logging.WARNING)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
