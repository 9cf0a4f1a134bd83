"""
Logging configuration.

Structured logging through structlog, rendered to stderr so that stdout stays
reserved for external tool output and operator summaries.

Configuration comes from ShipyardConfig (SHIPYARD_LOG_LEVEL, SHIPYARD_LOG_FORMAT):
- Log level: DEBUG | INFO | WARNING | ERROR (default: INFO)
- Output format: console | json (default: console)
"""

import logging
import sys
from typing import List

import structlog
from structlog.types import Processor

_configured = False

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(level: str = "INFO", format: str = "console", force: bool = False) -> None:
    """
    Configure structured logging for the process.

    Called once by the CLI entry point. Subsequent calls are no-ops unless
    force=True.

    Args:
        level: Log level name
        format: ``console`` or ``json``
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    log_level = level.upper()
    if log_level not in LEVELS:
        log_level = "INFO"

    processors: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("shipyard").setLevel(getattr(logging, log_level))

    _configured = True
