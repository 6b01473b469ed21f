"""structlog configuration shared by the engine and the CLI."""
from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING", format_json: bool = False) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        format_json: Render JSON lines instead of the console renderer.
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(level=log_level, stream=sys.stderr, format="%(message)s", force=True)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Return a structlog logger bound to ``name`` (typically ``__name__``).

    Events always go through the stdlib logger of that name, so library
    callers that never call ``configure_logging`` see nothing on stdout.
    """
    std_logger = logging.getLogger(name)
    if not any(isinstance(h, logging.NullHandler) for h in std_logger.handlers):
        std_logger.addHandler(logging.NullHandler())
    return structlog.wrap_logger(std_logger, wrapper_class=structlog.stdlib.BoundLogger)
