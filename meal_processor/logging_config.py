"""Logging bootstrap.

Stdlib ``logging`` carries the level and the handler; ``structlog`` renders
key-value events on top of it. Modules obtain loggers with
``structlog.get_logger(__name__)`` and log events with keyword context.
"""

from __future__ import annotations

import logging as _logging
import sys

import structlog


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure stdlib logging and structlog once for the process.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        fmt: ``console`` for human-readable lines, ``json`` for one JSON
            object per line
    """
    log_level = getattr(_logging, level.upper(), _logging.INFO)
    try:
        _logging.basicConfig(
            level=log_level,
            format="%(message)s",
            stream=sys.stdout,
        )
    except Exception:  # pragma: no cover
        _logging.basicConfig(level=_logging.INFO)

    renderer: structlog.typing.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
